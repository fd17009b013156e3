"""
Unit tests for the BillingReconciler (in-memory storage).

Tests:
- treatment lines and invoice totals
- invoice generation (idempotent)
- payments and the derived paid flag
- paid invoices and adjustments
- concurrent billing mutations
"""

import asyncio
from decimal import Decimal

import pytest
import pytest_asyncio

from clinicbook.core.domain import ErrorKind, Money
from clinicbook.domains.clinic.domain.value_objects import PaymentMethod
from tests.utils import assert_failed, assert_succeeded

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def billing(container):
    return container.billing


@pytest_asyncio.fixture
async def appointment_id(container, clinic, at):
    result = await container.booking.create(clinic.patient, clinic.doctor, at(9, 0), at(9, 20))
    return result.value.id


@pytest_asyncio.fixture
async def invoice_95(billing, clinic, appointment_id):
    """Invoice of the booked appointment: 2 x 10.00 + 1 x 75.00."""
    await billing.add_treatment_line(appointment_id, clinic.consultation, quantity=2)
    await billing.add_treatment_line(appointment_id, clinic.xray)
    return (await billing.generate_invoice(appointment_id)).value


def _assert_consistent(container) -> None:
    """Every stored invoice matches its lines and payments."""
    store = container.uow.store
    for invoice in store.tables["invoices"].values():
        appointment = store.tables["appointments"].get(invoice.appointment_id)
        if appointment is not None:
            assert invoice.total_amount == appointment.billable_total()
        paid_sum = sum((p.amount.amount for p in invoice.payments), Decimal("0"))
        assert invoice.paid == (bool(invoice.payments) and paid_sum >= invoice.total_amount.amount)


# ============================================================================
# TREATMENT LINES / INVOICES
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_invoice_total_is_sum_of_lines(billing, clinic, appointment_id, container):
    # Arrange
    await billing.add_treatment_line(appointment_id, clinic.consultation, quantity=2)
    await billing.add_treatment_line(appointment_id, clinic.xray)

    # Act
    result = await billing.generate_invoice(appointment_id, notes="September visit")

    # Assert
    invoice = assert_succeeded(result)
    assert invoice.total_amount == Money(Decimal("95.00"))
    assert invoice.paid is False
    assert invoice.notes == "September visit"
    assert result.event_types() == ["InvoiceGenerated"]
    _assert_consistent(container)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_lines_added_after_invoicing_update_the_total(billing, clinic, appointment_id, container):
    empty = assert_succeeded(await billing.generate_invoice(appointment_id))
    assert empty.total_amount.is_zero()

    result = await billing.add_treatment_line(appointment_id, clinic.xray)

    outcome = assert_succeeded(result)
    assert outcome.invoice.id == empty.id
    assert outcome.invoice_total == Money(Decimal("75.00"))
    assert outcome.paid_flipped is False
    assert result.event_types() == ["TreatmentLineAdded", "InvoiceTotalChanged"]
    _assert_consistent(container)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_line_without_invoice(billing, clinic, appointment_id):
    outcome = assert_succeeded(await billing.add_treatment_line(appointment_id, clinic.consultation, notes="Initial"))

    assert outcome.invoice is None
    assert outcome.invoice_total is None
    assert outcome.line.unit_price == Money(Decimal("10.00"))
    assert outcome.line.notes == "Initial"


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_generate_invoice_is_idempotent(billing, invoice_95, appointment_id):
    result = await billing.generate_invoice(appointment_id)

    again = assert_succeeded(result)
    assert again.id == invoice_95.id
    assert again.total_amount == invoice_95.total_amount
    assert result.events == []


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_cancelled_appointment_cannot_be_invoiced(container, billing, appointment_id):
    await container.booking.cancel(appointment_id)

    assert_failed(await billing.generate_invoice(appointment_id), ErrorKind.INVALID_STATE)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_cancelling_keeps_existing_invoice(container, billing, invoice_95, appointment_id):
    assert_succeeded(await container.booking.cancel(appointment_id))

    invoice = assert_succeeded(await billing.get_invoice(invoice_95.id))
    assert invoice.total_amount == Money(Decimal("95.00"))
    assert invoice.appointment_id == appointment_id


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_line_keeps_price_it_was_added_at(container, billing, clinic, appointment_id):
    await billing.add_treatment_line(appointment_id, clinic.consultation)
    assert_succeeded(await container.registry.update_treatment_price(clinic.consultation, "12.00"))

    outcome = assert_succeeded(await billing.add_treatment_line(appointment_id, clinic.consultation))

    assert outcome.line.quantity == 2
    assert outcome.line.unit_price == Money(Decimal("10.00"))


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -2, 1.5])
async def test_invalid_quantity(billing, clinic, appointment_id, quantity):
    result = await billing.add_treatment_line(appointment_id, clinic.consultation, quantity=quantity)

    assert_failed(result, ErrorKind.INVALID_INPUT)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_unknown_references(billing, clinic, appointment_id):
    assert_failed(await billing.add_treatment_line(appointment_id, 999), ErrorKind.NOT_FOUND)
    assert_failed(await billing.add_treatment_line(999, clinic.consultation), ErrorKind.NOT_FOUND)
    assert_failed(await billing.generate_invoice(999), ErrorKind.NOT_FOUND)
    assert_failed(await billing.get_invoice_for_appointment(appointment_id), ErrorKind.NOT_FOUND)


# ============================================================================
# PAYMENTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_full_payment_marks_invoice_paid(billing, invoice_95, container):
    # Act
    result = await billing.record_payment(invoice_95.id, Decimal("95.00"), PaymentMethod.CARD, reference="POS-881")

    # Assert
    outcome = assert_succeeded(result)
    assert outcome.paid_flipped is True
    assert outcome.invoice.paid is True
    assert outcome.payment.id is not None
    assert outcome.payment.invoice_id == invoice_95.id
    assert result.event_types() == ["PaymentRecorded", "InvoicePaymentStatusChanged"]
    assert assert_succeeded(await billing.balance_due(invoice_95.id)).is_zero()
    _assert_consistent(container)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_partial_payment_leaves_balance(billing, invoice_95):
    outcome = assert_succeeded(await billing.record_payment(invoice_95.id, "50", "cash"))

    assert outcome.paid_flipped is False
    assert outcome.invoice.paid is False
    assert assert_succeeded(await billing.balance_due(invoice_95.id)) == Money(Decimal("45.00"))


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, "0", -5, "-0.01"])
async def test_non_positive_payment_is_invalid_amount(billing, invoice_95, amount):
    result = await billing.record_payment(invoice_95.id, amount)

    assert_failed(result, ErrorKind.INVALID_AMOUNT, "INVALID_AMOUNT")
    invoice = assert_succeeded(await billing.get_invoice(invoice_95.id))
    assert invoice.payments == []


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_malformed_payment_is_invalid_input(billing, invoice_95):
    assert_failed(await billing.record_payment(invoice_95.id, "ninety"), ErrorKind.INVALID_INPUT)
    assert_failed(await billing.record_payment(invoice_95.id, "10", "bitcoin"), ErrorKind.INVALID_INPUT)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_payment_on_unknown_invoice_is_not_found(billing, clinic):
    assert_failed(await billing.record_payment(404, "10.00"), ErrorKind.NOT_FOUND)
    assert_failed(await billing.balance_due(404), ErrorKind.NOT_FOUND)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_payment_ids_are_unique(billing, invoice_95):
    first = assert_succeeded(await billing.record_payment(invoice_95.id, "20")).payment
    second = assert_succeeded(await billing.record_payment(invoice_95.id, "20")).payment

    assert first.id != second.id
    invoice = assert_succeeded(await billing.get_invoice(invoice_95.id))
    assert [p.id for p in invoice.payments] == [first.id, second.id]


# ============================================================================
# PAID INVOICES
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_paid_invoice_refuses_new_lines(billing, clinic, invoice_95, appointment_id, container):
    await billing.record_payment(invoice_95.id, "95.00")

    result = await billing.add_treatment_line(appointment_id, clinic.consultation)

    assert_failed(result, ErrorKind.INVALID_STATE, "INVOICE_PAID")
    appointment = assert_succeeded(await container.booking.get(appointment_id))
    assert appointment.find_line(clinic.consultation).quantity == 2
    _assert_consistent(container)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_adjusting_paid_invoice_flips_paid_back(billing, clinic, invoice_95, appointment_id, container):
    await billing.record_payment(invoice_95.id, "95.00")

    result = await billing.add_treatment_line(appointment_id, clinic.consultation, allow_paid_adjustment=True)

    outcome = assert_succeeded(result)
    assert outcome.paid_flipped is True
    assert outcome.invoice.paid is False
    assert outcome.invoice_total == Money(Decimal("105.00"))
    assert result.event_types() == ["TreatmentLineAdded", "InvoiceTotalChanged", "InvoicePaymentStatusChanged"]
    assert assert_succeeded(await billing.balance_due(invoice_95.id)) == Money(Decimal("10.00"))
    _assert_consistent(container)


# ============================================================================
# CONCURRENCY
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_concurrent_payments_flip_paid_once(billing, invoice_95, container):
    results = await asyncio.gather(*[billing.record_payment(invoice_95.id, "50.00") for _ in range(2)])

    assert all(r.success for r in results)
    assert sum(r.value.paid_flipped for r in results) == 1
    invoice = assert_succeeded(await billing.get_invoice(invoice_95.id))
    assert invoice.paid is True
    assert invoice.amount_paid() == Money(Decimal("100.00"))
    _assert_consistent(container)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_concurrent_lines_and_payments_stay_consistent(billing, clinic, invoice_95, appointment_id, container):
    await asyncio.gather(
        billing.record_payment(invoice_95.id, "95.00"),
        billing.add_treatment_line(appointment_id, clinic.consultation, allow_paid_adjustment=True),
        billing.record_payment(invoice_95.id, "5.00"),
        billing.add_treatment_line(appointment_id, clinic.xray, allow_paid_adjustment=True),
    )

    _assert_consistent(container)
    invoice = assert_succeeded(await billing.get_invoice(invoice_95.id))
    assert invoice.total_amount == Money(Decimal("180.00"))
    assert invoice.amount_paid() == Money(Decimal("100.00"))
    assert invoice.paid is False


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_concurrent_invoice_generation_creates_one_invoice(billing, appointment_id, container):
    results = await asyncio.gather(*[billing.generate_invoice(appointment_id) for _ in range(3)])

    assert len({r.value.id for r in results}) == 1
    assert len(container.uow.store.tables["invoices"]) == 1
    assert sum(len(r.events) for r in results) == 1
