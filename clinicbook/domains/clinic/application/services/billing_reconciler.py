"""
Billing Reconciler

Keeps treatment lines, invoice totals, payments and the paid flag
consistent. Every mutation of one invoice runs under the billing lock of
its appointment and/or invoice, inside one transaction.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from clinicbook.config.settings import Settings
from clinicbook.core.domain import (
    ConcurrencyException,
    DomainEvent,
    DomainEventPublisher,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
    to_decimal,
)
from clinicbook.core.infrastructure import KeyedLocks, Retryer
from clinicbook.core.shared import get_service_logger
from clinicbook.domains.clinic.application.dto import OperationResult, PaymentOutcome, TreatmentLineOutcome
from clinicbook.domains.clinic.application.ports import ClinicRepositories, IClock, IUnitOfWork
from clinicbook.domains.clinic.application.services.base import ClinicService
from clinicbook.domains.clinic.domain.entities import Appointment, Invoice
from clinicbook.domains.clinic.domain.events import InvoiceGenerated
from clinicbook.domains.clinic.domain.value_objects import AppointmentStatus, PaymentMethod


def _appointment_key(appointment_id: int) -> tuple[str, int]:
    return ("appointment", appointment_id)


def _invoice_key(invoice_id: int) -> tuple[str, int]:
    return ("invoice", invoice_id)


class BillingReconciler(ClinicService):
    """
    Treatment lines, invoices and payments.

    Example:
        ```python
        billing = BillingReconciler(uow, settings)
        await billing.add_treatment_line(appointment_id, consultation_id, quantity=2)
        result = await billing.generate_invoice(appointment_id)
        await billing.record_payment(result.value.id, Decimal("95.00"))
        ```
    """

    logger = get_service_logger("billing_reconciler")

    def __init__(
        self,
        uow: IUnitOfWork,
        settings: Settings | None = None,
        publisher: DomainEventPublisher | None = None,
        retryer: Retryer | None = None,
        clock: IClock | None = None,
        locks: KeyedLocks | None = None,
    ):
        super().__init__(uow, settings, publisher, retryer, clock)
        self._locks = locks or KeyedLocks(timeout=self._settings.LOCK_TIMEOUT_SECONDS, name="billing")

    @asynccontextmanager
    async def appointment_lock(self, appointment_id: int) -> AsyncIterator[None]:
        """Serialize invoice creation and line changes of one appointment."""
        async with self._locks.hold(_appointment_key(appointment_id)):
            yield

    # ==================== INVOICES ====================

    async def ensure_invoice(
        self,
        repos: ClinicRepositories,
        appointment: Appointment,
        events: list[DomainEvent],
        notes: str | None = None,
    ) -> tuple[Invoice, bool]:
        """
        Return the appointment's invoice, creating it on first call.

        Runs inside the caller's transaction; the caller holds the
        appointment lock.

        Returns:
            The invoice and whether it was created now.
        """
        existing = await repos.invoices.find_by_appointment(appointment.id)
        if existing is not None:
            return existing, False

        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidStateException(
                operation="generate_invoice",
                current_state=appointment.status.value,
                message=f"Cancelled appointment {appointment.id} cannot be invoiced",
            )

        invoice = Invoice(
            appointment_id=appointment.id,
            total_amount=appointment.billable_total(self.currency),
            issued_at=self._clock.now(),
            created_at=self._clock.now(),
            paid=False,
            notes=notes,
        )
        saved = await repos.invoices.save(invoice)
        events.append(
            InvoiceGenerated(
                invoice_id=saved.id,
                appointment_id=appointment.id,
                total_amount=saved.total_amount.amount,
            )
        )
        self.logger.info(
            f"Invoice {saved.id} generated for appointment {appointment.id} ({saved.total_amount})",
            invoice_id=saved.id,
            appointment_id=appointment.id,
        )
        return saved, True

    async def generate_invoice(self, appointment_id: int, notes: str | None = None) -> OperationResult:
        """
        Create the appointment's invoice. A second call returns the existing
        invoice unchanged.
        """
        return await self._run("generate_invoice", self._generate_invoice, appointment_id, notes)

    async def _generate_invoice(self, events: list[DomainEvent], appointment_id: int, notes: str | None) -> Invoice:
        async with self.appointment_lock(appointment_id):
            async with self._uow.transaction() as repos:
                appointment = await self._require_appointment(repos, appointment_id)
                invoice, _ = await self.ensure_invoice(repos, appointment, events, notes)
                return invoice

    # ==================== TREATMENT LINES ====================

    async def add_treatment_line(
        self,
        appointment_id: int,
        treatment_id: int,
        quantity: int = 1,
        notes: str | None = None,
        allow_paid_adjustment: bool = False,
    ) -> OperationResult:
        """
        Add a treatment to the appointment at the current catalog price.

        Fails with InvalidState when the invoice is already paid, unless
        ``allow_paid_adjustment`` is set, in which case the total grows and
        the paid flag flips back to False.
        """
        return await self._run(
            "add_treatment_line",
            self._add_treatment_line,
            appointment_id,
            treatment_id,
            quantity,
            notes,
            allow_paid_adjustment,
        )

    async def _add_treatment_line(
        self,
        events: list[DomainEvent],
        appointment_id: int,
        treatment_id: int,
        quantity: int,
        notes: str | None,
        allow_paid_adjustment: bool,
    ) -> TreatmentLineOutcome:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationException(f"Quantity must be a positive integer, got {quantity!r}", field="quantity")

        async with self._uow.transaction() as repos:
            seen = await repos.invoices.find_by_appointment(appointment_id)
        seen_id = seen.id if seen else None

        keys = [_appointment_key(appointment_id)]
        if seen_id is not None:
            keys.append(_invoice_key(seen_id))

        async with self._locks.hold(*keys):
            async with self._uow.transaction() as repos:
                appointment = await self._require_appointment(repos, appointment_id)
                treatment = await repos.treatments.find_by_id(treatment_id)
                if treatment is None:
                    raise EntityNotFoundException("Treatment", treatment_id)

                invoice = await repos.invoices.find_by_appointment(appointment_id)
                if (invoice.id if invoice else None) != seen_id:
                    raise ConcurrencyException(
                        resource=f"appointment:{appointment_id}",
                        message=f"Invoice of appointment {appointment_id} changed while waiting for its lock",
                    )

                if invoice is not None and invoice.paid and not allow_paid_adjustment:
                    raise InvalidStateException(
                        operation="add_treatment_line",
                        current_state="paid",
                        message=f"Invoice {invoice.id} is already paid",
                        code="INVOICE_PAID",
                    )

                line = appointment.add_treatment(treatment_id, quantity, treatment.price, notes)
                await repos.appointments.save(appointment)

                flipped = False
                if invoice is not None:
                    flipped = invoice.update_total(appointment.billable_total(invoice.currency))
                    await repos.invoices.save(invoice)

                self._collect(events, appointment, invoice)

        self.logger.info(
            f"Added {quantity} x treatment {treatment_id} to appointment {appointment_id}"
            + (f"; invoice {invoice.id} total {invoice.total_amount}" if invoice else ""),
            appointment_id=appointment_id,
            paid_flipped=flipped,
        )
        return TreatmentLineOutcome(line=line, invoice=invoice, paid_flipped=flipped)

    # ==================== PAYMENTS ====================

    async def record_payment(
        self,
        invoice_id: int,
        amount: Any,
        method: PaymentMethod | str = PaymentMethod.CASH,
        reference: str | None = None,
    ) -> OperationResult:
        """
        Append a payment; the invoice becomes paid once payments cover the total.

        Non-positive amounts fail with InvalidAmount.
        """
        return await self._run("record_payment", self._record_payment, invoice_id, amount, method, reference)

    async def _record_payment(
        self,
        events: list[DomainEvent],
        invoice_id: int,
        amount: Any,
        method: PaymentMethod | str,
        reference: str | None,
    ) -> PaymentOutcome:
        to_decimal(amount)
        if isinstance(method, str) and not isinstance(method, PaymentMethod):
            method = PaymentMethod.from_string(method)

        async with self._locks.hold(_invoice_key(invoice_id)):
            async with self._uow.transaction() as repos:
                invoice = await repos.invoices.find_by_id(invoice_id)
                if invoice is None:
                    raise EntityNotFoundException("Invoice", invoice_id)

                payment, flipped = invoice.record_payment(amount, method, reference, paid_at=self._clock.now())
                await repos.invoices.save(invoice)
                self._collect(events, invoice)

        self.logger.info(
            f"Payment of {payment.amount} recorded on invoice {invoice_id} (paid={invoice.paid})",
            invoice_id=invoice_id,
            paid_flipped=flipped,
        )
        return PaymentOutcome(payment=payment, invoice=invoice, paid_flipped=flipped)

    # ==================== QUERIES ====================

    async def get_invoice(self, invoice_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> Invoice:
            invoice = await repos.invoices.find_by_id(invoice_id)
            if invoice is None:
                raise EntityNotFoundException("Invoice", invoice_id)
            return invoice

        return await self._read("get_invoice", reader)

    async def get_invoice_for_appointment(self, appointment_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> Invoice:
            await self._require_appointment(repos, appointment_id)
            invoice = await repos.invoices.find_by_appointment(appointment_id)
            if invoice is None:
                raise EntityNotFoundException(
                    "Invoice", appointment_id, message=f"Appointment {appointment_id} has no invoice"
                )
            return invoice

        return await self._read("get_invoice_for_appointment", reader)

    async def balance_due(self, invoice_id: int) -> OperationResult:
        """Outstanding amount of an invoice (zero once paid or overpaid)."""
        result = await self.get_invoice(invoice_id)
        if not result.success:
            return result
        return OperationResult.ok(result.value.balance_due())
