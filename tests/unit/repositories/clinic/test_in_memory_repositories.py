"""
Unit tests for the in-memory store, unit of work and repositories.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from clinicbook.core.domain import ConcurrencyException, DuplicateEntityException, EntityNotFoundException, Money
from clinicbook.domains.clinic.infrastructure.persistence.memory import InMemoryStore, InMemoryUnitOfWork
from clinicbook.domains.clinic.infrastructure.repositories.memory import build_in_memory_repositories
from tests.utils import create_appointment, create_doctor, create_invoice, create_patient

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(lock_timeout=0.1)


@pytest.fixture
def uow(store) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(store, build_in_memory_repositories(store))


# ============================================================================
# UNIT OF WORK
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_exception_rolls_back_every_write(uow, store):
    async with uow.transaction() as repos:
        kept = await repos.patients.save(create_patient(None))

    with pytest.raises(RuntimeError):
        async with uow.transaction() as repos:
            await repos.patients.save(create_patient(None, email="second@example.com"))
            await repos.patients.delete(kept.id)
            raise RuntimeError("abort")

    assert list(store.tables["patients"]) == [kept.id]


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_ids_are_not_reused_after_rollback(uow):
    with pytest.raises(RuntimeError):
        async with uow.transaction() as repos:
            await repos.patients.save(create_patient(None))
            raise RuntimeError("abort")

    async with uow.transaction() as repos:
        saved = await repos.patients.save(create_patient(None))

    assert saved.id == 2


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_transactions_do_not_nest(uow):
    async with uow.transaction():
        with pytest.raises(ConcurrencyException):
            async with uow.transaction():
                pass


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_returned_entities_are_copies(uow):
    async with uow.transaction() as repos:
        saved = await repos.patients.save(create_patient(None))
        saved.first_name = "Changed"
        loaded = await repos.patients.find_by_id(saved.id)

    assert loaded.first_name == "Grace"


# ============================================================================
# SAVE
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_stale_version_is_a_concurrency_conflict(uow):
    async with uow.transaction() as repos:
        saved = await repos.doctors.save(create_doctor(None))
        first = await repos.doctors.find_by_id(saved.id)
        second = await repos.doctors.find_by_id(saved.id)

        first.phone = "+254700000001"
        await repos.doctors.save(first)

        second.phone = "+254700000002"
        with pytest.raises(ConcurrencyException):
            await repos.doctors.save(second)

    assert first.version == 1


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_saving_unknown_id_is_not_found(uow):
    async with uow.transaction() as repos:
        with pytest.raises(EntityNotFoundException):
            await repos.patients.save(create_patient(42))


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_one_invoice_per_appointment(uow):
    async with uow.transaction() as repos:
        await repos.invoices.save(create_invoice(None, "10.00"))
        with pytest.raises(DuplicateEntityException):
            await repos.invoices.save(create_invoice(None, "20.00"))


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_children_get_parent_ids(uow):
    appointment = create_appointment(None)
    appointment.add_treatment(7, 1, Money(Decimal("10.00")))
    invoice = create_invoice(None, "10.00")
    invoice.record_payment("4.00")
    invoice.record_payment("6.00")

    async with uow.transaction() as repos:
        saved_appointment = await repos.appointments.save(appointment)
        saved_invoice = await repos.invoices.save(invoice)

    assert saved_appointment.treatments[0].appointment_id == saved_appointment.id
    assert [p.id for p in saved_invoice.payments] == [1, 2]
    assert {p.invoice_id for p in saved_invoice.payments} == {saved_invoice.id}


# ============================================================================
# QUERIES
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_appointment_queries_are_ordered_by_start(uow):
    def at(hour):
        return datetime(2025, 9, 30, hour, tzinfo=UTC)

    async with uow.transaction() as repos:
        late = await repos.appointments.save(create_appointment(None, start=at(11)))
        early = await repos.appointments.save(create_appointment(None, start=at(9), room_id=3))
        cancelled = create_appointment(None, start=at(10))
        cancelled.cancel()
        cancelled = await repos.appointments.save(cancelled)

        by_doctor = await repos.appointments.find_by_doctor(1)
        holding = await repos.appointments.find_holding_reservations()
        in_room = await repos.appointments.find_by_room(3)
        count = await repos.appointments.count_by_doctor(1)

    assert [a.id for a in by_doctor] == [early.id, cancelled.id, late.id]
    assert [a.id for a in holding] == [early.id, late.id]
    assert [a.id for a in in_room] == [early.id]
    assert count == 3


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_find_by_email_and_unpaid(uow):
    async with uow.transaction() as repos:
        await repos.patients.save(create_patient(None, email="Grace@Example.com"))
        unpaid = await repos.invoices.save(create_invoice(None, "10.00"))
        paid = create_invoice(None, "5.00", "5.00")
        paid.appointment_id = 2
        await repos.invoices.save(paid)

        found = await repos.patients.find_by_email("GRACE@example.com")
        open_invoices = await repos.invoices.list_unpaid()

    assert found is not None
    assert [i.id for i in open_invoices] == [unpaid.id]
