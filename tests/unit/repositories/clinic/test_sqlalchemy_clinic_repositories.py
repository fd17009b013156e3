"""
Unit tests for the SQLAlchemy clinic repositories.

The AsyncSession is mocked; these tests cover the mapping, the optimistic
version check, delete rules and error translation, not SQL generation.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from clinicbook.core.domain import (
    ConcurrencyException,
    DuplicateEntityException,
    EntityNotFoundException,
    ReferentialIntegrityException,
    UnavailableException,
    ValidationException,
)
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import DoctorModel, InvoiceModel
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.unit_of_work import SQLAlchemyUnitOfWork
from clinicbook.domains.clinic.infrastructure.repositories.sqlalchemy import (
    SQLAlchemyDoctorRepository,
    SQLAlchemyInvoiceRepository,
    SQLAlchemyPatientRepository,
    build_sqlalchemy_repositories,
    repositories_factory,
)
from tests.utils import create_doctor, create_invoice

CREATED = datetime(2025, 9, 1, 8, 0, tzinfo=UTC)


class FakeDriverError(Exception):
    """Stands in for an asyncpg error carrying a SQLSTATE."""

    def __init__(self, sqlstate: str | None = None):
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


def _result(scalar=None, count=None) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalar_one.return_value = count
    return result


def _doctor_model(doctor_id: int = 1, version: int = 0) -> DoctorModel:
    return DoctorModel(
        id=doctor_id,
        created_at=CREATED,
        first_name="Alice",
        last_name="Mwangi",
        email="alice@clinic.test",
        phone=None,
        specialty_id=None,
        active=True,
        version=version,
    )


# ============================================================================
# ERROR TRANSLATION
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.parametrize(
    "sqlstate,expected",
    [
        ("23505", DuplicateEntityException),
        ("23503", ReferentialIntegrityException),
        ("23514", ValidationException),
    ],
)
def test_integrity_errors_are_translated(sqlstate, expected):
    with pytest.raises(expected):
        with translate_errors("save patient", "Patient"):
            raise IntegrityError("INSERT INTO patients", {}, FakeDriverError(sqlstate))


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.parametrize("sqlstate", ["40001", "40P01"])
def test_serialization_failures_are_conflicts(sqlstate):
    with pytest.raises(ConcurrencyException):
        with translate_errors("save invoice", "Invoice"):
            raise DBAPIError("UPDATE invoices", {}, FakeDriverError(sqlstate))


@pytest.mark.unit
@pytest.mark.repository
def test_stale_rows_are_conflicts():
    with pytest.raises(ConcurrencyException):
        with translate_errors("save invoice", "Invoice"):
            raise StaleDataError("UPDATE statement on table 'invoices' expected to update 1 row(s)")


@pytest.mark.unit
@pytest.mark.repository
def test_connection_errors_are_unavailable():
    with pytest.raises(UnavailableException) as exc_info:
        with translate_errors("commit"):
            raise OperationalError("SELECT 1", {}, FakeDriverError())

    assert exc_info.value.details["service"] == "database"


@pytest.mark.unit
@pytest.mark.repository
def test_other_errors_pass_through():
    with pytest.raises(DBAPIError):
        with translate_errors("save patient"):
            raise DBAPIError("SELECT 1", {}, FakeDriverError("42601"))

    with pytest.raises(KeyError):
        with translate_errors("save patient"):
            raise KeyError("missing")


# ============================================================================
# UNIT OF WORK
# ============================================================================


def _session_factory(session):
    @asynccontextmanager
    async def open_session():
        yield session

    return open_session


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_unit_of_work_commits_on_success(mock_session):
    uow = SQLAlchemyUnitOfWork(_session_factory(mock_session), build_sqlalchemy_repositories)

    async with uow.transaction() as repos:
        assert repos.patients.session is mock_session

    mock_session.commit.assert_awaited_once()
    mock_session.rollback.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_unit_of_work_rolls_back_on_error(mock_session):
    uow = SQLAlchemyUnitOfWork(_session_factory(mock_session), build_sqlalchemy_repositories)

    with pytest.raises(RuntimeError):
        async with uow.transaction():
            raise RuntimeError("abort")

    mock_session.commit.assert_not_awaited()
    mock_session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_failed_commit_is_translated_and_rolled_back(mock_session):
    mock_session.commit.side_effect = OperationalError("COMMIT", {}, FakeDriverError())
    uow = SQLAlchemyUnitOfWork(_session_factory(mock_session), build_sqlalchemy_repositories)

    with pytest.raises(UnavailableException):
        async with uow.transaction():
            pass

    mock_session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
def test_repositories_share_the_session_and_currency(mock_session):
    repos = repositories_factory("KES")(mock_session)

    assert isinstance(repos.patients, SQLAlchemyPatientRepository)
    assert isinstance(repos.invoices, SQLAlchemyInvoiceRepository)
    assert {repos.doctors.session, repos.appointments.session} == {mock_session}
    assert repos.invoices.currency == "KES"


# ============================================================================
# SAVE
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_find_by_id_maps_model_to_entity(mock_session):
    mock_session.execute.return_value = _result(_doctor_model(version=3))
    repository = SQLAlchemyDoctorRepository(mock_session)

    doctor = await repository.find_by_id(1)

    assert doctor.id == 1
    assert doctor.email.address == "alice@clinic.test"
    assert doctor.version == 3


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_find_by_id_missing(mock_session):
    mock_session.execute.return_value = _result(None)
    repository = SQLAlchemyDoctorRepository(mock_session)

    assert await repository.find_by_id(404) is None


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_save_new_entity_takes_generated_id(mock_session):
    # Arrange
    async def assign_id():
        mock_session.add.call_args.args[0].id = 7

    mock_session.flush.side_effect = assign_id
    repository = SQLAlchemyDoctorRepository(mock_session)
    doctor = create_doctor(None)

    # Act
    saved = await repository.save(doctor)

    # Assert
    added = mock_session.add.call_args.args[0]
    assert isinstance(added, DoctorModel)
    assert added.email == "doctor0@clinic.test"
    assert doctor.id == 7
    assert saved.id == 7


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_save_existing_entity_bumps_version(mock_session):
    model = _doctor_model(version=2)
    mock_session.execute.return_value = _result(model)
    repository = SQLAlchemyDoctorRepository(mock_session)
    doctor = create_doctor(1, phone="+254700000001", version=2)

    saved = await repository.save(doctor)

    assert model.phone == "+254700000001"
    assert model.version == 3
    assert doctor.version == 3
    assert saved.version == 3
    mock_session.flush.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_save_with_stale_version_is_a_conflict(mock_session):
    model = _doctor_model(version=5)
    mock_session.execute.return_value = _result(model)
    repository = SQLAlchemyDoctorRepository(mock_session)

    with pytest.raises(ConcurrencyException):
        await repository.save(create_doctor(1, phone="+254700000001", version=4))

    assert model.phone is None
    mock_session.flush.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_save_of_deleted_row_is_not_found(mock_session):
    mock_session.execute.return_value = _result(None)
    repository = SQLAlchemyDoctorRepository(mock_session)

    with pytest.raises(EntityNotFoundException):
        await repository.save(create_doctor(9))


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_new_payments_get_database_ids(mock_session):
    # Arrange
    model = InvoiceModel(
        id=3,
        appointment_id=1,
        total_amount=Decimal("10.00"),
        issued_at=CREATED,
        paid=False,
        notes=None,
        version=0,
        payments=[],
    )
    mock_session.execute.return_value = _result(model)

    async def assign_ids():
        for number, row in enumerate(model.payments, start=11):
            row.id = number

    mock_session.flush.side_effect = assign_ids
    invoice = create_invoice(3, "10.00")
    invoice.record_payment("4.00")
    repository = SQLAlchemyInvoiceRepository(mock_session)

    # Act
    saved = await repository.save(invoice)

    # Assert
    assert [p.id for p in invoice.payments] == [11]
    assert invoice.payments[0].invoice_id == 3
    assert [p.amount.amount for p in saved.payments] == [Decimal("4.00")]
    assert model.payments[0].amount == Decimal("4.00")


# ============================================================================
# DELETE
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_doctor_with_appointments_is_restricted(mock_session):
    mock_session.execute.side_effect = [_result(_doctor_model()), _result(count=2)]
    repository = SQLAlchemyDoctorRepository(mock_session)

    with pytest.raises(ReferentialIntegrityException) as exc_info:
        await repository.delete(1)

    assert exc_info.value.details["referenced_by"] == "appointments"
    assert exc_info.value.details["count"] == 2
    mock_session.delete.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_doctor_without_appointments_is_deleted(mock_session):
    model = _doctor_model()
    mock_session.execute.side_effect = [
        _result(model),  # existence check
        _result(count=0),  # appointment count
        _result(),  # prescriber set-null
        _result(model),  # base delete lookup
    ]
    repository = SQLAlchemyDoctorRepository(mock_session)

    assert await repository.delete(1) is True
    mock_session.delete.assert_awaited_once_with(model)


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_delete_missing_row(mock_session):
    mock_session.execute.return_value = _result(None)
    repository = SQLAlchemyDoctorRepository(mock_session)

    assert await repository.delete(404) is False
    mock_session.delete.assert_not_awaited()
