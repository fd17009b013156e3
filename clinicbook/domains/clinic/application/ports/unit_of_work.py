"""
Unit of Work and Clock Ports

A unit of work opens one transaction and hands out the repositories bound
to it. Leaving the block normally commits; leaving it with an exception
rolls back every change made inside the block.
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from .appointment_repository import IAppointmentRepository
from .catalog_repository import IMedicationRepository, IRoomRepository, ITreatmentRepository
from .doctor_repository import IDoctorRepository, ISpecialtyRepository
from .invoice_repository import IInvoiceRepository
from .patient_repository import IPatientRepository
from .prescription_repository import IPrescriptionRepository


@dataclass
class ClinicRepositories:
    """Repositories bound to one transaction."""

    patients: IPatientRepository
    doctors: IDoctorRepository
    specialties: ISpecialtyRepository
    rooms: IRoomRepository
    treatments: ITreatmentRepository
    medications: IMedicationRepository
    appointments: IAppointmentRepository
    invoices: IInvoiceRepository
    prescriptions: IPrescriptionRepository


@runtime_checkable
class IUnitOfWork(Protocol):
    """
    Transaction boundary.

    Example:
        ```python
        async with uow.transaction() as repos:
            patient = await repos.patients.find_by_id(1)
            await repos.appointments.save(appointment)
        ```
    """

    def transaction(self) -> AbstractAsyncContextManager[ClinicRepositories]:
        ...


@runtime_checkable
class IClock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)
