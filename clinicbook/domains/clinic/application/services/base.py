"""
Base class for clinic application services.

Runs one operation attempt at a time through the conflict retryer, turns
domain exceptions into typed results and publishes the attempt's domain
events once it has committed.
"""

from typing import Any, Awaitable, Callable

from clinicbook.config.settings import Settings, get_settings
from clinicbook.core.domain import (
    AggregateRoot,
    DomainEvent,
    DomainEventPublisher,
    DomainException,
    EntityNotFoundException,
)
from clinicbook.core.infrastructure import Retryer
from clinicbook.core.shared import ContextLogger
from clinicbook.domains.clinic.application.dto import OperationResult
from clinicbook.domains.clinic.application.ports import ClinicRepositories, IClock, IUnitOfWork, SystemClock
from clinicbook.domains.clinic.domain.entities import Appointment, Doctor, Patient

Attempt = Callable[..., Awaitable[Any]]


class ClinicService:
    """Shared plumbing for BookingEngine, BillingReconciler and friends."""

    logger: ContextLogger

    def __init__(
        self,
        uow: IUnitOfWork,
        settings: Settings | None = None,
        publisher: DomainEventPublisher | None = None,
        retryer: Retryer | None = None,
        clock: IClock | None = None,
    ):
        self._uow = uow
        self._settings = settings or get_settings()
        self._publisher = publisher or DomainEventPublisher()
        self._retryer = retryer or Retryer.from_settings(self._settings)
        self._clock = clock or SystemClock()

    @property
    def currency(self) -> str:
        return self._settings.CURRENCY

    async def _run(self, operation: str, attempt: Attempt, *args: Any, **kwargs: Any) -> OperationResult:
        """
        Execute ``attempt(events, *args, **kwargs)`` with conflict retries.

        Each attempt gets a fresh event list so a rolled back attempt
        publishes nothing.
        """

        async def once() -> tuple[Any, list[DomainEvent]]:
            events: list[DomainEvent] = []
            value = await attempt(events, *args, **kwargs)
            return value, events

        try:
            value, events = await self._retryer.execute(once)
        except DomainException as e:
            self.logger.warning(f"{operation} rejected: {e.message}", operation=operation, code=e.code)
            return OperationResult.from_exception(e)

        await self._publisher.publish_all(events)
        return OperationResult.ok(value, events)

    async def _read(self, operation: str, reader: Callable[[ClinicRepositories], Awaitable[Any]]) -> OperationResult:
        """Run a read-only query in its own transaction."""

        async def attempt(events: list[DomainEvent]) -> Any:
            async with self._uow.transaction() as repos:
                return await reader(repos)

        return await self._run(operation, attempt)

    @staticmethod
    def _collect(events: list[DomainEvent], *aggregates: AggregateRoot | None) -> None:
        """Move recorded domain events from aggregates into the attempt's list."""
        for aggregate in aggregates:
            if aggregate is None:
                continue
            events.extend(aggregate.pull_domain_events())

    # Lookups raising NotFound

    @staticmethod
    async def _require_patient(repos: ClinicRepositories, patient_id: int) -> Patient:
        patient = await repos.patients.find_by_id(patient_id)
        if patient is None:
            raise EntityNotFoundException("Patient", patient_id)
        return patient

    @staticmethod
    async def _require_doctor(repos: ClinicRepositories, doctor_id: int) -> Doctor:
        doctor = await repos.doctors.find_by_id(doctor_id)
        if doctor is None:
            raise EntityNotFoundException("Doctor", doctor_id)
        return doctor

    @staticmethod
    async def _require_appointment(repos: ClinicRepositories, appointment_id: int) -> Appointment:
        appointment = await repos.appointments.find_by_id(appointment_id)
        if appointment is None:
            raise EntityNotFoundException("Appointment", appointment_id)
        return appointment
