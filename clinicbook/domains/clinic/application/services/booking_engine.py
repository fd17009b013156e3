"""
Booking Engine

Admits or rejects appointment bookings against the availability index and
owns the appointment state machine.

Every mutation takes the per-subject locks of the doctor and room involved
(in global order) before opening the repository transaction. Reservations
made inside a transaction are undone if the transaction does not commit;
reservations are released only after a commit succeeds.
"""

from contextlib import AsyncExitStack
from datetime import datetime

from clinicbook.config.settings import Settings
from clinicbook.core.domain import (
    ConcurrencyException,
    DomainEvent,
    DomainEventPublisher,
    EntityNotFoundException,
    InvalidStateException,
    SchedulingConflictException,
)
from clinicbook.core.infrastructure import Retryer
from clinicbook.core.shared import get_service_logger
from clinicbook.domains.clinic.application.dto import OperationResult, WarmUpReport
from clinicbook.domains.clinic.application.ports import ClinicRepositories, IClock, IUnitOfWork
from clinicbook.domains.clinic.application.services.base import ClinicService
from clinicbook.domains.clinic.application.services.billing_reconciler import BillingReconciler
from clinicbook.domains.clinic.domain.entities import Appointment, Doctor
from clinicbook.domains.clinic.domain.events import AppointmentBooked
from clinicbook.domains.clinic.domain.services import (
    AvailabilityIndex,
    Reservation,
    ReservationResult,
    SubjectKey,
    reservations_for_appointment,
)
from clinicbook.domains.clinic.domain.value_objects import AppointmentStatus, TimeInterval


class BookingEngine(ClinicService):
    """
    Appointment booking and lifecycle.

    Example:
        ```python
        engine = BookingEngine(uow, index, settings, billing=billing)
        result = await engine.create(patient_id=1, doctor_id=1, start=nine, end=nine_twenty)
        if result.error_kind == ErrorKind.SCHEDULING_CONFLICT:
            ...
        await engine.advance(result.value.id, AppointmentStatus.CHECKED_IN)
        ```
    """

    logger = get_service_logger("booking_engine")

    def __init__(
        self,
        uow: IUnitOfWork,
        index: AvailabilityIndex,
        settings: Settings | None = None,
        publisher: DomainEventPublisher | None = None,
        retryer: Retryer | None = None,
        clock: IClock | None = None,
        billing: BillingReconciler | None = None,
    ):
        super().__init__(uow, settings, publisher, retryer, clock)
        self._index = index
        self._billing = billing

    @property
    def default_minutes(self) -> int:
        return self._settings.DEFAULT_APPOINTMENT_DURATION_MINUTES

    # ==================== HELPERS ====================

    @staticmethod
    def _subjects(doctor_id: int, room_id: int | None) -> list[SubjectKey]:
        subjects = [SubjectKey.doctor(doctor_id)]
        if room_id is not None:
            subjects.append(SubjectKey.room(room_id))
        return subjects

    def _reservations(self, appointment: Appointment) -> list[Reservation]:
        if not appointment.holds_reservation:
            return []
        return reservations_for_appointment(
            appointment.id,
            appointment.doctor_id,
            appointment.room_id,
            appointment.interval(self.default_minutes),
        )

    @staticmethod
    def _conflict(result: ReservationResult, requested: TimeInterval) -> SchedulingConflictException:
        existing = result.conflict
        return SchedulingConflictException(
            subject=str(existing.subject),
            requested=str(requested),
            existing=str(existing.interval),
            holder_id=existing.holder_id,
        )

    @staticmethod
    def _ensure_active(doctor: Doctor, operation: str) -> None:
        if not doctor.active:
            raise InvalidStateException(
                operation=operation,
                current_state="inactive",
                message=f"Doctor {doctor.id} is inactive and accepts no bookings",
                code="DOCTOR_INACTIVE",
            )

    @staticmethod
    async def _require_room(repos: ClinicRepositories, room_id: int) -> None:
        if await repos.rooms.find_by_id(room_id) is None:
            raise EntityNotFoundException("Room", room_id)

    async def _snapshot(self, appointment_id: int) -> Appointment:
        """Read the appointment to learn which subjects to lock."""
        async with self._uow.transaction() as repos:
            return await self._require_appointment(repos, appointment_id)

    @staticmethod
    def _ensure_unchanged(appointment: Appointment, snapshot: Appointment) -> None:
        if (appointment.doctor_id, appointment.room_id) != (snapshot.doctor_id, snapshot.room_id):
            raise ConcurrencyException(
                resource=f"appointment:{appointment.id}",
                message=f"Appointment {appointment.id} was reassigned while waiting for its locks",
            )

    # ==================== CREATE ====================

    async def create(
        self,
        patient_id: int,
        doctor_id: int,
        start: datetime,
        end: datetime | None = None,
        room_id: int | None = None,
        reason: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """
        Book an appointment.

        Fails with NotFound (patient, doctor, room), InvalidState (inactive
        doctor), InvalidInput (end before start) or SchedulingConflict; on
        failure no reservation is left behind.
        """
        return await self._run("create", self._create, patient_id, doctor_id, start, end, room_id, reason, notes)

    async def _create(
        self,
        events: list[DomainEvent],
        patient_id: int,
        doctor_id: int,
        start: datetime,
        end: datetime | None,
        room_id: int | None,
        reason: str | None,
        notes: str | None,
    ) -> Appointment:
        now = self._clock.now()
        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            room_id=room_id,
            start=start,
            end=end,
            reason=reason,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        interval = appointment.interval(self.default_minutes)

        reserved: list[Reservation] = []
        async with self._index.locked(*self._subjects(doctor_id, room_id)):
            try:
                async with self._uow.transaction() as repos:
                    await self._require_patient(repos, patient_id)
                    doctor = await self._require_doctor(repos, doctor_id)
                    self._ensure_active(doctor, "create")
                    if room_id is not None:
                        await self._require_room(repos, room_id)

                    saved = await repos.appointments.save(appointment)
                    requests = reservations_for_appointment(saved.id, doctor_id, room_id, interval)
                    result = self._index.reserve_all(requests)
                    if not result.ok:
                        raise self._conflict(result, interval)
                    reserved = requests
            except BaseException:
                self._index.release_all(reserved)
                raise

        events.append(
            AppointmentBooked(
                appointment_id=saved.id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                room_id=room_id,
                start=interval.start,
                end=interval.end,
            )
        )
        self.logger.info(
            f"Appointment {saved.id} booked for patient {patient_id} with doctor {doctor_id} {interval}",
            appointment_id=saved.id,
        )
        return saved

    # ==================== RESCHEDULE / REASSIGN ====================

    async def reschedule(
        self,
        appointment_id: int,
        new_start: datetime,
        new_end: datetime | None = None,
    ) -> OperationResult:
        """
        Move an appointment to a new time.

        Only while scheduled or checked in. On conflict the original
        reservations stay in place and the call fails with SchedulingConflict.
        """
        return await self._run("reschedule", self._reschedule, appointment_id, new_start, new_end)

    async def _reschedule(
        self,
        events: list[DomainEvent],
        appointment_id: int,
        new_start: datetime,
        new_end: datetime | None,
    ) -> Appointment:
        def change(appointment: Appointment) -> None:
            appointment.reschedule(new_start, new_end)

        return await self._move(events, appointment_id, change, extra_subjects=[])

    async def reassign_doctor(self, appointment_id: int, doctor_id: int) -> OperationResult:
        """Hand the appointment to another (active) doctor free at that time."""
        return await self._run("reassign_doctor", self._reassign_doctor, appointment_id, doctor_id)

    async def _reassign_doctor(self, events: list[DomainEvent], appointment_id: int, doctor_id: int) -> Appointment:
        async def check(repos: ClinicRepositories) -> None:
            doctor = await self._require_doctor(repos, doctor_id)
            self._ensure_active(doctor, "reassign_doctor")

        def change(appointment: Appointment) -> None:
            appointment.reassign_doctor(doctor_id)

        return await self._move(
            events, appointment_id, change, extra_subjects=[SubjectKey.doctor(doctor_id)], check=check
        )

    async def assign_room(self, appointment_id: int, room_id: int | None) -> OperationResult:
        """Assign, change or (with None) remove the appointment's room."""
        return await self._run("assign_room", self._assign_room, appointment_id, room_id)

    async def _assign_room(self, events: list[DomainEvent], appointment_id: int, room_id: int | None) -> Appointment:
        async def check(repos: ClinicRepositories) -> None:
            if room_id is not None:
                await self._require_room(repos, room_id)

        def change(appointment: Appointment) -> None:
            appointment.assign_room(room_id)

        extra = [SubjectKey.room(room_id)] if room_id is not None else []
        return await self._move(events, appointment_id, change, extra_subjects=extra, check=check)

    async def _move(self, events, appointment_id, change, extra_subjects, check=None) -> Appointment:
        """
        Apply ``change`` to the appointment and swap its reservations.

        The swap is atomic on the index: on conflict the old reservations
        are restored before the error propagates.
        """
        snapshot = await self._snapshot(appointment_id)
        subjects = self._subjects(snapshot.doctor_id, snapshot.room_id) + extra_subjects

        swapped: tuple[list[Reservation], list[Reservation]] | None = None
        async with self._index.locked(*subjects):
            try:
                async with self._uow.transaction() as repos:
                    appointment = await self._require_appointment(repos, appointment_id)
                    self._ensure_unchanged(appointment, snapshot)
                    if check is not None:
                        await check(repos)

                    old = self._reservations(appointment)
                    change(appointment)
                    new = self._reservations(appointment)

                    result = self._index.replace(old, new)
                    if not result.ok:
                        raise self._conflict(result, appointment.interval(self.default_minutes))
                    swapped = (old, new)

                    await repos.appointments.save(appointment)
                    self._collect(events, appointment)
            except BaseException:
                if swapped is not None:
                    self._index.replace(swapped[1], swapped[0])
                raise

        self.logger.info(
            f"Appointment {appointment_id} moved to doctor {appointment.doctor_id}, room {appointment.room_id}, "
            f"{appointment.interval(self.default_minutes)}",
            appointment_id=appointment_id,
        )
        return appointment

    # ==================== STATUS ====================

    async def cancel(self, appointment_id: int, reason: str | None = None) -> OperationResult:
        """Cancel and release the reservations. Any invoice is left untouched."""
        return await self._run("cancel", self._transition, appointment_id, AppointmentStatus.CANCELLED, reason)

    async def mark_no_show(self, appointment_id: int) -> OperationResult:
        return await self._run("mark_no_show", self._transition, appointment_id, AppointmentStatus.NO_SHOW, None)

    async def advance(self, appointment_id: int, next_status: AppointmentStatus | str) -> OperationResult:
        """
        Move the appointment along the state machine.

        Completing a visit generates its invoice in the same transaction if
        none exists yet.
        """

        async def attempt(events: list[DomainEvent]) -> Appointment:
            status = next_status
            if not isinstance(status, AppointmentStatus):
                status = AppointmentStatus.from_string(status)
            return await self._transition(events, appointment_id, status, None)

        return await self._run("advance", attempt)

    async def _transition(
        self,
        events: list[DomainEvent],
        appointment_id: int,
        new_status: AppointmentStatus,
        reason: str | None,
    ) -> Appointment:
        snapshot = await self._snapshot(appointment_id)

        async with AsyncExitStack() as stack:
            await stack.enter_async_context(self._index.locked(*self._subjects(snapshot.doctor_id, snapshot.room_id)))
            completing = new_status == AppointmentStatus.COMPLETED and self._billing is not None
            if completing:
                await stack.enter_async_context(self._billing.appointment_lock(appointment_id))

            async with self._uow.transaction() as repos:
                appointment = await self._require_appointment(repos, appointment_id)
                self._ensure_unchanged(appointment, snapshot)

                held = self._reservations(appointment)
                old_status = appointment.transition_to(new_status, reason=reason)
                await repos.appointments.save(appointment)
                self._collect(events, appointment)

                if completing:
                    await self._billing.ensure_invoice(repos, appointment, events)

            if not appointment.holds_reservation:
                self._index.release_all(held)

        self.logger.info(
            f"Appointment {appointment_id}: {old_status.value} -> {new_status.value}",
            appointment_id=appointment_id,
        )
        return appointment

    # ==================== QUERIES ====================

    async def get(self, appointment_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> Appointment:
            return await self._require_appointment(repos, appointment_id)

        return await self._read("get", reader)

    def is_available(self, doctor_id: int, start: datetime, end: datetime | None = None) -> bool:
        """Whether the doctor has no committed reservation overlapping the slot."""
        interval = TimeInterval.from_start(start, end, self.default_minutes)
        return not self._index.is_reserved(SubjectKey.doctor(doctor_id), interval)

    async def warm_up(self) -> OperationResult:
        """Rebuild the availability index from persisted appointments."""

        async def reader(repos: ClinicRepositories) -> WarmUpReport:
            appointments = await repos.appointments.find_holding_reservations()
            reservations = [r for a in appointments for r in self._reservations(a)]
            skipped = self._index.load(reservations)
            return WarmUpReport(loaded=len(reservations) - len(skipped), skipped=len(skipped))

        return await self._read("warm_up", reader)
