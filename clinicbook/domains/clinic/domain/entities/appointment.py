"""
Appointment Entity for Clinic Domain

Represents a booked visit with its status machine and treatment lines.
"""

from dataclasses import dataclass, field
from datetime import datetime

from clinicbook.core.domain import (
    AggregateRoot,
    InvalidStateException,
    InvalidTransitionException,
    Money,
    ValidationException,
)

from ..events import (
    AppointmentRescheduled,
    AppointmentResourceChanged,
    AppointmentStatusChanged,
    TreatmentLineAdded,
)
from ..value_objects import AppointmentStatus, TimeInterval


@dataclass
class AppointmentTreatment:
    """
    Billing line of an appointment, keyed by (appointment, treatment).

    The unit price is frozen when the treatment is first added.
    """

    appointment_id: int | None = None
    treatment_id: int = 0
    quantity: int = 1
    unit_price: Money = field(default_factory=Money.zero)
    notes: str | None = None

    @property
    def line_total(self) -> Money:
        return self.unit_price.multiply(self.quantity)


def _validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationException(f"Quantity must be a positive integer, got {quantity!r}", field="quantity")


@dataclass
class Appointment(AggregateRoot[int]):
    """
    Appointment aggregate root.

    Owns its treatment lines. Status changes go through ``transition_to``
    which enforces the transition table of ``AppointmentStatus``.

    Example:
        ```python
        appointment = Appointment(patient_id=1, doctor_id=1, start=datetime(2025, 9, 30, 9, 0, tzinfo=UTC))
        appointment.transition_to(AppointmentStatus.CHECKED_IN)
        appointment.add_treatment(treatment_id=1, quantity=2, unit_price=Money(Decimal("10.00")))
        ```
    """

    patient_id: int = 0
    doctor_id: int = 0
    room_id: int | None = None

    start: datetime | None = None
    end: datetime | None = None

    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reason: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None

    treatments: list[AppointmentTreatment] = field(default_factory=list)

    def __post_init__(self):
        if self.start is None:
            raise ValidationException("Appointment start is required", field="start")
        self.validate_schedule(self.start, self.end)

    @staticmethod
    def validate_schedule(start: datetime, end: datetime | None) -> None:
        """Times must be timezone-aware; end, when present, must not be before start."""
        TimeInterval(start=start, end=end if end is not None else start)

    # Scheduling

    def interval(self, default_minutes: int) -> TimeInterval:
        """Occupied interval, using the default duration when end is unknown."""
        return TimeInterval.from_start(self.start, self.end, default_minutes)

    @property
    def holds_reservation(self) -> bool:
        return self.status.holds_reservation()

    def _require_modifiable(self, operation: str) -> None:
        if not self.status.can_reschedule():
            raise InvalidStateException(operation=operation, current_state=self.status.value)

    def reschedule(self, new_start: datetime, new_end: datetime | None = None) -> None:
        """Move the appointment; only before the visit starts."""
        self._require_modifiable("reschedule")
        self.validate_schedule(new_start, new_end)

        old_start, old_end = self.start, self.end
        self.start = new_start
        self.end = new_end
        self.touch()
        self._record_event(
            AppointmentRescheduled(
                appointment_id=self.id or 0,
                old_start=old_start,
                old_end=old_end,
                new_start=new_start,
                new_end=new_end,
            )
        )

    def reassign_doctor(self, doctor_id: int) -> None:
        self._require_modifiable("reassign_doctor")
        old = self.doctor_id
        self.doctor_id = doctor_id
        self.touch()
        self._record_event(
            AppointmentResourceChanged(appointment_id=self.id or 0, resource="doctor", old_id=old, new_id=doctor_id)
        )

    def assign_room(self, room_id: int | None) -> None:
        self._require_modifiable("assign_room")
        old = self.room_id
        self.room_id = room_id
        self.touch()
        self._record_event(
            AppointmentResourceChanged(appointment_id=self.id or 0, resource="room", old_id=old, new_id=room_id)
        )

    # Status Transitions

    def transition_to(self, new_status: AppointmentStatus, reason: str | None = None) -> AppointmentStatus:
        """
        Apply a status change.

        Returns:
            The previous status.

        Raises:
            InvalidTransitionException: The change is not in the transition table.
        """
        if not self.status.can_transition_to(new_status):
            raise InvalidTransitionException(
                entity_type="Appointment",
                current_state=self.status.value,
                requested_state=new_status.value,
            )

        old_status = self.status
        self.status = new_status
        if new_status == AppointmentStatus.CANCELLED:
            self.cancellation_reason = reason
        self.touch()
        self._record_event(
            AppointmentStatusChanged(
                appointment_id=self.id or 0,
                old_status=old_status.value,
                new_status=new_status.value,
            )
        )
        return old_status

    def cancel(self, reason: str | None = None) -> None:
        self.transition_to(AppointmentStatus.CANCELLED, reason=reason)

    def mark_no_show(self) -> None:
        self.transition_to(AppointmentStatus.NO_SHOW)

    # Treatment lines

    def find_line(self, treatment_id: int) -> AppointmentTreatment | None:
        for line in self.treatments:
            if line.treatment_id == treatment_id:
                return line
        return None

    def add_treatment(
        self,
        treatment_id: int,
        quantity: int,
        unit_price: Money,
        notes: str | None = None,
    ) -> AppointmentTreatment:
        """
        Add a treatment line, or add to the quantity of the existing one.

        An existing line keeps the unit price it was first added at.
        """
        _validate_quantity(quantity)
        if self.status == AppointmentStatus.CANCELLED:
            raise InvalidStateException(operation="add_treatment", current_state=self.status.value)

        line = self.find_line(treatment_id)
        if line is None:
            line = AppointmentTreatment(
                appointment_id=self.id,
                treatment_id=treatment_id,
                quantity=quantity,
                unit_price=unit_price,
                notes=notes,
            )
            self.treatments.append(line)
        else:
            line.quantity += quantity
            if notes is not None:
                line.notes = notes

        self.touch()
        self._record_event(
            TreatmentLineAdded(
                appointment_id=self.id or 0,
                treatment_id=treatment_id,
                quantity=quantity,
                unit_price=line.unit_price.amount,
            )
        )
        return line

    def billable_total(self, currency: str = "USD") -> Money:
        """Sum of quantity x unit price over all lines."""
        return Money.sum([line.line_total for line in self.treatments], currency=currency)

    def references_treatment(self, treatment_id: int) -> bool:
        return self.find_line(treatment_id) is not None
