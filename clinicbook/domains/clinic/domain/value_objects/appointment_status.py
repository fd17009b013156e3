"""
Clinic Domain Value Objects

Status enums for the clinic domain.
"""

from clinicbook.core.domain import StatusEnum


class AppointmentStatus(StatusEnum):
    """
    Appointment lifecycle states.

    Valid transitions:
    - SCHEDULED -> CHECKED_IN, CANCELLED, NO_SHOW
    - CHECKED_IN -> IN_PROGRESS, CANCELLED, NO_SHOW
    - IN_PROGRESS -> COMPLETED
    - COMPLETED, CANCELLED, NO_SHOW -> (terminal)
    """

    SCHEDULED = "scheduled"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    def can_transition_to(self, new_status: "AppointmentStatus") -> bool:
        """Check if transition to new status is valid."""
        return new_status in _TRANSITIONS[self]

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return not _TRANSITIONS[self]

    def holds_reservation(self) -> bool:
        """Cancelled and no-show appointments free their doctor and room."""
        return self not in (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)

    def can_reschedule(self) -> bool:
        """Time, doctor and room may only change before the visit starts."""
        return self in (AppointmentStatus.SCHEDULED, AppointmentStatus.CHECKED_IN)


_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.CHECKED_IN, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.CHECKED_IN: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


class Gender(StatusEnum):
    """Patient gender as recorded at registration."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PaymentMethod(StatusEnum):
    """How a payment was made."""

    CASH = "cash"
    CARD = "card"
    INSURANCE = "insurance"
    OTHER = "other"
