"""
Clinic Domain Services
"""

from .availability_index import (
    AvailabilityIndex,
    Reservation,
    ReservationResult,
    SubjectKey,
    SubjectKind,
    reservations_for_appointment,
)

__all__ = [
    "AvailabilityIndex",
    "Reservation",
    "ReservationResult",
    "SubjectKey",
    "SubjectKind",
    "reservations_for_appointment",
]
