"""
Clinic Domain Value Objects
"""

from .appointment_status import AppointmentStatus, Gender, PaymentMethod
from .time_interval import TimeInterval

__all__ = [
    "AppointmentStatus",
    "Gender",
    "PaymentMethod",
    "TimeInterval",
]
