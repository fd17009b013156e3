"""
Clinic Domain Events

Recorded by aggregates (or by application services for creation events,
once the store has allocated an id) and published after commit.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinicbook.core.domain import DomainEvent


@dataclass(frozen=True)
class AppointmentBooked(DomainEvent):
    appointment_id: int = 0
    patient_id: int = 0
    doctor_id: int = 0
    room_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class AppointmentRescheduled(DomainEvent):
    appointment_id: int = 0
    old_start: datetime | None = None
    old_end: datetime | None = None
    new_start: datetime | None = None
    new_end: datetime | None = None


@dataclass(frozen=True)
class AppointmentStatusChanged(DomainEvent):
    appointment_id: int = 0
    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class AppointmentResourceChanged(DomainEvent):
    """Doctor reassigned or room assigned/removed."""

    appointment_id: int = 0
    resource: str = ""  # "doctor" or "room"
    old_id: int | None = None
    new_id: int | None = None


@dataclass(frozen=True)
class TreatmentLineAdded(DomainEvent):
    appointment_id: int = 0
    treatment_id: int = 0
    quantity: int = 0
    unit_price: Decimal = Decimal("0")


@dataclass(frozen=True)
class InvoiceGenerated(DomainEvent):
    invoice_id: int = 0
    appointment_id: int | None = None
    total_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class InvoiceTotalChanged(DomainEvent):
    invoice_id: int = 0
    old_total: Decimal = Decimal("0")
    new_total: Decimal = Decimal("0")


@dataclass(frozen=True)
class PaymentRecorded(DomainEvent):
    invoice_id: int = 0
    amount: Decimal = Decimal("0")
    method: str = ""
    reference: str | None = None


@dataclass(frozen=True)
class InvoicePaymentStatusChanged(DomainEvent):
    invoice_id: int = 0
    paid: bool = False
    total_amount: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")


@dataclass(frozen=True)
class PrescriptionIssued(DomainEvent):
    prescription_id: int = 0
    patient_id: int = 0
    appointment_id: int | None = None
    prescribed_by: int | None = None
