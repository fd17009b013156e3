"""
Operation results returned by the clinic application services.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from clinicbook.core.domain import DomainEvent, DomainException, ErrorKind, Money
from clinicbook.domains.clinic.domain.entities import (
    AppointmentTreatment,
    Invoice,
    Payment,
    PrescriptionItem,
)

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """
    Typed outcome of a public operation.

    On success ``value`` holds the result and ``events`` the domain events
    published for it. On failure ``error_kind`` tells the caller what went
    wrong and nothing was committed.
    """

    success: bool
    value: T | None = None
    error_kind: ErrorKind | None = None
    error_code: str | None = None
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    events: list[DomainEvent] = field(default_factory=list)

    @classmethod
    def ok(cls, value: Any = None, events: list[DomainEvent] | None = None) -> "OperationResult":
        """Create successful result."""
        return cls(success=True, value=value, events=list(events or []))

    @classmethod
    def error(
        cls,
        kind: ErrorKind,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "OperationResult":
        """Create error result."""
        return cls(
            success=False,
            error_kind=kind,
            error_code=code,
            error_message=message,
            details=details or {},
        )

    @classmethod
    def from_exception(cls, exc: DomainException) -> "OperationResult":
        return cls.error(exc.kind, exc.code, exc.message, dict(exc.details))

    @property
    def failed(self) -> bool:
        return not self.success

    def event_types(self) -> list[str]:
        return [e.event_type for e in self.events]


@dataclass
class TreatmentLineOutcome:
    """Result of adding a treatment line."""

    line: AppointmentTreatment
    invoice: Invoice | None = None
    paid_flipped: bool = False

    @property
    def invoice_total(self) -> Money | None:
        return self.invoice.total_amount if self.invoice else None


@dataclass
class PaymentOutcome:
    """Result of recording a payment."""

    payment: Payment
    invoice: Invoice
    paid_flipped: bool = False


@dataclass
class PrescriptionItemOutcome:
    item: PrescriptionItem
    created: bool


@dataclass
class WarmUpReport:
    loaded: int = 0
    skipped: int = 0
