"""
Clinic Application DTOs
"""

from clinicbook.domains.clinic.application.dto.results import (
    OperationResult,
    PaymentOutcome,
    PrescriptionItemOutcome,
    TreatmentLineOutcome,
    WarmUpReport,
)

__all__ = [
    "OperationResult",
    "PaymentOutcome",
    "PrescriptionItemOutcome",
    "TreatmentLineOutcome",
    "WarmUpReport",
]
