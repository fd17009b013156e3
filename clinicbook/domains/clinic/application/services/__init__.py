"""
Clinic Application Services

- BookingEngine: booking, rescheduling, status machine
- BillingReconciler: treatment lines, invoices, payments
- PrescriptionManager: prescriptions and items
- ClinicRegistry: reference data and referential deletes
- OperationPolicy: staff role checks for the calling layer
"""

from clinicbook.domains.clinic.application.services.authorization import (
    DEFAULT_PERMISSIONS,
    OperationPolicy,
    StaffRole,
)
from clinicbook.domains.clinic.application.services.base import ClinicService
from clinicbook.domains.clinic.application.services.billing_reconciler import BillingReconciler
from clinicbook.domains.clinic.application.services.booking_engine import BookingEngine
from clinicbook.domains.clinic.application.services.clinic_registry import ClinicRegistry
from clinicbook.domains.clinic.application.services.prescription_manager import PrescriptionManager

__all__ = [
    "BillingReconciler",
    "BookingEngine",
    "ClinicRegistry",
    "ClinicService",
    "DEFAULT_PERMISSIONS",
    "OperationPolicy",
    "PrescriptionManager",
    "StaffRole",
]
