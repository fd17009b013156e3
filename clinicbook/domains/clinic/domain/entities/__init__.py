"""
Clinic Domain Entities

Business entities with identity and lifecycle for the clinic domain.
"""

from clinicbook.domains.clinic.domain.entities.appointment import Appointment, AppointmentTreatment
from clinicbook.domains.clinic.domain.entities.catalog import Medication, Room, Treatment
from clinicbook.domains.clinic.domain.entities.doctor import Doctor, Specialty
from clinicbook.domains.clinic.domain.entities.invoice import Invoice, Payment
from clinicbook.domains.clinic.domain.entities.patient import Patient
from clinicbook.domains.clinic.domain.entities.prescription import Prescription, PrescriptionItem

__all__ = [
    "Appointment",
    "AppointmentTreatment",
    "Doctor",
    "Invoice",
    "Medication",
    "Patient",
    "Payment",
    "Prescription",
    "PrescriptionItem",
    "Room",
    "Specialty",
    "Treatment",
]
