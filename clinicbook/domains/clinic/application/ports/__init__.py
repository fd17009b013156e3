"""
Clinic Domain Ports

Interfaces (ports) for the clinic domain following Clean Architecture.
"""

from clinicbook.domains.clinic.application.ports.appointment_repository import IAppointmentRepository
from clinicbook.domains.clinic.application.ports.catalog_repository import (
    IMedicationRepository,
    IRoomRepository,
    ITreatmentRepository,
)
from clinicbook.domains.clinic.application.ports.doctor_repository import IDoctorRepository, ISpecialtyRepository
from clinicbook.domains.clinic.application.ports.invoice_repository import IInvoiceRepository
from clinicbook.domains.clinic.application.ports.patient_repository import IPatientRepository
from clinicbook.domains.clinic.application.ports.prescription_repository import IPrescriptionRepository
from clinicbook.domains.clinic.application.ports.unit_of_work import (
    ClinicRepositories,
    IClock,
    IUnitOfWork,
    SystemClock,
)

__all__ = [
    "IPatientRepository",
    "IDoctorRepository",
    "ISpecialtyRepository",
    "IRoomRepository",
    "ITreatmentRepository",
    "IMedicationRepository",
    "IAppointmentRepository",
    "IInvoiceRepository",
    "IPrescriptionRepository",
    "ClinicRepositories",
    "IUnitOfWork",
    "IClock",
    "SystemClock",
]
