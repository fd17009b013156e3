"""
SQLAlchemy repositories for the clinic domain.
"""

from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from clinicbook.domains.clinic.application.ports import ClinicRepositories

from .appointment_repository import SQLAlchemyAppointmentRepository
from .catalog_repository import (
    SQLAlchemyMedicationRepository,
    SQLAlchemyRoomRepository,
    SQLAlchemyTreatmentRepository,
)
from .doctor_repository import SQLAlchemyDoctorRepository, SQLAlchemySpecialtyRepository
from .invoice_repository import SQLAlchemyInvoiceRepository
from .patient_repository import SQLAlchemyPatientRepository
from .prescription_repository import SQLAlchemyPrescriptionRepository


def build_sqlalchemy_repositories(session: AsyncSession, currency: str = "USD") -> ClinicRepositories:
    """Repository bundle bound to one session."""
    return ClinicRepositories(
        patients=SQLAlchemyPatientRepository(session, currency),
        doctors=SQLAlchemyDoctorRepository(session, currency),
        specialties=SQLAlchemySpecialtyRepository(session, currency),
        rooms=SQLAlchemyRoomRepository(session, currency),
        treatments=SQLAlchemyTreatmentRepository(session, currency),
        medications=SQLAlchemyMedicationRepository(session, currency),
        appointments=SQLAlchemyAppointmentRepository(session, currency),
        invoices=SQLAlchemyInvoiceRepository(session, currency),
        prescriptions=SQLAlchemyPrescriptionRepository(session, currency),
    )


def repositories_factory(currency: str = "USD"):
    """Factory for SQLAlchemyUnitOfWork with a fixed currency."""
    return partial(build_sqlalchemy_repositories, currency=currency)


__all__ = [
    "SQLAlchemyAppointmentRepository",
    "SQLAlchemyDoctorRepository",
    "SQLAlchemyInvoiceRepository",
    "SQLAlchemyMedicationRepository",
    "SQLAlchemyPatientRepository",
    "SQLAlchemyPrescriptionRepository",
    "SQLAlchemyRoomRepository",
    "SQLAlchemySpecialtyRepository",
    "SQLAlchemyTreatmentRepository",
    "build_sqlalchemy_repositories",
    "repositories_factory",
]
