"""
In-memory repositories (embedded use and tests).
"""

from clinicbook.domains.clinic.infrastructure.repositories.memory.repositories import (
    InMemoryAppointmentRepository,
    InMemoryDoctorRepository,
    InMemoryInvoiceRepository,
    InMemoryMedicationRepository,
    InMemoryPatientRepository,
    InMemoryPrescriptionRepository,
    InMemoryRoomRepository,
    InMemorySpecialtyRepository,
    InMemoryTreatmentRepository,
    build_in_memory_repositories,
)

__all__ = [
    "InMemoryAppointmentRepository",
    "InMemoryDoctorRepository",
    "InMemoryInvoiceRepository",
    "InMemoryMedicationRepository",
    "InMemoryPatientRepository",
    "InMemoryPrescriptionRepository",
    "InMemoryRoomRepository",
    "InMemorySpecialtyRepository",
    "InMemoryTreatmentRepository",
    "build_in_memory_repositories",
]
