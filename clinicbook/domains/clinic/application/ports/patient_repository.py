"""
Patient Repository Port

Interface for patient data access following Clean Architecture.
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Patient


@runtime_checkable
class IPatientRepository(Protocol):
    """
    Patient repository interface.

    Deleting a patient cascades to their appointments (with treatment
    lines) and prescriptions (with items).
    """

    async def find_by_id(self, patient_id: int) -> Patient | None:
        """
        Find patient by ID.

        Args:
            patient_id: Unique patient identifier

        Returns:
            Patient if found, None otherwise
        """
        ...

    async def find_by_email(self, email: str) -> Patient | None:
        ...

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[Patient]:
        ...

    async def save(self, patient: Patient) -> Patient:
        """
        Create or update a patient.

        Raises:
            DuplicateEntityException: email already used by another patient
        """
        ...

    async def delete(self, patient_id: int) -> bool:
        """
        Delete a patient and everything the patient owns.

        Returns:
            True if deleted, False if not found
        """
        ...
