"""
Doctor and Specialty Repository Ports
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Doctor, Specialty


@runtime_checkable
class IDoctorRepository(Protocol):
    """
    Doctor repository interface.

    A doctor referenced by any appointment cannot be deleted; deleting an
    unreferenced doctor clears the prescriber link of their prescriptions.
    """

    async def find_by_id(self, doctor_id: int) -> Doctor | None:
        """
        Find doctor by ID.

        Args:
            doctor_id: Unique doctor identifier

        Returns:
            Doctor if found, None otherwise
        """
        ...

    async def find_by_email(self, email: str) -> Doctor | None:
        ...

    async def list_all(self, active_only: bool = False) -> list[Doctor]:
        ...

    async def find_by_specialty(self, specialty_id: int) -> list[Doctor]:
        ...

    async def save(self, doctor: Doctor) -> Doctor:
        """
        Create or update a doctor.

        Raises:
            DuplicateEntityException: email already used by another doctor
        """
        ...

    async def delete(self, doctor_id: int) -> bool:
        """
        Hard-delete a doctor.

        Raises:
            ReferentialIntegrityException: appointments still reference the doctor
        """
        ...


@runtime_checkable
class ISpecialtyRepository(Protocol):
    """Specialty repository; deleting a specialty clears it on doctors."""

    async def find_by_id(self, specialty_id: int) -> Specialty | None:
        ...

    async def find_by_name(self, name: str) -> Specialty | None:
        ...

    async def list_all(self) -> list[Specialty]:
        ...

    async def save(self, specialty: Specialty) -> Specialty:
        ...

    async def delete(self, specialty_id: int) -> bool:
        ...
