"""
Catalog Repository Ports

Rooms, treatments and medications.
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Medication, Room, Treatment


@runtime_checkable
class IRoomRepository(Protocol):
    """Room repository; deleting a room clears it on appointments."""

    async def find_by_id(self, room_id: int) -> Room | None:
        ...

    async def find_by_number(self, room_number: str) -> Room | None:
        ...

    async def list_all(self) -> list[Room]:
        ...

    async def save(self, room: Room) -> Room:
        ...

    async def delete(self, room_id: int) -> bool:
        ...


@runtime_checkable
class ITreatmentRepository(Protocol):
    """
    Treatment catalog repository.

    A treatment referenced by a billing line cannot be deleted.
    """

    async def find_by_id(self, treatment_id: int) -> Treatment | None:
        ...

    async def find_by_code(self, code: str) -> Treatment | None:
        ...

    async def list_all(self) -> list[Treatment]:
        ...

    async def save(self, treatment: Treatment) -> Treatment:
        ...

    async def delete(self, treatment_id: int) -> bool:
        """
        Raises:
            ReferentialIntegrityException: billing lines still reference the treatment
        """
        ...


@runtime_checkable
class IMedicationRepository(Protocol):
    """
    Medication catalog repository.

    A medication referenced by a prescription item cannot be deleted.
    """

    async def find_by_id(self, medication_id: int) -> Medication | None:
        ...

    async def find_by_natural_key(
        self, name: str, strength: str | None, dosage_form: str | None
    ) -> Medication | None:
        ...

    async def list_all(self) -> list[Medication]:
        ...

    async def save(self, medication: Medication) -> Medication:
        ...

    async def delete(self, medication_id: int) -> bool:
        """
        Raises:
            ReferentialIntegrityException: prescription items still reference the medication
        """
        ...
