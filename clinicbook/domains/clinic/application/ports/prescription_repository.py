"""
Prescription Repository Port
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Prescription


@runtime_checkable
class IPrescriptionRepository(Protocol):
    """Prescriptions are saved together with their items."""

    async def find_by_id(self, prescription_id: int) -> Prescription | None:
        ...

    async def find_by_patient(self, patient_id: int) -> list[Prescription]:
        ...

    async def save(self, prescription: Prescription) -> Prescription:
        ...

    async def delete(self, prescription_id: int) -> bool:
        ...
