"""
Prescription Entity for Clinic Domain
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from clinicbook.core.domain import AggregateRoot, ValidationException


@dataclass
class PrescriptionItem:
    """Medication line of a prescription, keyed by (prescription, medication)."""

    prescription_id: int | None = None
    medication_id: int = 0
    dosage: str = ""
    frequency: str = ""
    duration: str | None = None
    notes: str | None = None


@dataclass
class Prescription(AggregateRoot[int]):
    """
    Prescription aggregate root.

    Belongs to a patient; optionally linked to the appointment it was issued
    in and to the prescribing doctor.
    """

    patient_id: int = 0
    appointment_id: int | None = None
    prescribed_by: int | None = None
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    notes: str | None = None
    items: list[PrescriptionItem] = field(default_factory=list)

    def find_item(self, medication_id: int) -> PrescriptionItem | None:
        for item in self.items:
            if item.medication_id == medication_id:
                return item
        return None

    def upsert_item(
        self,
        medication_id: int,
        dosage: str,
        frequency: str,
        duration: str | None = None,
        notes: str | None = None,
    ) -> tuple[PrescriptionItem, bool]:
        """
        Add an item or replace the existing one for the same medication.

        Returns:
            The item and whether it was newly created.
        """
        if not dosage or not dosage.strip():
            raise ValidationException("Dosage is required", field="dosage")
        if not frequency or not frequency.strip():
            raise ValidationException("Frequency is required", field="frequency")

        item = self.find_item(medication_id)
        created = item is None
        if item is None:
            item = PrescriptionItem(prescription_id=self.id, medication_id=medication_id)
            self.items.append(item)

        item.dosage = dosage
        item.frequency = frequency
        item.duration = duration
        item.notes = notes
        self.touch()
        return item, created

    def remove_item(self, medication_id: int) -> bool:
        item = self.find_item(medication_id)
        if item is None:
            return False
        self.items.remove(item)
        self.touch()
        return True
