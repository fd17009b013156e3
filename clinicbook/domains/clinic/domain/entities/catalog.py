"""
Catalog entities: rooms, treatments and medications.

Catalog entries are referenced by id from appointments, billing lines and
prescription items, never embedded.
"""

from dataclasses import dataclass, field

from clinicbook.core.domain import Entity, Money, ValidationException


@dataclass
class Room(Entity[int]):
    room_number: str = ""
    floor: int | None = None
    description: str | None = None

    def __post_init__(self):
        if not self.room_number or not str(self.room_number).strip():
            raise ValidationException("Room number is required", field="room_number")


@dataclass
class Treatment(Entity[int]):
    """
    Billable treatment.

    Changing the price affects only lines added afterwards: each line freezes
    the price it was added at.
    """

    code: str = ""
    name: str = ""
    description: str | None = None
    price: Money = field(default_factory=Money.zero)

    def __post_init__(self):
        if not self.code or not self.code.strip():
            raise ValidationException("Treatment code is required", field="code")
        if not self.name or not self.name.strip():
            raise ValidationException("Treatment name is required", field="name")

    def change_price(self, price: Money) -> None:
        self.price = price
        self.touch()


@dataclass
class Medication(Entity[int]):
    """Medication; unique by (name, strength, dosage_form)."""

    name: str = ""
    manufacturer: str | None = None
    dosage_form: str | None = None
    strength: str | None = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationException("Medication name is required", field="name")

    @property
    def natural_key(self) -> tuple[str, str | None, str | None]:
        return (self.name, self.strength, self.dosage_form)

    @property
    def label(self) -> str:
        parts = [self.name, self.strength, self.dosage_form]
        return " ".join(p for p in parts if p)
