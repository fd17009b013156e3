"""
Doctor and Specialty Entities for Clinic Domain
"""

from dataclasses import dataclass

from clinicbook.core.domain import AggregateRoot, Email, Entity, ValidationException


@dataclass
class Specialty(Entity[int]):
    """Medical specialty (General Practice, Pediatrics, ...)."""

    name: str = ""
    description: str | None = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationException("Specialty name is required", field="name")


@dataclass
class Doctor(AggregateRoot[int]):
    """
    Doctor aggregate root.

    Deactivation is the soft-delete path: an inactive doctor keeps their
    history but accepts no new bookings or reassignments.

    Example:
        ```python
        doctor = Doctor(first_name="Alice", last_name="Mwangi", specialty_id=1)
        doctor.deactivate()
        ```
    """

    first_name: str = ""
    last_name: str = ""
    email: Email | None = None
    phone: str | None = None
    specialty_id: int | None = None
    active: bool = True

    def __post_init__(self):
        if not self.first_name or not self.first_name.strip():
            raise ValidationException("Doctor first name is required", field="first_name")
        if not self.last_name or not self.last_name.strip():
            raise ValidationException("Doctor last name is required", field="last_name")
        if isinstance(self.email, str):
            self.email = Email(self.email)

    @property
    def full_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}".strip()

    def deactivate(self) -> None:
        if self.active:
            self.active = False
            self.touch()

    def activate(self) -> None:
        if not self.active:
            self.active = True
            self.touch()

    def assign_specialty(self, specialty_id: int | None) -> None:
        self.specialty_id = specialty_id
        self.touch()
