"""
Patient Entity for Clinic Domain
"""

from dataclasses import dataclass
from datetime import date

from clinicbook.core.domain import AggregateRoot, Email, ValidationException

from ..value_objects import Gender


@dataclass
class Patient(AggregateRoot[int]):
    """
    Patient registered with the clinic.

    Owns appointments and prescriptions: deleting a patient removes both.
    """

    first_name: str = ""
    last_name: str = ""
    date_of_birth: date | None = None
    gender: Gender = Gender.OTHER
    email: Email | None = None
    phone: str | None = None
    address: str | None = None

    def __post_init__(self):
        if not self.first_name or not self.first_name.strip():
            raise ValidationException("Patient first name is required", field="first_name")
        if not self.last_name or not self.last_name.strip():
            raise ValidationException("Patient last name is required", field="last_name")
        if isinstance(self.email, str):
            self.email = Email(self.email)
        if isinstance(self.gender, str) and not isinstance(self.gender, Gender):
            self.gender = Gender.from_string(self.gender)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def age_on(self, on: date) -> int | None:
        """Age in whole years on the given day."""
        if self.date_of_birth is None:
            return None
        years = on.year - self.date_of_birth.year
        if (on.month, on.day) < (self.date_of_birth.month, self.date_of_birth.day):
            years -= 1
        return years

    def update_contact(
        self,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> None:
        """Update contact details (only the provided ones)."""
        if email is not None:
            self.email = Email(email)
        if phone is not None:
            self.phone = phone
        if address is not None:
            self.address = address
        self.touch()
