"""
Appointment Repository Port

Interface for appointment data access following Clean Architecture.
"""

from typing import Protocol, runtime_checkable

from clinicbook.domains.clinic.domain.entities import Appointment


@runtime_checkable
class IAppointmentRepository(Protocol):
    """
    Appointment repository interface.

    Appointments are saved together with their treatment lines. Deleting an
    appointment removes its lines and clears the appointment link of its
    invoice and prescriptions.

    Example:
        ```python
        class SQLAlchemyAppointmentRepository(IAppointmentRepository):
            async def find_by_id(self, appointment_id: int) -> Appointment | None:
                ...
        ```
    """

    async def find_by_id(self, appointment_id: int) -> Appointment | None:
        """
        Find appointment by ID.

        Args:
            appointment_id: Unique appointment identifier

        Returns:
            Appointment (with its treatment lines) if found, None otherwise
        """
        ...

    async def find_by_patient(self, patient_id: int) -> list[Appointment]:
        ...

    async def find_by_doctor(self, doctor_id: int) -> list[Appointment]:
        ...

    async def find_by_room(self, room_id: int) -> list[Appointment]:
        ...

    async def find_holding_reservations(self) -> list[Appointment]:
        """
        Appointments whose status still holds a doctor/room reservation.

        Used to rebuild the availability index at start-up.
        """
        ...

    async def count_by_doctor(self, doctor_id: int) -> int:
        ...

    async def save(self, appointment: Appointment) -> Appointment:
        """
        Create or update an appointment and its treatment lines.

        Raises:
            ConcurrencyException: the stored version moved since it was read
        """
        ...

    async def delete(self, appointment_id: int) -> bool:
        ...
