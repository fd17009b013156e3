"""
Clinic Registry

Caller-facing CRUD for the clinic's reference data (patients, doctors,
specialties, rooms, treatments, medications) and the deletions that follow
the referential rules: cascade, restrict or set-null. Deletions that remove
appointments or their rooms also release the matching reservations once
the transaction has committed.
"""

from datetime import date
from typing import Any, Callable

from clinicbook.config.settings import Settings
from clinicbook.core.domain import (
    ConcurrencyException,
    DomainEvent,
    DomainEventPublisher,
    Email,
    EntityNotFoundException,
    Money,
    to_decimal,
)
from clinicbook.core.infrastructure import Retryer
from clinicbook.core.shared import get_service_logger
from clinicbook.domains.clinic.application.dto import OperationResult
from clinicbook.domains.clinic.application.ports import ClinicRepositories, IClock, IUnitOfWork
from clinicbook.domains.clinic.application.services.base import ClinicService
from clinicbook.domains.clinic.domain.entities import (
    Appointment,
    Doctor,
    Medication,
    Patient,
    Room,
    Specialty,
    Treatment,
)
from clinicbook.domains.clinic.domain.services import AvailabilityIndex, SubjectKey, SubjectKind
from clinicbook.domains.clinic.domain.value_objects import Gender


class ClinicRegistry(ClinicService):
    """
    Reference data management.

    Example:
        ```python
        registry = ClinicRegistry(uow, index, settings)
        patient = (await registry.register_patient("Grace", "Kimani", gender="female")).value
        await registry.delete_patient(patient.id)  # cascades to appointments
        ```
    """

    logger = get_service_logger("clinic_registry")

    def __init__(
        self,
        uow: IUnitOfWork,
        index: AvailabilityIndex,
        settings: Settings | None = None,
        publisher: DomainEventPublisher | None = None,
        retryer: Retryer | None = None,
        clock: IClock | None = None,
    ):
        super().__init__(uow, settings, publisher, retryer, clock)
        self._index = index

    def _stamp(self) -> dict[str, Any]:
        now = self._clock.now()
        return {"created_at": now, "updated_at": now}

    async def _save_new(self, operation: str, build: Callable[[], Any], repo_name: str) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Any:
            entity = build()
            async with self._uow.transaction() as repos:
                saved = await getattr(repos, repo_name).save(entity)
            self.logger.info(f"{type(entity).__name__} {saved.id} created", entity_id=saved.id)
            return saved

        return await self._run(operation, attempt)

    async def _delete_simple(self, operation: str, entity_type: str, entity_id: int, repo_name: str) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> bool:
            async with self._uow.transaction() as repos:
                if not await getattr(repos, repo_name).delete(entity_id):
                    raise EntityNotFoundException(entity_type, entity_id)
            self.logger.info(f"{entity_type} {entity_id} deleted", entity_id=entity_id)
            return True

        return await self._run(operation, attempt)

    async def _get(self, operation: str, entity_type: str, entity_id: int, repo_name: str) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> Any:
            entity = await getattr(repos, repo_name).find_by_id(entity_id)
            if entity is None:
                raise EntityNotFoundException(entity_type, entity_id)
            return entity

        return await self._read(operation, reader)

    # ==================== SPECIALTIES ====================

    async def register_specialty(self, name: str, description: str | None = None) -> OperationResult:
        return await self._save_new(
            "register_specialty",
            lambda: Specialty(name=name, description=description, **self._stamp()),
            "specialties",
        )

    async def delete_specialty(self, specialty_id: int) -> OperationResult:
        """Doctors of the specialty keep working with no specialty set."""
        return await self._delete_simple("delete_specialty", "Specialty", specialty_id, "specialties")

    # ==================== DOCTORS ====================

    async def register_doctor(
        self,
        first_name: str,
        last_name: str,
        email: str | None = None,
        phone: str | None = None,
        specialty_id: int | None = None,
    ) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Doctor:
            doctor = Doctor(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                specialty_id=specialty_id,
                **self._stamp(),
            )
            async with self._uow.transaction() as repos:
                if specialty_id is not None and await repos.specialties.find_by_id(specialty_id) is None:
                    raise EntityNotFoundException("Specialty", specialty_id)
                saved = await repos.doctors.save(doctor)
            self.logger.info(f"Doctor {saved.id} registered", doctor_id=saved.id)
            return saved

        return await self._run("register_doctor", attempt)

    async def update_doctor(
        self,
        doctor_id: int,
        email: str | None = None,
        phone: str | None = None,
        specialty_id: int | None = None,
    ) -> OperationResult:
        """Update contact details and/or specialty (only the given fields)."""

        async def attempt(events: list[DomainEvent]) -> Doctor:
            async with self._uow.transaction() as repos:
                doctor = await self._require_doctor(repos, doctor_id)
                if specialty_id is not None:
                    if await repos.specialties.find_by_id(specialty_id) is None:
                        raise EntityNotFoundException("Specialty", specialty_id)
                    doctor.assign_specialty(specialty_id)
                if email is not None:
                    doctor.email = Email(email)
                if phone is not None:
                    doctor.phone = phone
                doctor.touch(self._clock.now())
                return await repos.doctors.save(doctor)

        return await self._run("update_doctor", attempt)

    async def deactivate_doctor(self, doctor_id: int) -> OperationResult:
        """Soft delete: existing appointments stay, new bookings are refused."""
        return await self._set_doctor_active(doctor_id, False)

    async def activate_doctor(self, doctor_id: int) -> OperationResult:
        return await self._set_doctor_active(doctor_id, True)

    async def _set_doctor_active(self, doctor_id: int, active: bool) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Doctor:
            async with self._uow.transaction() as repos:
                doctor = await self._require_doctor(repos, doctor_id)
                if active:
                    doctor.activate()
                else:
                    doctor.deactivate()
                return await repos.doctors.save(doctor)

        return await self._run("activate_doctor" if active else "deactivate_doctor", attempt)

    async def delete_doctor(self, doctor_id: int) -> OperationResult:
        """
        Hard delete. Fails with InvalidState (REFERENTIAL_RESTRICT) while any
        appointment references the doctor.
        """
        return await self._delete_simple("delete_doctor", "Doctor", doctor_id, "doctors")

    async def get_doctor(self, doctor_id: int) -> OperationResult:
        return await self._get("get_doctor", "Doctor", doctor_id, "doctors")

    async def list_doctors(self, active_only: bool = False) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> list[Doctor]:
            return await repos.doctors.list_all(active_only=active_only)

        return await self._read("list_doctors", reader)

    # ==================== PATIENTS ====================

    async def register_patient(
        self,
        first_name: str,
        last_name: str,
        date_of_birth: date | None = None,
        gender: Gender | str = Gender.OTHER,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Patient:
            patient = Patient(
                first_name=first_name,
                last_name=last_name,
                date_of_birth=date_of_birth,
                gender=gender,
                email=email,
                phone=phone,
                address=address,
                **self._stamp(),
            )
            async with self._uow.transaction() as repos:
                saved = await repos.patients.save(patient)
            self.logger.info(f"Patient {saved.id} registered", patient_id=saved.id)
            return saved

        return await self._run("register_patient", attempt)

    async def update_patient(
        self,
        patient_id: int,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Patient:
            async with self._uow.transaction() as repos:
                patient = await self._require_patient(repos, patient_id)
                patient.update_contact(email=email, phone=phone, address=address)
                return await repos.patients.save(patient)

        return await self._run("update_patient", attempt)

    async def get_patient(self, patient_id: int) -> OperationResult:
        return await self._get("get_patient", "Patient", patient_id, "patients")

    async def list_patient_appointments(self, patient_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> list[Appointment]:
            await self._require_patient(repos, patient_id)
            return await repos.appointments.find_by_patient(patient_id)

        return await self._read("list_patient_appointments", reader)

    async def delete_patient(self, patient_id: int) -> OperationResult:
        """Delete a patient with their appointments and prescriptions."""

        async def attempt(events: list[DomainEvent]) -> bool:
            async with self._uow.transaction() as repos:
                await self._require_patient(repos, patient_id)
                snapshot = await repos.appointments.find_by_patient(patient_id)

            async def remove(repos: ClinicRepositories) -> list[Appointment]:
                current = await repos.appointments.find_by_patient(patient_id)
                if not await repos.patients.delete(patient_id):
                    raise EntityNotFoundException("Patient", patient_id)
                return current

            def release(removed: list[Appointment]) -> None:
                for appointment in removed:
                    self._index.release_holder(appointment.id)

            removed = await self._delete_with_appointments(snapshot, remove, release)
            self.logger.info(
                f"Patient {patient_id} deleted with {len(removed)} appointment(s)",
                patient_id=patient_id,
            )
            return True

        return await self._run("delete_patient", attempt)

    # ==================== ROOMS ====================

    async def create_room(
        self,
        room_number: str,
        floor: int | None = None,
        description: str | None = None,
    ) -> OperationResult:
        return await self._save_new(
            "create_room",
            lambda: Room(room_number=room_number, floor=floor, description=description, **self._stamp()),
            "rooms",
        )

    async def get_room(self, room_id: int) -> OperationResult:
        return await self._get("get_room", "Room", room_id, "rooms")

    async def delete_room(self, room_id: int) -> OperationResult:
        """Appointments in the room lose their room assignment and its reservation."""

        async def attempt(events: list[DomainEvent]) -> bool:
            async with self._uow.transaction() as repos:
                if await repos.rooms.find_by_id(room_id) is None:
                    raise EntityNotFoundException("Room", room_id)
                snapshot = await repos.appointments.find_by_room(room_id)

            async def remove(repos: ClinicRepositories) -> list[Appointment]:
                current = await repos.appointments.find_by_room(room_id)
                if not await repos.rooms.delete(room_id):
                    raise EntityNotFoundException("Room", room_id)
                return current

            def release(affected: list[Appointment]) -> None:
                room = SubjectKey.room(room_id)
                for reservation in self._index.reservations_for(room):
                    self._index.release(room, reservation.interval, reservation.holder_id)

            affected = await self._delete_with_appointments(
                snapshot, remove, release, extra=(SubjectKey.room(room_id),)
            )
            self.logger.info(f"Room {room_id} deleted; {len(affected)} appointment(s) unassigned", room_id=room_id)
            return True

        return await self._run("delete_room", attempt)

    # ==================== CATALOG ====================

    async def create_treatment(
        self,
        code: str,
        name: str,
        price: Any,
        description: str | None = None,
    ) -> OperationResult:
        async def attempt(events: list[DomainEvent]) -> Treatment:
            treatment = Treatment(
                code=code,
                name=name,
                description=description,
                price=Money(amount=to_decimal(price, "price"), currency=self.currency),
                **self._stamp(),
            )
            async with self._uow.transaction() as repos:
                return await repos.treatments.save(treatment)

        return await self._run("create_treatment", attempt)

    async def update_treatment_price(self, treatment_id: int, price: Any) -> OperationResult:
        """New price applies to lines added from now on."""

        async def attempt(events: list[DomainEvent]) -> Treatment:
            async with self._uow.transaction() as repos:
                treatment = await repos.treatments.find_by_id(treatment_id)
                if treatment is None:
                    raise EntityNotFoundException("Treatment", treatment_id)
                treatment.change_price(Money(amount=to_decimal(price, "price"), currency=self.currency))
                return await repos.treatments.save(treatment)

        return await self._run("update_treatment_price", attempt)

    async def delete_treatment(self, treatment_id: int) -> OperationResult:
        return await self._delete_simple("delete_treatment", "Treatment", treatment_id, "treatments")

    async def create_medication(
        self,
        name: str,
        manufacturer: str | None = None,
        dosage_form: str | None = None,
        strength: str | None = None,
    ) -> OperationResult:
        return await self._save_new(
            "create_medication",
            lambda: Medication(
                name=name,
                manufacturer=manufacturer,
                dosage_form=dosage_form,
                strength=strength,
                **self._stamp(),
            ),
            "medications",
        )

    async def delete_medication(self, medication_id: int) -> OperationResult:
        return await self._delete_simple("delete_medication", "Medication", medication_id, "medications")

    # ==================== APPOINTMENTS / INVOICES ====================

    async def delete_appointment(self, appointment_id: int) -> OperationResult:
        """
        Delete an appointment with its treatment lines. Its invoice and
        prescriptions are kept with the appointment link cleared.
        """

        async def attempt(events: list[DomainEvent]) -> bool:
            async with self._uow.transaction() as repos:
                snapshot = [await self._require_appointment(repos, appointment_id)]

            async def remove(repos: ClinicRepositories) -> list[Appointment]:
                current = await repos.appointments.find_by_id(appointment_id)
                if current is None or not await repos.appointments.delete(appointment_id):
                    raise EntityNotFoundException("Appointment", appointment_id)
                return [current]

            await self._delete_with_appointments(
                snapshot, remove, lambda removed: self._index.release_holder(appointment_id)
            )
            self.logger.info(f"Appointment {appointment_id} deleted", appointment_id=appointment_id)
            return True

        return await self._run("delete_appointment", attempt)

    async def delete_invoice(self, invoice_id: int) -> OperationResult:
        """Delete an invoice and its payments."""
        return await self._delete_simple("delete_invoice", "Invoice", invoice_id, "invoices")

    async def _delete_with_appointments(
        self,
        snapshot: list[Appointment],
        remove,
        release,
        extra: tuple[SubjectKey, ...] = (),
    ) -> list[Appointment]:
        """
        Run ``remove(repos)`` holding the locks of every subject the
        appointments reserve, then ``release(removed)`` once committed.
        """
        subjects: set[SubjectKey] = set(extra)
        for appointment in snapshot:
            subjects.add(SubjectKey(SubjectKind.DOCTOR, appointment.doctor_id))
            if appointment.room_id is not None:
                subjects.add(SubjectKey(SubjectKind.ROOM, appointment.room_id))

        async with self._index.locked(*subjects):
            async with self._uow.transaction() as repos:
                current = await remove(repos)
                if self._fingerprint(current) != self._fingerprint(snapshot):
                    raise ConcurrencyException(
                        resource="appointments",
                        message="Appointments changed while waiting for their locks",
                    )
            release(current)
        return current

    @staticmethod
    def _fingerprint(appointments: list[Appointment]) -> set[tuple[int, int, int | None]]:
        return {(a.id, a.doctor_id, a.room_id) for a in appointments}
