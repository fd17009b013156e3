"""
In-memory repository implementations.

Each repository reads and writes copies of the rows held by an
InMemoryStore. The referential rules are explicit steps of the ``delete``
methods: cascade, restrict or set-null, exactly as the SQL schema declares
them on its foreign keys.
"""

import logging
from typing import Any, Callable

from clinicbook.core.domain import (
    ConcurrencyException,
    DuplicateEntityException,
    EntityNotFoundException,
    ReferentialIntegrityException,
)
from clinicbook.domains.clinic.application.ports import ClinicRepositories
from clinicbook.domains.clinic.domain.entities import (
    Appointment,
    Doctor,
    Invoice,
    Medication,
    Patient,
    Prescription,
    Room,
    Specialty,
    Treatment,
)
from clinicbook.domains.clinic.infrastructure.persistence.memory.store import InMemoryStore

logger = logging.getLogger(__name__)


class _InMemoryRepository:
    """Shared save/find plumbing for one table."""

    table: str = ""
    entity_name: str = ""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def find_by_id(self, entity_id: int) -> Any | None:
        return self.store.get(self.table, entity_id)

    def _unique(self, entity: Any, field: str, key: Callable[[Any], Any]) -> None:
        value = key(entity)
        if value is None:
            return
        for row in self.store.tables[self.table].values():
            if row.id != entity.id and key(row) == value:
                raise DuplicateEntityException(self.entity_name, field, value)

    def _check_unique(self, entity: Any) -> None:
        """Override to enforce unique keys."""

    def _stamp_children(self, entity: Any) -> None:
        """Override to propagate the parent id onto owned rows."""

    async def save(self, entity: Any) -> Any:
        self._check_unique(entity)
        if entity.id is None:
            entity.id = self.store.next_id(self.table)
        else:
            stored = self.store.tables[self.table].get(entity.id)
            if stored is None:
                raise EntityNotFoundException(self.entity_name, entity.id)
            if hasattr(entity, "version"):
                if stored.version != entity.version:
                    raise ConcurrencyException(
                        resource=f"{self.table}:{entity.id}",
                        message=f"{self.entity_name} {entity.id} was modified concurrently",
                    )
                entity.increment_version()
        self._stamp_children(entity)
        self.store.put(self.table, entity)
        return self.store.get(self.table, entity.id)

    async def delete(self, entity_id: int) -> bool:
        return self.store.remove(self.table, entity_id)


def _email(entity: Any) -> str | None:
    return entity.email.address if entity.email else None


class InMemorySpecialtyRepository(_InMemoryRepository):
    table = "specialties"
    entity_name = "Specialty"

    def _check_unique(self, entity: Specialty) -> None:
        self._unique(entity, "name", lambda s: s.name)

    async def find_by_name(self, name: str) -> Specialty | None:
        found = self.store.rows(self.table, lambda s: s.name == name)
        return found[0] if found else None

    async def list_all(self) -> list[Specialty]:
        return self.store.rows(self.table)

    async def delete(self, specialty_id: int) -> bool:
        if specialty_id not in self.store.tables[self.table]:
            return False
        # SET NULL on doctors.specialty_id
        for doctor_id, doctor in list(self.store.tables["doctors"].items()):
            if doctor.specialty_id == specialty_id:
                self.store.update("doctors", doctor_id, lambda d: setattr(d, "specialty_id", None))
        return self.store.remove(self.table, specialty_id)


class InMemoryDoctorRepository(_InMemoryRepository):
    table = "doctors"
    entity_name = "Doctor"

    def _check_unique(self, entity: Doctor) -> None:
        self._unique(entity, "email", _email)

    async def find_by_email(self, email: str) -> Doctor | None:
        found = self.store.rows(self.table, lambda d: _email(d) == email.lower().strip())
        return found[0] if found else None

    async def list_all(self, active_only: bool = False) -> list[Doctor]:
        return self.store.rows(self.table, lambda d: d.active or not active_only)

    async def find_by_specialty(self, specialty_id: int) -> list[Doctor]:
        return self.store.rows(self.table, lambda d: d.specialty_id == specialty_id)

    async def delete(self, doctor_id: int) -> bool:
        if doctor_id not in self.store.tables[self.table]:
            return False
        # RESTRICT on appointments.doctor_id
        count = sum(1 for a in self.store.tables["appointments"].values() if a.doctor_id == doctor_id)
        if count:
            raise ReferentialIntegrityException("Doctor", doctor_id, "appointments", count)
        # SET NULL on prescriptions.prescribed_by
        for prescription_id, prescription in list(self.store.tables["prescriptions"].items()):
            if prescription.prescribed_by == doctor_id:
                self.store.update("prescriptions", prescription_id, lambda p: setattr(p, "prescribed_by", None))
        return self.store.remove(self.table, doctor_id)


class InMemoryPatientRepository(_InMemoryRepository):
    table = "patients"
    entity_name = "Patient"

    def _check_unique(self, entity: Patient) -> None:
        self._unique(entity, "email", _email)

    async def find_by_email(self, email: str) -> Patient | None:
        found = self.store.rows(self.table, lambda p: _email(p) == email.lower().strip())
        return found[0] if found else None

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[Patient]:
        return self.store.rows(self.table)[offset : offset + limit]

    async def delete(self, patient_id: int) -> bool:
        if patient_id not in self.store.tables[self.table]:
            return False
        logger.debug(f"Deleting patient {patient_id} with cascade to appointments and prescriptions")
        # CASCADE to appointments (and, through them, their lines and links)
        appointments = InMemoryAppointmentRepository(self.store)
        for appointment_id, appointment in list(self.store.tables["appointments"].items()):
            if appointment.patient_id == patient_id:
                await appointments.delete(appointment_id)
        # CASCADE to prescriptions (items are embedded)
        for prescription_id, prescription in list(self.store.tables["prescriptions"].items()):
            if prescription.patient_id == patient_id:
                self.store.remove("prescriptions", prescription_id)
        return self.store.remove(self.table, patient_id)


class InMemoryRoomRepository(_InMemoryRepository):
    table = "rooms"
    entity_name = "Room"

    def _check_unique(self, entity: Room) -> None:
        self._unique(entity, "room_number", lambda r: r.room_number)

    async def find_by_number(self, room_number: str) -> Room | None:
        found = self.store.rows(self.table, lambda r: r.room_number == room_number)
        return found[0] if found else None

    async def list_all(self) -> list[Room]:
        return self.store.rows(self.table)

    async def delete(self, room_id: int) -> bool:
        if room_id not in self.store.tables[self.table]:
            return False
        # SET NULL on appointments.room_id
        for appointment_id, appointment in list(self.store.tables["appointments"].items()):
            if appointment.room_id == room_id:
                self.store.update("appointments", appointment_id, lambda a: setattr(a, "room_id", None))
        return self.store.remove(self.table, room_id)


class InMemoryTreatmentRepository(_InMemoryRepository):
    table = "treatments"
    entity_name = "Treatment"

    def _check_unique(self, entity: Treatment) -> None:
        self._unique(entity, "code", lambda t: t.code)

    async def find_by_code(self, code: str) -> Treatment | None:
        found = self.store.rows(self.table, lambda t: t.code == code)
        return found[0] if found else None

    async def list_all(self) -> list[Treatment]:
        return self.store.rows(self.table)

    async def delete(self, treatment_id: int) -> bool:
        if treatment_id not in self.store.tables[self.table]:
            return False
        # RESTRICT on appointment_treatments.treatment_id
        count = sum(
            1 for a in self.store.tables["appointments"].values() if a.references_treatment(treatment_id)
        )
        if count:
            raise ReferentialIntegrityException("Treatment", treatment_id, "appointment_treatments", count)
        return self.store.remove(self.table, treatment_id)


class InMemoryMedicationRepository(_InMemoryRepository):
    table = "medications"
    entity_name = "Medication"

    def _check_unique(self, entity: Medication) -> None:
        self._unique(entity, "name/strength/dosage_form", lambda m: m.natural_key)

    async def find_by_natural_key(
        self, name: str, strength: str | None, dosage_form: str | None
    ) -> Medication | None:
        found = self.store.rows(self.table, lambda m: m.natural_key == (name, strength, dosage_form))
        return found[0] if found else None

    async def list_all(self) -> list[Medication]:
        return self.store.rows(self.table)

    async def delete(self, medication_id: int) -> bool:
        if medication_id not in self.store.tables[self.table]:
            return False
        # RESTRICT on prescription_items.medication_id
        count = sum(
            1 for p in self.store.tables["prescriptions"].values() if p.find_item(medication_id) is not None
        )
        if count:
            raise ReferentialIntegrityException("Medication", medication_id, "prescription_items", count)
        return self.store.remove(self.table, medication_id)


class InMemoryAppointmentRepository(_InMemoryRepository):
    table = "appointments"
    entity_name = "Appointment"

    def _stamp_children(self, appointment: Appointment) -> None:
        for line in appointment.treatments:
            line.appointment_id = appointment.id

    async def find_by_patient(self, patient_id: int) -> list[Appointment]:
        return self._sorted(lambda a: a.patient_id == patient_id)

    async def find_by_doctor(self, doctor_id: int) -> list[Appointment]:
        return self._sorted(lambda a: a.doctor_id == doctor_id)

    async def find_by_room(self, room_id: int) -> list[Appointment]:
        return self._sorted(lambda a: a.room_id == room_id)

    async def find_holding_reservations(self) -> list[Appointment]:
        return self._sorted(lambda a: a.holds_reservation)

    async def count_by_doctor(self, doctor_id: int) -> int:
        return sum(1 for a in self.store.tables[self.table].values() if a.doctor_id == doctor_id)

    def _sorted(self, predicate: Callable[[Appointment], bool]) -> list[Appointment]:
        return sorted(self.store.rows(self.table, predicate), key=lambda a: (a.start, a.id))

    async def delete(self, appointment_id: int) -> bool:
        if appointment_id not in self.store.tables[self.table]:
            return False
        # Lines are embedded (CASCADE); SET NULL on invoices and prescriptions
        for invoice_id, invoice in list(self.store.tables["invoices"].items()):
            if invoice.appointment_id == appointment_id:
                self.store.update("invoices", invoice_id, lambda i: setattr(i, "appointment_id", None))
        for prescription_id, prescription in list(self.store.tables["prescriptions"].items()):
            if prescription.appointment_id == appointment_id:
                self.store.update("prescriptions", prescription_id, lambda p: setattr(p, "appointment_id", None))
        return self.store.remove(self.table, appointment_id)


class InMemoryInvoiceRepository(_InMemoryRepository):
    table = "invoices"
    entity_name = "Invoice"

    def _check_unique(self, entity: Invoice) -> None:
        self._unique(entity, "appointment_id", lambda i: i.appointment_id)

    def _stamp_children(self, invoice: Invoice) -> None:
        for payment in invoice.payments:
            if payment.id is None:
                payment.id = self.store.next_id("payments")
            payment.invoice_id = invoice.id

    async def find_by_appointment(self, appointment_id: int) -> Invoice | None:
        found = self.store.rows(self.table, lambda i: i.appointment_id == appointment_id)
        return found[0] if found else None

    async def list_unpaid(self) -> list[Invoice]:
        return self.store.rows(self.table, lambda i: not i.paid)


class InMemoryPrescriptionRepository(_InMemoryRepository):
    table = "prescriptions"
    entity_name = "Prescription"

    def _stamp_children(self, prescription: Prescription) -> None:
        for item in prescription.items:
            item.prescription_id = prescription.id

    async def find_by_patient(self, patient_id: int) -> list[Prescription]:
        return self.store.rows(self.table, lambda p: p.patient_id == patient_id)


def build_in_memory_repositories(store: InMemoryStore) -> ClinicRepositories:
    """Repository bundle over one store."""
    return ClinicRepositories(
        patients=InMemoryPatientRepository(store),
        doctors=InMemoryDoctorRepository(store),
        specialties=InMemorySpecialtyRepository(store),
        rooms=InMemoryRoomRepository(store),
        treatments=InMemoryTreatmentRepository(store),
        medications=InMemoryMedicationRepository(store),
        appointments=InMemoryAppointmentRepository(store),
        invoices=InMemoryInvoiceRepository(store),
        prescriptions=InMemoryPrescriptionRepository(store),
    )
