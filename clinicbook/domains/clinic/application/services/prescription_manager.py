"""
Prescription Manager

Creates prescriptions and maintains their medication items.
"""

from clinicbook.config.settings import Settings
from clinicbook.core.domain import (
    DomainEvent,
    DomainEventPublisher,
    EntityNotFoundException,
    MismatchException,
)
from clinicbook.core.infrastructure import KeyedLocks, Retryer
from clinicbook.core.shared import get_service_logger
from clinicbook.domains.clinic.application.dto import OperationResult, PrescriptionItemOutcome
from clinicbook.domains.clinic.application.ports import ClinicRepositories, IClock, IUnitOfWork
from clinicbook.domains.clinic.application.services.base import ClinicService
from clinicbook.domains.clinic.domain.entities import Prescription
from clinicbook.domains.clinic.domain.events import PrescriptionIssued


class PrescriptionManager(ClinicService):
    """
    Prescriptions and prescription items.

    Items are unique per (prescription, medication): adding a medication
    that is already on the prescription replaces its dosage instructions.
    """

    logger = get_service_logger("prescription_manager")

    def __init__(
        self,
        uow: IUnitOfWork,
        settings: Settings | None = None,
        publisher: DomainEventPublisher | None = None,
        retryer: Retryer | None = None,
        clock: IClock | None = None,
    ):
        super().__init__(uow, settings, publisher, retryer, clock)
        self._locks = KeyedLocks(timeout=self._settings.LOCK_TIMEOUT_SECONDS, name="prescriptions")

    async def create(
        self,
        patient_id: int,
        appointment_id: int | None = None,
        prescriber_id: int | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """
        Issue a prescription.

        The appointment, when given, must belong to the patient (Mismatch
        otherwise); without an explicit prescriber its doctor is recorded.
        """
        return await self._run("create_prescription", self._create, patient_id, appointment_id, prescriber_id, notes)

    async def _create(
        self,
        events: list[DomainEvent],
        patient_id: int,
        appointment_id: int | None,
        prescriber_id: int | None,
        notes: str | None,
    ) -> Prescription:
        async with self._uow.transaction() as repos:
            await self._require_patient(repos, patient_id)

            if appointment_id is not None:
                appointment = await self._require_appointment(repos, appointment_id)
                if appointment.patient_id != patient_id:
                    raise MismatchException(
                        f"Appointment {appointment_id} belongs to patient {appointment.patient_id}, not {patient_id}",
                        details={
                            "appointment_id": appointment_id,
                            "appointment_patient_id": appointment.patient_id,
                            "patient_id": patient_id,
                        },
                    )
                if prescriber_id is None:
                    prescriber_id = appointment.doctor_id

            if prescriber_id is not None:
                await self._require_doctor(repos, prescriber_id)

            now = self._clock.now()
            prescription = Prescription(
                patient_id=patient_id,
                appointment_id=appointment_id,
                prescribed_by=prescriber_id,
                issued_at=now,
                created_at=now,
                updated_at=now,
                notes=notes,
            )
            saved = await repos.prescriptions.save(prescription)

        events.append(
            PrescriptionIssued(
                prescription_id=saved.id,
                patient_id=patient_id,
                appointment_id=appointment_id,
                prescribed_by=prescriber_id,
            )
        )
        self.logger.info(f"Prescription {saved.id} issued for patient {patient_id}", prescription_id=saved.id)
        return saved

    async def add_item(
        self,
        prescription_id: int,
        medication_id: int,
        dosage: str,
        frequency: str,
        duration: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """Add a medication, or replace the instructions of one already listed."""
        return await self._run(
            "add_prescription_item",
            self._add_item,
            prescription_id,
            medication_id,
            dosage,
            frequency,
            duration,
            notes,
        )

    async def _add_item(
        self,
        events: list[DomainEvent],
        prescription_id: int,
        medication_id: int,
        dosage: str,
        frequency: str,
        duration: str | None,
        notes: str | None,
    ) -> PrescriptionItemOutcome:
        async with self._locks.hold(("prescription", prescription_id)):
            async with self._uow.transaction() as repos:
                prescription = await self._require_prescription(repos, prescription_id)
                if await repos.medications.find_by_id(medication_id) is None:
                    raise EntityNotFoundException("Medication", medication_id)

                item, created = prescription.upsert_item(medication_id, dosage, frequency, duration, notes)
                await repos.prescriptions.save(prescription)

        self.logger.debug(
            f"Medication {medication_id} {'added to' if created else 'updated on'} prescription {prescription_id}"
        )
        return PrescriptionItemOutcome(item=item, created=created)

    async def remove_item(self, prescription_id: int, medication_id: int) -> OperationResult:
        return await self._run("remove_prescription_item", self._remove_item, prescription_id, medication_id)

    async def _remove_item(self, events: list[DomainEvent], prescription_id: int, medication_id: int) -> Prescription:
        async with self._locks.hold(("prescription", prescription_id)):
            async with self._uow.transaction() as repos:
                prescription = await self._require_prescription(repos, prescription_id)
                if not prescription.remove_item(medication_id):
                    raise EntityNotFoundException(
                        "PrescriptionItem",
                        f"{prescription_id}/{medication_id}",
                        message=f"Medication {medication_id} is not on prescription {prescription_id}",
                    )
                await repos.prescriptions.save(prescription)
        return prescription

    async def get(self, prescription_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> Prescription:
            return await self._require_prescription(repos, prescription_id)

        return await self._read("get_prescription", reader)

    async def list_for_patient(self, patient_id: int) -> OperationResult:
        async def reader(repos: ClinicRepositories) -> list[Prescription]:
            await self._require_patient(repos, patient_id)
            return await repos.prescriptions.find_by_patient(patient_id)

        return await self._read("list_prescriptions", reader)

    @staticmethod
    async def _require_prescription(repos: ClinicRepositories, prescription_id: int) -> Prescription:
        prescription = await repos.prescriptions.find_by_id(prescription_id)
        if prescription is None:
            raise EntityNotFoundException("Prescription", prescription_id)
        return prescription
