"""
Patient Repository Implementation
"""

import logging

from sqlalchemy import select

from clinicbook.core.domain import Email
from clinicbook.domains.clinic.domain.entities import Patient
from clinicbook.domains.clinic.domain.value_objects import Gender
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import (
    AppointmentModel,
    PatientModel,
    PrescriptionModel,
)

from .appointment_repository import SQLAlchemyAppointmentRepository
from .base import SQLAlchemyRepository
from .prescription_repository import SQLAlchemyPrescriptionRepository

logger = logging.getLogger(__name__)


class SQLAlchemyPatientRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IPatientRepository."""

    model = PatientModel
    entity_name = "Patient"

    async def find_by_email(self, email: str) -> Patient | None:
        with translate_errors("find patient", self.entity_name):
            return await self._find_one(PatientModel.email == email.lower().strip())

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[Patient]:
        with translate_errors("list patients", self.entity_name):
            result = await self.session.execute(
                select(PatientModel).order_by(PatientModel.id).limit(limit).offset(offset)
            )
            return [self._to_entity(m) for m in result.scalars().all()]

    async def delete(self, patient_id: int) -> bool:
        """Cascades to the patient's appointments and prescriptions."""
        with translate_errors("delete patient", self.entity_name):
            if await self._get_model(patient_id) is None:
                return False

            result = await self.session.execute(
                select(AppointmentModel.id).where(AppointmentModel.patient_id == patient_id)
            )
            appointments = SQLAlchemyAppointmentRepository(self.session, self.currency)
            for appointment_id in result.scalars().all():
                await appointments.delete(appointment_id)

            result = await self.session.execute(
                select(PrescriptionModel.id).where(PrescriptionModel.patient_id == patient_id)
            )
            prescriptions = SQLAlchemyPrescriptionRepository(self.session, self.currency)
            for prescription_id in result.scalars().all():
                await prescriptions.delete(prescription_id)

        return await super().delete(patient_id)

    def _to_entity(self, model: PatientModel) -> Patient:
        return Patient(
            id=model.id,
            created_at=model.created_at,
            first_name=model.first_name,
            last_name=model.last_name,
            date_of_birth=model.date_of_birth,
            gender=Gender(model.gender or "other"),
            email=Email(model.email) if model.email else None,
            phone=model.phone,
            address=model.address,
            version=model.version or 0,
        )

    def _to_model(self, entity: Patient) -> PatientModel:
        model = PatientModel(created_at=entity.created_at, version=entity.version)
        self._update_model(model, entity)
        return model

    def _update_model(self, model: PatientModel, entity: Patient) -> None:
        model.first_name = entity.first_name
        model.last_name = entity.last_name
        model.date_of_birth = entity.date_of_birth
        model.gender = entity.gender.value
        model.email = entity.email.address if entity.email else None
        model.phone = entity.phone
        model.address = entity.address
