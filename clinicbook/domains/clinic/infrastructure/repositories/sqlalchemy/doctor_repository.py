"""
Doctor and Specialty Repository Implementations
"""

import logging

from sqlalchemy import update

from clinicbook.core.domain import Email, ReferentialIntegrityException
from clinicbook.domains.clinic.domain.entities import Doctor, Specialty
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import (
    AppointmentModel,
    DoctorModel,
    PrescriptionModel,
    SpecialtyModel,
)

from .base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class SQLAlchemySpecialtyRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of ISpecialtyRepository."""

    model = SpecialtyModel
    entity_name = "Specialty"

    async def find_by_name(self, name: str) -> Specialty | None:
        with translate_errors("find specialty", self.entity_name):
            return await self._find_one(SpecialtyModel.name == name)

    async def list_all(self) -> list[Specialty]:
        with translate_errors("list specialties", self.entity_name):
            return await self._find()

    async def delete(self, specialty_id: int) -> bool:
        with translate_errors("delete specialty", self.entity_name):
            if await self._get_model(specialty_id) is None:
                return False
            await self.session.execute(
                update(DoctorModel).where(DoctorModel.specialty_id == specialty_id).values(specialty_id=None)
            )
        return await super().delete(specialty_id)

    def _to_entity(self, model: SpecialtyModel) -> Specialty:
        return Specialty(id=model.id, name=model.name, description=model.description)

    def _to_model(self, entity: Specialty) -> SpecialtyModel:
        return SpecialtyModel(name=entity.name, description=entity.description)

    def _update_model(self, model: SpecialtyModel, entity: Specialty) -> None:
        model.name = entity.name
        model.description = entity.description


class SQLAlchemyDoctorRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IDoctorRepository."""

    model = DoctorModel
    entity_name = "Doctor"

    async def find_by_email(self, email: str) -> Doctor | None:
        with translate_errors("find doctor", self.entity_name):
            return await self._find_one(DoctorModel.email == email.lower().strip())

    async def list_all(self, active_only: bool = False) -> list[Doctor]:
        with translate_errors("list doctors", self.entity_name):
            if active_only:
                return await self._find(DoctorModel.active.is_(True))
            return await self._find()

    async def find_by_specialty(self, specialty_id: int) -> list[Doctor]:
        with translate_errors("list doctors", self.entity_name):
            return await self._find(DoctorModel.specialty_id == specialty_id)

    async def delete(self, doctor_id: int) -> bool:
        """Restricted while appointments reference the doctor; prescriber links are nulled."""
        with translate_errors("delete doctor", self.entity_name):
            if await self._get_model(doctor_id) is None:
                return False
            count = await self._count(AppointmentModel, AppointmentModel.doctor_id == doctor_id)
            if count:
                raise ReferentialIntegrityException("Doctor", doctor_id, "appointments", count)
            await self.session.execute(
                update(PrescriptionModel)
                .where(PrescriptionModel.prescribed_by == doctor_id)
                .values(prescribed_by=None)
            )
        return await super().delete(doctor_id)

    def _to_entity(self, model: DoctorModel) -> Doctor:
        return Doctor(
            id=model.id,
            created_at=model.created_at,
            first_name=model.first_name,
            last_name=model.last_name,
            email=Email(model.email) if model.email else None,
            phone=model.phone,
            specialty_id=model.specialty_id,
            active=bool(model.active),
            version=model.version or 0,
        )

    def _to_model(self, entity: Doctor) -> DoctorModel:
        model = DoctorModel(created_at=entity.created_at, version=entity.version)
        self._update_model(model, entity)
        return model

    def _update_model(self, model: DoctorModel, entity: Doctor) -> None:
        model.first_name = entity.first_name
        model.last_name = entity.last_name
        model.email = entity.email.address if entity.email else None
        model.phone = entity.phone
        model.specialty_id = entity.specialty_id
        model.active = entity.active
