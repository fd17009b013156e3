"""
Room, Treatment and Medication Repository Implementations
"""

import logging
from decimal import Decimal

from sqlalchemy import update

from clinicbook.core.domain import Money, ReferentialIntegrityException
from clinicbook.domains.clinic.domain.entities import Medication, Room, Treatment
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import (
    AppointmentModel,
    AppointmentTreatmentModel,
    MedicationModel,
    PrescriptionItemModel,
    RoomModel,
    TreatmentModel,
)

from .base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class SQLAlchemyRoomRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IRoomRepository."""

    model = RoomModel
    entity_name = "Room"

    async def find_by_number(self, room_number: str) -> Room | None:
        with translate_errors("find room", self.entity_name):
            return await self._find_one(RoomModel.room_number == room_number)

    async def list_all(self) -> list[Room]:
        with translate_errors("list rooms", self.entity_name):
            return await self._find()

    async def delete(self, room_id: int) -> bool:
        with translate_errors("delete room", self.entity_name):
            if await self._get_model(room_id) is None:
                return False
            await self.session.execute(
                update(AppointmentModel).where(AppointmentModel.room_id == room_id).values(room_id=None)
            )
        return await super().delete(room_id)

    def _to_entity(self, model: RoomModel) -> Room:
        return Room(id=model.id, room_number=model.room_number, floor=model.floor, description=model.description)

    def _to_model(self, entity: Room) -> RoomModel:
        return RoomModel(room_number=entity.room_number, floor=entity.floor, description=entity.description)

    def _update_model(self, model: RoomModel, entity: Room) -> None:
        model.room_number = entity.room_number
        model.floor = entity.floor
        model.description = entity.description


class SQLAlchemyTreatmentRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of ITreatmentRepository."""

    model = TreatmentModel
    entity_name = "Treatment"

    async def find_by_code(self, code: str) -> Treatment | None:
        with translate_errors("find treatment", self.entity_name):
            return await self._find_one(TreatmentModel.code == code)

    async def list_all(self) -> list[Treatment]:
        with translate_errors("list treatments", self.entity_name):
            return await self._find()

    async def delete(self, treatment_id: int) -> bool:
        """Restricted while any appointment line references the treatment."""
        with translate_errors("delete treatment", self.entity_name):
            if await self._get_model(treatment_id) is None:
                return False
            count = await self._count(
                AppointmentTreatmentModel, AppointmentTreatmentModel.treatment_id == treatment_id
            )
            if count:
                raise ReferentialIntegrityException("Treatment", treatment_id, "appointment_treatments", count)
        return await super().delete(treatment_id)

    def _to_entity(self, model: TreatmentModel) -> Treatment:
        return Treatment(
            id=model.id,
            code=model.code,
            name=model.name,
            description=model.description,
            price=Money(Decimal(model.price or 0), self.currency),
        )

    def _to_model(self, entity: Treatment) -> TreatmentModel:
        model = TreatmentModel()
        self._update_model(model, entity)
        return model

    def _update_model(self, model: TreatmentModel, entity: Treatment) -> None:
        model.code = entity.code
        model.name = entity.name
        model.description = entity.description
        model.price = entity.price.amount


class SQLAlchemyMedicationRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IMedicationRepository."""

    model = MedicationModel
    entity_name = "Medication"

    async def find_by_natural_key(
        self, name: str, strength: str | None, dosage_form: str | None
    ) -> Medication | None:
        with translate_errors("find medication", self.entity_name):
            return await self._find_one(
                MedicationModel.name == name,
                MedicationModel.strength.is_(None) if strength is None else MedicationModel.strength == strength,
                (
                    MedicationModel.dosage_form.is_(None)
                    if dosage_form is None
                    else MedicationModel.dosage_form == dosage_form
                ),
            )

    async def list_all(self) -> list[Medication]:
        with translate_errors("list medications", self.entity_name):
            return await self._find()

    async def delete(self, medication_id: int) -> bool:
        """Restricted while any prescription item references the medication."""
        with translate_errors("delete medication", self.entity_name):
            if await self._get_model(medication_id) is None:
                return False
            count = await self._count(PrescriptionItemModel, PrescriptionItemModel.medication_id == medication_id)
            if count:
                raise ReferentialIntegrityException("Medication", medication_id, "prescription_items", count)
        return await super().delete(medication_id)

    def _to_entity(self, model: MedicationModel) -> Medication:
        return Medication(
            id=model.id,
            name=model.name,
            manufacturer=model.manufacturer,
            dosage_form=model.dosage_form,
            strength=model.strength,
        )

    def _to_model(self, entity: Medication) -> MedicationModel:
        model = MedicationModel()
        self._update_model(model, entity)
        return model

    def _update_model(self, model: MedicationModel, entity: Medication) -> None:
        model.name = entity.name
        model.manufacturer = entity.manufacturer
        model.dosage_form = entity.dosage_form
        model.strength = entity.strength
