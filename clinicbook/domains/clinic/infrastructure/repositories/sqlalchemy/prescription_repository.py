"""
Prescription Repository Implementation
"""

import logging

from sqlalchemy import delete
from sqlalchemy.orm import selectinload

from clinicbook.domains.clinic.domain.entities import Prescription, PrescriptionItem
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import (
    PrescriptionItemModel,
    PrescriptionModel,
)

from .base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class SQLAlchemyPrescriptionRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IPrescriptionRepository."""

    model = PrescriptionModel
    entity_name = "Prescription"
    load_options = (selectinload(PrescriptionModel.items),)

    async def find_by_patient(self, patient_id: int) -> list[Prescription]:
        with translate_errors("list prescriptions", self.entity_name):
            return await self._find(PrescriptionModel.patient_id == patient_id)

    async def delete(self, prescription_id: int) -> bool:
        with translate_errors("delete prescription", self.entity_name):
            if await self._get_model(prescription_id) is None:
                return False
            await self.session.execute(
                delete(PrescriptionItemModel).where(PrescriptionItemModel.prescription_id == prescription_id)
            )
        return await super().delete(prescription_id)

    def _to_entity(self, model: PrescriptionModel) -> Prescription:
        items = [
            PrescriptionItem(
                prescription_id=model.id,
                medication_id=row.medication_id,
                dosage=row.dosage,
                frequency=row.frequency,
                duration=row.duration,
                notes=row.notes,
            )
            for row in sorted(model.items or [], key=lambda row: row.medication_id)
        ]
        return Prescription(
            id=model.id,
            patient_id=model.patient_id,
            appointment_id=model.appointment_id,
            prescribed_by=model.prescribed_by,
            issued_at=model.issued_at,
            notes=model.notes,
            items=items,
            version=model.version or 0,
        )

    def _to_model(self, entity: Prescription) -> PrescriptionModel:
        model = PrescriptionModel(version=entity.version, items=[])
        self._update_model(model, entity)
        return model

    def _update_model(self, model: PrescriptionModel, entity: Prescription) -> None:
        model.patient_id = entity.patient_id
        model.appointment_id = entity.appointment_id
        model.prescribed_by = entity.prescribed_by
        model.issued_at = entity.issued_at
        model.notes = entity.notes

        existing = {row.medication_id: row for row in model.items}
        for item in entity.items:
            row = existing.pop(item.medication_id, None)
            if row is None:
                row = PrescriptionItemModel(medication_id=item.medication_id)
                model.items.append(row)
            row.dosage = item.dosage
            row.frequency = item.frequency
            row.duration = item.duration
            row.notes = item.notes
        for row in existing.values():
            model.items.remove(row)

    def _after_flush(self, model: PrescriptionModel, entity: Prescription) -> None:
        for item in entity.items:
            item.prescription_id = model.id
