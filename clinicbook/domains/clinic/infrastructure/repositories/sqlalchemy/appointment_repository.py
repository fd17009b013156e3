"""
Appointment Repository Implementation

SQLAlchemy implementation of IAppointmentRepository. Treatment lines are
loaded with the appointment and synchronized on save.
"""

import logging
from decimal import Decimal

from sqlalchemy import delete, update
from sqlalchemy.orm import selectinload

from clinicbook.core.domain import Money
from clinicbook.domains.clinic.domain.entities import Appointment, AppointmentTreatment
from clinicbook.domains.clinic.domain.value_objects import AppointmentStatus
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import (
    AppointmentModel,
    AppointmentTreatmentModel,
    InvoiceModel,
    PrescriptionModel,
)

from .base import SQLAlchemyRepository

logger = logging.getLogger(__name__)

_HOLDING_STATUSES = [status.value for status in AppointmentStatus if status.holds_reservation()]


class SQLAlchemyAppointmentRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IAppointmentRepository."""

    model = AppointmentModel
    entity_name = "Appointment"
    load_options = (selectinload(AppointmentModel.treatments),)

    async def find_by_patient(self, patient_id: int) -> list[Appointment]:
        with translate_errors("list appointments", self.entity_name):
            return await self._find(
                AppointmentModel.patient_id == patient_id, order_by=AppointmentModel.appointment_start
            )

    async def find_by_doctor(self, doctor_id: int) -> list[Appointment]:
        with translate_errors("list appointments", self.entity_name):
            return await self._find(
                AppointmentModel.doctor_id == doctor_id, order_by=AppointmentModel.appointment_start
            )

    async def find_by_room(self, room_id: int) -> list[Appointment]:
        with translate_errors("list appointments", self.entity_name):
            return await self._find(
                AppointmentModel.room_id == room_id, order_by=AppointmentModel.appointment_start
            )

    async def find_holding_reservations(self) -> list[Appointment]:
        with translate_errors("list appointments", self.entity_name):
            return await self._find(
                AppointmentModel.status.in_(_HOLDING_STATUSES), order_by=AppointmentModel.appointment_start
            )

    async def count_by_doctor(self, doctor_id: int) -> int:
        with translate_errors("count appointments", self.entity_name):
            return await self._count(AppointmentModel, AppointmentModel.doctor_id == doctor_id)

    async def delete(self, appointment_id: int) -> bool:
        """Removes the lines; invoice and prescription links are nulled."""
        with translate_errors("delete appointment", self.entity_name):
            if await self._get_model(appointment_id) is None:
                return False
            await self.session.execute(
                update(InvoiceModel)
                .where(InvoiceModel.appointment_id == appointment_id)
                .values(appointment_id=None)
            )
            await self.session.execute(
                update(PrescriptionModel)
                .where(PrescriptionModel.appointment_id == appointment_id)
                .values(appointment_id=None)
            )
            await self.session.execute(
                delete(AppointmentTreatmentModel).where(AppointmentTreatmentModel.appointment_id == appointment_id)
            )
        return await super().delete(appointment_id)

    # Mapping methods

    def _to_entity(self, model: AppointmentModel) -> Appointment:
        lines = [
            AppointmentTreatment(
                appointment_id=model.id,
                treatment_id=line.treatment_id,
                quantity=line.quantity,
                unit_price=Money(Decimal(line.unit_price), self.currency),
                notes=line.notes,
            )
            for line in sorted(model.treatments or [], key=lambda line: line.treatment_id)
        ]
        return Appointment(
            id=model.id,
            created_at=model.created_at,
            patient_id=model.patient_id,
            doctor_id=model.doctor_id,
            room_id=model.room_id,
            start=model.appointment_start,
            end=model.appointment_end,
            status=AppointmentStatus(model.status),
            reason=model.reason,
            notes=model.notes,
            cancellation_reason=model.cancellation_reason,
            treatments=lines,
            version=model.version or 0,
        )

    def _to_model(self, entity: Appointment) -> AppointmentModel:
        model = AppointmentModel(created_at=entity.created_at, version=entity.version, treatments=[])
        self._update_model(model, entity)
        return model

    def _update_model(self, model: AppointmentModel, entity: Appointment) -> None:
        model.patient_id = entity.patient_id
        model.doctor_id = entity.doctor_id
        model.room_id = entity.room_id
        model.appointment_start = entity.start
        model.appointment_end = entity.end
        model.status = entity.status.value
        model.reason = entity.reason
        model.notes = entity.notes
        model.cancellation_reason = entity.cancellation_reason

        existing = {row.treatment_id: row for row in model.treatments}
        for line in entity.treatments:
            row = existing.pop(line.treatment_id, None)
            if row is None:
                row = AppointmentTreatmentModel(treatment_id=line.treatment_id)
                model.treatments.append(row)
            row.quantity = line.quantity
            row.unit_price = line.unit_price.amount
            row.notes = line.notes
        for row in existing.values():
            model.treatments.remove(row)

    def _after_flush(self, model: AppointmentModel, entity: Appointment) -> None:
        for line in entity.treatments:
            line.appointment_id = model.id
