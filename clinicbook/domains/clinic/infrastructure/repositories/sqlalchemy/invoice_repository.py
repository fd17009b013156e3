"""
Invoice Repository Implementation

Payments are append-only children of the invoice; new ones get their ids
from the database on flush.
"""

import logging
from decimal import Decimal

from sqlalchemy import delete
from sqlalchemy.orm import selectinload

from clinicbook.core.domain import Money
from clinicbook.domains.clinic.domain.entities import Invoice, Payment
from clinicbook.domains.clinic.domain.value_objects import PaymentMethod
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.errors import translate_errors
from clinicbook.domains.clinic.infrastructure.persistence.sqlalchemy.models import InvoiceModel, PaymentModel

from .base import SQLAlchemyRepository

logger = logging.getLogger(__name__)


class SQLAlchemyInvoiceRepository(SQLAlchemyRepository):
    """SQLAlchemy implementation of IInvoiceRepository."""

    model = InvoiceModel
    entity_name = "Invoice"
    load_options = (selectinload(InvoiceModel.payments),)

    def __init__(self, session, currency: str = "USD"):
        super().__init__(session, currency)
        self._pending: list[tuple[Payment, PaymentModel]] = []

    async def find_by_appointment(self, appointment_id: int) -> Invoice | None:
        with translate_errors("find invoice", self.entity_name):
            return await self._find_one(InvoiceModel.appointment_id == appointment_id)

    async def list_unpaid(self) -> list[Invoice]:
        with translate_errors("list invoices", self.entity_name):
            return await self._find(InvoiceModel.paid.is_(False))

    async def delete(self, invoice_id: int) -> bool:
        with translate_errors("delete invoice", self.entity_name):
            if await self._get_model(invoice_id) is None:
                return False
            await self.session.execute(delete(PaymentModel).where(PaymentModel.invoice_id == invoice_id))
        return await super().delete(invoice_id)

    def _to_entity(self, model: InvoiceModel) -> Invoice:
        payments = [
            Payment(
                id=row.id,
                invoice_id=model.id,
                paid_at=row.paid_at,
                amount=Money(Decimal(row.amount), self.currency),
                method=PaymentMethod(row.method),
                reference=row.reference,
            )
            for row in model.payments or []
        ]
        return Invoice(
            id=model.id,
            appointment_id=model.appointment_id,
            total_amount=Money(Decimal(model.total_amount or 0), self.currency),
            issued_at=model.issued_at,
            paid=bool(model.paid),
            notes=model.notes,
            payments=payments,
            version=model.version or 0,
        )

    def _to_model(self, entity: Invoice) -> InvoiceModel:
        model = InvoiceModel(version=entity.version, payments=[])
        self._update_model(model, entity)
        return model

    def _update_model(self, model: InvoiceModel, entity: Invoice) -> None:
        model.appointment_id = entity.appointment_id
        model.total_amount = entity.total_amount.amount
        model.issued_at = entity.issued_at
        model.paid = entity.paid
        model.notes = entity.notes

        self._pending = []
        for payment in entity.payments:
            if payment.id is not None:
                continue
            row = PaymentModel(
                paid_at=payment.paid_at,
                amount=payment.amount.amount,
                method=payment.method.value,
                reference=payment.reference,
            )
            model.payments.append(row)
            self._pending.append((payment, row))

    def _after_flush(self, model: InvoiceModel, entity: Invoice) -> None:
        for payment, row in self._pending:
            payment.id = row.id
        for payment in entity.payments:
            payment.invoice_id = model.id
        self._pending = []
