"""
Invoice Entity for Clinic Domain

Invoice aggregate with its payments and the derived paid flag.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from clinicbook.core.domain import AggregateRoot, Entity, InvalidAmountException, Money, to_decimal

from ..events import InvoicePaymentStatusChanged, InvoiceTotalChanged, PaymentRecorded
from ..value_objects import PaymentMethod


@dataclass
class Payment(Entity[int]):
    invoice_id: int | None = None
    paid_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    amount: Money = field(default_factory=Money.zero)
    method: PaymentMethod = PaymentMethod.CASH
    reference: str | None = None


@dataclass
class Invoice(AggregateRoot[int]):
    """
    Invoice aggregate root, at most one per appointment.

    ``paid`` is derived: true iff at least one payment exists and the sum of
    payments covers the total. Overpayment counts as paid. Every mutation
    re-evaluates the flag and reports whether it flipped.

    Example:
        ```python
        invoice = Invoice(appointment_id=1, total_amount=Money(Decimal("95.00")))
        _, flipped = invoice.record_payment(Decimal("95.00"))
        assert invoice.paid and flipped
        ```
    """

    appointment_id: int | None = None
    total_amount: Money = field(default_factory=Money.zero)
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    paid: bool = False
    notes: str | None = None
    payments: list[Payment] = field(default_factory=list)

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    def amount_paid(self) -> Money:
        return Money.sum([p.amount for p in self.payments], currency=self.currency)

    def balance_due(self) -> Money:
        """Outstanding amount, never negative."""
        return self.total_amount.subtract_or_zero(self.amount_paid())

    def _compute_paid(self) -> bool:
        return bool(self.payments) and self.amount_paid() >= self.total_amount

    def reevaluate_paid(self) -> bool:
        """Recompute the paid flag; returns True if it flipped."""
        new_paid = self._compute_paid()
        if new_paid == self.paid:
            return False
        self.paid = new_paid
        self.touch()
        self._record_event(
            InvoicePaymentStatusChanged(
                invoice_id=self.id or 0,
                paid=new_paid,
                total_amount=self.total_amount.amount,
                amount_paid=self.amount_paid().amount,
            )
        )
        return True

    def update_total(self, new_total: Money) -> bool:
        """
        Replace the derived total and re-evaluate the paid flag.

        Returns:
            True if the paid flag flipped.
        """
        if new_total.amount != self.total_amount.amount:
            old_total = self.total_amount
            self.total_amount = new_total
            self.touch()
            self._record_event(
                InvoiceTotalChanged(
                    invoice_id=self.id or 0,
                    old_total=old_total.amount,
                    new_total=new_total.amount,
                )
            )
        return self.reevaluate_paid()

    def record_payment(
        self,
        amount: Any,
        method: PaymentMethod = PaymentMethod.CASH,
        reference: str | None = None,
        paid_at: datetime | None = None,
    ) -> tuple[Payment, bool]:
        """
        Append a payment.

        Raises:
            InvalidAmountException: amount is not strictly positive.

        Returns:
            The new payment and whether the paid flag flipped.
        """
        value = to_decimal(amount)
        if value <= Decimal("0"):
            raise InvalidAmountException(amount)
        money = Money(amount=value, currency=self.currency)
        if money.is_zero():
            # Positive amounts below one cent round to zero
            raise InvalidAmountException(amount)

        if isinstance(method, str) and not isinstance(method, PaymentMethod):
            method = PaymentMethod.from_string(method)

        payment = Payment(
            invoice_id=self.id,
            paid_at=paid_at or datetime.now(UTC),
            amount=money,
            method=method,
            reference=reference,
        )
        self.payments.append(payment)
        self.touch()
        self._record_event(
            PaymentRecorded(
                invoice_id=self.id or 0,
                amount=money.amount,
                method=method.value,
                reference=reference,
            )
        )
        return payment, self.reevaluate_paid()
