"""
Shared value objects: Money, Email and the status enum base.

Money never touches floats: amounts are parsed from their string form and
kept as Decimal with 2 fractional digits (round half-even).
"""

from abc import ABC
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Self

from clinicbook.core.domain.exceptions import ValidationException

CENTS = Decimal("0.01")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Convert a user supplied amount to Decimal without float arithmetic.

    Floats go through their string representation, so 10.1 becomes
    Decimal("10.1") rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationException(f"Invalid {field}: {value!r}", field=field)
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationException(f"Invalid {field}: {value!r}", field=field) from e
    else:
        raise ValidationException(f"Invalid {field}: {value!r}", field=field)

    if not result.is_finite():
        raise ValidationException(f"Invalid {field}: {value!r}", field=field)
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 fractional digits using round-half-even."""
    return value.quantize(CENTS, rounding=ROUND_HALF_EVEN)


@dataclass(frozen=True)
class ValueObject(ABC):
    """Frozen dataclass validated (and normalized) right after construction."""

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        pass


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Non-negative amount in one currency, used for prices, totals and payments.

    Example:
        ```python
        unit_price = Money(Decimal("10.00"), "USD")
        line_total = unit_price.multiply(2)  # USD 20.00
        total = line_total.add(Money(Decimal("75.00"), "USD"))
        ```
    """

    amount: Decimal
    currency: str = "USD"

    def _validate(self) -> None:
        amount = quantize_money(to_decimal(self.amount))
        object.__setattr__(self, "amount", amount)
        if amount < 0:
            raise ValidationException("Money amount cannot be negative", field="amount")
        if not self.currency or len(self.currency) != 3:
            raise ValidationException("Currency must be a 3-letter ISO code", field="currency")

    def add(self, other: "Money") -> "Money":
        """Same-currency sum."""
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract_or_zero(self, other: "Money") -> "Money":
        """Subtract Money, flooring at zero."""
        self._check_currency(other)
        return Money(amount=max(self.amount - other.amount, Decimal("0")), currency=self.currency)

    def multiply(self, factor: int) -> "Money":
        """Multiply by an integer quantity."""
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise ValidationException(f"Quantity must be an integer, got {factor!r}", field="quantity")
        return Money(amount=quantize_money(self.amount * factor), currency=self.currency)

    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValidationException(f"Cannot combine {self.currency} with {other.currency}", field="currency")

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:,.2f}"

    def __repr__(self) -> str:
        return f"Money(amount={self.amount}, currency='{self.currency}')"

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(amount=Decimal("0"), currency=currency)

    @classmethod
    def sum(cls, values: list["Money"], currency: str = "USD") -> "Money":
        """Sum a list of Money values (zero when empty)."""
        total = cls.zero(currency)
        for value in values:
            total = total.add(value)
        return total


@dataclass(frozen=True)
class Email(ValueObject):
    """Contact email, stored lower-cased; uniqueness checks compare this form."""

    address: str

    def _validate(self) -> None:
        if not self.address or "@" not in self.address:
            raise ValidationException(f"Invalid email address: {self.address}", field="email")
        object.__setattr__(self, "address", self.address.lower().strip())

    def __str__(self) -> str:
        return self.address


class StatusEnum(str, Enum):
    """String enum parsed case-insensitively from caller input."""

    @classmethod
    def from_string(cls, value: str) -> Self:
        for member in cls:
            if member.value.lower() == value.lower():
                return member
        raise ValidationException(f"Invalid {cls.__name__}: {value}")
