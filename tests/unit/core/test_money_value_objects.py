"""
Unit tests for core value objects.

Tests:
- to_decimal / quantize_money
- Money
- Email
"""

from decimal import Decimal

import pytest

from clinicbook.core.domain import Email, Money, ValidationException, quantize_money, to_decimal

# ============================================================================
# to_decimal / quantize_money
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("95.00", Decimal("95.00")),
        (10, Decimal("10")),
        (10.1, Decimal("10.1")),
        (" 3.5 ", Decimal("3.5")),
        (Decimal("0.01"), Decimal("0.01")),
    ],
)
def test_to_decimal_accepts_numbers_and_strings(raw, expected):
    assert to_decimal(raw) == expected


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", True, None, [1]])
def test_to_decimal_rejects_non_numeric_values(raw):
    with pytest.raises(ValidationException) as exc_info:
        to_decimal(raw, field="price")

    assert exc_info.value.field == "price"


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("0.125", "0.12"),
        ("0.135", "0.14"),
        ("2.675", "2.68"),
        ("10", "10.00"),
    ],
)
def test_quantize_money_rounds_half_even(raw, expected):
    assert quantize_money(Decimal(raw)) == Decimal(expected)


# ============================================================================
# Money
# ============================================================================


@pytest.mark.unit
def test_money_quantizes_on_creation():
    money = Money(Decimal("19.999"))

    assert money.amount == Decimal("20.00")
    assert str(money) == "USD 20.00"


@pytest.mark.unit
def test_money_rejects_negative_amounts():
    with pytest.raises(ValidationException):
        Money(Decimal("-0.01"))


@pytest.mark.unit
def test_money_rejects_bad_currency():
    with pytest.raises(ValidationException):
        Money(Decimal("1.00"), "US")


@pytest.mark.unit
def test_money_arithmetic():
    # Arrange
    consultation = Money(Decimal("10.00"))
    xray = Money(Decimal("75.00"))

    # Act
    total = consultation.multiply(2).add(xray)

    # Assert
    assert total == Money(Decimal("95.00"))
    assert total.subtract_or_zero(Money(Decimal("100.00"))).is_zero()
    assert Money.sum([]) == Money.zero()
    assert Money.sum([consultation, xray]).amount == Decimal("85.00")


@pytest.mark.unit
def test_money_multiply_requires_integer_quantity():
    with pytest.raises(ValidationException):
        Money(Decimal("10.00")).multiply(1.5)


@pytest.mark.unit
def test_money_refuses_to_mix_currencies():
    with pytest.raises(ValidationException):
        Money(Decimal("1.00"), "USD").add(Money(Decimal("1.00"), "EUR"))


@pytest.mark.unit
def test_money_comparisons():
    assert Money(Decimal("95.00")) >= Money(Decimal("95.00"))
    assert Money(Decimal("94.99")) < Money(Decimal("95.00"))


# ============================================================================
# Email
# ============================================================================


@pytest.mark.unit
def test_email_is_normalized():
    email = Email("  Grace.Kimani@Example.COM ")

    assert email.address == "grace.kimani@example.com"
    assert str(email) == email.address


@pytest.mark.unit
def test_email_requires_at_sign():
    with pytest.raises(ValidationException):
        Email("not-an-email")
