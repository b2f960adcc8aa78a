"""
Value Objects

Immutable Decimal wrappers for quantities and money. Values are quantized
to the precision of the persisted columns (DECIMAL(15,4)) on construction,
so arithmetic across many BOM lines never accumulates binary float drift.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from forgeops.exceptions import ValidationError

Numeric = Union[Decimal, int, float, str]

QUANTITY_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.0001")
# DECIMAL(15,4) leaves 11 integer digits
MAX_VALUE = Decimal("99999999999.9999")
MAX_UNIT_LENGTH = 10


def to_decimal(value: Numeric, label: str = "Value") -> Decimal:
    """Convert an int/str/float/Decimal to Decimal, rejecting NaN and infinities.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a valid number", value=value)
    try:
        if isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{label} must be a valid number", value=value)
    if not result.is_finite():
        raise ValidationError(f"{label} must be a finite number", value=value)
    return result


@dataclass(frozen=True)
class Quantity:
    """A non-negative amount of something measured in a unit (EA, KG, M...)."""

    value: Decimal
    unit: str

    def __post_init__(self):
        value = to_decimal(self.value, "Quantity value")
        if value < 0:
            raise ValidationError("Quantity value cannot be negative", value=value)
        if value > MAX_VALUE:
            raise ValidationError("Quantity value is too large", value=value)

        if not isinstance(self.unit, str) or not self.unit.strip():
            raise ValidationError("Unit is required", field="unit")
        unit = self.unit.strip().upper()
        if len(unit) > MAX_UNIT_LENGTH:
            raise ValidationError(
                f"Unit cannot exceed {MAX_UNIT_LENGTH} characters", field="unit", value=unit
            )

        object.__setattr__(self, "value", value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP))
        object.__setattr__(self, "unit", unit)

    @classmethod
    def of(cls, value: Numeric, unit: str) -> "Quantity":
        return cls(to_decimal(value, "Quantity value"), unit)

    @classmethod
    def zero(cls, unit: str) -> "Quantity":
        return cls(Decimal("0"), unit)

    def _ensure_same_unit(self, other: "Quantity") -> None:
        if self.unit != other.unit:
            raise ValidationError(
                f"Cannot perform operation on different units: {self.unit} and {other.unit}"
            )

    def add(self, other: "Quantity") -> "Quantity":
        self._ensure_same_unit(other)
        return Quantity(self.value + other.value, self.unit)

    def subtract(self, other: "Quantity") -> "Quantity":
        self._ensure_same_unit(other)
        result = self.value - other.value
        if result < 0:
            raise ValidationError("Subtraction would result in negative quantity")
        return Quantity(result, self.unit)

    def multiply(self, factor: Numeric) -> "Quantity":
        factor = to_decimal(factor, "Factor")
        if factor < 0:
            raise ValidationError("Factor cannot be negative", value=factor)
        return Quantity(self.value * factor, self.unit)

    def is_zero(self) -> bool:
        return self.value == 0

    def is_positive(self) -> bool:
        return self.value > 0

    def __lt__(self, other: "Quantity") -> bool:
        self._ensure_same_unit(other)
        return self.value < other.value

    def __le__(self, other: "Quantity") -> bool:
        self._ensure_same_unit(other)
        return self.value <= other.value

    def __gt__(self, other: "Quantity") -> bool:
        self._ensure_same_unit(other)
        return self.value > other.value

    def __ge__(self, other: "Quantity") -> bool:
        self._ensure_same_unit(other)
        return self.value >= other.value

    def __str__(self) -> str:
        return f"{self.value} {self.unit}"

    def to_dict(self) -> dict:
        return {"value": str(self.value), "unit": self.unit}


@dataclass(frozen=True)
class Money:
    """A non-negative amount in a three-letter currency."""

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        amount = to_decimal(self.amount, "Amount")
        if amount < 0:
            raise ValidationError("Amount cannot be negative", value=amount)
        if amount > MAX_VALUE:
            raise ValidationError("Amount is too large", value=amount)

        currency = (self.currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("Currency must be a 3-letter code", field="currency", value=self.currency)

        object.__setattr__(self, "amount", amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP))
        object.__setattr__(self, "currency", currency)

    @classmethod
    def of(cls, amount: Numeric, currency: str = "USD") -> "Money":
        return cls(to_decimal(amount, "Amount"), currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> "Money":
        return cls(Decimal("0"), currency)

    def _ensure_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot perform operation on different currencies: {self.currency} and {other.currency}"
            )

    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise ValidationError("Subtraction would result in negative amount")
        return Money(result, self.currency)

    def multiply(self, factor: Numeric) -> "Money":
        factor = to_decimal(factor, "Factor")
        if factor < 0:
            raise ValidationError("Factor cannot be negative", value=factor)
        return Money(self.amount * factor, self.currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
