"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable

from ims.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Non-negative amount of money; single currency, Decimal-backed.

    Zero is a legal total. Order lines additionally require a positive
    unit price (see ``OrderItem``).
    """

    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if not self.amount.is_finite():
            raise ValidationError(f"Money amount must be finite, got {self.amount}")
        if self.amount < 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + other.amount)

    def __mul__(self, units: int) -> Money:
        if not isinstance(units, int):
            raise TypeError(f"Can only multiply Money by int, got {type(units).__name__}")
        return Money(self.amount * units)

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    @staticmethod
    def zero() -> Money:
        return Money(Decimal("0.00"))

    @staticmethod
    def sum(amounts: Iterable[Money]) -> Money:
        total = Money.zero()
        for amount in amounts:
            total = total + amount
        return total

    @staticmethod
    def of(amount: str | int | Decimal) -> Money:
        """Parse a price as typed by a user ("9.99", 10, Decimal)."""
        try:
            return Money(Decimal(str(amount).strip()))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc


@dataclass(frozen=True)
class Quantity:
    """Number of units on an order line; always a positive int."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value < 1:
            raise ValidationError(f"Quantity must be positive, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)
