from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

DEFAULT_CURRENCY = "ZMW"
_CENTS = Decimal("0.01")


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    @staticmethod
    def of(amount: Decimal | int | str, currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(quantize(Decimal(str(amount))), currency)

    def __add__(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, n: int) -> "Money":
        return Money(quantize(self.amount * Decimal(n)), self.currency)

    def _assert_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise ValueError(f"currency_mismatch: {self.currency} vs {other.currency}")


def line_total(
    lines: Iterable[tuple[Decimal, int]], currency: str = DEFAULT_CURRENCY
) -> Money:
    """Sum ``unit_price * quantity`` pairs and round once, half-up, to cents."""
    raw = sum((price * Decimal(qty) for price, qty in lines), Decimal("0"))
    return Money.of(raw, currency=currency)
