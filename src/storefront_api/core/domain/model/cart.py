from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Sequence, Tuple

from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.money import Money


@dataclass(frozen=True)
class AccountId:
    value: str


@dataclass(frozen=True)
class SessionId:
    value: str


class CartKind(str, Enum):
    EPHEMERAL = "ephemeral"  # keyed by session, lost unless merged
    PERSISTED = "persisted"  # keyed by account, durable


@dataclass(frozen=True)
class CartRef:
    kind: CartKind
    owner: str

    @staticmethod
    def guest(session_id: SessionId) -> "CartRef":
        return CartRef(CartKind.EPHEMERAL, session_id.value)

    @staticmethod
    def account(account_id: AccountId) -> "CartRef":
        return CartRef(CartKind.PERSISTED, account_id.value)

    @property
    def is_guest(self) -> bool:
        return self.kind is CartKind.EPHEMERAL

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.owner}"


@dataclass(frozen=True)
class CartLine:
    product_id: ProductId
    quantity: int


@dataclass(frozen=True)
class CartContents:
    """Raw ledger rows for one owner plus the owner's mutation counter."""

    lines: Tuple[CartLine, ...]
    version: int = 0

    def quantity_of(self, product_id: ProductId) -> int:
        for ln in self.lines:
            if ln.product_id == product_id:
                return ln.quantity
        return 0

    @property
    def is_empty(self) -> bool:
        return not self.lines


@dataclass(frozen=True)
class CartItemView:
    """A cart line priced from the catalog. ``unit_price`` is the catalog amount, unrounded."""

    product_id: ProductId
    name: str
    quantity: int
    unit_price: Money
    stock_quantity: int

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity

    @property
    def price_pair(self) -> tuple[Decimal, int]:
        return self.unit_price.amount, self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    cart_ref: CartRef
    items: Tuple[CartItemView, ...]
    stale_product_ids: Tuple[ProductId, ...]
    total: Money
    version: int

    @property
    def line_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.stale_product_ids


def merge_lines(
    persisted: Sequence[CartLine], ephemeral: Sequence[CartLine]
) -> Tuple[CartLine, ...]:
    """Union of both carts; quantities of shared products are summed."""
    quantities: Dict[ProductId, int] = {}
    for line in (*persisted, *ephemeral):
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return tuple(CartLine(pid, qty) for pid, qty in quantities.items())
