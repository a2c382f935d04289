from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple
from uuid import UUID, uuid4

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.money import DEFAULT_CURRENCY, Money, line_total


@dataclass(frozen=True)
class OrderId:
    value: UUID

    @staticmethod
    def new() -> "OrderId":
        return OrderId(uuid4())


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderLine:
    product_id: ProductId
    name: str
    quantity: int
    unit_price_at_purchase: Money

    def subtotal(self) -> Money:
        return self.unit_price_at_purchase * self.quantity


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    account_id: AccountId
    lines: Tuple[OrderLine, ...]
    total: Money
    contact: str
    created_at: datetime
    status: OrderStatus = OrderStatus.PENDING

    def header(self) -> "Order":
        """The order row without its lines, as written by the first commit step."""
        return replace(self, lines=())

    def with_status(self, status: OrderStatus) -> "Order":
        if self.status is not OrderStatus.PENDING:
            raise ValueError(f"order {self.order_id.value} is {self.status.value}")
        return replace(self, status=status)


def compute_total(lines: Tuple[OrderLine, ...], currency: str = DEFAULT_CURRENCY) -> Money:
    return line_total(
        ((ln.unit_price_at_purchase.amount, ln.quantity) for ln in lines),
        currency=currency,
    )


def now_utc() -> datetime:
    return datetime.now(timezone.utc)
