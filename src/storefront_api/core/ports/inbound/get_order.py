from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import OrderId


@dataclass(frozen=True)
class GetOrderQuery:
    order_id: str  # UUID string


@dataclass(frozen=True)
class OrderLineView:
    product_id: str
    name: str
    unit_price: Money
    quantity: int
    subtotal: Money


@dataclass(frozen=True)
class OrderView:
    order_id: OrderId
    account_id: AccountId
    status: str
    total: Money
    lines: Sequence[OrderLineView]


class GetOrderUseCase(Protocol):
    def get_order(self, query: GetOrderQuery) -> Result[OrderView, StorefrontError]: ...
