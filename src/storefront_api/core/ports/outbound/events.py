from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import OrderId


@dataclass(frozen=True)
class OrderPlaced:
    order_id: OrderId
    account_id: AccountId
    total: Money


@dataclass(frozen=True)
class CartsMerged:
    session_id: str
    account_id: AccountId
    lines_merged: int


Event = Union[OrderPlaced, CartsMerged]


class EventPublisher(Protocol):
    def publish(self, event: Event) -> Result[None, StorefrontError]: ...
