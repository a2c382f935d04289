from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, Union

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId, CartRef
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import OrderId, OrderLine


@dataclass(frozen=True)
class CheckoutCommand:
    cart_ref: CartRef
    contact: str


@dataclass(frozen=True)
class OrderReceipt:
    order_id: OrderId
    account_id: AccountId
    lines: Sequence[OrderLine]
    total: Money


@dataclass(frozen=True)
class GuestCheckoutReceipt:
    """Guest purchases are simulated only: nothing is persisted."""

    session_id: str
    line_count: int
    total: Money


CheckoutReceipt = Union[OrderReceipt, GuestCheckoutReceipt]


class CheckoutUseCase(Protocol):
    def checkout(
        self, command: CheckoutCommand
    ) -> Result[CheckoutReceipt, StorefrontError]: ...
