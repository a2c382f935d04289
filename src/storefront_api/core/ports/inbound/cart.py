from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from returns.result import Result

from storefront_api.core.domain.model.cart import CartRef, CartSnapshot
from storefront_api.core.domain.model.errors import StorefrontError


@dataclass(frozen=True)
class AddToCartCommand:
    cart_ref: CartRef
    product_id: str
    delta: int = 1


@dataclass(frozen=True)
class SetQuantityCommand:
    cart_ref: CartRef
    product_id: str
    quantity: object  # validated: must be an int


@dataclass(frozen=True)
class RemoveItemCommand:
    cart_ref: CartRef
    product_id: str


class CartUseCase(Protocol):
    def add_to_cart(
        self, command: AddToCartCommand
    ) -> Result[CartSnapshot, StorefrontError]: ...

    def update_quantity(
        self, command: SetQuantityCommand
    ) -> Result[CartSnapshot, StorefrontError]: ...

    def remove_from_cart(
        self, command: RemoveItemCommand
    ) -> Result[CartSnapshot, StorefrontError]: ...

    def get_cart_snapshot(
        self, cart_ref: CartRef
    ) -> Result[CartSnapshot, StorefrontError]: ...
