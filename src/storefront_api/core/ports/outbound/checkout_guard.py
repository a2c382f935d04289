from __future__ import annotations

from typing import Protocol

from storefront_api.core.domain.model.cart import CartRef


class CheckoutGuard(Protocol):
    """At most one in-flight checkout commit per cart."""

    def try_acquire(self, cart_ref: CartRef) -> bool: ...

    def release(self, cart_ref: CartRef) -> None: ...
