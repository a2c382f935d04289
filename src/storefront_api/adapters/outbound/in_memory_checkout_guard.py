from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Set

from storefront_api.core.domain.model.cart import CartRef
from storefront_api.core.ports.outbound.checkout_guard import CheckoutGuard


@dataclass
class InMemoryCheckoutGuard(CheckoutGuard):
    """Process-local guard; a multi-process deployment needs a shared lock table."""

    _in_flight: Set[CartRef] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def try_acquire(self, cart_ref: CartRef) -> bool:
        with self._lock:
            if cart_ref in self._in_flight:
                return False
            self._in_flight.add(cart_ref)
            return True

    def release(self, cart_ref: CartRef) -> None:
        with self._lock:
            self._in_flight.discard(cart_ref)
