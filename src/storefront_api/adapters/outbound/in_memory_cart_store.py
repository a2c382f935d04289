from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Sequence, Set

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import CartContents, CartLine
from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    PersistenceError,
    StorefrontError,
)
from storefront_api.core.ports.outbound.cart_store import MERGE_KEYS_KEPT, CartStore


@dataclass
class _CartRecord:
    quantities: Dict[ProductId, int] = field(default_factory=dict)
    version: int = 0
    merges: Deque[str] = field(default_factory=lambda: deque(maxlen=MERGE_KEYS_KEPT))

    def contents(self) -> CartContents:
        return CartContents(
            lines=tuple(CartLine(pid, qty) for pid, qty in self.quantities.items()),
            version=self.version,
        )


@dataclass
class InMemoryCartStore(CartStore):
    """
    Dict-backed cart rows. Used for guest carts (keyed by session) and as a
    stand-in for the durable account store in tests.

    ``fail_on`` names operations that should report a PersistenceError,
    e.g. ``{"clear"}``.
    """

    fail_on: Set[str] = field(default_factory=set)
    _carts: Dict[str, _CartRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def read(self, owner: str) -> Result[CartContents, StorefrontError]:
        if "read" in self.fail_on:
            return Failure(PersistenceError(message="cart store unavailable"))
        with self._lock:
            return Success(self._record(owner).contents())

    def increment(
        self, owner: str, product_id: ProductId, delta: int
    ) -> Result[CartLine, StorefrontError]:
        if "increment" in self.fail_on:
            return Failure(PersistenceError(message="cart store rejected write"))
        with self._lock:
            rec = self._record(owner)
            qty = rec.quantities.get(product_id, 0) + delta
            rec.quantities[product_id] = qty
            rec.version += 1
            return Success(CartLine(product_id, qty))

    def set_quantity(
        self, owner: str, product_id: ProductId, quantity: int
    ) -> Result[CartLine, StorefrontError]:
        if "set_quantity" in self.fail_on:
            return Failure(PersistenceError(message="cart store rejected write"))
        with self._lock:
            rec = self._record(owner)
            rec.quantities[product_id] = quantity
            rec.version += 1
            return Success(CartLine(product_id, quantity))

    def delete_line(
        self, owner: str, product_id: ProductId
    ) -> Result[None, StorefrontError]:
        if "delete_line" in self.fail_on:
            return Failure(PersistenceError(message="cart store rejected write"))
        with self._lock:
            rec = self._record(owner)
            if rec.quantities.pop(product_id, None) is not None:
                rec.version += 1
            return Success(None)

    def replace(
        self,
        owner: str,
        lines: Sequence[CartLine],
        expected_version: int,
        merge_key: str | None = None,
    ) -> Result[bool, StorefrontError]:
        if "replace" in self.fail_on:
            return Failure(PersistenceError(message="cart store rejected write"))
        with self._lock:
            rec = self._record(owner)
            if merge_key is not None and merge_key in rec.merges:
                return Success(False)
            if rec.version != expected_version:
                return Failure(
                    CartChangedError(message="cart version moved", owner=owner)
                )
            rec.quantities = {ln.product_id: ln.quantity for ln in lines}
            rec.version += 1
            if merge_key is not None:
                rec.merges.append(merge_key)
            return Success(True)

    def clear(
        self, owner: str, expected_version: int | None = None
    ) -> Result[None, StorefrontError]:
        if "clear" in self.fail_on:
            return Failure(PersistenceError(message="cart store rejected write"))
        with self._lock:
            rec = self._record(owner)
            if expected_version is not None and rec.version != expected_version:
                return Failure(
                    CartChangedError(message="cart changed during checkout", owner=owner)
                )
            rec.quantities.clear()
            rec.version += 1
            return Success(None)

    def _record(self, owner: str) -> _CartRecord:
        # caller holds the lock
        return self._carts.setdefault(owner, _CartRecord())
