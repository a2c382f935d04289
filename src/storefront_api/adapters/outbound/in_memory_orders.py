from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Dict, Sequence, Set, Tuple

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import (
    OrderNotFound,
    PersistenceError,
    StorefrontError,
)
from storefront_api.core.domain.model.order import Order, OrderId, OrderLine, OrderStatus
from storefront_api.core.ports.outbound.orders import OrderRepository


@dataclass
class InMemoryOrderRepository(OrderRepository):
    """
    Two tables, as in a relational store: order headers by order_id and order
    lines by (order_id, product_id). ``fail_on`` injects PersistenceErrors.
    """

    fail_on: Set[str] = field(default_factory=set)
    _orders: Dict[str, Order] = field(default_factory=dict)
    _lines: Dict[Tuple[str, str], OrderLine] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create(self, order: Order) -> Result[OrderId, StorefrontError]:
        if "create" in self.fail_on:
            return Failure(PersistenceError(message="orders table rejected insert"))
        key = str(order.order_id.value)
        with self._lock:
            if key in self._orders:
                return Failure(PersistenceError(message="order_id already exists"))
            self._orders[key] = order.header()
        return Success(order.order_id)

    def add_lines(
        self, order_id: OrderId, lines: Sequence[OrderLine]
    ) -> Result[None, StorefrontError]:
        if "add_lines" in self.fail_on:
            return Failure(PersistenceError(message="order_lines table rejected insert"))
        key = str(order_id.value)
        with self._lock:
            if key not in self._orders:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            for ln in lines:
                if (key, ln.product_id.value) in self._lines:
                    return Failure(PersistenceError(message="duplicate order line"))
            for ln in lines:
                self._lines[(key, ln.product_id.value)] = ln
        return Success(None)

    def mark_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[Order, StorefrontError]:
        if f"mark_{status.value}" in self.fail_on:
            return Failure(PersistenceError(message="orders table rejected update"))
        key = str(order_id.value)
        with self._lock:
            current = self._orders.get(key)
            if current is None:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            if current.status is not OrderStatus.PENDING:
                return Failure(
                    PersistenceError(message=f"order is already {current.status.value}")
                )
            self._orders[key] = current.with_status(status)
            return Success(self._assemble(key))

    def delete(self, order_id: OrderId) -> Result[None, StorefrontError]:
        if "delete" in self.fail_on:
            return Failure(PersistenceError(message="orders table rejected delete"))
        key = str(order_id.value)
        with self._lock:
            self._orders.pop(key, None)
            for k in [k for k in self._lines if k[0] == key]:
                del self._lines[k]
        return Success(None)

    def get(self, order_id: OrderId) -> Result[Order, StorefrontError]:
        key = str(order_id.value)
        with self._lock:
            if key not in self._orders:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            return Success(self._assemble(key))

    def list(
        self,
        offset: int,
        limit: int,
        account_id: AccountId | None = None,
        status: OrderStatus | None = OrderStatus.PAID,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
    ) -> Result[Sequence[Order], StorefrontError]:
        with self._lock:
            orders = [self._assemble(k) for k in self._orders]  # insertion order

        if account_id is not None:
            orders = [o for o in orders if o.account_id.value == account_id.value]
        if status is not None:
            orders = [o for o in orders if o.status is status]

        reverse = sort_dir == "desc"

        if sort_by == "created_at":
            orders = sorted(orders, key=lambda o: o.created_at, reverse=reverse)
        elif sort_by == "total":
            orders = sorted(orders, key=lambda o: o.total.amount, reverse=reverse)

        sliced = orders[offset : offset + limit]
        return Success(tuple(sliced))

    def _assemble(self, key: str) -> Order:
        lines = tuple(ln for (oid, _), ln in self._lines.items() if oid == key)
        return replace(self._orders[key], lines=lines)
