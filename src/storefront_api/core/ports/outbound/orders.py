from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.order import Order, OrderId, OrderLine, OrderStatus


class OrderRepository(Protocol):
    """
    orders keyed by order_id, order_lines keyed by (order_id, product_id).
    """

    def create(self, order: Order) -> Result[OrderId, StorefrontError]: ...

    def add_lines(
        self, order_id: OrderId, lines: Sequence[OrderLine]
    ) -> Result[None, StorefrontError]: ...

    def mark_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[Order, StorefrontError]:
        """Only pending orders may transition."""
        ...

    def delete(self, order_id: OrderId) -> Result[None, StorefrontError]:
        """Removes the order and all of its lines."""
        ...

    def get(self, order_id: OrderId) -> Result[Order, StorefrontError]: ...

    def list(
        self,
        offset: int,
        limit: int,
        account_id: AccountId | None = None,
        status: OrderStatus | None = OrderStatus.PAID,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
    ) -> Result[Sequence[Order], StorefrontError]: ...
