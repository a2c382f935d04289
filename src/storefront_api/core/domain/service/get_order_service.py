from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.errors import (
    OrderNotFound,
    StorefrontError,
    ValidationError,
)
from storefront_api.core.domain.model.order import Order, OrderId, OrderStatus
from storefront_api.core.ports.inbound.get_order import (
    GetOrderQuery,
    GetOrderUseCase,
    OrderLineView,
    OrderView,
)
from storefront_api.core.ports.outbound.orders import OrderRepository


@dataclass(frozen=True)
class GetOrderDeps:
    orders: OrderRepository


@dataclass(frozen=True)
class GetOrderService(GetOrderUseCase):
    deps: GetOrderDeps

    def get_order(self, query: GetOrderQuery) -> Result[OrderView, StorefrontError]:
        try:
            oid = OrderId(UUID(query.order_id))
        except (TypeError, ValueError):
            return Failure(ValidationError(message="order_id must be a valid UUID"))

        return self.deps.orders.get(oid).bind(_only_paid).map(_to_view)


def _only_paid(order: Order) -> Result[Order, StorefrontError]:
    # pending orders are mid-commit, failed ones are kept for audit only
    if order.status is not OrderStatus.PAID:
        return Failure(
            OrderNotFound(message="order not found", order_id=str(order.order_id.value))
        )
    return Success(order)


def _to_view(order: Order) -> OrderView:
    lines = tuple(
        OrderLineView(
            product_id=li.product_id.value,
            name=li.name,
            unit_price=li.unit_price_at_purchase,
            quantity=li.quantity,
            subtotal=li.subtotal(),
        )
        for li in order.lines
    )
    return OrderView(
        order_id=order.order_id,
        account_id=order.account_id,
        status=order.status.value,
        total=order.total,
        lines=lines,
    )
