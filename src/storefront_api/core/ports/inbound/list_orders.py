from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import OrderId


@dataclass(frozen=True)
class ListOrdersQuery:
    offset: int = 0
    limit: int = 50
    account_id: str | None = None
    sort_by: str = "created_at"  # created_at | total
    sort_dir: str = "desc"  # asc | desc


@dataclass(frozen=True)
class OrderSummaryView:
    order_id: OrderId
    account_id: AccountId
    total: Money
    line_count: int


class ListOrdersUseCase(Protocol):
    def list_orders(
        self, query: ListOrdersQuery
    ) -> Result[Sequence[OrderSummaryView], StorefrontError]: ...
