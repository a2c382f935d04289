from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import AccountId
from storefront_api.core.domain.model.errors import StorefrontError, ValidationError
from storefront_api.core.domain.model.order import Order, OrderStatus
from storefront_api.core.ports.inbound.list_orders import (
    ListOrdersQuery,
    ListOrdersUseCase,
    OrderSummaryView,
)
from storefront_api.core.ports.outbound.orders import OrderRepository

MAX_PAGE_SIZE = 100
SORT_FIELDS = ("created_at", "total")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class _Page:
    offset: int
    limit: int
    account: AccountId | None
    sort_by: str
    sort_dir: str


@dataclass(frozen=True)
class ListOrdersDeps:
    orders: OrderRepository


@dataclass(frozen=True)
class ListOrdersService(ListOrdersUseCase):
    """Order history. Only paid orders are ever listed."""

    deps: ListOrdersDeps

    def list_orders(
        self, query: ListOrdersQuery
    ) -> Result[Sequence[OrderSummaryView], StorefrontError]:
        return _parse_page(query).bind(self._fetch).map(_to_summaries)

    def _fetch(self, page: _Page) -> Result[Sequence[Order], StorefrontError]:
        return self.deps.orders.list(
            page.offset,
            page.limit,
            account_id=page.account,
            status=OrderStatus.PAID,
            sort_by=page.sort_by,
            sort_dir=page.sort_dir,
        )


def _parse_page(query: ListOrdersQuery) -> Result[_Page, StorefrontError]:
    problems = []
    if query.offset < 0:
        problems.append("offset must be >= 0")
    if not 1 <= query.limit <= MAX_PAGE_SIZE:
        problems.append(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if query.sort_by not in SORT_FIELDS:
        problems.append(f"sort_by must be one of: {', '.join(SORT_FIELDS)}")
    if query.sort_dir not in SORT_DIRECTIONS:
        problems.append(f"sort_dir must be one of: {', '.join(SORT_DIRECTIONS)}")

    account = None
    if query.account_id is not None:
        if not query.account_id.strip():
            problems.append("account_id must be non-empty when provided")
        else:
            account = AccountId(query.account_id.strip())

    if problems:
        return Failure(ValidationError("; ".join(problems)))
    return Success(
        _Page(
            offset=query.offset,
            limit=query.limit,
            account=account,
            sort_by=query.sort_by,
            sort_dir=query.sort_dir,
        )
    )


def _to_summaries(orders: Sequence[Order]) -> Sequence[OrderSummaryView]:
    return tuple(
        OrderSummaryView(
            order_id=order.order_id,
            account_id=order.account_id,
            total=order.total,
            line_count=len(order.lines),
        )
        for order in orders
    )
