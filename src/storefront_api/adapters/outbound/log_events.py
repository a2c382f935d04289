from __future__ import annotations

from dataclasses import dataclass

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.errors import PersistenceError, StorefrontError
from storefront_api.core.ports.outbound.events import (
    CartsMerged,
    Event,
    EventPublisher,
    OrderPlaced,
)
from storefront_api.utils.logging import get_logger

logger = get_logger("storefront_api.events")


@dataclass
class LogEventPublisher(EventPublisher):
    fail: bool = False

    def publish(self, event: Event) -> Result[None, StorefrontError]:
        if self.fail:
            return Failure(PersistenceError(message="publisher is down"))
        if isinstance(event, OrderPlaced):
            logger.info(
                "order_placed",
                order_id=str(event.order_id.value),
                account_id=event.account_id.value,
                total=str(event.total.amount),
                currency=event.total.currency,
            )
        elif isinstance(event, CartsMerged):
            logger.info(
                "carts_merged",
                session_id=event.session_id,
                account_id=event.account_id.value,
                lines_merged=event.lines_merged,
            )
        return Success(None)
