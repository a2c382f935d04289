from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.errors import PaymentDeclined, StorefrontError
from storefront_api.core.ports.outbound.payment import ChargeRequest, PaymentGateway


@dataclass
class SimulatedPaymentGateway(PaymentGateway):
    """
    Accepts every well-formed contact unless it is listed in ``decline_contacts``.
    ``delay_seconds`` imitates processing latency and carries no meaning.
    """

    decline_contacts: frozenset[str] = frozenset()
    max_amount: Decimal = Decimal("1000000.00")
    delay_seconds: float = 0.0

    def charge(self, request: ChargeRequest) -> Result[None, StorefrontError]:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        if request.contact in self.decline_contacts:
            return Failure(
                PaymentDeclined(message="contact declined", reason="contact_blacklisted")
            )
        if request.amount.amount > self.max_amount:
            return Failure(
                PaymentDeclined(message="amount too large", reason="limit_exceeded")
            )
        return Success(None)
