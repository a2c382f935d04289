from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from returns.result import Result

from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.model.money import Money


@dataclass(frozen=True)
class ChargeRequest:
    cart: str
    contact: str
    amount: Money


class PaymentGateway(Protocol):
    def charge(self, request: ChargeRequest) -> Result[None, StorefrontError]: ...
