from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId, CartRef, SessionId
from storefront_api.core.domain.model.errors import StorefrontError


@dataclass(frozen=True)
class SessionView:
    session_id: SessionId
    account_id: AccountId | None
    is_admin: bool
    cart_ref: CartRef


class SessionUseCase(Protocol):
    def describe(self, session_id: SessionId) -> SessionView: ...

    def resolve_cart(self, session_id: SessionId) -> CartRef: ...

    def signed_in(self, session_id: SessionId) -> Result[SessionView, StorefrontError]:
        """Called once the identity provider reports a new account for the session."""
        ...
