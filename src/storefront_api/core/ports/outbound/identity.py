from __future__ import annotations

from typing import Protocol

from storefront_api.core.domain.model.cart import AccountId, SessionId


class IdentityProvider(Protocol):
    """Credentials live with the provider; the core only sees account ids."""

    def current_account_id(self, session_id: SessionId) -> AccountId | None: ...

    def is_admin(self, account_id: AccountId) -> bool: ...
