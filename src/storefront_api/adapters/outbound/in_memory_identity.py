from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet

from storefront_api.core.domain.model.cart import AccountId, SessionId
from storefront_api.core.ports.outbound.identity import IdentityProvider


@dataclass
class InMemoryIdentityProvider(IdentityProvider):
    """Session -> account table. Credentials are checked elsewhere."""

    admin_accounts: FrozenSet[str] = frozenset()
    _sessions: Dict[str, AccountId] = field(default_factory=dict)

    def current_account_id(self, session_id: SessionId) -> AccountId | None:
        return self._sessions.get(session_id.value)

    def is_admin(self, account_id: AccountId) -> bool:
        return account_id.value in self.admin_accounts

    def sign_in(self, session_id: SessionId, account_id: AccountId) -> None:
        self._sessions[session_id.value] = account_id

    def sign_out(self, session_id: SessionId) -> None:
        self._sessions.pop(session_id.value, None)
