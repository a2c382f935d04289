from __future__ import annotations

from dataclasses import dataclass

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import CartRef, SessionId
from storefront_api.core.domain.model.errors import StorefrontError, ValidationError
from storefront_api.core.domain.service.cart_reconciler_service import (
    CartReconcilerService,
)
from storefront_api.core.ports.inbound.reconcile import ReconcileCommand
from storefront_api.core.ports.inbound.session import SessionUseCase, SessionView
from storefront_api.core.ports.outbound.identity import IdentityProvider
from storefront_api.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionDeps:
    identity: IdentityProvider
    reconciler: CartReconcilerService


@dataclass(frozen=True)
class SessionService(SessionUseCase):
    """Decides which cart is live for a session and merges on sign-in."""

    deps: SessionDeps

    def describe(self, session_id: SessionId) -> SessionView:
        account = self.deps.identity.current_account_id(session_id)
        return SessionView(
            session_id=session_id,
            account_id=account,
            is_admin=account is not None and self.deps.identity.is_admin(account),
            cart_ref=CartRef.account(account) if account else CartRef.guest(session_id),
        )

    def resolve_cart(self, session_id: SessionId) -> CartRef:
        return self.describe(session_id).cart_ref

    def signed_in(self, session_id: SessionId) -> Result[SessionView, StorefrontError]:
        view = self.describe(session_id)
        if view.account_id is None:
            return Failure(ValidationError("session is not signed in"))

        merged = self.deps.reconciler.reconcile(
            ReconcileCommand(session_id=session_id, account_id=view.account_id)
        )
        if isinstance(merged, Failure):
            logger.error(
                "session.merge_failed",
                session_id=session_id.value,
                error=str(merged.failure()),
            )
            return merged
        return Success(view)
