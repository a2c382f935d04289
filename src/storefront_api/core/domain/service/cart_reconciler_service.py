from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Sequence

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import (
    CartContents,
    CartLine,
    CartRef,
    merge_lines,
)
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    MergeConflictError,
    StorefrontError,
)
from storefront_api.core.domain.service.cart_ledger_service import CartLedgerService
from storefront_api.core.ports.inbound.reconcile import (
    MergeReport,
    ReconcileCommand,
    ReconcileUseCase,
)
from storefront_api.core.ports.outbound.events import CartsMerged, EventPublisher
from storefront_api.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartReconcilerDeps:
    ledger: CartLedgerService
    events: EventPublisher
    max_attempts: int = 3


@dataclass(frozen=True)
class CartReconcilerService(ReconcileUseCase):
    """
    Folds a guest cart into the account cart on sign-in.

    The merged cart is written with one compare-and-set that also records the
    merge key, so a merge either lands completely or not at all, and replaying
    the same guest snapshot afterwards is a no-op. The guest cart is only
    dropped once that write is confirmed.
    """

    deps: CartReconcilerDeps

    def reconcile(
        self, command: ReconcileCommand
    ) -> Result[MergeReport, StorefrontError]:
        guest = CartRef.guest(command.session_id)
        account = CartRef.account(command.account_id)
        log = logger.bind(guest_cart=str(guest), account_cart=str(account))

        read = self.deps.ledger.read(guest)
        if isinstance(read, Failure):
            return read
        snapshot = read.unwrap()

        if snapshot.is_empty:
            log.debug("reconcile.nothing_to_merge")
            return Success(MergeReport(merge_key="", lines_merged=0, applied=False, attempts=0))

        key = merge_key(command.session_id.value, snapshot)

        for attempt in range(1, self.deps.max_attempts + 1):
            written = self._merge_once(account, snapshot.lines, key)
            if isinstance(written, Success):
                applied = written.unwrap()
                log.info(
                    "reconcile.merged",
                    merge_key=key,
                    lines=len(snapshot.lines),
                    applied=applied,
                    attempt=attempt,
                )
                self._discard_guest_cart(guest, log)
                if applied:
                    self._announce(command, len(snapshot.lines), log)
                return Success(
                    MergeReport(
                        merge_key=key,
                        lines_merged=len(snapshot.lines),
                        applied=applied,
                        attempts=attempt,
                    )
                )

            err = written.failure()
            if not isinstance(err, CartChangedError):
                log.error("reconcile.write_failed", merge_key=key, error=str(err))
                return Failure(err)
            log.warning("reconcile.conflict", merge_key=key, attempt=attempt)

        return Failure(
            MergeConflictError(
                message=f"account cart kept changing during merge ({self.deps.max_attempts} attempts)",
                owner=account.owner,
            )
        )

    def _merge_once(
        self, account: CartRef, guest_lines: Sequence[CartLine], key: str
    ) -> Result[bool, StorefrontError]:
        current = self.deps.ledger.read(account)
        if isinstance(current, Failure):
            return current
        contents: CartContents = current.unwrap()
        merged = merge_lines(contents.lines, guest_lines)
        return self.deps.ledger.replace(
            account, merged, expected_version=contents.version, merge_key=key
        )

    def _discard_guest_cart(self, guest: CartRef, log) -> None:
        cleared = self.deps.ledger.clear(guest)
        if isinstance(cleared, Failure):
            # merge key stays recorded, a replay will not double count
            log.warning("reconcile.guest_cart_not_cleared", error=str(cleared.failure()))

    def _announce(self, command: ReconcileCommand, lines: int, log) -> None:
        published = self.deps.events.publish(
            CartsMerged(
                session_id=command.session_id.value,
                account_id=command.account_id,
                lines_merged=lines,
            )
        )
        if isinstance(published, Failure):
            log.warning("reconcile.publish_failed", error=str(published.failure()))


def merge_key(session_id: str, snapshot: CartContents) -> str:
    """Identifies one guest snapshot; the version keeps later, identical carts distinct."""
    payload = {
        "session_id": session_id,
        "version": snapshot.version,
        "lines": sorted([ln.product_id.value, ln.quantity] for ln in snapshot.lines),
    }
    blob = json.dumps(
        payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")
    ).encode("utf-8")
    return hashlib.sha256(blob).hexdigest()
