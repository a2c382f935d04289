from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from returns.result import Result

from storefront_api.core.domain.model.cart import AccountId, SessionId
from storefront_api.core.domain.model.errors import StorefrontError


@dataclass(frozen=True)
class ReconcileCommand:
    session_id: SessionId
    account_id: AccountId


@dataclass(frozen=True)
class MergeReport:
    merge_key: str
    lines_merged: int
    applied: bool  # False when this snapshot had already been merged
    attempts: int


class ReconcileUseCase(Protocol):
    def reconcile(
        self, command: ReconcileCommand
    ) -> Result[MergeReport, StorefrontError]: ...
