from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from storefront_api.core.domain.model.cart import CartContents, CartLine
from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.errors import StorefrontError

# merge keys remembered per owner; older ones are dropped as new ones arrive
MERGE_KEYS_KEPT = 32


class CartStore(Protocol):
    """
    Physical cart rows for one family of owners (sessions or accounts).

    Durable implementations keep a UNIQUE (owner_id, product_id) constraint
    and run every method below as a single transaction. Every mutation bumps
    the owner's version.
    """

    def read(self, owner: str) -> Result[CartContents, StorefrontError]: ...

    def increment(
        self, owner: str, product_id: ProductId, delta: int
    ) -> Result[CartLine, StorefrontError]:
        """Upsert-with-increment: create the line at ``delta`` or add ``delta``."""
        ...

    def set_quantity(
        self, owner: str, product_id: ProductId, quantity: int
    ) -> Result[CartLine, StorefrontError]: ...

    def delete_line(
        self, owner: str, product_id: ProductId
    ) -> Result[None, StorefrontError]:
        """Deleting a missing line succeeds."""
        ...

    def replace(
        self,
        owner: str,
        lines: Sequence[CartLine],
        expected_version: int,
        merge_key: str | None = None,
    ) -> Result[bool, StorefrontError]:
        """
        Compare-and-set the whole cart.

        Success(False) if ``merge_key`` was already applied to this owner (no
        write). Failure(CartChangedError) if the version moved. Otherwise the
        lines and the merge key are written together and Success(True) is
        returned. Only the latest ``MERGE_KEYS_KEPT`` keys per owner are kept.
        """
        ...

    def clear(
        self, owner: str, expected_version: int | None = None
    ) -> Result[None, StorefrontError]: ...
