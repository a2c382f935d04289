from __future__ import annotations

from typing import Protocol, Sequence

from returns.result import Result

from storefront_api.core.domain.model.catalog import Product, ProductFilter, ProductId
from storefront_api.core.domain.model.errors import StorefrontError


class CatalogStore(Protocol):
    """Read-only view of the product catalog owned by another system."""

    def get_product(self, product_id: ProductId) -> Result[Product, StorefrontError]:
        """Failure(ProductNotFound) when the product was deleted or never existed."""
        ...

    def list_products(
        self, product_filter: ProductFilter
    ) -> Result[Sequence[Product], StorefrontError]: ...
