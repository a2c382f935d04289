from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Sequence

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.catalog import Product, ProductFilter, ProductId
from storefront_api.core.domain.model.errors import ProductNotFound, StorefrontError
from storefront_api.core.ports.outbound.catalog import CatalogStore


@dataclass
class InMemoryCatalog(CatalogStore):
    """
    Stand-in for the external catalog. ``put``/``delete``/``set_price`` are
    the catalog owner's operations; the storefront core never calls them.
    """

    _products: Dict[str, Product] = field(default_factory=dict)

    def get_product(self, product_id: ProductId) -> Result[Product, StorefrontError]:
        product = self._products.get(product_id.value)
        if product is None:
            return Failure(
                ProductNotFound(message="product not found", product_id=product_id.value)
            )
        return Success(product)

    def list_products(
        self, product_filter: ProductFilter
    ) -> Result[Sequence[Product], StorefrontError]:
        products = list(self._products.values())
        category = product_filter.category
        if category and category != "all":
            products = [p for p in products if p.category == category]
        return Success(tuple(products))

    def put(self, product: Product) -> None:
        self._products[product.product_id.value] = product

    def delete(self, product_id: str) -> None:
        self._products.pop(product_id, None)

    def set_price(self, product_id: str, unit_price: Decimal) -> None:
        self._products[product_id] = replace(self._products[product_id], unit_price=unit_price)

    def set_stock(self, product_id: str, stock_quantity: int) -> None:
        self._products[product_id] = replace(
            self._products[product_id], stock_quantity=stock_quantity
        )
