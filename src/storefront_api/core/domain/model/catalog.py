from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductId:
    value: str


@dataclass(frozen=True)
class Product:
    product_id: ProductId
    name: str
    unit_price: Decimal
    stock_quantity: int
    category: str = ""
    description: str = ""
    image_url: str = ""

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0


@dataclass(frozen=True)
class ProductFilter:
    category: str | None = None  # None / "all" -> every product
