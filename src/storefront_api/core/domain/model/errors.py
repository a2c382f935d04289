from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StorefrontError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover
        return self.message


@dataclass(frozen=True)
class ValidationError(StorefrontError):
    pass


@dataclass(frozen=True)
class StockConflictError(StorefrontError):
    product_id: str
    requested: int
    available: int

    def __str__(self) -> str:  # pragma: no cover
        return (
            f"stock_conflict: product={self.product_id} "
            f"requested={self.requested} available={self.available} ({self.message})"
        )


@dataclass(frozen=True)
class PersistenceError(StorefrontError):
    pass


@dataclass(frozen=True)
class ProductNotFound(PersistenceError):
    product_id: str

    def __str__(self) -> str:  # pragma: no cover
        return f"product_not_found: {self.product_id} ({self.message})"


@dataclass(frozen=True)
class OrderNotFound(PersistenceError):
    order_id: str

    def __str__(self) -> str:  # pragma: no cover
        return f"order_not_found: {self.order_id} ({self.message})"


@dataclass(frozen=True)
class CartChangedError(PersistenceError):
    owner: str

    def __str__(self) -> str:  # pragma: no cover
        return f"cart_changed: {self.owner} ({self.message})"


@dataclass(frozen=True)
class MergeConflictError(StorefrontError):
    owner: str

    def __str__(self) -> str:  # pragma: no cover
        return f"merge_conflict: {self.owner} ({self.message})"


@dataclass(frozen=True)
class CheckoutInProgress(StorefrontError):
    cart: str

    def __str__(self) -> str:  # pragma: no cover
        return f"checkout_in_progress: {self.cart} ({self.message})"


@dataclass(frozen=True)
class PaymentDeclined(StorefrontError):
    reason: str

    def __str__(self) -> str:  # pragma: no cover
        return f"payment_declined: {self.reason} ({self.message})"
