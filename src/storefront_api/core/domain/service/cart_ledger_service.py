from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple

from returns.pipeline import flow
from returns.pointfree import bind
from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import (
    CartContents,
    CartItemView,
    CartKind,
    CartLine,
    CartRef,
    CartSnapshot,
    merge_lines,
)
from storefront_api.core.domain.model.catalog import Product, ProductId
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    StockConflictError,
    StorefrontError,
)
from storefront_api.core.domain.model.money import DEFAULT_CURRENCY, Money, line_total
from storefront_api.core.domain.service.validation import (
    validate_delta,
    validate_product_id,
    validate_quantity,
)
from storefront_api.core.ports.inbound.cart import (
    AddToCartCommand,
    CartUseCase,
    RemoveItemCommand,
    SetQuantityCommand,
)
from storefront_api.core.ports.outbound.cart_store import CartStore
from storefront_api.core.ports.outbound.catalog import CatalogStore
from storefront_api.utils.logging import get_logger

logger = get_logger(__name__)

RESTORE_ATTEMPTS = 3


@dataclass(frozen=True)
class CartLedgerDeps:
    catalog: CatalogStore
    ephemeral: CartStore
    persisted: CartStore
    currency: str = DEFAULT_CURRENCY


class CartItems:
    """
    Cart lines joined with live catalog data.

    Nothing is looked up until iteration, and every iteration re-reads the
    catalog, so prices are always current. Lines whose product is gone are
    skipped and reported by ``stale_product_ids``.
    """

    def __init__(self, contents: CartContents, catalog: CatalogStore, currency: str):
        self._contents = contents
        self._catalog = catalog
        self._currency = currency

    @property
    def version(self) -> int:
        return self._contents.version

    def __iter__(self) -> Iterator[CartItemView]:
        for line in self._contents.lines:
            found = self._catalog.get_product(line.product_id)
            if isinstance(found, Failure):
                continue
            yield self._view(line, found.unwrap())

    def quantity_of(self, product_id: ProductId) -> int:
        return self._contents.quantity_of(product_id)

    def stale_product_ids(self) -> Tuple[ProductId, ...]:
        return tuple(
            line.product_id
            for line in self._contents.lines
            if isinstance(self._catalog.get_product(line.product_id), Failure)
        )

    def _view(self, line: CartLine, product: Product) -> CartItemView:
        return CartItemView(
            product_id=line.product_id,
            name=product.name,
            quantity=line.quantity,
            unit_price=Money(product.unit_price, self._currency),
            stock_quantity=product.stock_quantity,
        )


@dataclass(frozen=True)
class CartLedgerService(CartUseCase):
    """One cart contract over the ephemeral (session) and persisted (account) stores."""

    deps: CartLedgerDeps

    # ---- ledger contract ---------------------------------------------------

    def add_item(
        self, cart_ref: CartRef, product_id: ProductId, delta: object = 1
    ) -> Result[CartLine, StorefrontError]:
        return flow(
            validate_delta(delta),
            bind(lambda d: self._require_in_stock(product_id, d).map(lambda _: d)),
            bind(
                lambda d: self._store_for(cart_ref).increment(
                    cart_ref.owner, product_id, d
                )
            ),
        ).map(lambda line: _logged(line, "cart.line_incremented", cart_ref))

    def set_quantity(
        self, cart_ref: CartRef, product_id: ProductId, quantity: object
    ) -> Result[CartLine | None, StorefrontError]:
        checked = validate_quantity(quantity)
        if isinstance(checked, Failure):
            return checked
        qty = checked.unwrap()

        if qty < 1:
            return self.remove_item(cart_ref, product_id)

        return (
            self.deps.catalog.get_product(product_id)
            .bind(
                lambda _: self._store_for(cart_ref).set_quantity(
                    cart_ref.owner, product_id, qty
                )
            )
            .map(lambda line: _logged(line, "cart.line_set", cart_ref))
        )

    def remove_item(
        self, cart_ref: CartRef, product_id: ProductId
    ) -> Result[None, StorefrontError]:
        logger.debug("cart.line_removed", cart=str(cart_ref), product_id=product_id.value)
        return self._store_for(cart_ref).delete_line(cart_ref.owner, product_id)

    def read(self, cart_ref: CartRef) -> Result[CartContents, StorefrontError]:
        return self._store_for(cart_ref).read(cart_ref.owner)

    def list_items(self, cart_ref: CartRef) -> Result[CartItems, StorefrontError]:
        return self.read(cart_ref).map(
            lambda contents: CartItems(contents, self.deps.catalog, self.deps.currency)
        )

    def total(self, cart_ref: CartRef) -> Result[Money, StorefrontError]:
        return self.list_items(cart_ref).map(self._total_of)

    def snapshot(self, cart_ref: CartRef) -> Result[CartSnapshot, StorefrontError]:
        return self.list_items(cart_ref).map(
            lambda items: self._snapshot_of(cart_ref, items)
        )

    def clear(
        self, cart_ref: CartRef, expected_version: int | None = None
    ) -> Result[None, StorefrontError]:
        return self._store_for(cart_ref).clear(cart_ref.owner, expected_version)

    def restore(
        self, cart_ref: CartRef, lines: Sequence[CartLine]
    ) -> Result[None, StorefrontError]:
        """
        Add ``lines`` back on top of whatever the cart holds now.

        The merged cart goes down in one compare-and-set write, re-read and
        retried if another writer got in between.
        """
        store = self._store_for(cart_ref)
        for _ in range(RESTORE_ATTEMPTS):
            current = store.read(cart_ref.owner)
            if isinstance(current, Failure):
                return current
            contents = current.unwrap()
            written = store.replace(
                cart_ref.owner, merge_lines(contents.lines, lines), contents.version
            )
            if isinstance(written, Success):
                logger.info("cart.restored", cart=str(cart_ref), lines=len(lines))
                return Success(None)
            if not isinstance(written.failure(), CartChangedError):
                return Failure(written.failure())
        return Failure(
            CartChangedError(
                message=f"cart kept changing during restore ({RESTORE_ATTEMPTS} attempts)",
                owner=cart_ref.owner,
            )
        )

    def replace(
        self,
        cart_ref: CartRef,
        lines: Sequence[CartLine],
        expected_version: int,
        merge_key: str | None = None,
    ) -> Result[bool, StorefrontError]:
        return self._store_for(cart_ref).replace(
            cart_ref.owner, lines, expected_version, merge_key
        )

    # ---- caller-facing use cases --------------------------------------------

    def add_to_cart(
        self, command: AddToCartCommand
    ) -> Result[CartSnapshot, StorefrontError]:
        return flow(
            validate_product_id(command.product_id),
            bind(lambda pid: self.add_item(command.cart_ref, pid, command.delta)),
            bind(lambda _: self.snapshot(command.cart_ref)),
        )

    def update_quantity(
        self, command: SetQuantityCommand
    ) -> Result[CartSnapshot, StorefrontError]:
        return flow(
            validate_product_id(command.product_id),
            bind(lambda pid: self.set_quantity(command.cart_ref, pid, command.quantity)),
            bind(lambda _: self.snapshot(command.cart_ref)),
        )

    def remove_from_cart(
        self, command: RemoveItemCommand
    ) -> Result[CartSnapshot, StorefrontError]:
        return flow(
            validate_product_id(command.product_id),
            bind(lambda pid: self.remove_item(command.cart_ref, pid)),
            bind(lambda _: self.snapshot(command.cart_ref)),
        )

    def get_cart_snapshot(
        self, cart_ref: CartRef
    ) -> Result[CartSnapshot, StorefrontError]:
        return self.snapshot(cart_ref)

    # ---- helpers -------------------------------------------------------------

    def _store_for(self, cart_ref: CartRef) -> CartStore:
        if cart_ref.kind is CartKind.EPHEMERAL:
            return self.deps.ephemeral
        return self.deps.persisted

    def _require_in_stock(
        self, product_id: ProductId, requested: int
    ) -> Result[Product, StorefrontError]:
        def check(product: Product) -> Result[Product, StorefrontError]:
            if not product.in_stock:
                return Failure(
                    StockConflictError(
                        message="product is out of stock",
                        product_id=product_id.value,
                        requested=requested,
                        available=0,
                    )
                )
            return Success(product)

        return self.deps.catalog.get_product(product_id).bind(check)

    def _total_of(self, items: CartItems) -> Money:
        return line_total((it.price_pair for it in items), currency=self.deps.currency)

    def _snapshot_of(self, cart_ref: CartRef, items: CartItems) -> CartSnapshot:
        views = tuple(items)
        stale = items.stale_product_ids()
        if stale:
            logger.warning(
                "cart.stale_lines",
                cart=str(cart_ref),
                product_ids=[p.value for p in stale],
            )
        return CartSnapshot(
            cart_ref=cart_ref,
            items=views,
            stale_product_ids=stale,
            total=line_total((v.price_pair for v in views), currency=self.deps.currency),
            version=items.version,
        )


def _logged(line, event: str, cart_ref: CartRef):
    logger.debug(
        event,
        cart=str(cart_ref),
        product_id=line.product_id.value,
        quantity=line.quantity,
    )
    return line
