"""Pytest fixtures: a fully wired storefront over in-memory adapters."""

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Sequence

import pytest
from returns.result import Result, Success

from storefront_api.adapters.outbound.in_memory_cart_store import InMemoryCartStore
from storefront_api.adapters.outbound.in_memory_catalog import InMemoryCatalog
from storefront_api.adapters.outbound.in_memory_checkout_guard import (
    InMemoryCheckoutGuard,
)
from storefront_api.adapters.outbound.in_memory_identity import InMemoryIdentityProvider
from storefront_api.adapters.outbound.in_memory_orders import InMemoryOrderRepository
from storefront_api.adapters.outbound.simulated_payment import SimulatedPaymentGateway
from storefront_api.core.domain.model.cart import AccountId, CartLine, CartRef, SessionId
from storefront_api.core.domain.model.catalog import Product, ProductId
from storefront_api.core.domain.model.errors import StorefrontError
from storefront_api.core.domain.service.cart_ledger_service import (
    CartLedgerDeps,
    CartLedgerService,
)
from storefront_api.core.domain.service.cart_reconciler_service import (
    CartReconcilerDeps,
    CartReconcilerService,
)
from storefront_api.core.domain.service.checkout_service import (
    CheckoutDeps,
    CheckoutService,
)
from storefront_api.core.domain.service.get_order_service import (
    GetOrderDeps,
    GetOrderService,
)
from storefront_api.core.domain.service.list_orders_service import (
    ListOrdersDeps,
    ListOrdersService,
)
from storefront_api.core.domain.service.session_service import (
    SessionDeps,
    SessionService,
)
from storefront_api.core.ports.outbound.cart_store import CartStore
from storefront_api.core.ports.outbound.events import Event, EventPublisher
from storefront_api.core.ports.outbound.orders import OrderRepository
from storefront_api.core.ports.outbound.payment import PaymentGateway

SESSION = SessionId("sess-1")
ACCOUNT = AccountId("acct-1")
GUEST_CART = CartRef.guest(SESSION)
ACCOUNT_CART = CartRef.account(ACCOUNT)

TEE = ProductId("tee")
MUG = ProductId("mug")
PEN = ProductId("pen")
SOLD_OUT = ProductId("sold-out")


@dataclass
class RecordingEvents(EventPublisher):
    published: List[Event] = field(default_factory=list)

    def publish(self, event: Event) -> Result[None, StorefrontError]:
        self.published.append(event)
        return Success(None)


@dataclass
class RacingCartStore(InMemoryCartStore):
    """Another writer sneaks in an add right before each of the first ``races`` replaces."""

    races: int = 0

    def replace(
        self,
        owner: str,
        lines: Sequence[CartLine],
        expected_version: int,
        merge_key: str | None = None,
    ) -> Result[bool, StorefrontError]:
        if self.races:
            self.races -= 1
            self.increment(owner, PEN, 1)
        return super().replace(owner, lines, expected_version, merge_key)


@dataclass
class Shop:
    catalog: InMemoryCatalog
    guest_store: InMemoryCartStore
    account_store: CartStore
    orders: OrderRepository
    identity: InMemoryIdentityProvider
    events: RecordingEvents
    ledger: CartLedgerService
    reconciler: CartReconcilerService
    checkout: CheckoutService
    session: SessionService
    get_order: GetOrderService
    list_orders: ListOrdersService

    def quantities(self, cart_ref: CartRef) -> dict:
        contents = self.ledger.read(cart_ref).unwrap()
        return {ln.product_id.value: ln.quantity for ln in contents.lines}

    def all_orders(self):
        return self.orders.list(0, 100, status=None).unwrap()


def seeded_catalog() -> InMemoryCatalog:
    catalog = InMemoryCatalog()
    catalog.put(Product(TEE, "Chitenge Tee", Decimal("10.00"), 10, "apparel"))
    catalog.put(Product(MUG, "Copperbelt Mug", Decimal("5.50"), 10, "kitchen"))
    catalog.put(Product(PEN, "Pen", Decimal("2.00"), 1, "office"))
    catalog.put(Product(SOLD_OUT, "Sold Out Lamp", Decimal("3.00"), 0, "home"))
    return catalog


def make_shop(
    account_store: CartStore | None = None,
    orders: OrderRepository | None = None,
    payment: PaymentGateway | None = None,
    max_attempts: int = 3,
) -> Shop:
    catalog = seeded_catalog()
    guest_store = InMemoryCartStore()
    account_store = account_store if account_store is not None else InMemoryCartStore()
    orders = orders if orders is not None else InMemoryOrderRepository()
    identity = InMemoryIdentityProvider(admin_accounts=frozenset({"admin-1"}))
    events = RecordingEvents()

    ledger = CartLedgerService(
        CartLedgerDeps(catalog=catalog, ephemeral=guest_store, persisted=account_store)
    )
    reconciler = CartReconcilerService(
        CartReconcilerDeps(ledger=ledger, events=events, max_attempts=max_attempts)
    )
    checkout = CheckoutService(
        CheckoutDeps(
            ledger=ledger,
            orders=orders,
            payment=payment if payment is not None else SimulatedPaymentGateway(
                decline_contacts=frozenset({"0970000000"})
            ),
            guard=InMemoryCheckoutGuard(),
            events=events,
        )
    )
    return Shop(
        catalog=catalog,
        guest_store=guest_store,
        account_store=account_store,
        orders=orders,
        identity=identity,
        events=events,
        ledger=ledger,
        reconciler=reconciler,
        checkout=checkout,
        session=SessionService(SessionDeps(identity=identity, reconciler=reconciler)),
        get_order=GetOrderService(GetOrderDeps(orders=orders)),
        list_orders=ListOrdersService(ListOrdersDeps(orders=orders)),
    )


@pytest.fixture
def shop() -> Shop:
    return make_shop()


def add_concurrently(
    ledger: CartLedgerService, cart_ref: CartRef, product_id: ProductId, workers: int
):
    """Release ``workers`` threads at once, each adding one unit; returns their results."""
    start = threading.Barrier(workers)
    results = []

    def add():
        start.wait(timeout=5)
        results.append(ledger.add_item(cart_ref, product_id, 1))

    threads = [threading.Thread(target=add) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results
