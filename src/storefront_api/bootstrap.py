from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront_api.adapters.outbound.in_memory_cart_store import InMemoryCartStore
from storefront_api.adapters.outbound.in_memory_catalog import InMemoryCatalog
from storefront_api.adapters.outbound.in_memory_checkout_guard import (
    InMemoryCheckoutGuard,
)
from storefront_api.adapters.outbound.in_memory_identity import InMemoryIdentityProvider
from storefront_api.adapters.outbound.in_memory_orders import InMemoryOrderRepository
from storefront_api.adapters.outbound.log_events import LogEventPublisher
from storefront_api.adapters.outbound.simulated_payment import SimulatedPaymentGateway
from storefront_api.adapters.outbound.sqlite_store import (
    SqliteCartStore,
    SqliteDatabase,
    SqliteOrderRepository,
)
from storefront_api.config import Settings, load_settings
from storefront_api.core.domain.model.catalog import Product, ProductId
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
from storefront_api.core.ports.outbound.orders import OrderRepository


@dataclass(frozen=True)
class UseCases:
    cart: CartLedgerService
    reconciler: CartReconcilerService
    checkout: CheckoutService
    session: SessionService
    get_order: GetOrderService
    list_orders: ListOrdersService
    catalog: InMemoryCatalog
    identity: InMemoryIdentityProvider


def seed_catalog(catalog: InMemoryCatalog) -> None:
    catalog.put(Product(ProductId("phone-a1"), "Tecno Spark 20", Decimal("2499.00"), 12, "phones"))
    catalog.put(Product(ProductId("phone-b2"), "Samsung Galaxy A15", Decimal("3899.50"), 4, "phones"))
    catalog.put(Product(ProductId("pc-c3"), "Lenovo IdeaPad 3", Decimal("8999.99"), 2, "pcs"))
    catalog.put(Product(ProductId("pc-d4"), "HP ProDesk 400", Decimal("7450.00"), 0, "pcs"))


def _durable_stores(settings: Settings) -> tuple[CartStore, OrderRepository]:
    if settings.db_path is None:
        return InMemoryCartStore(), InMemoryOrderRepository()
    db = SqliteDatabase(settings.db_path)
    db.init_schema()
    return SqliteCartStore(db), SqliteOrderRepository(db)


def build_usecases(
    settings: Settings | None = None, catalog: InMemoryCatalog | None = None
) -> UseCases:
    settings = settings or load_settings()
    if catalog is None:
        catalog = InMemoryCatalog()
        seed_catalog(catalog)

    identity = InMemoryIdentityProvider(admin_accounts=settings.admin_accounts)
    persisted, orders = _durable_stores(settings)
    events = LogEventPublisher()

    ledger = CartLedgerService(
        CartLedgerDeps(
            catalog=catalog,
            ephemeral=InMemoryCartStore(),
            persisted=persisted,
            currency=settings.currency,
        )
    )
    reconciler = CartReconcilerService(
        CartReconcilerDeps(
            ledger=ledger, events=events, max_attempts=settings.max_merge_attempts
        )
    )
    checkout = CheckoutService(
        CheckoutDeps(
            ledger=ledger,
            orders=orders,
            payment=SimulatedPaymentGateway(
                decline_contacts=settings.declined_contacts,
                delay_seconds=float(settings.payment_delay_seconds),
            ),
            guard=InMemoryCheckoutGuard(),
            events=events,
        )
    )
    session = SessionService(SessionDeps(identity=identity, reconciler=reconciler))

    return UseCases(
        cart=ledger,
        reconciler=reconciler,
        checkout=checkout,
        session=session,
        get_order=GetOrderService(GetOrderDeps(orders=orders)),
        list_orders=ListOrdersService(ListOrdersDeps(orders=orders)),
        catalog=catalog,
        identity=identity,
    )
