"""SQLite-backed account carts and orders."""

import sqlite3
from decimal import Decimal

import pytest
from returns.result import Success

from conftest import (
    ACCOUNT,
    ACCOUNT_CART,
    GUEST_CART,
    MUG,
    SESSION,
    TEE,
    add_concurrently,
    make_shop,
)
from storefront_api.adapters.outbound.sqlite_store import (
    SqliteCartStore,
    SqliteDatabase,
    SqliteOrderRepository,
)
from storefront_api.core.domain.model.cart import AccountId, CartLine
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    OrderNotFound,
    PersistenceError,
)
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import (
    Order,
    OrderId,
    OrderLine,
    OrderStatus,
    now_utc,
)
from storefront_api.core.ports.inbound.checkout import CheckoutCommand
from storefront_api.core.ports.inbound.reconcile import ReconcileCommand
from storefront_api.core.ports.outbound.cart_store import MERGE_KEYS_KEPT


@pytest.fixture
def db(tmp_path) -> SqliteDatabase:
    database = SqliteDatabase(str(tmp_path / "storefront.db"))
    database.init_schema()
    return database


@pytest.fixture
def carts(db) -> SqliteCartStore:
    return SqliteCartStore(db)


@pytest.fixture
def orders(db) -> SqliteOrderRepository:
    return SqliteOrderRepository(db)


def _row_count(db: SqliteDatabase, owner: str, table: str = "cart_lines") -> int:
    conn = sqlite3.connect(db.path)
    try:
        return conn.execute(
            f"SELECT COUNT(*) FROM {table} WHERE owner_id = ?", (owner,)
        ).fetchone()[0]
    finally:
        conn.close()


def _order(lines=()) -> Order:
    return Order(
        order_id=OrderId.new(),
        account_id=AccountId("acct-1"),
        lines=tuple(lines),
        total=Money.of("12.00"),
        contact="0971234567",
        created_at=now_utc(),
    )


def test_increment_upserts_a_single_row(db, carts):
    carts.increment("acct-1", TEE, 1)
    carts.increment("acct-1", TEE, 2)
    line = carts.increment("acct-1", TEE, 1).unwrap()

    assert line.quantity == 4
    assert _row_count(db, "acct-1") == 1
    assert carts.read("acct-1").unwrap().version == 3


def test_concurrent_adds_from_many_sessions_upsert_one_row(db, carts):
    shop = make_shop(account_store=carts)

    results = add_concurrently(shop.ledger, ACCOUNT_CART, TEE, workers=12)

    assert all(isinstance(r, Success) for r in results)
    assert _row_count(db, ACCOUNT.value) == 1
    assert shop.quantities(ACCOUNT_CART) == {"tee": 12}
    assert carts.read(ACCOUNT.value).unwrap().version == 12


def test_zero_quantity_row_is_refused_by_schema(carts):
    result = carts.set_quantity("acct-1", TEE, 0)

    assert isinstance(result.failure(), PersistenceError)
    assert carts.read("acct-1").unwrap().lines == ()


def test_replace_is_compare_and_set(carts):
    carts.increment("acct-1", TEE, 1)
    stale = 0

    result = carts.replace("acct-1", [CartLine(MUG, 2)], expected_version=stale)

    assert isinstance(result.failure(), CartChangedError)
    assert carts.read("acct-1").unwrap().lines == (CartLine(TEE, 1),)


def test_replace_with_seen_merge_key_is_a_noop(carts):
    version = carts.read("acct-1").unwrap().version
    assert carts.replace("acct-1", [CartLine(TEE, 2)], version, merge_key="k1").unwrap()

    version = carts.read("acct-1").unwrap().version
    again = carts.replace("acct-1", [CartLine(TEE, 4)], version, merge_key="k1")

    assert again.unwrap() is False
    assert carts.read("acct-1").unwrap().lines == (CartLine(TEE, 2),)


def test_only_recent_merge_keys_are_kept(db, carts):
    for n in range(MERGE_KEYS_KEPT + 5):
        version = carts.read("acct-1").unwrap().version
        carts.replace("acct-1", [CartLine(TEE, 1)], version, merge_key=f"k{n}")

    assert _row_count(db, "acct-1", table="cart_merges") == MERGE_KEYS_KEPT
    version = carts.read("acct-1").unwrap().version
    newest_key = f"k{MERGE_KEYS_KEPT + 4}"
    assert carts.replace("acct-1", [], version, merge_key=newest_key).unwrap() is False
    assert carts.replace("acct-1", [], version, merge_key="k0").unwrap() is True


def test_clear_checks_expected_version(carts):
    carts.increment("acct-1", TEE, 1)
    version = carts.read("acct-1").unwrap().version
    carts.increment("acct-1", MUG, 1)

    assert isinstance(carts.clear("acct-1", expected_version=version).failure(), CartChangedError)
    assert isinstance(carts.clear("acct-1"), Success)
    assert carts.read("acct-1").unwrap().lines == ()


def test_delete_line_of_absent_product_keeps_version(carts):
    carts.increment("acct-1", TEE, 1)
    before = carts.read("acct-1").unwrap().version

    carts.delete_line("acct-1", MUG)

    assert carts.read("acct-1").unwrap().version == before


def test_order_round_trip_keeps_decimal_prices(orders):
    order = _order(
        [
            OrderLine(TEE, "Chitenge Tee", 1, Money.of("10.00")),
            OrderLine(MUG, "Copperbelt Mug", 1, Money.of("2.00")),
        ]
    )
    orders.create(order.header())
    orders.add_lines(order.order_id, order.lines)
    orders.mark_status(order.order_id, OrderStatus.PAID)

    loaded = orders.get(order.order_id).unwrap()

    assert loaded.status is OrderStatus.PAID
    assert loaded.total == Money(Decimal("12.00"), "ZMW")
    assert [ln.unit_price_at_purchase.amount for ln in loaded.lines] == [
        Decimal("10.00"),
        Decimal("2.00"),
    ]


def test_duplicate_order_line_rolls_back_whole_batch(orders):
    order = _order()
    orders.create(order)
    line = OrderLine(TEE, "Chitenge Tee", 1, Money.of("10.00"))

    result = orders.add_lines(order.order_id, [line, line])

    assert isinstance(result.failure(), PersistenceError)
    assert orders.get(order.order_id).unwrap().lines == ()


def test_mark_status_only_moves_pending_orders(orders):
    order = _order()
    orders.create(order)
    paid = orders.mark_status(order.order_id, OrderStatus.PAID)
    assert paid.unwrap().status is OrderStatus.PAID

    again = orders.mark_status(order.order_id, OrderStatus.FAILED)

    assert isinstance(again.failure(), PersistenceError)
    missing = orders.mark_status(OrderId.new(), OrderStatus.PAID)
    assert isinstance(missing.failure(), OrderNotFound)


def test_list_defaults_to_paid_orders(orders):
    paid, pending = _order(), _order()
    for o in (paid, pending):
        orders.create(o)
    orders.mark_status(paid.order_id, OrderStatus.PAID)

    listed = orders.list(0, 10).unwrap()
    everything = orders.list(0, 10, status=None).unwrap()

    assert [o.order_id for o in listed] == [paid.order_id]
    assert len(everything) == 2


def test_checkout_and_merge_over_sqlite(carts, orders):
    shop = make_shop(account_store=carts, orders=orders)
    shop.ledger.add_item(ACCOUNT_CART, TEE, 1)
    shop.ledger.add_item(GUEST_CART, TEE, 1)
    shop.ledger.add_item(GUEST_CART, MUG, 1)

    shop.reconciler.reconcile(ReconcileCommand(SESSION, ACCOUNT)).unwrap()
    assert shop.quantities(ACCOUNT_CART) == {"tee": 2, "mug": 1}

    receipt = shop.checkout.checkout(CheckoutCommand(ACCOUNT_CART, "0971234567")).unwrap()

    assert receipt.total.amount == Decimal("25.50")
    assert shop.quantities(ACCOUNT_CART) == {}
    assert orders.get(receipt.order_id).unwrap().status is OrderStatus.PAID
