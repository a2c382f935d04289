"""Cart ledger: one line per product, live prices, stale lines."""

from decimal import Decimal

import pytest
from returns.result import Failure, Success

from conftest import (
    ACCOUNT_CART,
    GUEST_CART,
    MUG,
    PEN,
    SOLD_OUT,
    TEE,
    RacingCartStore,
    add_concurrently,
    make_shop,
)
from storefront_api.core.domain.model.cart import CartLine
from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    PersistenceError,
    ProductNotFound,
    StockConflictError,
    ValidationError,
)
from storefront_api.core.domain.service.cart_ledger_service import RESTORE_ATTEMPTS
from storefront_api.core.ports.inbound.cart import (
    AddToCartCommand,
    RemoveItemCommand,
    SetQuantityCommand,
)


@pytest.mark.parametrize("cart_ref", [GUEST_CART, ACCOUNT_CART])
def test_repeated_adds_keep_one_line_per_product(shop, cart_ref):
    for product_id, delta in [(TEE, 1), (MUG, 1), (TEE, 2), (TEE, 1), (MUG, 3)]:
        assert isinstance(shop.ledger.add_item(cart_ref, product_id, delta), Success)

    contents = shop.ledger.read(cart_ref).unwrap()
    assert len(contents.lines) == 2
    assert shop.quantities(cart_ref) == {"tee": 4, "mug": 4}


def test_total_sums_lines_and_rounds_to_cents(shop):
    shop.ledger.add_item(ACCOUNT_CART, TEE, 2)
    shop.ledger.add_item(ACCOUNT_CART, MUG, 1)

    total = shop.ledger.total(ACCOUNT_CART).unwrap()

    assert total.amount == Decimal("25.50")
    assert total.currency == "ZMW"


def test_total_uses_current_catalog_price(shop):
    shop.ledger.add_item(GUEST_CART, TEE, 3)
    shop.catalog.set_price("tee", Decimal("12.50"))

    assert shop.ledger.total(GUEST_CART).unwrap().amount == Decimal("37.50")


def test_total_rounds_once_from_unrounded_catalog_price(shop):
    shop.catalog.set_price("tee", Decimal("3.335"))
    shop.ledger.add_item(GUEST_CART, TEE, 2)

    snapshot = shop.ledger.snapshot(GUEST_CART).unwrap()

    # 2 x 3.335 = 6.670, not 2 x 3.34
    assert shop.ledger.total(GUEST_CART).unwrap().amount == Decimal("6.67")
    assert snapshot.total.amount == Decimal("6.67")
    assert snapshot.items[0].unit_price.amount == Decimal("3.335")


def test_concurrent_adds_to_one_account_cart_keep_a_single_line(shop):
    results = add_concurrently(shop.ledger, ACCOUNT_CART, TEE, workers=16)

    assert len(results) == 16
    assert all(isinstance(r, Success) for r in results)
    contents = shop.ledger.read(ACCOUNT_CART).unwrap()
    assert contents.lines == (CartLine(TEE, 16),)
    assert contents.version == 16


@pytest.mark.parametrize("delta", [0, -1, True, "2", 1.5, None])
def test_add_rejects_non_positive_or_non_integer_delta(shop, delta):
    result = shop.ledger.add_item(GUEST_CART, TEE, delta)

    assert isinstance(result.failure(), ValidationError)
    assert shop.quantities(GUEST_CART) == {}


def test_add_unknown_product_is_not_found(shop):
    result = shop.ledger.add_item(GUEST_CART, ProductId("ghost"), 1)

    assert isinstance(result.failure(), ProductNotFound)


def test_add_out_of_stock_product_is_rejected(shop):
    result = shop.ledger.add_item(GUEST_CART, SOLD_OUT, 1)

    err = result.failure()
    assert isinstance(err, StockConflictError)
    assert err.available == 0
    assert shop.quantities(GUEST_CART) == {}


def test_add_does_not_check_quantity_against_stock(shop):
    # stock is enforced at checkout, not while shopping
    assert isinstance(shop.ledger.add_item(GUEST_CART, PEN, 5), Success)
    assert shop.quantities(GUEST_CART) == {"pen": 5}


def test_set_quantity_is_idempotent(shop):
    shop.ledger.add_item(ACCOUNT_CART, TEE, 1)

    shop.ledger.set_quantity(ACCOUNT_CART, TEE, 3)
    once = shop.quantities(ACCOUNT_CART)
    shop.ledger.set_quantity(ACCOUNT_CART, TEE, 3)

    assert shop.quantities(ACCOUNT_CART) == once == {"tee": 3}


@pytest.mark.parametrize("quantity", [0, -4])
def test_set_quantity_below_one_removes_the_line(shop, quantity):
    shop.ledger.add_item(GUEST_CART, TEE, 2)
    shop.ledger.add_item(GUEST_CART, MUG, 1)

    assert isinstance(shop.ledger.set_quantity(GUEST_CART, TEE, quantity), Success)
    assert shop.quantities(GUEST_CART) == {"mug": 1}


def test_set_quantity_rejects_non_integer(shop):
    shop.ledger.add_item(GUEST_CART, TEE, 2)

    result = shop.ledger.set_quantity(GUEST_CART, TEE, "3")

    assert isinstance(result.failure(), ValidationError)
    assert shop.quantities(GUEST_CART) == {"tee": 2}


def test_set_quantity_of_unknown_product_fails(shop):
    result = shop.ledger.set_quantity(GUEST_CART, ProductId("ghost"), 2)

    assert isinstance(result.failure(), ProductNotFound)


def test_remove_is_idempotent(shop):
    shop.ledger.add_item(GUEST_CART, TEE, 2)

    assert isinstance(shop.ledger.remove_item(GUEST_CART, TEE), Success)
    assert isinstance(shop.ledger.remove_item(GUEST_CART, TEE), Success)
    assert shop.quantities(GUEST_CART) == {}


def test_every_mutation_bumps_the_version(shop):
    versions = [shop.ledger.read(ACCOUNT_CART).unwrap().version]
    shop.ledger.add_item(ACCOUNT_CART, TEE, 1)
    versions.append(shop.ledger.read(ACCOUNT_CART).unwrap().version)
    shop.ledger.set_quantity(ACCOUNT_CART, TEE, 4)
    versions.append(shop.ledger.read(ACCOUNT_CART).unwrap().version)
    shop.ledger.remove_item(ACCOUNT_CART, TEE)
    versions.append(shop.ledger.read(ACCOUNT_CART).unwrap().version)

    assert versions == sorted(set(versions))


def test_deleted_product_is_skipped_and_reported(shop):
    shop.ledger.add_item(GUEST_CART, TEE, 1)
    shop.ledger.add_item(GUEST_CART, MUG, 2)
    shop.catalog.delete("mug")

    snapshot = shop.ledger.snapshot(GUEST_CART).unwrap()

    assert [it.product_id for it in snapshot.items] == [TEE]
    assert snapshot.stale_product_ids == (MUG,)
    assert snapshot.total.amount == Decimal("10.00")
    # the row itself is kept
    assert shop.quantities(GUEST_CART) == {"tee": 1, "mug": 2}


def test_list_items_rereads_catalog_on_each_iteration(shop):
    shop.ledger.add_item(GUEST_CART, TEE, 1)
    items = shop.ledger.list_items(GUEST_CART).unwrap()

    first = [it.unit_price.amount for it in items]
    shop.catalog.set_price("tee", Decimal("11.00"))
    second = [it.unit_price.amount for it in items]

    assert first == [Decimal("10.00")]
    assert second == [Decimal("11.00")]


def test_store_failure_is_reported_as_failure(shop):
    shop.guest_store.fail_on.add("increment")

    result = shop.ledger.add_item(GUEST_CART, TEE, 1)

    assert isinstance(result, Failure)
    assert shop.quantities(GUEST_CART) == {}


def test_use_case_commands_return_snapshots(shop):
    added = shop.ledger.add_to_cart(AddToCartCommand(GUEST_CART, " tee ", 2)).unwrap()
    assert added.line_count == 1
    assert added.total.amount == Decimal("20.00")

    updated = shop.ledger.update_quantity(SetQuantityCommand(GUEST_CART, "tee", 1)).unwrap()
    assert updated.items[0].quantity == 1

    removed = shop.ledger.remove_from_cart(RemoveItemCommand(GUEST_CART, "tee")).unwrap()
    assert removed.is_empty


def test_use_case_rejects_blank_product_id(shop):
    result = shop.ledger.add_to_cart(AddToCartCommand(GUEST_CART, "  ", 1))

    assert isinstance(result.failure(), ValidationError)


def test_restore_merges_lines_back_in_one_write(shop):
    shop.ledger.add_item(ACCOUNT_CART, MUG, 1)
    before = shop.ledger.read(ACCOUNT_CART).unwrap().version

    restored = shop.ledger.restore(ACCOUNT_CART, [CartLine(TEE, 2), CartLine(MUG, 1)])

    assert isinstance(restored, Success)
    assert shop.quantities(ACCOUNT_CART) == {"mug": 2, "tee": 2}
    assert shop.ledger.read(ACCOUNT_CART).unwrap().version == before + 1


def test_failed_restore_leaves_cart_as_it_was(shop):
    shop.ledger.add_item(ACCOUNT_CART, MUG, 1)
    shop.account_store.fail_on.add("replace")

    restored = shop.ledger.restore(ACCOUNT_CART, [CartLine(TEE, 2), CartLine(PEN, 1)])

    assert isinstance(restored.failure(), PersistenceError)
    assert shop.quantities(ACCOUNT_CART) == {"mug": 1}


def test_restore_retries_when_another_writer_gets_in_first():
    shop = make_shop(account_store=RacingCartStore(races=1))

    assert isinstance(shop.ledger.restore(ACCOUNT_CART, [CartLine(TEE, 2)]), Success)
    assert shop.quantities(ACCOUNT_CART) == {"pen": 1, "tee": 2}


def test_restore_gives_up_on_a_cart_that_keeps_changing():
    shop = make_shop(account_store=RacingCartStore(races=RESTORE_ATTEMPTS))

    restored = shop.ledger.restore(ACCOUNT_CART, [CartLine(TEE, 2)])

    assert isinstance(restored.failure(), CartChangedError)
    assert shop.quantities(ACCOUNT_CART) == {"pen": RESTORE_ATTEMPTS}
