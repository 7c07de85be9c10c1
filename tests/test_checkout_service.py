import sqlite3
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from storefront.core.errors import (
    EmptyCart,
    InsufficientStock,
    ProductNotFound,
    Unavailable,
)
from storefront.models.order import ORDER_STATUS_COMPLETED


def _cart_state(session, cart_service, user_id):
    return [(ln.id, ln.product_id, ln.quantity) for ln in cart_service.list_items(session, user_id)]


def _locked_error(message="database is locked"):
    return OperationalError("UPDATE products", {}, sqlite3.OperationalError(message))


def test_checkout_creates_order_and_decrements_stock(
    session, cart_service, checkout_service, order_service, ledger, make_product, user_id
):
    catan = make_product(name="Catan", price="19.99", stock=5)
    azul = make_product(name="Azul", price="35.00", stock=3)
    cart_service.add_or_merge(session, user_id, catan.id, 2)
    cart_service.add_or_merge(session, user_id, azul.id, 1)

    order = checkout_service.checkout(session, user_id)

    assert order.id is not None
    assert order.user_id == user_id
    assert order.status == ORDER_STATUS_COMPLETED
    assert order.total_amount == Decimal("74.98")

    assert ledger.current_stock(session, catan.id) == 3
    assert ledger.current_stock(session, azul.id) == 2

    full = order_service.get_user_order(session, user_id, order.id)
    by_product = {it.product_id: it for it in full.items}
    assert by_product[catan.id].quantity == 2
    assert by_product[catan.id].unit_price == Decimal("19.99")
    assert by_product[catan.id].product_name == "Catan"
    assert by_product[azul.id].line_total == Decimal("35.00")


def test_checkout_clears_cart(session, cart_service, checkout_service, make_product, user_id):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 1)

    checkout_service.checkout(session, user_id)

    assert cart_service.list_items(session, user_id) == []


def test_checkout_leaves_other_carts_alone(
    session, cart_service, checkout_service, make_product, user_id, other_user_id
):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 1)
    cart_service.add_or_merge(session, other_user_id, product.id, 2)

    checkout_service.checkout(session, user_id)

    assert cart_service.list_items(session, other_user_id)[0].quantity == 2


def test_empty_cart(session, checkout_service, order_service, user_id):
    with pytest.raises(EmptyCart):
        checkout_service.checkout(session, user_id)

    assert order_service.list_user_orders(session, user_id) == []


def test_insufficient_stock_leaves_cart_and_stock_untouched(
    session, cart_service, checkout_service, order_service, ledger, product_repo,
    make_product, user_id,
):
    plenty = make_product(name="Plenty", stock=10)
    scarce = make_product(name="Scarce", stock=4)
    cart_service.add_or_merge(session, user_id, plenty.id, 2)
    cart_service.add_or_merge(session, user_id, scarce.id, 4)

    # Stock drops after the item went into the cart
    scarce.stock_on_hand = 3
    product_repo.update(session, scarce)
    before = _cart_state(session, cart_service, user_id)

    with pytest.raises(InsufficientStock) as exc_info:
        checkout_service.checkout(session, user_id)

    assert exc_info.value.product_id == scarce.id
    assert exc_info.value.product_name == "Scarce"
    assert exc_info.value.available == 3
    assert _cart_state(session, cart_service, user_id) == before
    assert ledger.current_stock(session, plenty.id) == 10
    assert ledger.current_stock(session, scarce.id) == 3
    assert order_service.list_user_orders(session, user_id) == []


def test_removed_product_fails_checkout(
    session, cart_service, checkout_service, product_repo, ledger, make_product, user_id
):
    kept = make_product(name="Kept", stock=5)
    gone = make_product(name="Gone", stock=5)
    cart_service.add_or_merge(session, user_id, kept.id, 1)
    cart_service.add_or_merge(session, user_id, gone.id, 1)
    gone_id = gone.id
    product_repo.delete(session, gone)

    with pytest.raises(ProductNotFound) as exc_info:
        checkout_service.checkout(session, user_id)

    assert exc_info.value.product_id == gone_id
    assert len(cart_service.list_items(session, user_id)) == 2
    assert ledger.current_stock(session, kept.id) == 5


def test_price_snapshot_survives_price_change(
    session, cart_service, checkout_service, order_service, product_repo, make_product, user_id
):
    product = make_product(price="10.00", stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 3)
    order = checkout_service.checkout(session, user_id)

    product.price = Decimal("99.00")
    product_repo.update(session, product)

    full = order_service.get_user_order(session, user_id, order.id)
    assert full.total_amount == Decimal("30.00")
    assert full.items[0].unit_price == Decimal("10.00")


def test_checkout_uses_price_at_checkout_not_at_add(
    session, cart_service, checkout_service, product_repo, make_product, user_id
):
    product = make_product(price="10.00", stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 2)

    product.price = Decimal("12.50")
    product_repo.update(session, product)

    order = checkout_service.checkout(session, user_id)
    assert order.total_amount == Decimal("25.00")


def test_checkout_then_add_reports_remaining_stock(
    session, cart_service, checkout_service, make_product, user_id, other_user_id
):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 3)

    checkout_service.checkout(session, user_id)

    with pytest.raises(InsufficientStock) as exc_info:
        cart_service.add_or_merge(session, other_user_id, product.id, 4)
    assert exc_info.value.available == 2


def test_overcommitted_carts_only_first_checkout_wins(
    session, cart_service, checkout_service, ledger, make_product, user_id, other_user_id
):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 3)
    # Advisory check passes for both carts: each fits the stock on its own
    cart_service.add_or_merge(session, other_user_id, product.id, 4)

    checkout_service.checkout(session, user_id)

    with pytest.raises(InsufficientStock) as exc_info:
        checkout_service.checkout(session, other_user_id)

    assert exc_info.value.available == 2
    assert ledger.current_stock(session, product.id) == 2
    assert cart_service.list_items(session, other_user_id)[0].quantity == 4


def test_storage_failure_rolls_back_and_raises_unavailable(
    session, cart_service, checkout_service, order_service, ledger, make_product,
    user_id, monkeypatch,
):
    first = make_product(name="First", stock=5)
    second = make_product(name="Second", stock=5)
    cart_service.add_or_merge(session, user_id, first.id, 1)
    cart_service.add_or_merge(session, user_id, second.id, 1)
    before = _cart_state(session, cart_service, user_id)

    real_decrement = ledger.decrement
    calls = []

    def failing_decrement(session_, product_id, amount):
        calls.append(product_id)
        if len(calls) == 2:
            raise _locked_error("disk I/O error")
        return real_decrement(session_, product_id, amount)

    monkeypatch.setattr(ledger, "decrement", failing_decrement)

    with pytest.raises(Unavailable):
        checkout_service.checkout(session, user_id)

    assert len(calls) == 2
    assert _cart_state(session, cart_service, user_id) == before
    assert ledger.current_stock(session, first.id) == 5
    assert ledger.current_stock(session, second.id) == 5
    assert order_service.list_user_orders(session, user_id) == []


def test_transient_conflict_is_retried(
    session, cart_service, checkout_service, ledger, make_product, user_id, monkeypatch
):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 2)

    real_decrement = ledger.decrement
    calls = []

    def flaky_decrement(session_, product_id, amount):
        calls.append(product_id)
        if len(calls) == 1:
            raise _locked_error()
        return real_decrement(session_, product_id, amount)

    monkeypatch.setattr(ledger, "decrement", flaky_decrement)

    order = checkout_service.checkout(session, user_id)

    assert len(calls) == 2
    assert order.total_amount == Decimal("39.98")
    assert ledger.current_stock(session, product.id) == 3
    assert cart_service.list_items(session, user_id) == []


def test_retries_exhausted_raise_unavailable(
    session, cart_service, checkout_service, ledger, make_product, user_id, monkeypatch
):
    product = make_product(stock=5)
    cart_service.add_or_merge(session, user_id, product.id, 2)
    calls = []

    def always_locked(session_, product_id, amount):
        calls.append(product_id)
        raise _locked_error()

    monkeypatch.setattr(ledger, "decrement", always_locked)

    with pytest.raises(Unavailable):
        checkout_service.checkout(session, user_id)

    assert len(calls) == checkout_service.max_attempts
    assert len(cart_service.list_items(session, user_id)) == 1
    assert ledger.current_stock(session, product.id) == 5


def test_add_during_checkout_is_not_lost(
    engine, session, cart_service, checkout_service, order_service, ledger,
    make_product, user_id, monkeypatch,
):
    product = make_product(stock=10)
    product_id = product.id
    cart_service.add_or_merge(session, user_id, product_id, 2)

    real_decrement = ledger.decrement
    calls = []

    def decrement_after_concurrent_add(session_, product_id_, amount):
        calls.append(amount)
        if len(calls) == 1:
            # Same user tops up the line from another request mid-checkout
            with Session(engine) as other:
                cart_service.add_or_merge(other, user_id, product_id, 3)
        return real_decrement(session_, product_id_, amount)

    monkeypatch.setattr(ledger, "decrement", decrement_after_concurrent_add)

    order = checkout_service.checkout(session, user_id)

    full = order_service.get_user_order(session, user_id, order.id)
    ordered = sum(it.quantity for it in full.items)
    left_in_cart = sum(ln.quantity for ln in cart_service.list_items(session, user_id))
    assert ordered + left_in_cart == 5
    assert calls == [2, 5]
    assert ordered == 5
    assert ledger.current_stock(session, product_id) == 5


def test_delete_lines_skips_lines_whose_quantity_changed(
    session, cart_repo, cart_service, make_product, user_id
):
    first = make_product(name="First")
    second = make_product(name="Second")
    cart_service.add_or_merge(session, user_id, first.id, 1)
    cart_service.add_or_merge(session, user_id, second.id, 2)
    lines = cart_service.list_items(session, user_id)
    snapshot = [(ln.id, ln.quantity) for ln in lines]
    snapshot[1] = (snapshot[1][0], 5)

    deleted = cart_repo.delete_lines_no_commit(session, snapshot)
    session.commit()

    assert deleted == 1
    remaining = cart_service.list_items(session, user_id)
    assert [(ln.product_id, ln.quantity) for ln in remaining] == [(second.id, 2)]
