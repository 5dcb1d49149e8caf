from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models import db
from models.cart import CartItem
from models.product import Product
from app.services import cart_lines


def sign_up(storefront, email="cart@example.com"):
    return storefront.identity.sign_up(email, "secret123", "Cart Owner")


# -------------------- Guest cart --------------------

def test_adding_same_product_increments_quantity(storefront, make_product):
    apple = make_product("Apple", "2.50")
    for _ in range(4):
        storefront.cart.add_to_cart(apple)
    assert storefront.cart.total_items == 4
    assert len(storefront.cart.items) == 1
    assert storefront.cart.items[0].quantity == 4


def test_lines_keep_insertion_order(storefront, make_product):
    names = ["Zucchini", "Apple", "Milk"]
    for name in names:
        storefront.cart.add_to_cart(make_product(name, "1.00"))
    assert [line.product.name for line in storefront.cart.items] == names


@pytest.mark.parametrize("quantity", [0, -1, -5])
def test_non_positive_quantity_removes_line(storefront, make_product, quantity):
    apple = make_product("Apple", "2.50")
    bread = make_product("Bread", "3.00")
    storefront.cart.add_to_cart(apple)
    storefront.cart.add_to_cart(bread)
    storefront.cart.update_quantity(apple.id, quantity)
    assert [line.product.id for line in storefront.cart.items] == [bread.id]


def test_update_quantity_of_absent_line_is_noop(storefront, make_product):
    apple = make_product("Apple", "2.50")
    storefront.cart.update_quantity(apple.id, 3)
    assert storefront.cart.is_empty()


def test_remove_absent_line_is_noop(storefront, make_product):
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    storefront.cart.remove_from_cart("missing-product")
    assert storefront.cart.total_items == 1


def test_totals_follow_every_mutation(storefront, make_product):
    apple = make_product("Apple", "2.50", original_price="3.00")
    milk = make_product("Milk", "10.00")
    cart = storefront.cart

    cart.add_to_cart(apple)
    assert cart.total_price == Decimal("2.50")
    cart.add_to_cart(milk)
    assert cart.total_price == Decimal("12.50")
    cart.update_quantity(apple.id, 3)
    assert cart.total_price == Decimal("17.50")
    assert cart.total_savings == Decimal("1.50")
    cart.remove_from_cart(milk.id)
    assert cart.total_price == Decimal("7.50")
    cart.clear_cart()
    assert cart.total_price == Decimal("0.00")
    assert cart.total_items == 0


def test_guest_mutations_never_reach_the_mirror(storefront, mirror, make_product):
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    storefront.cart.update_quantity(apple.id, 5)
    storefront.cart.remove_from_cart(apple.id)
    assert mirror.pending() == []
    assert not storefront.cart.is_persisted


# -------------------- Persisted cart --------------------

def test_signed_in_mutations_are_mirrored_after_flush(storefront, mirror, make_product):
    user = sign_up(storefront)
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    storefront.cart.add_to_cart(apple)
    assert storefront.cart.is_persisted
    # Memory is ahead of storage until the mirror flushes
    assert CartItem.query.filter_by(user_id=user.id).count() == 0

    mirror.flush()
    row = CartItem.query.filter_by(user_id=user.id, product_id=apple.id).one()
    assert row.quantity == 2


def test_burst_of_changes_coalesces_to_final_quantity(storefront, mirror, make_product):
    user = sign_up(storefront)
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    for q in (4, 2, 7):
        storefront.cart.update_quantity(apple.id, q)
    pending = mirror.pending(user.id)
    assert len(pending) == 1
    assert pending[0].op == "upsert"
    assert pending[0].quantity == 7


def test_remove_after_add_leaves_only_a_delete(storefront, mirror, make_product):
    user = sign_up(storefront)
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    storefront.cart.remove_from_cart(apple.id)
    assert [w.op for w in mirror.pending(user.id)] == ["delete"]
    mirror.flush()
    assert CartItem.query.filter_by(user_id=user.id).count() == 0


def test_sign_out_keeps_durable_rows_and_sign_in_restores_them(storefront, make_product):
    sign_up(storefront)
    apple = make_product("Apple", "2.50")
    milk = make_product("Milk", "10.00")
    storefront.cart.add_to_cart(apple)
    storefront.cart.add_to_cart(apple)
    storefront.cart.add_to_cart(milk)

    storefront.identity.sign_out()
    assert storefront.cart.is_empty()
    assert not storefront.cart.is_persisted

    storefront.identity.sign_in("cart@example.com", "secret123")
    restored = {line.product.id: line.quantity for line in storefront.cart.items}
    assert restored == {apple.id: 2, milk.id: 1}
    assert [line.product.id for line in storefront.cart.items] == [apple.id, milk.id]


def test_sign_in_drops_lines_of_deleted_products(storefront, mirror, make_product):
    sign_up(storefront)
    apple = make_product("Apple", "2.50")
    milk = make_product("Milk", "10.00")
    storefront.cart.add_to_cart(apple)
    storefront.cart.add_to_cart(milk)
    mirror.flush()
    storefront.identity.sign_out()

    db.session.delete(db.session.get(Product, milk.id))
    db.session.commit()

    storefront.identity.sign_in("cart@example.com", "secret123")
    assert [line.product.id for line in storefront.cart.items] == [apple.id]


def test_guest_lines_are_discarded_on_sign_in(storefront, make_product, make_user):
    make_user("returning@example.com", "secret123")
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    storefront.identity.sign_in("returning@example.com", "secret123")
    assert storefront.cart.is_empty()
    assert storefront.cart.is_persisted


def test_clear_cart_wipes_durable_rows_and_pending_writes(storefront, mirror, make_product):
    user = sign_up(storefront)
    apple = make_product("Apple", "2.50")
    milk = make_product("Milk", "10.00")
    storefront.cart.add_to_cart(apple)
    mirror.flush()
    storefront.cart.add_to_cart(milk)

    storefront.cart.clear_cart()
    assert storefront.cart.is_empty()
    assert mirror.pending(user.id) == []
    assert CartItem.query.filter_by(user_id=user.id).count() == 0


def test_failed_durable_clear_is_logged_as_error(storefront, make_product, monkeypatch, caplog):
    user = sign_up(storefront)
    storefront.cart.add_to_cart(make_product("Apple", "2.50"))

    def down(*args, **kwargs):
        raise OperationalError("DELETE FROM cart_items", {}, Exception("connection reset"))

    monkeypatch.setattr(cart_lines, "delete_all_cart_lines", down)
    caplog.set_level("ERROR")
    storefront.cart.clear_cart()

    assert storefront.cart.is_empty()
    records = [
        r for r in caplog.records
        if isinstance(r.msg, dict) and r.msg.get("event") == "durable_cart_clear_failed"
    ]
    assert len(records) == 1
    assert records[0].levelname == "ERROR"
    assert records[0].msg["user_id"] == user.id


def test_mirror_failure_never_reaches_the_caller(storefront, mirror, make_product, monkeypatch):
    user = sign_up(storefront)
    apple = make_product("Apple", "2.50")

    def locked(*args, **kwargs):
        raise OperationalError("INSERT INTO cart_items", {}, Exception("database is locked"))

    monkeypatch.setattr(cart_lines, "upsert_cart_line", locked)
    storefront.cart.add_to_cart(apple)
    assert mirror.flush() == 0
    assert storefront.cart.total_items == 1
    assert mirror.pending(user.id) == []
    assert CartItem.query.filter_by(user_id=user.id).count() == 0


def test_snapshot_is_detached_from_the_cart(storefront, make_product):
    apple = make_product("Apple", "2.50")
    storefront.cart.add_to_cart(apple)
    snap = storefront.cart.snapshot()
    storefront.cart.update_quantity(apple.id, 9)
    assert snap[0].quantity == 1
