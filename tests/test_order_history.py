import datetime as dt
from decimal import Decimal

import pytest

from models import db
from models.order import Order, OrderItem
from models.product import Product
from app.exceptions import OrderNotFound
from app.services.addresses import insert_address
from app.services.order_history import MISSING_PRODUCT_NAME, OrderHistoryReader, status_tone


def add_order(user_id, created_at, status="confirmed", total="10.00", items=()):
    address_id = insert_address(user_id, {"street": "1 Market St", "city": "Springfield", "postal_code": "12345", "phone": "555-0100"})
    order = Order(
        user_id=user_id,
        address_id=address_id,
        subtotal=Decimal(total),
        delivery_fee=Decimal("0.00"),
        total=Decimal(total),
        phone="555-0100",
        status=status,
        estimated_delivery="45-60 min",
        created_at=created_at,
    )
    db.session.add(order)
    db.session.flush()
    for product_id, qty, price in items:
        db.session.add(OrderItem(order_id=order.id, product_id=product_id, quantity=qty, unit_price=Decimal(price)))
    db.session.commit()
    return order.id


@pytest.fixture
def reader():
    return OrderHistoryReader()


def test_orders_listed_newest_first(app, make_user, reader):
    user = make_user()
    now = dt.datetime(2024, 5, 1, 12, 0, 0)
    older = add_order(user.id, now - dt.timedelta(days=2))
    newest = add_order(user.id, now)
    middle = add_order(user.id, now - dt.timedelta(hours=1))
    assert [o["id"] for o in reader.list_orders(user.id)] == [newest, middle, older]


def test_other_users_orders_are_invisible(app, make_user, reader):
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")
    order_id = add_order(alice.id, dt.datetime(2024, 5, 1))
    assert reader.list_orders(bob.id) == []
    with pytest.raises(OrderNotFound):
        reader.get_order(bob.id, order_id)


def test_line_items_keep_price_at_order_time(app, make_user, make_product, reader):
    user = make_user()
    apple = make_product("Apple", "2.50")
    order_id = add_order(user.id, dt.datetime(2024, 5, 1), total="7.50", items=[(apple.id, 3, "2.50")])

    db.session.get(Product, apple.id).price = Decimal("9.99")
    db.session.commit()

    item = reader.get_order(user.id, order_id)["items"][0]
    assert item["name"] == "Apple"
    assert item["unit_price"] == 2.5
    assert item["line_total"] == 7.5


def test_missing_product_shows_placeholder(app, make_user, make_product, reader):
    user = make_user()
    apple = make_product("Apple", "2.50")
    order_id = add_order(user.id, dt.datetime(2024, 5, 1), items=[(apple.id, 1, "2.50")])
    OrderItem.query.filter_by(order_id=order_id).update({"product_id": None})
    db.session.commit()

    item = reader.get_order(user.id, order_id)["items"][0]
    assert item["name"] == MISSING_PRODUCT_NAME
    assert item["available"] is False
    assert item["unit_price"] == 2.5


def test_order_without_items_renders_empty(app, make_user, reader):
    user = make_user()
    order_id = add_order(user.id, dt.datetime(2024, 5, 1))
    order = reader.get_order(user.id, order_id)
    assert order["items"] == []
    assert order["short_id"] == order_id[:8]


@pytest.mark.parametrize("status,tone", [
    ("pending", "warning"),
    ("confirmed", "primary"),
    ("delivering", "secondary"),
    ("delivered", "success"),
    ("cancelled", "destructive"),
    ("lost_in_transit", "muted"),
])
def test_status_tones(status, tone):
    assert status_tone(status) == tone


def test_unknown_status_is_rendered(app, make_user, reader):
    user = make_user()
    add_order(user.id, dt.datetime(2024, 5, 1), status="on_hold")
    order = reader.list_orders(user.id)[0]
    assert order["status"] == "on_hold"
    assert order["status_tone"] == "muted"
