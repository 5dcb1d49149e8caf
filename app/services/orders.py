from typing import Iterable, List
from sqlalchemy.orm import selectinload
from models import db
from models.order import Order, OrderItem
from app.utils.db import transactional


def insert_order(fields: dict) -> str:
    order = Order(**fields)
    with transactional("Failed to create order"):
        db.session.add(order)
    return order.id


def insert_order_items(items: Iterable[dict]) -> int:
    """Write all line items of one order as a single batch."""
    rows = [OrderItem(**item) for item in items]
    with transactional("Failed to create order items"):
        db.session.add_all(rows)
    return len(rows)


def flag_for_reconciliation(order_id: str, note: str) -> None:
    with transactional("Failed to flag order for reconciliation"):
        order = db.session.get(Order, order_id)
        if order is not None:
            order.needs_reconciliation = True
            order.reconciliation_note = note


def list_orders(user_id: str) -> List[Order]:
    return (
        Order.query.options(selectinload(Order.items))
        .filter_by(user_id=user_id)
        .order_by(Order.created_at.desc())
        .all()
    )


def get_order(user_id: str, order_id: str):
    return (
        Order.query.options(selectinload(Order.items))
        .filter_by(user_id=user_id, id=order_id)
        .first()
    )


def list_unreconciled_orders() -> List[Order]:
    return Order.query.filter_by(needs_reconciliation=True).order_by(Order.created_at.asc()).all()
