"""Read-only projection of a user's past orders.

Line items show the price frozen at order time, never the live product
price. Orders whose items were never written show an empty item list.
"""
from decimal import Decimal
from typing import List

from models.order import Order, OrderItem, OrderStatus
from app.exceptions import OrderNotFound
from app.services import orders as order_store

MISSING_PRODUCT_NAME = "Product no longer available"

STATUS_TONES = {
    OrderStatus.PENDING.value: "warning",
    OrderStatus.CONFIRMED.value: "primary",
    OrderStatus.DELIVERING.value: "secondary",
    OrderStatus.DELIVERED.value: "success",
    OrderStatus.CANCELLED.value: "destructive",
}


def status_tone(status: str) -> str:
    return STATUS_TONES.get(status, "muted")


def _project_item(item: OrderItem) -> dict:
    product = item.product
    unit_price = Decimal(item.unit_price)
    return {
        "product_id": item.product_id,
        "name": product.name if product is not None else MISSING_PRODUCT_NAME,
        "unit": product.unit if product is not None else None,
        "image_url": product.image_url if product is not None else None,
        "available": product is not None,
        "quantity": item.quantity,
        "unit_price": float(unit_price),
        "line_total": float(item.line_total),
    }


def _project_order(order: Order) -> dict:
    return {
        "id": order.id,
        "short_id": order.id[:8],
        "address_id": order.address_id,
        "status": order.status,
        "status_tone": status_tone(order.status),
        "subtotal": float(order.subtotal),
        "delivery_fee": float(order.delivery_fee),
        "total": float(order.total),
        "phone": order.phone,
        "estimated_delivery": order.estimated_delivery,
        "needs_reconciliation": bool(order.needs_reconciliation),
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [_project_item(i) for i in order.items],
    }


class OrderHistoryReader:
    def list_orders(self, user_id: str) -> List[dict]:
        """Newest first."""
        return [_project_order(o) for o in order_store.list_orders(user_id)]

    def get_order(self, user_id: str, order_id: str) -> dict:
        order = order_store.get_order(user_id, order_id)
        if order is None:
            raise OrderNotFound()
        return _project_order(order)
