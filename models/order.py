from enum import Enum
from sqlalchemy import Column, String, Numeric, Boolean, Text, DateTime, Integer, ForeignKey
from datetime import datetime
from models import db, new_id


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Order(db.Model):
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
    )
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    # Captured at order time; later address edits must not touch history
    address_id = Column(String(36), ForeignKey("addresses.id"), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    phone = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    estimated_delivery = Column(String(50), nullable=False)
    # Set when the order row exists but its line items could not be written
    needs_reconciliation = Column(Boolean, nullable=False, default=False)
    reconciliation_note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    items = db.relationship("OrderItem", backref="order", lazy=True)


class OrderItem(db.Model):
    __tablename__ = "order_items"
    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)  # frozen at order time

    product = db.relationship("Product", lazy="joined")

    @property
    def line_total(self):
        return self.unit_price * self.quantity
