import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def new_id() -> str:
    """Primary keys are UUID strings so ids can be shown truncated, e.g. 'Order #1a2b3c4d'."""
    return str(uuid.uuid4())


# Re-export common models for convenience
from .product import Product  # noqa: E402,F401
from .user import User  # noqa: E402,F401
from .cart import CartItem  # noqa: E402,F401
from .address import Address  # noqa: E402,F401
from .order import Order, OrderItem  # noqa: E402,F401
