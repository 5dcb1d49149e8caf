from .auth import auth_bp
from .catalog import catalog_bp
from .cart import cart_bp
from .checkout import checkout_bp
from .orders import orders_bp


__all__ = [
    'auth_bp',
    'catalog_bp',
    'cart_bp',
    'checkout_bp',
    'orders_bp',
]
