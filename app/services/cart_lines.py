from typing import List, Tuple
from models import db
from models.cart import CartItem
from models.product import Product
from app.utils.db import transactional
from app.services.catalog import CatalogProduct


def upsert_cart_line(user_id: str, product_id: str, quantity: int) -> None:
    """Insert or overwrite the (user_id, product_id) row with an absolute quantity."""
    with transactional("Failed to upsert cart line"):
        row = CartItem.query.filter_by(user_id=user_id, product_id=product_id).first()
        if row:
            row.quantity = quantity
        else:
            db.session.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))


def delete_cart_line(user_id: str, product_id: str) -> None:
    with transactional("Failed to delete cart line"):
        CartItem.query.filter_by(user_id=user_id, product_id=product_id).delete()


def delete_all_cart_lines(user_id: str) -> int:
    with transactional("Failed to clear cart"):
        return CartItem.query.filter_by(user_id=user_id).delete()


def list_cart_lines(user_id: str) -> List[Tuple[str, int, CatalogProduct]]:
    """Durable snapshot in insertion order; rows whose product is gone are omitted."""
    rows = (
        db.session.query(CartItem, Product)
        .outerjoin(Product, Product.id == CartItem.product_id)
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        .all()
    )
    return [
        (ci.product_id, ci.quantity, CatalogProduct.from_model(product))
        for ci, product in rows
        if product is not None and ci.quantity > 0
    ]
