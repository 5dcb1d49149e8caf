from flask import Blueprint, request
from app.version import API_PREFIX
from app.schemas.cart import AddToCartRequest, UpdateQuantityRequest
from app.services import catalog
from app.services.checkout import quote
from app.utils import ok, error, current_storefront, serialized, validate_schema

cart_bp = Blueprint("cart", __name__, url_prefix=f"{API_PREFIX}/cart")


def cart_payload(storefront):
    cart = storefront.cart
    pricing = quote(cart.total_price, storefront.checkout.settings)
    return {
        "items": [line.to_dict() for line in cart.items],
        "total_items": cart.total_items,
        "total_price": float(cart.total_price),
        "total_savings": float(cart.total_savings),
        "delivery": pricing.to_dict(),
        "persisted": cart.is_persisted,
    }


@cart_bp.route("", methods=["GET"])
def view_cart():
    return ok(cart_payload(current_storefront()))


@cart_bp.route("/items", methods=["POST"])
@validate_schema(AddToCartRequest)
@serialized
def add_to_cart():
    data: AddToCartRequest = request.validated_data
    product = catalog.get_product(data.product_id)
    if not product.in_stock:
        return error("Product is out of stock", status=400)
    storefront = current_storefront()
    storefront.cart.add_to_cart(product)
    return ok(cart_payload(storefront), message="Item added to cart")


@cart_bp.route("/items/<product_id>", methods=["PUT", "PATCH"])
@validate_schema(UpdateQuantityRequest)
@serialized
def update_quantity(product_id):
    data: UpdateQuantityRequest = request.validated_data
    storefront = current_storefront()
    storefront.cart.update_quantity(product_id, data.quantity)
    return ok(cart_payload(storefront), message="Cart quantity updated")


@cart_bp.route("/items/<product_id>", methods=["DELETE"])
@serialized
def remove_from_cart(product_id):
    storefront = current_storefront()
    storefront.cart.remove_from_cart(product_id)
    return ok(cart_payload(storefront), message="Item removed")


@cart_bp.route("", methods=["DELETE"])
@serialized
def clear_cart():
    storefront = current_storefront()
    storefront.cart.clear_cart()
    return ok(cart_payload(storefront), message="Cart cleared")
