from flask import Blueprint, request, current_app
from flask_limiter.util import get_remote_address
from extensions import limiter
from app.version import API_PREFIX
from app.schemas.checkout import AddressForm, PaymentForm
from app.services import addresses as address_store
from app.utils import ok, current_storefront, login_required, serialized, validate_schema

checkout_bp = Blueprint("checkout", __name__, url_prefix=API_PREFIX)


@checkout_bp.route("/addresses", methods=["GET"])
@login_required
def list_addresses():
    rows = address_store.list_addresses(request.user.id)
    return ok({"addresses": [a.to_dict() for a in rows]})


@checkout_bp.route("/checkout", methods=["GET"])
def view_checkout():
    return ok(current_storefront().checkout.view())


@checkout_bp.route("/checkout/start", methods=["POST"])
@serialized
def start_checkout():
    checkout = current_storefront().checkout
    checkout.start()
    return ok(checkout.view())


@checkout_bp.route("/checkout/address", methods=["POST"])
@validate_schema(AddressForm)
@serialized
def submit_address():
    data: AddressForm = request.validated_data
    checkout = current_storefront().checkout
    if data.address_id:
        checkout.select_address(data.address_id)
    else:
        checkout.enter_new_address(data.model_dump(exclude={"address_id"}))
    checkout.proceed_to_payment()
    return ok(checkout.view(), message="Continue to payment")


@checkout_bp.route("/checkout/back", methods=["POST"])
@serialized
def back_to_address():
    checkout = current_storefront().checkout
    checkout.back_to_address()
    return ok(checkout.view())


@checkout_bp.route("/checkout/payment", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["ORDER_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many orders from this IP",
)
@validate_schema(PaymentForm)
def submit_payment():
    data: PaymentForm = request.validated_data
    checkout = current_storefront().checkout
    placed = checkout.submit_payment(data.model_dump())
    return ok(
        {"order": placed.to_dict(), "checkout": checkout.view()},
        message="Order placed",
        status=201,
    )
