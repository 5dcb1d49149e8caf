import logging
from flask import Blueprint, request, current_app
from flask_limiter.util import get_remote_address
from extensions import limiter
from app.version import API_PREFIX
from app.schemas.auth import (
    SignUpRequest,
    SignInRequest,
    PasswordResetRequest,
    PasswordUpdateRequest,
)
from app.utils import ok, current_storefront, serialized, validate_schema

auth_bp = Blueprint("auth", __name__, url_prefix=f"{API_PREFIX}/auth")
logger = logging.getLogger(__name__)


def _session_payload(storefront):
    user = storefront.identity.current_user
    return {
        "user": user.to_dict() if user else None,
        "cart_items": storefront.cart.total_items,
    }


@auth_bp.route("/signup", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["SIGNIN_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many sign-up attempts from this IP",
)
@validate_schema(SignUpRequest)
@serialized
def sign_up():
    data: SignUpRequest = request.validated_data
    storefront = current_storefront()
    storefront.identity.sign_up(data.email, data.password, data.full_name)
    return ok(_session_payload(storefront), message="Account created", status=201)


@auth_bp.route("/signin", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["SIGNIN_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many sign-in attempts from this IP",
)
@validate_schema(SignInRequest)
@serialized
def sign_in():
    data: SignInRequest = request.validated_data
    storefront = current_storefront()
    storefront.identity.sign_in(data.email, data.password)
    return ok(_session_payload(storefront), message="Signed in")


@auth_bp.route("/signout", methods=["POST"])
@serialized
def sign_out():
    storefront = current_storefront()
    storefront.identity.sign_out()
    return ok(_session_payload(storefront), message="Signed out")


@auth_bp.route("/me", methods=["GET"])
def me():
    return ok(_session_payload(current_storefront()))


@auth_bp.route("/password/reset", methods=["POST"])
@limiter.limit(
    lambda: current_app.config["RESET_LIMIT_PER_IP"],
    key_func=get_remote_address,
    error_message="Too many password reset requests from this IP",
)
@validate_schema(PasswordResetRequest)
def request_password_reset():
    data: PasswordResetRequest = request.validated_data
    current_storefront().identity.request_password_reset(data.email)
    logger.info("password reset requested")
    return ok(message="If that email is registered, a reset link is on its way")


@auth_bp.route("/password/update", methods=["POST"])
@validate_schema(PasswordUpdateRequest)
def update_password():
    data: PasswordUpdateRequest = request.validated_data
    current_storefront().identity.update_password(data.password, token=data.token)
    return ok(message="Password updated")
