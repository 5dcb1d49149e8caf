from flask import Blueprint, request
from app.version import API_PREFIX
from app.services.order_history import OrderHistoryReader
from app.utils import ok, login_required

orders_bp = Blueprint("orders", __name__, url_prefix=f"{API_PREFIX}/orders")
reader = OrderHistoryReader()


@orders_bp.route("", methods=["GET"])
@login_required
def list_orders():
    return ok({"orders": reader.list_orders(request.user.id)})


@orders_bp.route("/<order_id>", methods=["GET"])
@login_required
def get_order(order_id):
    return ok({"order": reader.get_order(request.user.id, order_id)})
