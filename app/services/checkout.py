"""Checkout state machine and the placeOrder saga.

States run AddressEntry -> Payment -> Placed. Payment may step back to
AddressEntry; nothing skips forward.

``place_order`` is a chain of separately committed steps:

1. save a fresh address (first address becomes the default)
2. price the cart snapshot taken at submit time
3. write the order row
4. write every line item in one batch
5. clear the cart and move to Placed

A failure stops the chain and leaves the state at Payment with the cart
intact. Steps 1-3 are safe to retry. A step 4 failure leaves an order row
without items; that order is flagged ``needs_reconciliation`` and reported
separately. Retrying after it creates a second order: submissions carry no
idempotency key.
"""
import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError

from models.order import OrderStatus
from app.exceptions import (
    AddressNotFound,
    AddressPersistError,
    CheckoutInProgress,
    CheckoutStepError,
    EmptyCheckout,
    IncompleteAddress,
    IncompletePayment,
    InvalidCheckoutTransition,
    OrderItemsPersistError,
    OrderPersistError,
)
from app.metrics import CHECKOUT_FAILURES, ORDERS_PLACED, ORPHANED_ORDERS
from app.services import addresses as address_store
from app.services import orders as order_store
from app.services.cart_store import CartLine, CartStore
from app.services.catalog import to_money

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ADDRESS_FIELDS = ("street", "city", "postal_code", "phone")
PAYMENT_FIELDS = ("card_number", "expiry", "cvc")


class CheckoutState(str, Enum):
    ADDRESS_ENTRY = "address_entry"
    PAYMENT = "payment"
    PLACED = "placed"


@dataclass(frozen=True)
class CheckoutSettings:
    free_delivery_threshold: Decimal = Decimal("35.00")
    delivery_fee: Decimal = Decimal("4.99")
    estimated_delivery: str = "45-60 min"

    @classmethod
    def from_config(cls, config) -> "CheckoutSettings":
        return cls(
            free_delivery_threshold=to_money(config["FREE_DELIVERY_THRESHOLD"]),
            delivery_fee=to_money(config["DELIVERY_FEE"]),
            estimated_delivery=config["ESTIMATED_DELIVERY_LABEL"],
        )


@dataclass(frozen=True)
class Pricing:
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    free_delivery_remaining: Decimal

    def to_dict(self):
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "total": float(self.total),
            "free_delivery": self.delivery_fee == 0,
            "free_delivery_remaining": float(self.free_delivery_remaining),
        }


def quote(subtotal, settings: CheckoutSettings) -> Pricing:
    """Delivery is free only strictly above the threshold."""
    subtotal = to_money(subtotal)
    if subtotal > settings.free_delivery_threshold:
        fee = Decimal("0.00")
        remaining = Decimal("0.00")
    else:
        fee = settings.delivery_fee
        remaining = settings.free_delivery_threshold - subtotal + Decimal("0.01")
    return Pricing(
        subtotal=subtotal,
        delivery_fee=fee,
        total=to_money(subtotal + fee),
        free_delivery_remaining=remaining,
    )


def _missing(fields: Optional[dict], names) -> List[str]:
    fields = fields or {}
    return [n for n in names if not str(fields.get(n) or "").strip()]


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    address_id: str
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    estimated_delivery: str
    item_count: int

    def to_dict(self):
        return {
            "order_id": self.order_id,
            "address_id": self.address_id,
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "total": float(self.total),
            "estimated_delivery": self.estimated_delivery,
            "item_count": self.item_count,
        }


class CheckoutOrchestrator:
    def __init__(self, cart: CartStore, identity, settings: CheckoutSettings = None, lock=None):
        self.cart = cart
        self.identity = identity
        self.settings = settings or CheckoutSettings()
        # Held for the whole saga; shared with the cart routes of the session
        self.lock = lock or threading.RLock()
        self._submit_lock = threading.Lock()
        identity.user_changed.connect(self._on_user_changed, sender=identity)
        self.reset()

    def reset(self) -> None:
        self.state = CheckoutState.ADDRESS_ENTRY
        self.selected_address_id: Optional[str] = None
        self.new_address: Optional[dict] = None
        self.submitting = False
        self.placed_order: Optional[PlacedOrder] = None
        self.last_error: Optional[CheckoutStepError] = None

    def _on_user_changed(self, sender, **kwargs):
        self.reset()

    # --- guards ---

    def ensure_not_empty(self) -> None:
        if self.cart.is_empty() and self.state != CheckoutState.PLACED:
            raise EmptyCheckout()

    def _require_state(self, state: CheckoutState, message: str) -> None:
        if self.state != state:
            raise InvalidCheckoutTransition(message)

    def pricing(self) -> Pricing:
        # Recomputed on every call so cart edits are always reflected
        return quote(self.cart.total_price, self.settings)

    def view(self) -> dict:
        if self.cart.is_empty() and self.state != CheckoutState.PLACED:
            return {"state": "empty", "message": EmptyCheckout.default_message}
        return {
            "state": self.state.value,
            "selected_address_id": self.selected_address_id,
            "new_address": self.new_address,
            "pricing": self.pricing().to_dict(),
            "estimated_delivery": self.settings.estimated_delivery,
            "submitting": self.submitting,
            "placed_order": self.placed_order.to_dict() if self.placed_order else None,
            "last_error": (
                {"step": self.last_error.step, "message": self.last_error.message}
                if self.last_error
                else None
            ),
        }

    # --- AddressEntry ---

    def start(self) -> None:
        """Begin a fresh checkout, e.g. after a placed order."""
        self.reset()
        self.ensure_not_empty()

    def select_address(self, address_id: str) -> None:
        self._require_state(CheckoutState.ADDRESS_ENTRY, "Address can only be chosen before payment")
        self.ensure_not_empty()
        user = self.identity.require_user()
        if not address_id or address_store.get_address(user.id, address_id) is None:
            raise AddressNotFound()
        self.selected_address_id = address_id
        self.new_address = None

    def enter_new_address(self, fields: dict) -> None:
        self._require_state(CheckoutState.ADDRESS_ENTRY, "Address can only be chosen before payment")
        self.ensure_not_empty()
        self.identity.require_user()
        self.selected_address_id = None
        self.new_address = {
            key: (str(fields.get(key)).strip() if fields.get(key) is not None else None)
            for key in ADDRESS_FIELDS + ("label",)
        }

    def proceed_to_payment(self) -> Pricing:
        self._require_state(CheckoutState.ADDRESS_ENTRY, "Already past the address step")
        self.ensure_not_empty()
        self.identity.require_user()
        if not self.selected_address_id and _missing(self.new_address, ADDRESS_FIELDS):
            raise IncompleteAddress()
        self.state = CheckoutState.PAYMENT
        return self.pricing()

    # --- Payment ---

    def back_to_address(self) -> None:
        self._require_state(CheckoutState.PAYMENT, "Can only go back from the payment step")
        self.state = CheckoutState.ADDRESS_ENTRY

    def submit_payment(self, payment: dict) -> PlacedOrder:
        """Payment is simulated: fields only have to be present."""
        self._require_state(CheckoutState.PAYMENT, "Order can only be placed from the payment step")
        if _missing(payment, PAYMENT_FIELDS):
            raise IncompletePayment()
        return self.place_order()

    def place_order(self) -> PlacedOrder:
        self._require_state(CheckoutState.PAYMENT, "Order can only be placed from the payment step")
        self.ensure_not_empty()
        user = self.identity.require_user()
        if not self._submit_lock.acquire(blocking=False):
            raise CheckoutInProgress()
        try:
            with self.lock:
                return self._place_order(user)
        finally:
            self._submit_lock.release()

    def _place_order(self, user) -> PlacedOrder:
        # Re-checked under the lock: a submit that waited may find the order placed
        self._require_state(CheckoutState.PAYMENT, "Order can only be placed from the payment step")
        self.ensure_not_empty()
        self.submitting = True
        self.last_error = None
        try:
            lines = self.cart.snapshot()
            address_id, phone = self._resolve_address(user.id)
            pricing = quote(sum((line.line_total for line in lines), Decimal("0.00")), self.settings)
            order_id = self._create_order(user.id, address_id, phone, pricing)
            self._create_order_items(order_id, lines)
        except CheckoutStepError as exc:
            self.last_error = exc
            CHECKOUT_FAILURES.labels(exc.step).inc()
            logger.warning("placeOrder failed at step %s for user %s: %s", exc.step, user.id, exc.__cause__)
            raise
        finally:
            self.submitting = False

        self.cart.clear_cart()
        self.state = CheckoutState.PLACED
        self.new_address = None
        self.placed_order = PlacedOrder(
            order_id=order_id,
            address_id=address_id,
            subtotal=pricing.subtotal,
            delivery_fee=pricing.delivery_fee,
            total=pricing.total,
            estimated_delivery=self.settings.estimated_delivery,
            item_count=len(lines),
        )
        ORDERS_PLACED.inc()
        logger.info("order %s placed for user %s total=%s", order_id, user.id, pricing.total)
        return self.placed_order

    # --- saga steps ---

    def _resolve_address(self, user_id: str):
        if self.selected_address_id:
            address = address_store.get_address(user_id, self.selected_address_id)
            if address is None:
                raise AddressNotFound()
            return address.id, address.phone

        fields = self.new_address or {}
        if _missing(fields, ADDRESS_FIELDS):
            raise IncompleteAddress()
        with tracer.start_as_current_span("checkout.save_address"):
            try:
                is_default = not address_store.list_addresses(user_id)
                address_id = address_store.insert_address(user_id, fields, is_default=is_default)
            except SQLAlchemyError as e:
                raise AddressPersistError() from e
        # A retry after a later failure reuses this row
        self.selected_address_id = address_id
        self.new_address = None
        return address_id, fields["phone"]

    def _create_order(self, user_id: str, address_id: str, phone: str, pricing: Pricing) -> str:
        with tracer.start_as_current_span("checkout.create_order") as span:
            try:
                order_id = order_store.insert_order({
                    "user_id": user_id,
                    "address_id": address_id,
                    "subtotal": pricing.subtotal,
                    "delivery_fee": pricing.delivery_fee,
                    "total": pricing.total,
                    "phone": phone,
                    "status": OrderStatus.CONFIRMED.value,
                    "estimated_delivery": self.settings.estimated_delivery,
                })
            except SQLAlchemyError as e:
                raise OrderPersistError() from e
            span.set_attribute("order.id", order_id)
        return order_id

    def _create_order_items(self, order_id: str, lines: List[CartLine]) -> None:
        with tracer.start_as_current_span("checkout.create_order_items") as span:
            span.set_attribute("order.id", order_id)
            try:
                order_store.insert_order_items([
                    {
                        "order_id": order_id,
                        "product_id": line.product.id,
                        "quantity": line.quantity,
                        "unit_price": line.product.price,
                    }
                    for line in lines
                ])
            except SQLAlchemyError as e:
                self._flag_orphaned_order(order_id, e)
                raise OrderItemsPersistError(order_id) from e

    def _flag_orphaned_order(self, order_id: str, cause: Exception) -> None:
        ORPHANED_ORDERS.inc()
        logger.error({
            "event": "order_items_write_failed",
            "order_id": order_id,
            "error": str(cause),
        })
        try:
            order_store.flag_for_reconciliation(order_id, f"line items not written: {cause}")
        except SQLAlchemyError:
            logger.exception("Could not flag order %s for reconciliation", order_id)
