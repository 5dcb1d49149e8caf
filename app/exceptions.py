"""Domain errors raised by the storefront services.

Every error carries the HTTP status the errors blueprint answers with, so
services can raise without knowing about Flask.
"""


class StorefrontError(Exception):
    status = 400

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    default_message = "Request could not be completed"

    @property
    def message(self) -> str:
        return str(self)


# --- Not found ---

class ProductNotFound(StorefrontError):
    status = 404
    default_message = "Product not found"


class AddressNotFound(StorefrontError):
    status = 404
    default_message = "Address not found"


class OrderNotFound(StorefrontError):
    status = 404
    default_message = "Order not found"


# --- Identity ---

class AuthError(StorefrontError):
    status = 401
    default_message = "Authentication failed"


class InvalidCredentials(AuthError):
    default_message = "Invalid login credentials"


class AuthenticationRequired(AuthError):
    default_message = "Please sign in to continue"


class EmailAlreadyRegistered(AuthError):
    status = 409
    default_message = "User already registered"


class WeakPassword(AuthError):
    status = 400


class InvalidResetLink(AuthError):
    status = 400
    default_message = "Reset link is invalid or has expired"


# --- Checkout ---

class CheckoutError(StorefrontError):
    default_message = "Checkout failed"


class EmptyCheckout(CheckoutError):
    default_message = "No items to checkout"


class InvalidCheckoutTransition(CheckoutError):
    status = 409


class IncompleteAddress(CheckoutError):
    default_message = "Street, city, postal code and phone are required"


class IncompletePayment(CheckoutError):
    default_message = "Card number, expiry and CVC are required"


class CheckoutInProgress(CheckoutError):
    status = 409
    default_message = "Order is already being placed"


class CheckoutStepError(CheckoutError):
    """A placeOrder step failed against storage; the checkout stays retryable."""

    status = 503
    step = "unknown"
    default_message = "We couldn't place your order. Please try again."


class AddressPersistError(CheckoutStepError):
    step = "address"
    default_message = "We couldn't save your delivery address. Please try again."


class OrderPersistError(CheckoutStepError):
    step = "order"


class OrderItemsPersistError(CheckoutStepError):
    step = "order_items"

    def __init__(self, order_id, message=None):
        super().__init__(message)
        self.order_id = order_id
