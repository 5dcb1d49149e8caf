"""The active cart of one storefront session.

Two variants share the line-mutation interface: ``GuestCart`` lives only in
memory, ``PersistedCart`` also queues every change on the ``CartMirror``.
``CartStore`` picks the variant from the identity session and swaps it on
user-presence transitions.

Mutations apply to memory synchronously; durable writes are fire-and-forget.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from app.services import cart_lines
from app.services.cart_mirror import CartMirror
from app.services.catalog import CatalogProduct

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    product: CatalogProduct
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity

    def to_dict(self):
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "line_total": float(self.line_total),
        }


class GuestCart:
    persisted = False
    user_id = None

    def __init__(self, lines: Optional[List[CartLine]] = None):
        self.lines: List[CartLine] = list(lines or [])

    def _find(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.product.id == product_id), None)

    def add(self, product: CatalogProduct) -> CartLine:
        line = self._find(product.id)
        if line:
            line.quantity += 1
        else:
            line = CartLine(product=product, quantity=1)
            self.lines.append(line)
        self._mirror_quantity(product.id, line.quantity)
        return line

    def remove(self, product_id: str) -> None:
        self.lines = [line for line in self.lines if line.product.id != product_id]
        self._mirror_delete(product_id)

    def update(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        line = self._find(product_id)
        if line is None:
            return
        line.quantity = quantity
        self._mirror_quantity(product_id, quantity)

    def clear(self) -> None:
        self.lines = []

    def _mirror_quantity(self, product_id: str, quantity: int) -> None:
        pass

    def _mirror_delete(self, product_id: str) -> None:
        pass


class PersistedCart(GuestCart):
    persisted = True

    def __init__(self, user_id: str, mirror: CartMirror, lines: Optional[List[CartLine]] = None):
        super().__init__(lines)
        self.user_id = user_id
        self.mirror = mirror

    def _mirror_quantity(self, product_id: str, quantity: int) -> None:
        self.mirror.upsert(self.user_id, product_id, quantity)

    def _mirror_delete(self, product_id: str) -> None:
        self.mirror.delete(self.user_id, product_id)

    def clear(self) -> None:
        super().clear()
        self.mirror.discard(self.user_id)
        try:
            cart_lines.delete_all_cart_lines(self.user_id)
        except Exception as e:
            # Lines of a placed order would come back at the next sign-in
            logger.error({
                "event": "durable_cart_clear_failed",
                "user_id": self.user_id,
                "error": str(e),
            })

    @classmethod
    def load(cls, user_id: str, mirror: CartMirror) -> "PersistedCart":
        mirror.flush(user_id)
        try:
            rows = cart_lines.list_cart_lines(user_id)
        except Exception as e:
            logger.error("Could not load durable cart for user %s: %s", user_id, e)
            rows = []
        return cls(
            user_id,
            mirror,
            [CartLine(product=product, quantity=qty) for _, qty, product in rows],
        )


class CartStore:
    def __init__(self, identity, mirror: CartMirror):
        self.mirror = mirror
        self._cart = GuestCart()
        identity.user_changed.connect(self._on_user_changed, sender=identity)
        if identity.user_id:
            self._cart = PersistedCart.load(identity.user_id, mirror)

    def _on_user_changed(self, sender, user_id=None, previous_user_id=None, **kwargs):
        if user_id:
            # Guest lines are discarded, the durable snapshot wins
            self._cart = PersistedCart.load(user_id, self.mirror)
            logger.info("cart reloaded for user %s with %d lines", user_id, len(self._cart.lines))
        else:
            # Durable rows stay for the next sign-in
            self._cart = GuestCart()

    @property
    def cart(self):
        return self._cart

    @property
    def is_persisted(self) -> bool:
        return self._cart.persisted

    @property
    def items(self) -> List[CartLine]:
        return list(self._cart.lines)

    def add_to_cart(self, product: CatalogProduct) -> CartLine:
        return self._cart.add(product)

    def remove_from_cart(self, product_id: str) -> None:
        self._cart.remove(product_id)

    def update_quantity(self, product_id: str, quantity: int) -> None:
        self._cart.update(product_id, quantity)

    def clear_cart(self) -> None:
        self._cart.clear()

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._cart.lines)

    @property
    def total_price(self) -> Decimal:
        return sum((line.line_total for line in self._cart.lines), Decimal("0.00"))

    @property
    def total_savings(self) -> Decimal:
        return sum((line.product.savings * line.quantity for line in self._cart.lines), Decimal("0.00"))

    def is_empty(self) -> bool:
        return not self._cart.lines

    def snapshot(self) -> List[CartLine]:
        """Detached copy of the lines, used by checkout at submit time."""
        return [CartLine(product=line.product, quantity=line.quantity) for line in self._cart.lines]
