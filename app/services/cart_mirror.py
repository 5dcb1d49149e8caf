"""Best-effort background writes from the in-memory cart to durable storage.

Writes are queued per (user id, product id); a newer write for the same key
replaces the pending one, so a burst of quantity changes reaches storage as a
single write carrying the final quantity. ``flush`` hands queued writes to a
dispatcher and never raises: the in-memory cart stays the source of truth.
"""
import logging
import threading
from collections import OrderedDict, namedtuple
from typing import Callable, List, Optional

from app.metrics import CART_MIRROR_FAILURES

logger = logging.getLogger(__name__)

MirrorWrite = namedtuple("MirrorWrite", ["op", "user_id", "product_id", "quantity"])


def celery_dispatcher(eager: bool) -> Callable[[MirrorWrite], None]:
    """Dispatch through the Celery task, inline when ``eager`` (dev/testing)."""
    from app.tasks.cart_mirror import mirror_cart_write_task

    def dispatch(write: MirrorWrite) -> None:
        args = (write.op, write.user_id, write.product_id, write.quantity)
        if eager:
            mirror_cart_write_task(*args)
        else:
            mirror_cart_write_task.delay(*args)

    return dispatch


class CartMirror:
    def __init__(self, dispatch: Callable[[MirrorWrite], None]):
        self._dispatch = dispatch
        self._pending = OrderedDict()
        self._lock = threading.Lock()

    def upsert(self, user_id: str, product_id: str, quantity: int) -> None:
        self._enqueue(MirrorWrite("upsert", user_id, product_id, quantity))

    def delete(self, user_id: str, product_id: str) -> None:
        self._enqueue(MirrorWrite("delete", user_id, product_id, 0))

    def _enqueue(self, write: MirrorWrite) -> None:
        key = (write.user_id, write.product_id)
        with self._lock:
            self._pending.pop(key, None)
            self._pending[key] = write

    def pending(self, user_id: Optional[str] = None) -> List[MirrorWrite]:
        with self._lock:
            return [w for w in self._pending.values() if user_id is None or w.user_id == user_id]

    def discard(self, user_id: str) -> int:
        """Drop queued writes for a user whose durable cart is about to be wiped."""
        with self._lock:
            keys = [k for k in self._pending if k[0] == user_id]
            for key in keys:
                del self._pending[key]
        return len(keys)

    def flush(self, user_id: Optional[str] = None) -> int:
        """Dispatch queued writes (optionally one user's); return how many succeeded."""
        with self._lock:
            keys = [k for k in self._pending if user_id is None or k[0] == user_id]
            batch = [self._pending.pop(k) for k in keys]
        done = 0
        for write in batch:
            try:
                self._dispatch(write)
                done += 1
            except Exception as e:
                CART_MIRROR_FAILURES.labels(write.op).inc()
                logger.warning(
                    "Cart mirror %s failed for product %s: %s",
                    write.op,
                    write.product_id,
                    e,
                )
        return done
