import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from app.services.cart_mirror import CartMirror
from app.services.cart_store import CartStore
from app.services.checkout import CheckoutOrchestrator, CheckoutSettings
from app.services.identity import IdentitySession

logger = logging.getLogger(__name__)


class StorefrontSession:
    """Identity, cart and checkout of one client, wired together.

    ``lock`` serializes requests of the same session; order placement shares
    it so the cart cannot change while an order is being written.
    """

    def __init__(self, session_id: str, mirror: CartMirror, settings: CheckoutSettings):
        self.id = session_id
        self.lock = threading.RLock()
        self.last_seen = 0.0
        self.identity = IdentitySession()
        self.cart = CartStore(self.identity, mirror)
        self.checkout = CheckoutOrchestrator(self.cart, self.identity, settings, lock=self.lock)


class SessionRegistry:
    """In-memory sessions, least recently used first.

    Sessions idle for longer than ``idle_timeout`` seconds are dropped, and
    the oldest are evicted once ``max_sessions`` is reached. Durable carts
    survive eviction.
    """

    def __init__(
        self,
        mirror: CartMirror,
        settings: CheckoutSettings,
        idle_timeout: float = 3600,
        max_sessions: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.mirror = mirror
        self.settings = settings
        self.idle_timeout = idle_timeout
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: "OrderedDict[str, StorefrontSession]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, mirror: CartMirror, config) -> "SessionRegistry":
        return cls(
            mirror,
            CheckoutSettings.from_config(config),
            idle_timeout=config["SESSION_IDLE_TIMEOUT_SEC"],
            max_sessions=config["SESSION_MAX_ACTIVE"],
        )

    def _expired(self, session: StorefrontSession, now: float) -> bool:
        return now - session.last_seen > self.idle_timeout

    def _prune(self, now: float) -> None:
        # Oldest first, so stop at the first live session
        while self._sessions:
            sid, oldest = next(iter(self._sessions.items()))
            if not self._expired(oldest, now):
                break
            del self._sessions[sid]
            logger.debug("storefront session %s expired", sid)

    def get(self, session_id: Optional[str]) -> Optional[StorefrontSession]:
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            self._prune(now)
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_seen = now
                self._sessions.move_to_end(session_id)
            return session

    def create(self) -> StorefrontSession:
        session = StorefrontSession(uuid.uuid4().hex, self.mirror, self.settings)
        now = self._clock()
        session.last_seen = now
        with self._lock:
            self._prune(now)
            while len(self._sessions) >= self.max_sessions:
                sid, _ = self._sessions.popitem(last=False)
                logger.info("storefront session %s evicted, registry full", sid)
            self._sessions[session.id] = session
        logger.debug("storefront session %s opened", session.id)
        return session

    def get_or_create(self, session_id: Optional[str]) -> Tuple[StorefrontSession, bool]:
        session = self.get(session_id)
        if session is not None:
            return session, False
        return self.create(), True

    def __len__(self):
        with self._lock:
            return len(self._sessions)
