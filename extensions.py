from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os

# Shared limiter; RATELIMIT_DEFAULT in app config supplies the default limit,
# sign-in, password reset and order placement add tighter per-route limits.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("RATELIMIT_STORAGE_URL", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,
)
