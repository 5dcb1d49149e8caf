from functools import wraps
from flask import g, current_app, request
from app.version import API_PREFIX
from .responses import error


def current_storefront():
    """Storefront session bound to this request by ``init_sessions``."""
    return g.storefront


def login_required(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        storefront = getattr(g, "storefront", None)
        if storefront is None or storefront.identity.current_user is None:
            return error("Please sign in to continue", status=401)
        request.user = storefront.identity.current_user
        return func(*args, **kwargs)

    return wrapper


def serialized(func):
    """Run the view holding the storefront session lock.

    Requests of one session that change its cart, identity or checkout run
    one at a time.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        with current_storefront().lock:
            return func(*args, **kwargs)

    return wrapper


def _wants_storefront() -> bool:
    # Health, metrics, docs and CORS preflights never open a session
    if request.method == "OPTIONS":
        return False
    return request.path == API_PREFIX or request.path.startswith(f"{API_PREFIX}/")


def init_sessions(app, registry):
    """Resolve the session header to a storefront session on API requests."""
    header = app.config["SESSION_HEADER"]
    app.extensions["storefront_sessions"] = registry

    @app.before_request
    def _bind_storefront_session():
        g.pop("storefront", None)
        if not _wants_storefront():
            return
        session, created = registry.get_or_create(request.headers.get(header))
        g.storefront = session
        if created:
            current_app.logger.info("storefront session opened %s", session.id)

    @app.after_request
    def _flush_cart_mirror(resp):
        storefront = getattr(g, "storefront", None)
        if storefront is not None:
            resp.headers[header] = storefront.id
            registry.mirror.flush()
        return resp
