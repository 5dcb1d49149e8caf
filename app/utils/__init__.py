from .responses import ok, error, validation_error_response
from .auth import current_storefront, login_required, serialized, init_sessions
from .validation import validate_schema
from .db import transactional
from .jwt import (
    create_reset_token,
    decode_token,
    TokenError,
)

__all__ = [
    'ok',
    'error',
    'validation_error_response',
    'current_storefront',
    'login_required',
    'serialized',
    'init_sessions',
    'create_reset_token',
    'decode_token',
    'TokenError',
    'validate_schema',
    'transactional',
]
