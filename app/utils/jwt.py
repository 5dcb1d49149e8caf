import datetime as dt
from typing import Dict
import jwt
from flask import current_app


def _secret() -> str:
    return current_app.config["JWT_SECRET"]


def _utcnow():
    return dt.datetime.now(dt.timezone.utc)


def _exp(minutes: int):
    return _utcnow() + dt.timedelta(minutes=minutes)


def create_reset_token(user_id: str, fingerprint: str) -> str:
    """Sign a password-reset token bound to the user's current password hash."""
    cfg = current_app.config
    payload: Dict = {
        "sub": user_id,
        "fp": fingerprint,
        "type": "reset",
        "exp": _exp(minutes=cfg["RESET_TOKEN_LIFETIME_MIN"]),
    }
    return jwt.encode(payload, _secret(), algorithm="HS256")


class TokenError(Exception):
    pass


def decode_token(token: str, expected_type: str = "reset") -> Dict:
    try:
        data = jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise TokenError("token expired")
    except jwt.InvalidTokenError:
        raise TokenError("invalid token")

    if data.get("type") != expected_type:
        raise TokenError(f"expected {expected_type} token")
    return data
