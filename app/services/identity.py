"""Email/password identity provider and the per-session identity state.

``IdentitySession.user_changed`` is a blinker signal sent on every
user-presence transition (guest -> user, user -> guest, user A -> user B).
Receivers get ``user_id`` (``None`` after sign-out) and ``previous_user_id``.
"""
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from blinker import Signal
from flask import current_app
from sqlalchemy import func
from werkzeug.security import check_password_hash, generate_password_hash

from models import db
from models.user import User
from app.exceptions import (
    AuthenticationRequired,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidResetLink,
    WeakPassword,
)
from app.tasks.notifications import send_password_reset_email_task
from app.utils.db import transactional
from app.utils.jwt import TokenError, create_reset_token, decode_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    full_name: Optional[str] = None

    @classmethod
    def from_model(cls, user: User) -> "Identity":
        return cls(id=user.id, email=user.email, full_name=user.full_name)

    def to_dict(self):
        return {"id": self.id, "email": self.email, "full_name": self.full_name}


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def _check_password_strength(password: str) -> None:
    min_len = current_app.config["MIN_PASSWORD_LENGTH"]
    if len(password or "") < min_len:
        raise WeakPassword(f"Password should be at least {min_len} characters")


def _find_user(email: str) -> Optional[User]:
    return User.query.filter(func.lower(User.email) == _normalize_email(email)).first()


def register_user(email: str, password: str, full_name: str = None) -> Identity:
    _check_password_strength(password)
    if _find_user(email):
        raise EmailAlreadyRegistered()
    user = User(
        email=_normalize_email(email),
        full_name=(full_name or "").strip() or None,
        password_hash=generate_password_hash(password),
    )
    with transactional("Failed to register user"):
        db.session.add(user)
    logger.info("user registered %s", user.id)
    return Identity.from_model(user)


def authenticate(email: str, password: str) -> Identity:
    user = _find_user(email)
    if not user or not check_password_hash(user.password_hash, password or ""):
        raise InvalidCredentials()
    return Identity.from_model(user)


def request_password_reset(email: str) -> Optional[str]:
    """Queue a reset link for a known email. Unknown emails are silently ignored."""
    user = _find_user(email)
    if not user:
        logger.info("password reset requested for unknown email")
        return None
    token = create_reset_token(user.id, _password_fingerprint(user.password_hash))
    reset_url = f"{current_app.config['PASSWORD_RESET_URL']}?token={token}"
    if current_app.config.get("TESTING"):
        send_password_reset_email_task(user.email, reset_url)
    else:
        send_password_reset_email_task.delay(user.email, reset_url)
    return token


def _user_from_reset_token(token: str) -> User:
    try:
        payload = decode_token(token, expected_type="reset")
    except TokenError as e:
        logger.info("reset token rejected: %s", e)
        raise InvalidResetLink()
    user = db.session.get(User, payload.get("sub"))
    # A changed password invalidates every outstanding link
    if not user or payload.get("fp") != _password_fingerprint(user.password_hash):
        raise InvalidResetLink()
    return user


def change_password(new_password: str, *, token: str = None, user_id: str = None) -> Identity:
    if token:
        user = _user_from_reset_token(token)
    elif user_id:
        user = db.session.get(User, user_id)
        if not user:
            raise AuthenticationRequired()
    else:
        raise AuthenticationRequired()
    _check_password_strength(new_password)
    with transactional("Failed to update password"):
        user.password_hash = generate_password_hash(new_password)
    logger.info("password updated for user %s", user.id)
    return Identity.from_model(user)


class IdentitySession:
    """The identity half of one storefront session."""

    def __init__(self):
        self.user_changed = Signal("user-changed")
        self._user: Optional[Identity] = None

    @property
    def current_user(self) -> Optional[Identity]:
        return self._user

    @property
    def user_id(self) -> Optional[str]:
        return self._user.id if self._user else None

    def require_user(self) -> Identity:
        if self._user is None:
            raise AuthenticationRequired()
        return self._user

    def _set_user(self, user: Optional[Identity]) -> None:
        previous = self.user_id
        self._user = user
        if previous != self.user_id:
            self.user_changed.send(self, user_id=self.user_id, previous_user_id=previous)

    def sign_up(self, email: str, password: str, full_name: str = None) -> Identity:
        user = register_user(email, password, full_name)
        self._set_user(user)
        return user

    def sign_in(self, email: str, password: str) -> Identity:
        user = authenticate(email, password)
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        self._set_user(None)

    def request_password_reset(self, email: str) -> None:
        request_password_reset(email)

    def update_password(self, new_password: str, token: str = None) -> Identity:
        if token:
            return change_password(new_password, token=token)
        return change_password(new_password, user_id=self.require_user().id)
