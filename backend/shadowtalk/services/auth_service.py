"""
Centralized auth service. All auth decisions flow through here.

No JWT decoding should happen outside this module.

A ShadowID has no password. The token carries the user id plus the secret
session id stored on the user row; both must match for the token to resolve.
"""

import secrets
import string
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from shadowtalk.config import settings
from shadowtalk.models.user import User

_BASE36 = string.ascii_lowercase + string.digits

# ── Identity ──────────────────────────────────────────────────────────────────


def generate_anonymous_id() -> str:
    """Public pseudonym, e.g. ``Shadowk3x9q0a1z``."""
    return "Shadow" + "".join(secrets.choice(_BASE36) for _ in range(9))


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)


# ── Token ─────────────────────────────────────────────────────────────────────


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user.id),
        "anonymous_id": user.anonymous_id,
        "session_id": user.session_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT. Returns payload dict or None on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def user_id_from_token(token: str) -> int | None:
    """The user id a token was issued for, without touching the database."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


# ── User Lookup ───────────────────────────────────────────────────────────────


def get_user_from_token(token: str, db: Session) -> User | None:
    """Resolve a JWT to an active User whose session secret still matches."""
    payload = decode_access_token(token)
    if payload is None:
        return None
    user_id = user_id_from_token(token)
    if user_id is None:
        return None
    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if user is None or user.session_id != payload.get("session_id"):
        return None
    return user
