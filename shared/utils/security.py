"""
shared/utils/security.py
Admin session tokens (signed JWT), password hashing, and token hashing.
"""

import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from config.settings import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# ── Session tokens ────────────────────────────────────────────

def create_session_token(username: str, now: Optional[datetime] = None) -> tuple[str, datetime]:
    """
    Create a signed admin session token.
    Returns (token, expires_at). The random jti makes every token unique,
    even for two logins in the same second.
    """
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(hours=settings.ADMIN_SESSION_EXPIRE_HOURS)

    payload = {
        "sub": username,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": expires_at,
        "type": "admin_session",
    }

    token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def verify_session_token(token: str) -> dict:
    """
    Decode and verify an admin session token.
    Raises JWTError on invalid/expired token.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
    )
    if payload.get("type") != "admin_session":
        raise JWTError("Invalid token type")
    return payload


def hash_token(token: str) -> str:
    """SHA-256 hash for storing session tokens."""
    return hashlib.sha256(token.encode()).hexdigest()


# ── Password ──────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())
