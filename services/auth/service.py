"""
services/auth/service.py
Admin authentication: credential check and database-backed sessions.

A session token is a signed JWT; only its SHA-256 is stored, so a leaked
admin_sessions table cannot be replayed. Logout deletes the row, which makes
the still-unexpired JWT useless.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from jose import JWTError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from shared.models.models import AdminSession
from shared.utils.security import (
    constant_time_equals,
    create_session_token,
    hash_token,
    verify_password,
    verify_session_token,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminIdentity:
    username: str
    expires_at: datetime


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def authenticate(username: str, password: str) -> bool:
        """Check against the single configured admin account."""
        if not constant_time_equals(username, settings.ADMIN_USERNAME):
            return False
        if settings.ADMIN_PASSWORD_HASH:
            return verify_password(password, settings.ADMIN_PASSWORD_HASH)
        if settings.ADMIN_PASSWORD:
            return constant_time_equals(password, settings.ADMIN_PASSWORD)
        # No password configured: admin login is disabled
        return False

    async def create_session(self, username: str) -> tuple[str, datetime]:
        token, expires_at = create_session_token(username)
        self.db.add(
            AdminSession(
                username=username,
                token_hash=hash_token(token),
                expires_at=expires_at,
            )
        )
        await self.db.commit()
        logger.info(f"Admin session created for {username}")
        return token, expires_at

    async def validate_session(self, token: str) -> Optional[AdminIdentity]:
        """Identity bound to an unexpired, not-logged-out token; None otherwise."""
        try:
            payload = verify_session_token(token)
        except JWTError:
            return None

        result = await self.db.execute(
            select(AdminSession).where(
                AdminSession.token_hash == hash_token(token),
                AdminSession.expires_at > datetime.now(timezone.utc),
            )
        )
        session = result.scalar_one_or_none()
        if session is None or session.username != payload.get("sub"):
            return None
        return AdminIdentity(username=session.username, expires_at=session.expires_at)

    async def invalidate_session(self, token: str) -> None:
        await self.db.execute(
            delete(AdminSession).where(AdminSession.token_hash == hash_token(token))
        )
        await self.db.commit()

    async def purge_expired_sessions(self) -> int:
        result = await self.db.execute(
            delete(AdminSession).where(AdminSession.expires_at <= datetime.now(timezone.utc))
        )
        await self.db.commit()
        return result.rowcount or 0
