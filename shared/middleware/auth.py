"""
shared/middleware/auth.py
FastAPI dependency functions for admin authentication.
The bearer token must map to a live AdminSession row.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.auth.service import AdminIdentity, AuthService
from shared.exceptions import AuthenticationError

security = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if not credentials:
        raise AuthenticationError("Authentication required")
    return credentials.credentials


async def require_admin(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> AdminIdentity:
    """Resolve the admin identity or fail with 401."""
    identity = await AuthService(db).validate_session(token)
    if identity is None:
        raise AuthenticationError("Invalid or expired session")
    return identity


async def get_optional_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[AdminIdentity]:
    """Returns the admin identity if authenticated, None otherwise. For public endpoints."""
    if not credentials:
        return None
    return await AuthService(db).validate_session(credentials.credentials)
