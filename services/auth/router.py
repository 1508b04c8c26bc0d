"""
services/auth/router.py
Admin authentication endpoints.
Implements: Login → session issue → Me → Logout
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from services.auth.service import AdminIdentity, AuthService
from shared.exceptions import AuthenticationError
from shared.middleware.auth import get_bearer_token, require_admin
from shared.schemas.schemas import AdminMeResponse, LoginRequest, MessageResponse, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Exchange the admin credentials for a bearer session token."""
    service = AuthService(db)
    if not service.authenticate(data.username, data.password):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Failed admin login for '{data.username}' from {client}")
        raise AuthenticationError("Invalid username or password")

    token, expires_at = await service.create_session(data.username)
    return TokenResponse(
        access_token=token,
        username=data.username,
        expires_in=settings.ADMIN_SESSION_EXPIRE_HOURS * 3600,
        expires_at=expires_at,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    admin: AdminIdentity = Depends(require_admin),
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
):
    """Delete the session; the token stops working immediately."""
    await AuthService(db).invalidate_session(token)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AdminMeResponse)
async def get_me(admin: AdminIdentity = Depends(require_admin)):
    return AdminMeResponse(username=admin.username, expires_at=admin.expires_at)
