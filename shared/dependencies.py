"""
shared/dependencies.py
FastAPI dependencies wiring the store, the engine and request metadata.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.calendar import CalendarConfig, get_calendar_config
from config.database import get_db
from services.auth.service import AdminIdentity
from services.booking.engine import AuditContext, BookingLifecycleEngine
from services.calendar.store import CalendarStore


def get_calendar_store(
    db: AsyncSession = Depends(get_db),
    config: CalendarConfig = Depends(get_calendar_config),
) -> CalendarStore:
    return CalendarStore(db, config)


def get_lifecycle_engine(
    db: AsyncSession = Depends(get_db),
    config: CalendarConfig = Depends(get_calendar_config),
) -> BookingLifecycleEngine:
    return BookingLifecycleEngine(db, config)


def audit_context(request: Request, admin: Optional[AdminIdentity] = None) -> AuditContext:
    return AuditContext(
        actor=admin.username if admin else None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
