"""
services/calendar/router.py
Public endpoints: the calendar, statistics, pricing, booking lookups
and sponsorship submission.
"""

from datetime import date
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from config.calendar import CalendarConfig, get_calendar_config
from services.auth.service import AdminIdentity
from services.booking.engine import BookingLifecycleEngine
from services.calendar.store import CalendarStore
from shared.dependencies import audit_context, get_calendar_store, get_lifecycle_engine
from shared.exceptions import NotFoundError
from shared.middleware.auth import get_optional_admin
from shared.schemas.schemas import (
    CalendarResponse,
    DateAdminResponse,
    DatePublicResponse,
    PricingResponse,
    PublicListResponse,
    SponsorshipRequest,
    StatisticsResponse,
    SubmitResponse,
)

router = APIRouter(tags=["Calendar"])


# ── Calendar ──────────────────────────────────────────────────

@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    store: CalendarStore = Depends(get_calendar_store),
    config: CalendarConfig = Depends(get_calendar_config),
):
    """Every date of the season with its booking status, oldest first."""
    records = await store.list_dates()
    return CalendarResponse(
        items=[store.enrich(r) for r in records],
        total=len(records),
        year=config.calendar_year,
        religious_year=config.religious_year,
        zelle_email=config.zelle_email,
        pricing=config.public_pricing(),
    )


@router.get("/calendar/stats", response_model=StatisticsResponse)
async def get_statistics(store: CalendarStore = Depends(get_calendar_store)):
    return await store.statistics()


@router.get("/pricing", response_model=PricingResponse)
async def get_pricing(config: CalendarConfig = Depends(get_calendar_config)):
    return PricingResponse(
        pricing=config.public_pricing(),
        guest_capacity={"weekday": config.weekday_guests, "weekend": config.weekend_guests},
        zelle_email=config.zelle_email,
    )


# ── Bookings ──────────────────────────────────────────────────

@router.get("/bookings", response_model=PublicListResponse)
async def list_bookings(
    q: Optional[str] = Query(None, min_length=2, max_length=100, description="Search sponsor or vendor"),
    store: CalendarStore = Depends(get_calendar_store),
):
    """Booked and pending dates, or search results when `q` is given."""
    records = await store.search(q.strip()) if q else await store.list_sponsored()
    return PublicListResponse(items=[store.enrich(r) for r in records], total=len(records))


@router.get(
    "/bookings/date/{day}",
    response_model=DatePublicResponse,
)
async def get_booking_by_date(
    day: date,
    store: CalendarStore = Depends(get_calendar_store),
):
    record = await store.get_by_date(day)
    if record is None:
        raise NotFoundError("Date not found in calendar")
    return DatePublicResponse.model_validate(store.enrich(record))


@router.post(
    "/bookings/date/{day}",
    response_model=SubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_booking(
    day: date,
    data: SponsorshipRequest,
    request: Request,
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
    config: CalendarConfig = Depends(get_calendar_config),
):
    """
    Request sponsorship of a date.
    - Price and guest capacity are derived from the date, never taken from the body
    - The date is held as pending_approval until an admin approves or rejects it
    """
    record = await engine.submit(day, data.model_dump(), audit_context(request))
    enriched = engine.store.enrich(record)
    return SubmitResponse(
        message="Booking submitted successfully. Your sponsorship is pending approval.",
        zelle_email=config.zelle_email,
        **{k: enriched[k] for k in SubmitResponse.model_fields if k in enriched},
    )


@router.get(
    "/bookings/{booking_id}",
    response_model=Union[DateAdminResponse, DatePublicResponse],
)
async def get_booking(
    booking_id: UUID,
    store: CalendarStore = Depends(get_calendar_store),
    admin: Optional[AdminIdentity] = Depends(get_optional_admin),
):
    """Public fields for everyone; the full record for a signed-in admin."""
    data = store.enrich(await store.require(booking_id))
    if admin:
        return DateAdminResponse.model_validate(data)
    return DatePublicResponse.model_validate(data)
