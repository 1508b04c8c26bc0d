"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the calendar API.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from shared.models.models import (
    ApprovalStatus,
    AuditAction,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    PricingTier,
)

PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"
Money = Decimal


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


def _strip(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ── Auth ──────────────────────────────────────────────────────

class LoginRequest(BaseSchema):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    username: str
    expires_in: int  # seconds
    expires_at: datetime


class AdminMeResponse(BaseSchema):
    username: str
    role: str = "admin"
    expires_at: datetime


# ── Booking requests ──────────────────────────────────────────

class SponsorshipRequest(BaseSchema):
    """Public submission for one calendar date."""
    sponsor_name: str = Field(..., min_length=2, max_length=100)
    sponsor_email: EmailStr
    sponsor_phone: str = Field(..., min_length=7, max_length=20, pattern=PHONE_PATTERN)
    sponsor_organization: str = Field(..., min_length=2, max_length=100)
    vendor_name: Optional[str] = Field(None, max_length=100)
    vendor_contact_name: Optional[str] = Field(None, max_length=100)
    vendor_phone: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)
    expected_guests: Optional[int] = Field(None, ge=1, le=500)
    special_notes: Optional[str] = Field(None, max_length=500)
    payment_method: Optional[PaymentMethod] = None

    @field_validator(
        "sponsor_name",
        "sponsor_organization",
        "vendor_name",
        "vendor_contact_name",
        "special_notes",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("sponsor_email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class AdminBookingUpdate(BaseSchema):
    """Every field optional; only the ones sent are applied."""
    sponsor_name: Optional[str] = Field(None, min_length=2, max_length=100)
    sponsor_email: Optional[EmailStr] = None
    sponsor_phone: Optional[str] = Field(None, max_length=20, pattern=PHONE_PATTERN)
    sponsor_organization: Optional[str] = Field(None, max_length=100)
    vendor_name: Optional[str] = Field(None, max_length=100)
    vendor_contact_name: Optional[str] = Field(None, max_length=100)
    vendor_phone: Optional[str] = Field(None, max_length=20)
    expected_guests: Optional[int] = Field(None, ge=1, le=500)
    special_notes: Optional[str] = Field(None, max_length=500)
    food_amount: Optional[Money] = Field(None, ge=0, max_digits=10, decimal_places=2)
    cleaning_amount: Optional[Money] = Field(None, ge=0, max_digits=10, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    check_number: Optional[str] = Field(None, max_length=50)
    external_reference: Optional[str] = Field(None, max_length=100)
    amount_paid: Optional[Money] = Field(None, ge=0, max_digits=10, decimal_places=2)
    payment_status: Optional[PaymentStatus] = None
    admin_comment: Optional[str] = Field(None, max_length=500)


class PaymentStatusUpdate(BaseSchema):
    payment_status: PaymentStatus
    amount_paid: Optional[Money] = Field(None, ge=0, max_digits=10, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    check_number: Optional[str] = Field(None, max_length=50)
    external_reference: Optional[str] = Field(None, max_length=100)


class RejectRequest(BaseSchema):
    rejection_reason: Optional[str] = Field(None, max_length=500)

    @field_validator("rejection_reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return _strip(v)


class BlockRequest(BaseSchema):
    blocked: bool


# ── Booking responses ─────────────────────────────────────────

class SpecialNightInfo(BaseSchema):
    name: str
    description: str


class DatePublicResponse(BaseSchema):
    """What anyone may see about a date."""
    id: uuid.UUID
    date: date
    religious_date: str
    religious_day: Optional[int]
    weekday: str
    sponsor_name: Optional[str]
    sponsor_organization: Optional[str]
    vendor_name: Optional[str]
    expected_guests: Optional[int]
    booking_status: BookingStatus
    approval_status: Optional[ApprovalStatus]
    payment_status: PaymentStatus
    pricing_tier: Optional[PricingTier]
    food_amount: Money
    cleaning_amount: Money
    total_amount: Money
    is_special_night: bool = False
    special_night_info: Optional[SpecialNightInfo] = None
    is_last_ten_nights: bool = False
    pricing_description: Optional[str] = None


class DateAdminResponse(DatePublicResponse):
    """Full record, including contact, payment and review fields."""
    sponsor_email: Optional[str]
    sponsor_phone: Optional[str]
    vendor_contact_name: Optional[str]
    vendor_phone: Optional[str]
    special_notes: Optional[str]
    payment_method: Optional[PaymentMethod]
    check_number: Optional[str]
    external_reference: Optional[str]
    amount_paid: Money
    balance: Money
    payment_date: Optional[datetime]
    admin_comment: Optional[str]
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    created_at: datetime
    updated_at: datetime


class SubmitResponse(BaseSchema):
    message: str
    id: uuid.UUID
    date: date
    religious_date: str
    sponsor_name: Optional[str]
    booking_status: BookingStatus
    approval_status: Optional[ApprovalStatus]
    total_amount: Money
    pricing_description: Optional[str]
    zelle_email: str


class PaymentUpdateResponse(BaseSchema):
    id: uuid.UUID
    date: date
    payment_status: PaymentStatus
    amount_paid: Money
    balance: Money
    payment_date: Optional[datetime]


class DateStatusResponse(BaseSchema):
    message: str
    id: uuid.UUID
    date: date
    booking_status: BookingStatus


class PublicListResponse(BaseSchema):
    items: List[DatePublicResponse]
    total: int


class AdminListResponse(BaseSchema):
    items: List[DateAdminResponse]
    total: int


# ── Calendar & pricing ────────────────────────────────────────

class TierPricing(BaseSchema):
    food: Money
    cleaning: Money
    total: Money
    description: str


class GuestCapacity(BaseSchema):
    weekday: int
    weekend: int


class PricingResponse(BaseSchema):
    pricing: Dict[str, TierPricing]
    guest_capacity: GuestCapacity
    zelle_email: str


class CalendarResponse(BaseSchema):
    items: List[DatePublicResponse]
    total: int
    year: int
    religious_year: int
    zelle_email: str
    pricing: Dict[str, TierPricing]


class StatisticsResponse(BaseSchema):
    total_dates: int
    available_dates: int
    booked_dates: int
    pending_dates: int
    blocked_dates: int
    org_sponsored_dates: int
    holiday_dates: int
    payments_completed: int
    payments_partial: int
    payments_pending: int
    total_expected: Money
    total_collected: Money
    total_outstanding: Money


# ── Audit & export ────────────────────────────────────────────

class AuditEntryResponse(BaseSchema):
    id: int
    date_record_id: uuid.UUID
    action: AuditAction
    old_values: Optional[Dict[str, Any]]
    new_values: Optional[Dict[str, Any]]
    performed_by: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime


class ExportRow(BaseSchema):
    date: date
    religious_date: str
    religious_day: Optional[int]
    weekday: str
    sponsor_name: Optional[str]
    sponsor_phone: Optional[str]
    sponsor_email: Optional[str]
    sponsor_organization: Optional[str]
    food_amount: Money
    cleaning_amount: Money
    total_amount: Money
    payment_status: PaymentStatus
    amount_paid: Money
    balance: Money
    vendor_name: Optional[str]
    vendor_contact_name: Optional[str]
    vendor_phone: Optional[str]
    payment_method: Optional[PaymentMethod]
    check_number: Optional[str]
    external_reference: Optional[str]
    special_notes: Optional[str]
    admin_comment: Optional[str]
    booking_status: BookingStatus
    approval_status: Optional[ApprovalStatus]


class ExportResponse(BaseSchema):
    items: List[ExportRow]
    total: int
    exported_at: datetime
    exported_by: str


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True


class ErrorResponse(BaseSchema):
    detail: str
    code: Optional[str] = None
    request_id: Optional[str] = None
