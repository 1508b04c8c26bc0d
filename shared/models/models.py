"""
shared/models/models.py
All SQLAlchemy ORM models for the Iftar Sponsorship Calendar.
One DateRecord per calendar day, an append-only AuditEntry log,
and AdminSession credential bindings.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[PyEnum]) -> Enum:
    """Store enum values (not member names) as VARCHAR + CHECK on every backend."""
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
        length=30,
    )


JSONType = JSON().with_variant(JSONB(), "postgresql")


# ── Enumerations ──────────────────────────────────────────────

class BookingStatus(str, PyEnum):
    AVAILABLE = "available"
    PENDING_APPROVAL = "pending_approval"
    BOOKED = "booked"
    BLOCKED = "blocked"
    ORG_SPONSORED = "org_sponsored"
    HOLIDAY = "holiday"


class ApprovalStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PricingTier(str, PyEnum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    LAST_TEN_NIGHTS = "last10nights"


class PaymentMethod(str, PyEnum):
    CHECK = "check"
    CASH = "cash"
    ZELLE = "zelle"


class AuditAction(str, PyEnum):
    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_APPROVED = "BOOKING_APPROVED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    BOOKING_UPDATED_BY_ADMIN = "BOOKING_UPDATED_BY_ADMIN"
    PAYMENT_STATUS_UPDATED = "PAYMENT_STATUS_UPDATED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    DATE_BLOCKED = "DATE_BLOCKED"
    DATE_UNBLOCKED = "DATE_UNBLOCKED"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ── Models ────────────────────────────────────────────────────

class DateRecord(TimestampMixin, Base):
    """
    One calendar day's bookable slot. Seeded once, never deleted.
    Status transitions: available → pending_approval → booked,
    back to available on reject/cancel; blocked/available via block toggle.
    """
    __tablename__ = "date_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)
    religious_date: Mapped[str] = mapped_column(String(60), nullable=False)
    religious_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    weekday: Mapped[str] = mapped_column(String(10), nullable=False)

    # Status
    booking_status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus), nullable=False, default=BookingStatus.AVAILABLE
    )
    approval_status: Mapped[Optional[ApprovalStatus]] = mapped_column(
        _enum(ApprovalStatus), nullable=True
    )
    approved_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Sponsor
    sponsor_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sponsor_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sponsor_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    sponsor_organization: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Food vendor
    vendor_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vendor_contact_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    vendor_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    expected_guests: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    special_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    food_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    cleaning_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    pricing_tier: Mapped[Optional[PricingTier]] = mapped_column(_enum(PricingTier), nullable=True)

    # Payment
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(_enum(PaymentMethod), nullable=True)
    check_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    external_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    admin_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    audit_entries: Mapped[List["AuditEntry"]] = relationship(
        back_populates="date_record", order_by="AuditEntry.id"
    )

    __table_args__ = (
        Index("ix_date_records_booking_status", "booking_status"),
        Index("ix_date_records_payment_status", "payment_status"),
        Index("ix_date_records_approval_status", "approval_status"),
    )

    def __repr__(self) -> str:
        return f"<DateRecord {self.date} ({self.booking_status})>"


class AuditEntry(Base):
    """Immutable log of every state-changing action on a DateRecord."""
    __tablename__ = "audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date_record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("date_records.id"), nullable=False
    )
    action: Mapped[AuditAction] = mapped_column(_enum(AuditAction), nullable=False)
    old_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    date_record: Mapped["DateRecord"] = relationship(back_populates="audit_entries")

    __table_args__ = (
        Index("ix_audit_entries_date_record_id", "date_record_id"),
        Index("ix_audit_entries_created_at", "created_at"),
    )


class AdminSession(Base):
    """Time-bounded admin credential. Only the SHA-256 of the bearer token is stored."""
    __tablename__ = "admin_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (Index("ix_admin_sessions_expires_at", "expires_at"),)
