"""
services/calendar/store.py
Durable access to the calendar: DateRecord reads, the idempotent seed,
statistics, exports and the append-only audit log.

The store never decides whether a transition is allowed; it only persists
Transitions computed by services/booking/lifecycle.py, guarded by a
compare-and-swap on booking_status.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from config.calendar import CalendarConfig
from services.booking.lifecycle import Transition
from services.calendar.dates import DateDefinition
from services.calendar.pricing import (
    derive_expected_guests,
    derive_pricing,
    is_last_ten_nights,
    pricing_description,
)
from shared.exceptions import ConflictError, NotFoundError
from shared.models.models import (
    ApprovalStatus,
    AuditAction,
    AuditEntry,
    BookingStatus,
    DateRecord,
    PaymentStatus,
    utcnow,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (BookingStatus.BOOKED, BookingStatus.PENDING_APPROVAL)

EXPORT_COLUMNS = (
    "date",
    "religious_date",
    "religious_day",
    "weekday",
    "sponsor_name",
    "sponsor_phone",
    "sponsor_email",
    "sponsor_organization",
    "food_amount",
    "cleaning_amount",
    "total_amount",
    "payment_status",
    "amount_paid",
    "balance",
    "vendor_name",
    "vendor_contact_name",
    "vendor_phone",
    "payment_method",
    "check_number",
    "external_reference",
    "special_notes",
    "admin_comment",
    "booking_status",
    "approval_status",
)


def snapshot(record: DateRecord) -> dict[str, Any]:
    """Column name -> value for one record."""
    return {col.key: getattr(record, col.key) for col in DateRecord.__table__.columns}


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class CalendarStore:
    def __init__(self, db: AsyncSession, config: CalendarConfig):
        self.db = db
        self.config = config

    # ── Enrichment ────────────────────────────────────────────

    def enrich(self, record: DateRecord) -> dict[str, Any]:
        """Record snapshot plus the presentation-only special night and pricing labels."""
        data = snapshot(record)
        night = self.config.special_night(record.date)
        data.update(
            is_special_night=night is not None,
            special_night_info=(
                {"name": night.name, "description": night.description} if night else None
            ),
            is_last_ten_nights=is_last_ten_nights(record.date, self.config),
            pricing_description=pricing_description(record.pricing_tier, self.config),
        )
        return data

    # ── Reads ─────────────────────────────────────────────────

    async def list_dates(self) -> Sequence[DateRecord]:
        result = await self.db.execute(
            select(DateRecord)
            .order_by(DateRecord.date.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def get_by_id(self, record_id: UUID) -> Optional[DateRecord]:
        result = await self.db.execute(
            select(DateRecord)
            .where(DateRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_date(self, day: date) -> Optional[DateRecord]:
        result = await self.db.execute(
            select(DateRecord)
            .where(DateRecord.date == day)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require(self, record_id: UUID) -> DateRecord:
        record = await self.get_by_id(record_id)
        if record is None:
            raise NotFoundError("Booking not found")
        return record

    async def search(self, query: str) -> Sequence[DateRecord]:
        """
        Case-insensitive substring match over sponsor contact and vendor name.
        `%` and `_` in the query match literally.
        """
        result = await self.db.execute(
            select(DateRecord)
            .where(
                or_(
                    DateRecord.sponsor_name.icontains(query, autoescape=True),
                    DateRecord.sponsor_email.icontains(query, autoescape=True),
                    DateRecord.sponsor_phone.icontains(query, autoescape=True),
                    DateRecord.vendor_name.icontains(query, autoescape=True),
                )
            )
            .order_by(DateRecord.date.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_pending_approvals(self) -> Sequence[DateRecord]:
        result = await self.db.execute(
            select(DateRecord)
            .where(DateRecord.approval_status == ApprovalStatus.PENDING)
            .order_by(DateRecord.date.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_sponsored(self) -> Sequence[DateRecord]:
        """Booked and pending-approval dates."""
        result = await self.db.execute(
            select(DateRecord)
            .where(DateRecord.booking_status.in_(ACTIVE_STATUSES))
            .order_by(DateRecord.date.asc())
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def statistics(self) -> dict[str, Any]:
        """
        Counts per booking and payment status, plus money expected and
        collected over the booked + pending_approval subset only.
        """
        active = DateRecord.booking_status.in_(ACTIVE_STATUSES)

        def _count(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = (
            await self.db.execute(
                select(
                    func.count(DateRecord.id).label("total_dates"),
                    _count(DateRecord.booking_status == BookingStatus.AVAILABLE).label("available_dates"),
                    _count(DateRecord.booking_status == BookingStatus.BOOKED).label("booked_dates"),
                    _count(DateRecord.booking_status == BookingStatus.PENDING_APPROVAL).label("pending_dates"),
                    _count(DateRecord.booking_status == BookingStatus.BLOCKED).label("blocked_dates"),
                    _count(DateRecord.booking_status == BookingStatus.ORG_SPONSORED).label("org_sponsored_dates"),
                    _count(DateRecord.booking_status == BookingStatus.HOLIDAY).label("holiday_dates"),
                    _count(DateRecord.payment_status == PaymentStatus.COMPLETED).label("payments_completed"),
                    _count(DateRecord.payment_status == PaymentStatus.PARTIAL).label("payments_partial"),
                    _count(
                        (DateRecord.payment_status == PaymentStatus.PENDING)
                        & (DateRecord.booking_status == BookingStatus.BOOKED)
                    ).label("payments_pending"),
                    func.sum(case((active, DateRecord.total_amount), else_=0)).label("total_expected"),
                    func.sum(case((active, DateRecord.amount_paid), else_=0)).label("total_collected"),
                )
            )
        ).one()

        stats = dict(row._mapping)
        stats["total_expected"] = _money(stats["total_expected"])
        stats["total_collected"] = _money(stats["total_collected"])
        stats["total_outstanding"] = stats["total_expected"] - stats["total_collected"]
        return stats

    async def get_all_bookings_for_export(self) -> list[dict[str, Any]]:
        """Flat rows for the export renderers, ordered by date."""
        columns = [getattr(DateRecord, name) for name in EXPORT_COLUMNS]
        result = await self.db.execute(select(*columns).order_by(DateRecord.date.asc()))
        return [dict(row._mapping) for row in result.all()]

    async def get_audit_log(self, record_id: UUID) -> Sequence[AuditEntry]:
        """Newest first."""
        await self.require(record_id)
        result = await self.db.execute(
            select(AuditEntry)
            .where(AuditEntry.date_record_id == record_id)
            .order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
        )
        return result.scalars().all()

    # ── Seeding ───────────────────────────────────────────────

    def _seed_row(self, definition: DateDefinition) -> dict[str, Any]:
        pricing = derive_pricing(definition.date, definition.weekday, self.config)
        now = utcnow()
        row = {
            "id": uuid4(),
            "date": definition.date,
            "religious_date": definition.religious_date,
            "religious_day": definition.religious_day,
            "weekday": definition.weekday,
            "booking_status": definition.initial_status,
            "approval_status": None,
            "sponsor_name": None,
            "food_amount": pricing.food_amount,
            "cleaning_amount": pricing.cleaning_amount,
            "total_amount": pricing.total,
            "pricing_tier": pricing.tier,
            "expected_guests": derive_expected_guests(definition.weekday, self.config),
            "amount_paid": Decimal("0"),
            "balance": Decimal("0"),
            "payment_status": PaymentStatus.PENDING,
            "created_at": now,
            "updated_at": now,
        }
        if definition.initial_status == BookingStatus.ORG_SPONSORED:
            row["sponsor_name"] = self.config.org_sponsor_label
            row["approval_status"] = ApprovalStatus.APPROVED
        return row

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(DateRecord)
        if dialect == "sqlite":
            return sqlite_insert(DateRecord)
        raise RuntimeError(f"Unsupported database dialect: {dialect}")

    async def initialize_calendar(self, definitions: Iterable[DateDefinition]) -> int:
        """
        Insert every definition whose date is not stored yet. Existing rows
        are never touched, so re-running with the same list is a no-op.
        Returns the number of dates inserted.
        """
        definitions = list(definitions)
        existing = set(
            (await self.db.execute(select(DateRecord.date))).scalars().all()
        )
        rows = [self._seed_row(d) for d in definitions if d.date not in existing]
        if not rows:
            return 0

        # A concurrent seeder may win the race on `date`; its rows stand
        stmt = self._insert().on_conflict_do_nothing(index_elements=["date"])
        await self.db.execute(stmt, rows)
        await self.db.commit()
        logger.info(f"Seeded {len(rows)} calendar dates")
        return len(rows)

    async def refresh_calendar_labels(self, definitions: Iterable[DateDefinition]) -> int:
        """Re-apply religious date and weekday labels; booking data is left alone."""
        by_date = {record.date: record for record in await self.list_dates()}
        refreshed = 0
        for definition in definitions:
            record = by_date.get(definition.date)
            if record is None:
                continue
            if (
                record.religious_date == definition.religious_date
                and record.religious_day == definition.religious_day
                and record.weekday == definition.weekday
            ):
                continue
            record.religious_date = definition.religious_date
            record.religious_day = definition.religious_day
            record.weekday = definition.weekday
            refreshed += 1

        if refreshed:
            await self.db.commit()
            logger.info(f"Refreshed labels on {refreshed} calendar dates")
        return refreshed

    # ── Writes ────────────────────────────────────────────────

    def append_audit(
        self,
        record_id: UUID,
        action: AuditAction,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        performed_by: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditEntry:
        """Stage an audit entry in the current transaction."""
        entry = AuditEntry(
            date_record_id=record_id,
            action=action,
            old_values=old_values,
            new_values=new_values,
            performed_by=performed_by,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        self.db.add(entry)
        return entry

    async def write_transition(
        self,
        record_id: UUID,
        transition: Transition,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Persist a transition and its audit entry in the open transaction.
        The UPDATE only matches while booking_status still equals the status
        the transition was computed from; otherwise ConflictError.
        Caller commits.
        """
        result = await self.db.execute(
            update(DateRecord)
            .where(
                DateRecord.id == record_id,
                DateRecord.booking_status == transition.expected_status,
            )
            .values(**transition.changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("The date was modified by another request; please retry")

        self.append_audit(
            record_id,
            transition.action,
            old_values=transition.old_values,
            new_values=transition.new_values,
            performed_by=transition.actor,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await self.db.flush()
