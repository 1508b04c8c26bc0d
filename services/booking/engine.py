"""
services/booking/engine.py
BookingLifecycleEngine: one read -> transition -> CAS write + audit -> commit
round trip per operation.

The state machine itself lives in lifecycle.py; this module only loads the
current record, hands its snapshot to apply_transition and persists the
result through the CalendarStore inside a single transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from config.calendar import CalendarConfig
from services.booking.lifecycle import apply_transition
from services.calendar.store import CalendarStore, snapshot
from shared.exceptions import ConflictError, NotFoundError
from shared.models.models import AuditAction, DateRecord, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditContext:
    """Who performed an operation and from where."""

    actor: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


PUBLIC = AuditContext()


class BookingLifecycleEngine:
    def __init__(self, db: AsyncSession, config: CalendarConfig):
        self.db = db
        self.config = config
        self.store = CalendarStore(db, config)

    async def _run(
        self,
        record: Optional[DateRecord],
        action: AuditAction,
        payload: Optional[Mapping[str, Any]],
        context: AuditContext,
    ) -> DateRecord:
        if record is None:
            raise NotFoundError("Booking not found")

        record_id, day = record.id, record.date
        try:
            transition = apply_transition(
                snapshot(record),
                action,
                payload,
                actor=context.actor,
                now=utcnow(),
                config=self.config,
            )
            if transition is None:
                return record

            await self.store.write_transition(
                record_id,
                transition,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
            )
            await self.db.commit()
        except ConflictError as exc:
            await self.db.rollback()
            logger.warning(f"{action.value} refused on {day}: {exc.message}")
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"{action.value} on {day} by {context.actor or 'public'}")
        return await self.db.get(DateRecord, record_id, populate_existing=True)

    # ── Public ────────────────────────────────────────────────

    async def submit(
        self,
        day: date,
        request: Mapping[str, Any],
        context: AuditContext = PUBLIC,
    ) -> DateRecord:
        """Request sponsorship of an available date."""
        record = await self.store.get_by_date(day)
        if record is None:
            raise NotFoundError(f"Date {day.isoformat()} is not on the calendar")
        return await self._run(record, AuditAction.BOOKING_CREATED, request, context)

    # ── Admin ─────────────────────────────────────────────────

    async def approve(self, record_id: UUID, context: AuditContext) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        return await self._run(record, AuditAction.BOOKING_APPROVED, None, context)

    async def reject(
        self,
        record_id: UUID,
        context: AuditContext,
        reason: Optional[str] = None,
    ) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        return await self._run(
            record, AuditAction.BOOKING_REJECTED, {"rejection_reason": reason}, context
        )

    async def admin_update(
        self,
        record_id: UUID,
        fields: Mapping[str, Any],
        context: AuditContext,
    ) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        return await self._run(record, AuditAction.BOOKING_UPDATED_BY_ADMIN, fields, context)

    async def update_payment_status(
        self,
        record_id: UUID,
        payment: Mapping[str, Any],
        context: AuditContext,
    ) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        return await self._run(record, AuditAction.PAYMENT_STATUS_UPDATED, payment, context)

    async def cancel(self, record_id: UUID, context: AuditContext) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        return await self._run(record, AuditAction.BOOKING_CANCELLED, None, context)

    async def set_block_status(
        self,
        record_id: UUID,
        blocked: bool,
        context: AuditContext,
    ) -> DateRecord:
        record = await self.store.get_by_id(record_id)
        action = AuditAction.DATE_BLOCKED if blocked else AuditAction.DATE_UNBLOCKED
        return await self._run(record, action, None, context)
