"""
services/booking/lifecycle.py
The booking state machine as pure functions.

Each transition takes a snapshot of the current DateRecord (a mapping of
column name -> value), validates the precondition and returns a Transition
describing the column changes and the audit entry to append. Nothing here
touches the database; the engine persists a Transition atomically.

    available ──submit──▶ pending_approval ──approve──▶ booked
        ▲                        │                        │
        └────── reject / cancel ─┴────────────────────────┘
    available ◀──block toggle──▶ blocked
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic_core import to_jsonable_python

from config.calendar import CalendarConfig
from services.calendar.pricing import derive_expected_guests, derive_pricing
from shared.exceptions import ConflictError, ValidationFailure
from shared.models.models import (
    ApprovalStatus,
    AuditAction,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)

ZERO = Decimal("0")

SPONSOR_FIELDS = (
    "sponsor_name",
    "sponsor_email",
    "sponsor_phone",
    "sponsor_organization",
)

SUBMIT_FIELDS = SPONSOR_FIELDS + (
    "vendor_name",
    "vendor_contact_name",
    "vendor_phone",
    "expected_guests",
    "special_notes",
    "payment_method",
)

# The only fields an admin may set directly. Derived fields (total_amount,
# balance) and state fields are never accepted from callers.
ADMIN_UPDATABLE_FIELDS = frozenset(SUBMIT_FIELDS) | {
    "food_amount",
    "cleaning_amount",
    "check_number",
    "external_reference",
    "amount_paid",
    "payment_status",
    "admin_comment",
}

UNSUBMITTABLE = {
    BookingStatus.BLOCKED: "This date is blocked and cannot be booked",
    BookingStatus.ORG_SPONSORED: "This date is sponsored by the organization and cannot be booked",
    BookingStatus.HOLIDAY: "This date is a holiday and cannot be booked",
    BookingStatus.BOOKED: "This date is already booked or pending approval",
    BookingStatus.PENDING_APPROVAL: "This date is already booked or pending approval",
}


@dataclass(frozen=True)
class Transition:
    """Column changes for one DateRecord plus the audit entry describing them."""

    action: AuditAction
    expected_status: BookingStatus
    changes: dict[str, Any]
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    actor: Optional[str] = None


def jsonable(values: Optional[Mapping[str, Any]]) -> Optional[dict]:
    """Snapshot values in a JSON-safe form for the audit log."""
    if values is None:
        return None
    return to_jsonable_python(dict(values))


def _status(current: Mapping[str, Any]) -> BookingStatus:
    return BookingStatus(current["booking_status"])


def _cleared_booking() -> dict[str, Any]:
    """Sponsor, vendor and payment fields reset to their empty defaults."""
    return {
        "sponsor_name": None,
        "sponsor_email": None,
        "sponsor_phone": None,
        "sponsor_organization": None,
        "vendor_name": None,
        "vendor_contact_name": None,
        "vendor_phone": None,
        "special_notes": None,
        "payment_method": None,
        "check_number": None,
        "external_reference": None,
        "amount_paid": ZERO,
        "balance": ZERO,
        "payment_status": PaymentStatus.PENDING,
        "payment_date": None,
        "booking_status": BookingStatus.AVAILABLE,
    }


# ── Transitions ───────────────────────────────────────────────

def submit(
    current: Mapping[str, Any],
    request: Mapping[str, Any],
    *,
    config: CalendarConfig,
    now: datetime,
    actor: Optional[str] = None,
) -> Transition:
    """Public sponsorship request for an available date."""
    status = _status(current)
    if status in UNSUBMITTABLE:
        raise ConflictError(UNSUBMITTABLE[status])

    day: date = current["date"]
    pricing = derive_pricing(day, current["weekday"], config)

    changes: dict[str, Any] = {name: request.get(name) for name in SUBMIT_FIELDS}
    if changes["payment_method"] is not None:
        changes["payment_method"] = _payment_method(changes["payment_method"])
    changes["expected_guests"] = request.get("expected_guests") or derive_expected_guests(
        current["weekday"], config
    )
    changes.update(
        food_amount=pricing.food_amount,
        cleaning_amount=pricing.cleaning_amount,
        total_amount=pricing.total,
        pricing_tier=pricing.tier,
        amount_paid=ZERO,
        balance=pricing.total,
        booking_status=BookingStatus.PENDING_APPROVAL,
        approval_status=ApprovalStatus.PENDING,
        approved_by=None,
        approved_at=None,
        rejection_reason=None,
        updated_at=now,
    )

    return Transition(
        action=AuditAction.BOOKING_CREATED,
        expected_status=status,
        changes=changes,
        old_values=None,
        new_values=jsonable({name: request.get(name) for name in SUBMIT_FIELDS if request.get(name) is not None}),
        actor=actor,
    )


def approve(current: Mapping[str, Any], *, actor: str, now: datetime) -> Transition:
    status = _status(current)
    if status != BookingStatus.PENDING_APPROVAL or current.get("approval_status") != ApprovalStatus.PENDING:
        raise ConflictError("Booking is not pending approval")

    changes = {
        "booking_status": BookingStatus.BOOKED,
        "approval_status": ApprovalStatus.APPROVED,
        "approved_by": actor,
        "approved_at": now,
        "updated_at": now,
    }
    return Transition(
        action=AuditAction.BOOKING_APPROVED,
        expected_status=status,
        changes=changes,
        old_values=jsonable(current),
        new_values={"approved_by": actor},
        actor=actor,
    )


def reject(
    current: Mapping[str, Any],
    *,
    actor: str,
    now: datetime,
    reason: Optional[str] = None,
) -> Transition:
    """Clear the sponsorship and reopen the date, keeping the rejection on record."""
    status = _status(current)
    if status not in (BookingStatus.PENDING_APPROVAL, BookingStatus.BOOKED):
        raise ConflictError(f"Cannot reject a date in '{status.value}' state")

    reason = reason or "Booking rejected by admin"
    changes = _cleared_booking()
    changes.update(
        approval_status=ApprovalStatus.REJECTED,
        rejection_reason=reason,
        updated_at=now,
    )
    # Contact details survive only in the audit entry once the record is cleared
    return Transition(
        action=AuditAction.BOOKING_REJECTED,
        expected_status=status,
        changes=changes,
        old_values=jsonable(current),
        new_values={
            "rejected_by": actor,
            "rejection_reason": reason,
            "sponsor_name": current.get("sponsor_name"),
            "sponsor_email": current.get("sponsor_email"),
        },
        actor=actor,
    )


def admin_update(
    current: Mapping[str, Any],
    fields: Mapping[str, Any],
    *,
    actor: str,
    now: datetime,
) -> Optional[Transition]:
    """
    Apply allow-listed fields. Returns None when nothing recognized was supplied.
    total_amount follows food + cleaning; balance follows total − paid.
    """
    changes: dict[str, Any] = {
        name: value for name, value in fields.items() if name in ADMIN_UPDATABLE_FIELDS
    }
    if not changes:
        return None

    for name in ("food_amount", "cleaning_amount", "amount_paid"):
        if name in changes and changes[name] is None:
            raise ValidationFailure(f"{name} cannot be cleared")

    if changes.get("payment_method") is not None:
        changes["payment_method"] = _payment_method(changes["payment_method"])
    if "payment_status" in changes:
        if changes["payment_status"] is None:
            raise ValidationFailure("payment_status cannot be cleared")
        changes["payment_status"] = _payment_status(changes["payment_status"])

    total = Decimal(current["total_amount"])
    if "food_amount" in changes or "cleaning_amount" in changes:
        food = Decimal(changes.get("food_amount", current["food_amount"]))
        cleaning = Decimal(changes.get("cleaning_amount", current["cleaning_amount"]))
        if food < 0 or cleaning < 0:
            raise ValidationFailure("Amounts cannot be negative")
        total = food + cleaning
        changes["food_amount"] = food
        changes["cleaning_amount"] = cleaning
        changes["total_amount"] = total

    if "amount_paid" in changes:
        paid = Decimal(changes["amount_paid"])
        if paid < 0:
            raise ValidationFailure("Amount paid cannot be negative")
        changes["amount_paid"] = paid
        changes["balance"] = total - paid
    elif "total_amount" in changes:
        changes["balance"] = total - Decimal(current["amount_paid"])

    applied = dict(changes)
    changes["updated_at"] = now
    return Transition(
        action=AuditAction.BOOKING_UPDATED_BY_ADMIN,
        expected_status=_status(current),
        changes=changes,
        old_values=jsonable({name: current.get(name) for name in applied}),
        new_values=jsonable(applied),
        actor=actor,
    )


def _payment_status(value: Any) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValidationFailure("Invalid payment status")


def _payment_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationFailure("Invalid payment method")


def update_payment_status(
    current: Mapping[str, Any],
    payment: Mapping[str, Any],
    *,
    actor: str,
    now: datetime,
) -> Transition:
    target = _payment_status(payment.get("payment_status"))
    changes: dict[str, Any] = {"payment_status": target}

    if payment.get("amount_paid") is not None:
        paid = Decimal(payment["amount_paid"])
        if paid < 0:
            raise ValidationFailure("Amount paid cannot be negative")
        changes["amount_paid"] = paid
        changes["balance"] = Decimal(current["total_amount"]) - paid

    if payment.get("payment_method"):
        changes["payment_method"] = _payment_method(payment["payment_method"])
    if payment.get("check_number"):
        changes["check_number"] = payment["check_number"]
    if payment.get("external_reference"):
        changes["external_reference"] = payment["external_reference"]

    if target == PaymentStatus.COMPLETED:
        changes["payment_date"] = now

    applied = dict(changes)
    changes["updated_at"] = now
    return Transition(
        action=AuditAction.PAYMENT_STATUS_UPDATED,
        expected_status=_status(current),
        changes=changes,
        old_values=jsonable({"payment_status": current.get("payment_status")}),
        new_values=jsonable(applied),
        actor=actor,
    )


def cancel(current: Mapping[str, Any], *, actor: str, now: datetime) -> Transition:
    """Reset the date to available and forget the whole approval history on the record."""
    status = _status(current)
    if status == BookingStatus.ORG_SPONSORED:
        raise ConflictError("Cannot modify organization sponsored date")

    changes = _cleared_booking()
    changes.update(
        approval_status=None,
        approved_by=None,
        approved_at=None,
        rejection_reason=None,
        admin_comment=None,
        updated_at=now,
    )
    return Transition(
        action=AuditAction.BOOKING_CANCELLED,
        expected_status=status,
        changes=changes,
        old_values=jsonable(current),
        new_values=None,
        actor=actor,
    )


def set_block_status(
    current: Mapping[str, Any],
    blocked: bool,
    *,
    actor: str,
    now: datetime,
) -> Transition:
    status = _status(current)
    if status == BookingStatus.ORG_SPONSORED:
        raise ConflictError("Cannot modify organization sponsored date")
    if blocked and status in (BookingStatus.BOOKED, BookingStatus.PENDING_APPROVAL):
        raise ConflictError("Cannot block a date with an active sponsorship")
    if not blocked and status in (BookingStatus.BOOKED, BookingStatus.PENDING_APPROVAL):
        raise ConflictError("Cannot unblock a date with an active sponsorship")

    new_status = BookingStatus.BLOCKED if blocked else BookingStatus.AVAILABLE
    return Transition(
        action=AuditAction.DATE_BLOCKED if blocked else AuditAction.DATE_UNBLOCKED,
        expected_status=status,
        changes={"booking_status": new_status, "updated_at": now},
        old_values={"booking_status": status.value},
        new_values={"booking_status": new_status.value},
        actor=actor,
    )


# ── Dispatch ──────────────────────────────────────────────────

def apply_transition(
    current: Mapping[str, Any],
    action: AuditAction,
    payload: Optional[Mapping[str, Any]] = None,
    *,
    actor: Optional[str],
    now: datetime,
    config: CalendarConfig,
) -> Optional[Transition]:
    """
    Compute the transition `action` on the record snapshot `current`.

    Raises ConflictError when the record's state forbids the action and
    ValidationFailure for out-of-range input. Returns None only for an
    admin update that names no recognized field.
    """
    action = AuditAction(action)
    payload = payload or {}

    if action == AuditAction.BOOKING_CREATED:
        return submit(current, payload, config=config, now=now, actor=actor)
    if action == AuditAction.BOOKING_APPROVED:
        return approve(current, actor=actor, now=now)
    if action == AuditAction.BOOKING_REJECTED:
        return reject(current, actor=actor, now=now, reason=payload.get("rejection_reason"))
    if action == AuditAction.BOOKING_UPDATED_BY_ADMIN:
        return admin_update(current, payload, actor=actor, now=now)
    if action == AuditAction.PAYMENT_STATUS_UPDATED:
        return update_payment_status(current, payload, actor=actor, now=now)
    if action == AuditAction.BOOKING_CANCELLED:
        return cancel(current, actor=actor, now=now)
    return set_block_status(
        current, action == AuditAction.DATE_BLOCKED, actor=actor, now=now
    )


def project(current: Mapping[str, Any], transition: Optional[Transition]) -> dict[str, Any]:
    """The record as it looks after `transition` is applied."""
    after = dict(current)
    if transition is not None:
        after.update(transition.changes)
    return after
