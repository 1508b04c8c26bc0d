"""
services/admin/router.py
Admin-only endpoints: approval queue, booking lifecycle actions,
date blocking, per-date audit log and exports.

Every mutation goes through the BookingLifecycleEngine, which appends
the audit entry in the same transaction as the state change.
"""

import csv
import io
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from services.auth.service import AdminIdentity
from services.booking.engine import BookingLifecycleEngine
from services.calendar.store import CalendarStore
from shared.dependencies import audit_context, get_calendar_store, get_lifecycle_engine
from shared.middleware.auth import require_admin
from shared.schemas.schemas import (
    AdminBookingUpdate,
    AdminListResponse,
    AuditEntryResponse,
    BlockRequest,
    DateAdminResponse,
    DateStatusResponse,
    ExportResponse,
    PaymentStatusUpdate,
    PaymentUpdateResponse,
    RejectRequest,
)

router = APIRouter(prefix="/admin", tags=["Admin"])

CSV_HEADERS = [
    "Calendar Date",
    "Ramadan Date",
    "Day of Week",
    "Sponsor Names",
    "Contact Number",
    "Contact Email",
    "Organization",
    "Food Amount",
    "Cleaning Amount",
    "Total Cost",
    "Paid (Y/N/P)",
    "Amount Paid",
    "Balance",
    "Food Vendor Name",
    "Food Vendor Contact Name",
    "Food Vendor Number",
    "Method of Payment",
    "Check Number",
    "Reference",
    "Comment",
    "Booking Status",
    "Approval Status",
]

PAID_FLAG = {"completed": "Y", "partial": "P"}
PAYMENT_METHOD_LABEL = {"check": "Ch", "cash": "Cash", "zelle": "Zelle"}


# ── Helpers ───────────────────────────────────────────────────

def _value(field) -> str:
    """Enum members export as their value, missing values as an empty cell."""
    if field is None:
        return ""
    return str(getattr(field, "value", field))


def _csv_row(row: dict) -> list[str]:
    return [
        row["date"].isoformat(),
        row["religious_date"],
        row["weekday"],
        row["sponsor_name"] or "",
        row["sponsor_phone"] or "",
        row["sponsor_email"] or "",
        row["sponsor_organization"] or "",
        _value(row["food_amount"]),
        _value(row["cleaning_amount"]),
        _value(row["total_amount"]),
        PAID_FLAG.get(_value(row["payment_status"]), "N"),
        _value(row["amount_paid"]),
        _value(row["balance"]),
        row["vendor_name"] or "",
        row["vendor_contact_name"] or "",
        row["vendor_phone"] or "",
        PAYMENT_METHOD_LABEL.get(_value(row["payment_method"]), ""),
        row["check_number"] or "",
        row["external_reference"] or "",
        row["admin_comment"] or row["special_notes"] or "",
        _value(row["booking_status"]),
        _value(row["approval_status"]),
    ]


# ── Approval Queue ────────────────────────────────────────────

@router.get("/pending", response_model=AdminListResponse)
async def get_pending_approvals(
    admin: AdminIdentity = Depends(require_admin),
    store: CalendarStore = Depends(get_calendar_store),
):
    """Dates awaiting review, in calendar order."""
    records = await store.list_pending_approvals()
    return AdminListResponse(items=[store.enrich(r) for r in records], total=len(records))


@router.post("/bookings/{booking_id}/approve", response_model=DateAdminResponse)
async def approve_booking(
    booking_id: UUID,
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    record = await engine.approve(booking_id, audit_context(request, admin))
    return engine.store.enrich(record)


@router.post("/bookings/{booking_id}/reject", response_model=DateAdminResponse)
async def reject_booking(
    booking_id: UUID,
    request: Request,
    data: RejectRequest = RejectRequest(),
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """
    Reject a pending or booked sponsorship.
    The sponsor's details are cleared from the date and kept only in the audit log;
    the date becomes available again.
    """
    record = await engine.reject(
        booking_id, audit_context(request, admin), reason=data.rejection_reason
    )
    return engine.store.enrich(record)


# ── Booking Maintenance ───────────────────────────────────────

@router.put("/bookings/{booking_id}", response_model=DateAdminResponse)
async def update_booking(
    booking_id: UUID,
    data: AdminBookingUpdate,
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Apply only the fields sent; total and balance are recomputed server-side."""
    record = await engine.admin_update(
        booking_id, data.model_dump(exclude_unset=True), audit_context(request, admin)
    )
    return engine.store.enrich(record)


@router.patch("/bookings/{booking_id}/payment", response_model=PaymentUpdateResponse)
async def update_payment(
    booking_id: UUID,
    data: PaymentStatusUpdate,
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    record = await engine.update_payment_status(
        booking_id, data.model_dump(exclude_none=True), audit_context(request, admin)
    )
    return record


@router.delete("/bookings/{booking_id}", response_model=DateStatusResponse)
async def cancel_booking(
    booking_id: UUID,
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Cancel and reset the date to available."""
    record = await engine.cancel(booking_id, audit_context(request, admin))
    return DateStatusResponse(
        message="Booking cancelled and date is now available",
        id=record.id,
        date=record.date,
        booking_status=record.booking_status,
    )


@router.patch("/dates/{date_id}/block", response_model=DateStatusResponse)
async def set_block_status(
    date_id: UUID,
    data: BlockRequest,
    request: Request,
    admin: AdminIdentity = Depends(require_admin),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    record = await engine.set_block_status(date_id, data.blocked, audit_context(request, admin))
    return DateStatusResponse(
        message=f"Date {'blocked' if data.blocked else 'unblocked'} successfully",
        id=record.id,
        date=record.date,
        booking_status=record.booking_status,
    )


# ── Audit Log ─────────────────────────────────────────────────

@router.get("/bookings/{booking_id}/audit", response_model=list[AuditEntryResponse])
async def get_audit_log(
    booking_id: UUID,
    admin: AdminIdentity = Depends(require_admin),
    store: CalendarStore = Depends(get_calendar_store),
):
    """Append-only history for one date, newest first."""
    return await store.get_audit_log(booking_id)


# ── Exports ───────────────────────────────────────────────────

@router.get("/export/json", response_model=ExportResponse)
async def export_json(
    admin: AdminIdentity = Depends(require_admin),
    store: CalendarStore = Depends(get_calendar_store),
):
    rows = await store.get_all_bookings_for_export()
    return ExportResponse(
        items=rows,
        total=len(rows),
        exported_at=datetime.now(timezone.utc),
        exported_by=admin.username,
    )


@router.get("/export/csv")
async def export_csv(
    admin: AdminIdentity = Depends(require_admin),
    store: CalendarStore = Depends(get_calendar_store),
):
    """Flat spreadsheet of the whole season; the paid column reads Y, N or P."""
    rows = await store.get_all_bookings_for_export()

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(_csv_row(row))
    buffer.seek(0)

    filename = f"iftar-bookings-{datetime.now(timezone.utc).date().isoformat()}.csv"
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
