"""
Admin booking management - status overrides, detail edits, reassignment.
All endpoints require an admin token.
"""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_admin
from longa.api.helpers import (
    assignment_entry,
    booking_summary,
    http_error,
    page_count,
    parse_uuid,
    provider_candidate,
)
from longa.database import get_db
from longa.models.booking import BookingStatus
from longa.models.user import User
from longa.schemas.api_requests import BookingDetailsUpdate, ReassignRequest, StatusActionRequest
from longa.schemas.api_responses import (
    BookingDetailResponse,
    BookingListResponse,
    BookingSummary,
    ProviderCandidate,
    ReassignResponse,
)
from longa.services.assignment import fetch_candidates, list_assignment_history, reassign_booking
from longa.services.booking_lifecycle import (
    apply_admin_action,
    get_booking,
    list_bookings,
    update_booking_details,
)
from longa.services.errors import LongaError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/admin/bookings", tags=["admin"])


@router.get("", response_model=BookingListResponse)
async def list_all(
    status: Optional[str] = Query(default=None),
    provider_id: Optional[str] = Query(default=None),
    client_id: Optional[str] = Query(default=None),
    location_town: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    if status and status not in BookingStatus.ALL:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    bookings, total = await list_bookings(
        db,
        status=status,
        provider_id=parse_uuid(provider_id, "provider ID") if provider_id else None,
        client_id=parse_uuid(client_id, "client ID") if client_id else None,
        location_town=location_town,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    return BookingListResponse(
        bookings=[booking_summary(b) for b in bookings],
        total=total,
        page=page,
        pages=page_count(total, per_page),
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_detail(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Booking with its admin action trail and assignment log."""
    booking_uuid = parse_uuid(booking_id, "booking ID")
    try:
        booking = await get_booking(db, booking_uuid)
    except LongaError as e:
        raise http_error(e)

    assignments = await list_assignment_history(db, booking_uuid)
    return BookingDetailResponse(
        booking=booking_summary(booking),
        modification_history=list(booking.modification_history or []),
        assignments=[assignment_entry(a) for a in assignments],
    )


@router.post("/{booking_id}/status", response_model=BookingSummary)
async def change_status(
    booking_id: str,
    payload: StatusActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """
    Apply an admin status action: rollback, cancel_with_refund,
    mark_client_no_show or mark_provider_no_show. A reason is required.
    """
    booking_uuid = parse_uuid(booking_id, "booking ID")
    try:
        booking = await apply_admin_action(db, booking_uuid, payload.action, admin, payload.reason)
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)


@router.put("/{booking_id}", response_model=BookingSummary)
async def update_details(
    booking_id: str,
    payload: BookingDetailsUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    booking_uuid = parse_uuid(booking_id, "booking ID")
    changes = payload.model_dump(exclude_unset=True)
    reason = changes.pop("reason", None)
    try:
        booking = await update_booking_details(db, booking_uuid, admin, changes, reason=reason)
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)


@router.get("/{booking_id}/candidates", response_model=list[ProviderCandidate])
async def list_candidates(
    booking_id: str,
    search: Optional[str] = Query(default=None, max_length=100),
    location: Optional[str] = Query(default=None),
    availability: str = Query(default="all"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    """Providers that can take this booking, best rated first. Excludes the current provider."""
    booking_uuid = parse_uuid(booking_id, "booking ID")
    try:
        candidates = await fetch_candidates(
            db, booking_uuid, search=search, location=location, availability=availability,
        )
    except LongaError as e:
        raise http_error(e)
    return [provider_candidate(p) for p in candidates]


@router.post("/{booking_id}/reassign", response_model=ReassignResponse)
async def reassign(
    booking_id: str,
    payload: ReassignRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    booking_uuid = parse_uuid(booking_id, "booking ID")
    try:
        result = await reassign_booking(db, booking_uuid, payload.provider_id, payload.reason, admin)
    except LongaError as e:
        raise http_error(e)
    return ReassignResponse(
        booking=booking_summary(result.booking),
        provider=provider_candidate(result.provider),
        audit_logged=result.audit_logged,
    )
