"""
Booking endpoints for clients and providers.
Clients create and view their bookings; providers pick up pending work and
move their jobs through begin and complete.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_client, get_current_provider, get_current_user
from longa.api.helpers import booking_summary, http_error, page_count, parse_uuid
from longa.database import get_db
from longa.models.booking import BookingStatus
from longa.models.user import User, UserRole
from longa.schemas.api_requests import BookingCreateRequest
from longa.schemas.api_responses import BookingListResponse, BookingSummary
from longa.services.booking_lifecycle import (
    accept_booking,
    begin_booking,
    complete_booking,
    create_booking,
    get_booking,
    list_bookings,
)
from longa.services.errors import LongaError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post("", response_model=BookingSummary, status_code=201)
async def create(
    payload: BookingCreateRequest,
    db: AsyncSession = Depends(get_db),
    client: User = Depends(get_current_client),
):
    """Book a service. Starts in pending until a provider accepts."""
    try:
        booking = await create_booking(
            db,
            client,
            service_id=payload.service_id,
            booking_date=payload.booking_date,
            booking_time=payload.booking_time,
            location_town=payload.location_town,
            duration_minutes=payload.duration_minutes,
            package_id=payload.package_id,
            emergency_booking=payload.emergency_booking,
            special_instructions=payload.special_instructions,
        )
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Bookings the caller is party to - as client or as assigned provider."""
    if status and status not in BookingStatus.ALL:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    filters = {}
    if user.role == UserRole.CLIENT:
        filters["client_id"] = user.id
    elif user.role == UserRole.PROVIDER:
        filters["provider_id"] = user.id
    else:
        raise HTTPException(status_code=403, detail="Use the admin booking endpoints")

    bookings, total = await list_bookings(db, status=status, page=page, per_page=per_page, **filters)
    return BookingListResponse(
        bookings=[booking_summary(b) for b in bookings],
        total=total,
        page=page,
        pages=page_count(total, per_page),
    )


@router.get("/available", response_model=BookingListResponse)
async def list_available_jobs(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    """Pending bookings in the provider's current work location."""
    if not provider.current_work_location:
        return BookingListResponse(bookings=[], total=0, page=page, pages=0)

    bookings, total = await list_bookings(
        db,
        status=BookingStatus.PENDING,
        location_town=provider.current_work_location,
        page=page,
        per_page=per_page,
    )
    return BookingListResponse(
        bookings=[booking_summary(b) for b in bookings],
        total=total,
        page=page,
        pages=page_count(total, per_page),
    )


@router.get("/{booking_id}", response_model=BookingSummary)
async def get_one(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    booking_uuid = parse_uuid(booking_id, "booking ID")
    try:
        booking = await get_booking(db, booking_uuid)
    except LongaError as e:
        raise http_error(e)

    if user.role != UserRole.ADMIN and user.id not in (booking.client_id, booking.provider_id):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking_summary(booking)


@router.post("/{booking_id}/accept", response_model=BookingSummary)
async def accept(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    try:
        booking = await accept_booking(db, parse_uuid(booking_id, "booking ID"), provider)
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)


@router.post("/{booking_id}/begin", response_model=BookingSummary)
async def begin(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    try:
        booking = await begin_booking(db, parse_uuid(booking_id, "booking ID"), provider)
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)


@router.post("/{booking_id}/complete", response_model=BookingSummary)
async def complete(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    """Finish the job. Generates the provider's payout."""
    try:
        booking = await complete_booking(db, parse_uuid(booking_id, "booking ID"), provider)
    except LongaError as e:
        raise http_error(e)
    return booking_summary(booking)
