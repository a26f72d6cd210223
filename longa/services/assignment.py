"""
Provider assignment - candidate filtering and ranking, manual reassignment
by an admin, and automatic assignment of pending bookings.

The booking update is the primary write. The assignment audit row and the
notifications are secondary: if they fail the assignment still stands.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking, BookingStatus
from longa.models.booking_assignment import BookingAssignment
from longa.models.user import User, UserRole
from longa.services.booking_lifecycle import append_history, get_booking, history_entry
from longa.services.errors import InvalidTransition, ValidationFailed
from longa.services.notifications import build_booking_notifications
from longa.services.store import add_secondary, commit_or_fail, flush_or_fail

logger = logging.getLogger(__name__)

AVAILABILITY_FILTERS = ("all", "available", "unavailable")


@dataclass
class AssignmentResult:
    booking: Booking
    provider: User
    audit_logged: bool


def filter_candidates(
    providers: Iterable[User],
    current_provider_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    location: Optional[str] = None,
    availability: str = "all",
) -> list[User]:
    """
    Filter and rank the candidate pool for a booking.

    The current provider is always excluded. search matches name or phone
    (case-insensitive substring), location matches exactly unless "all". Highest rating
    first; equal ratings keep their incoming order.
    """
    if availability not in AVAILABILITY_FILTERS:
        raise ValidationFailed(f"availability must be one of: {', '.join(AVAILABILITY_FILTERS)}")

    needle = (search or "").strip().lower()
    matches = []
    for provider in providers:
        if current_provider_id and provider.id == current_provider_id:
            continue
        if needle:
            name = (provider.full_name or "").lower()
            phone = (provider.phone or "").lower()
            if needle not in name and needle not in phone:
                continue
        if location and location != "all" and provider.current_work_location != location:
            continue
        if availability == "available" and not provider.is_available:
            continue
        if availability == "unavailable" and provider.is_available:
            continue
        matches.append(provider)

    return sorted(matches, key=lambda p: -(p.rating or 0))


async def _candidate_pool(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User)
        .where(and_(User.role == UserRole.PROVIDER, User.is_active == True))  # noqa: E712
        .order_by(User.created_at.asc())
    )
    return list(result.scalars().all())


async def fetch_candidates(
    db: AsyncSession,
    booking_id: uuid.UUID,
    search: Optional[str] = None,
    location: Optional[str] = None,
    availability: str = "all",
) -> list[User]:
    """Ranked reassignment candidates for one booking."""
    booking = await get_booking(db, booking_id)
    pool = await _candidate_pool(db)
    return filter_candidates(
        pool,
        current_provider_id=booking.provider_id,
        search=search,
        location=location,
        availability=availability,
    )


def build_assignment_log(
    booking_id: uuid.UUID,
    provider_id: uuid.UUID,
    reason: Optional[str],
    assigned_by: Optional[uuid.UUID],
    auto_assigned: bool = False,
) -> BookingAssignment:
    return BookingAssignment(
        booking_id=booking_id,
        provider_id=provider_id,
        assigned_by=assigned_by,
        assignment_reason=reason,
        auto_assigned=auto_assigned,
    )


def _assign(booking: Booking, provider: User, now: datetime) -> str:
    """Point the booking at the provider. Returns the status it moved from."""
    from_status = booking.status
    booking.provider_id = provider.id
    booking.assigned_at = now
    booking.updated_at = now
    if booking.status == BookingStatus.PENDING:
        booking.status = BookingStatus.ACCEPTED
    return from_status


async def reassign_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    provider_id: Optional[uuid.UUID],
    reason: Optional[str],
    admin: User,
) -> AssignmentResult:
    """
    Give a booking to another provider.

    Provider and reason are checked before any query. A pending booking
    becomes accepted. A failed audit insert is logged and alerted but the
    reassignment is kept.
    """
    if not provider_id:
        raise ValidationFailed("Select a provider to assign")
    if not (reason or "").strip():
        raise ValidationFailed("A reason is required for reassignment")
    reason = reason.strip()

    booking = await get_booking(db, booking_id)
    if booking.status in BookingStatus.TERMINAL:
        raise InvalidTransition("reassign", booking.status)
    if booking.provider_id == provider_id:
        raise ValidationFailed("This provider is already assigned to the booking")

    provider = await db.get(User, provider_id)
    if not provider or provider.role != UserRole.PROVIDER or not provider.is_active:
        raise ValidationFailed("Selected provider is not an active provider")

    previous_provider_id = booking.provider_id
    now = datetime.now(timezone.utc)
    from_status = _assign(booking, provider, now)
    append_history(booking, history_entry(
        "reassign", from_status, booking.status, admin.id, reason,
        previous_provider_id=str(previous_provider_id) if previous_provider_id else None,
        new_provider_id=str(provider.id),
    ))
    await flush_or_fail(db, "Reassign booking")

    audit_logged = await add_secondary(
        db,
        [build_assignment_log(booking.id, provider.id, reason, admin.id)],
        "Assignment audit",
        booking_id=booking.id,
        provider_id=provider.id,
    )
    await add_secondary(
        db,
        build_booking_notifications(booking, "reassign"),
        "Booking notifications",
        booking_id=booking.id,
        action="reassign",
    )
    await commit_or_fail(db, "Reassign booking")

    logger.info(
        "Booking reassigned to %s", provider.full_name,
        extra={
            "booking_id": str(booking.id),
            "provider_id": str(provider.id),
            "user_id": str(admin.id),
            "action": "reassign",
        },
    )
    return AssignmentResult(booking=booking, provider=provider, audit_logged=audit_logged)


def rank_for_auto_assign(providers: Iterable[User], location_town: Optional[str]) -> list[User]:
    """Available providers working in the booking's town, best rated and most experienced first."""
    local = [
        p for p in providers
        if p.is_available and location_town and p.current_work_location == location_town
    ]
    return sorted(local, key=lambda p: (-(p.rating or 0), -(p.total_jobs or 0)))


async def auto_assign_booking(db: AsyncSession, booking: Booking) -> Optional[User]:
    """
    Assign a pending, unassigned booking to the best local provider.
    Returns the provider, or None when nobody qualifies.
    """
    if booking.status != BookingStatus.PENDING or booking.provider_id:
        return None

    ranked = rank_for_auto_assign(await _candidate_pool(db), booking.location_town)
    if not ranked:
        return None
    provider = ranked[0]

    reason = f"Auto-assigned: best available provider in {booking.location_town}"
    now = datetime.now(timezone.utc)
    from_status = _assign(booking, provider, now)
    append_history(booking, history_entry(
        "auto_assign", from_status, booking.status, None, reason,
        new_provider_id=str(provider.id),
    ))
    await flush_or_fail(db, "Auto-assign booking")

    await add_secondary(
        db,
        [build_assignment_log(booking.id, provider.id, reason, None, auto_assigned=True)],
        "Assignment audit",
        booking_id=booking.id,
        provider_id=provider.id,
    )
    await add_secondary(
        db,
        build_booking_notifications(booking, "reassign"),
        "Booking notifications",
        booking_id=booking.id,
        action="auto_assign",
    )
    await commit_or_fail(db, "Auto-assign booking")

    logger.info(
        "Booking auto-assigned to %s", provider.full_name,
        extra={"booking_id": str(booking.id), "provider_id": str(provider.id), "action": "auto_assign"},
    )
    return provider


async def find_unassigned_bookings(
    db: AsyncSession,
    older_than_minutes: int,
    limit: int = 50,
) -> list[Booking]:
    """Pending bookings without a provider, created at least older_than_minutes ago."""
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)
    result = await db.execute(
        select(Booking)
        .where(
            and_(
                Booking.status == BookingStatus.PENDING,
                Booking.provider_id.is_(None),
                Booking.created_at <= cutoff,
            )
        )
        .order_by(Booking.emergency_booking.desc(), Booking.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_assignment_history(db: AsyncSession, booking_id: uuid.UUID) -> list[BookingAssignment]:
    result = await db.execute(
        select(BookingAssignment)
        .where(BookingAssignment.booking_id == booking_id)
        .order_by(BookingAssignment.assigned_at.asc())
    )
    return list(result.scalars().all())
