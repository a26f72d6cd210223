"""
Booking lifecycle - the status machine and its side-effect writes.

    pending -> accepted -> in_progress -> completed
    pending | accepted | in_progress -> cancelled
    completed -> in_progress (admin rollback)

Every operation validates (reason, source status, actor) before touching the
session. The primary change is flushed first; notifications go in as a
secondary write; then the transaction commits. A provider reference is only
held while a booking is accepted, in progress or completed, so every
cancellation releases the provider.
"""
import logging
import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking, BookingStatus
from longa.models.package import PackageServiceInclusion, SubscriptionPackage
from longa.models.service import Service
from longa.models.user import User, UserRole
from longa.services.commission import to_decimal
from longa.services.errors import (
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from longa.services.notifications import build_booking_notifications
from longa.services.payouts import create_job_payout, reverse_pending_job_payouts
from longa.services.store import add_secondary, commit_or_fail, flush_or_fail

logger = logging.getLogger(__name__)

# action -> (allowed source statuses, target status)
TRANSITIONS: dict[str, tuple[frozenset, str]] = {
    "accept": (frozenset({BookingStatus.PENDING}), BookingStatus.ACCEPTED),
    "begin": (frozenset({BookingStatus.ACCEPTED}), BookingStatus.IN_PROGRESS),
    "complete": (frozenset({BookingStatus.IN_PROGRESS}), BookingStatus.COMPLETED),
    "rollback": (frozenset({BookingStatus.COMPLETED}), BookingStatus.IN_PROGRESS),
    "cancel_with_refund": (
        frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS}),
        BookingStatus.CANCELLED,
    ),
    "mark_client_no_show": (
        frozenset({BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS}),
        BookingStatus.CANCELLED,
    ),
    "mark_provider_no_show": (
        frozenset({BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS}),
        BookingStatus.CANCELLED,
    ),
}

# Admin actions - each needs a non-empty reason
ADMIN_ACTIONS = frozenset({
    "rollback",
    "cancel_with_refund",
    "mark_client_no_show",
    "mark_provider_no_show",
})

EDITABLE_FIELDS = (
    "booking_date",
    "booking_time",
    "duration_minutes",
    "location_town",
    "special_instructions",
    "emergency_booking",
)

NON_NULL_DETAIL_FIELDS = (
    "booking_date",
    "booking_time",
    "duration_minutes",
    "location_town",
    "emergency_booking",
)


def validate_transition(action: str, current_status: str, reason: Optional[str] = None) -> str:
    """
    Check an action against the status machine. Returns the target status.
    Raises ValidationFailed for an unknown action or missing reason, and
    InvalidTransition when the booking is in the wrong status.
    """
    if action not in TRANSITIONS:
        raise ValidationFailed(f"Unknown booking action: {action}")
    if action in ADMIN_ACTIONS and not (reason or "").strip():
        raise ValidationFailed("A reason is required for this action")

    sources, target = TRANSITIONS[action]
    if current_status not in sources:
        raise InvalidTransition(action, current_status)
    return target


def allowed_actions(status: str) -> list[str]:
    """Actions that are valid from the given status, in table order."""
    return [action for action, (sources, _) in TRANSITIONS.items() if status in sources]


def history_entry(
    action: str,
    from_status: str,
    to_status: str,
    actor_id: Optional[uuid.UUID],
    reason: Optional[str] = None,
    **details,
) -> dict:
    entry = {
        "action": action,
        "from_status": from_status,
        "to_status": to_status,
        "reason": reason,
        "actor_id": str(actor_id) if actor_id else None,
        "at": datetime.now(timezone.utc).isoformat(),
    }
    entry.update(details)
    return entry


def append_history(booking: Booking, entry: dict) -> None:
    # New list so the JSON column is seen as changed
    booking.modification_history = list(booking.modification_history or []) + [entry]


async def get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    return booking


async def _finish(
    db: AsyncSession,
    booking: Booking,
    event: str,
    what: str,
    notify_provider_id: Optional[uuid.UUID] = None,
) -> None:
    """Flush the primary change, write notifications, commit."""
    await flush_or_fail(db, what)
    await add_secondary(
        db,
        build_booking_notifications(booking, event, provider_id=notify_provider_id),
        "Booking notifications",
        booking_id=booking.id,
        action=event,
    )
    await commit_or_fail(db, what)


# === CLIENT ===

async def create_booking(
    db: AsyncSession,
    client: User,
    service_id: uuid.UUID,
    booking_date: date,
    booking_time: time,
    location_town: str,
    duration_minutes: Optional[int] = None,
    total_amount=None,
    package_id: Optional[uuid.UUID] = None,
    emergency_booking: bool = False,
    special_instructions: Optional[str] = None,
) -> Booking:
    """Create a pending booking. Price and duration default to the service's."""
    if not (location_town or "").strip():
        raise ValidationFailed("location_town is required")
    if booking_date < datetime.now(timezone.utc).date():
        raise ValidationFailed("booking_date cannot be in the past")

    service = await db.get(Service, service_id)
    if not service:
        raise NotFound("Service not found")
    if not service.is_active:
        raise ValidationFailed("Service is not currently available")

    if package_id:
        package = await db.get(SubscriptionPackage, package_id)
        if not package or not package.is_active:
            raise NotFound("Package not found")
        included = (await db.execute(
            select(func.count(PackageServiceInclusion.id)).where(
                and_(
                    PackageServiceInclusion.package_id == package_id,
                    PackageServiceInclusion.service_id == service_id,
                )
            )
        )).scalar()
        if not included:
            raise ValidationFailed("Service is not included in this package")

    amount = service.client_price if total_amount is None else to_decimal(total_amount, "total_amount")
    if amount < 0:
        raise ValidationFailed("total_amount cannot be negative")
    duration = duration_minutes if duration_minutes is not None else service.duration_minutes
    if duration <= 0:
        raise ValidationFailed("duration_minutes must be positive")

    booking = Booking(
        service_id=service_id,
        client_id=client.id,
        package_id=package_id,
        booking_date=booking_date,
        booking_time=booking_time,
        duration_minutes=duration,
        location_town=location_town.strip(),
        total_amount=amount,
        status=BookingStatus.PENDING,
        emergency_booking=emergency_booking,
        special_instructions=(special_instructions or "").strip() or None,
        modification_history=[],
    )
    db.add(booking)
    await flush_or_fail(db, "Create booking")
    await commit_or_fail(db, "Create booking")

    logger.info(
        "Booking created for %s on %s", service.name, booking_date,
        extra={"booking_id": str(booking.id), "user_id": str(client.id)},
    )
    return booking


# === PROVIDER ===

async def accept_booking(db: AsyncSession, booking_id: uuid.UUID, provider: User) -> Booking:
    """Provider takes a pending booking."""
    if provider.role != UserRole.PROVIDER or not provider.is_active:
        raise PermissionDenied("Only active providers can accept bookings")

    booking = await get_booking(db, booking_id)
    target = validate_transition("accept", booking.status)

    now = datetime.now(timezone.utc)
    booking.status = target
    booking.provider_id = provider.id
    booking.assigned_at = now
    booking.updated_at = now

    await _finish(db, booking, "accept", "Accept booking")
    logger.info(
        "Booking accepted", extra={"booking_id": str(booking.id), "provider_id": str(provider.id)},
    )
    return booking


async def begin_booking(db: AsyncSession, booking_id: uuid.UUID, provider: User) -> Booking:
    """Assigned provider checks in and starts the job."""
    booking = await get_booking(db, booking_id)
    target = validate_transition("begin", booking.status)
    if booking.provider_id != provider.id:
        raise PermissionDenied("Only the assigned provider can start this job")

    now = datetime.now(timezone.utc)
    booking.status = target
    booking.check_in_time = now
    booking.updated_at = now

    await _finish(db, booking, "begin", "Begin booking")
    logger.info(
        "Booking started", extra={"booking_id": str(booking.id), "provider_id": str(provider.id)},
    )
    return booking


async def complete_booking(db: AsyncSession, booking_id: uuid.UUID, provider: User) -> Booking:
    """
    Assigned provider finishes the job.
    Status change, job payout and the provider's job count commit together.
    """
    booking = await get_booking(db, booking_id)
    target = validate_transition("complete", booking.status)
    if booking.provider_id != provider.id:
        raise PermissionDenied("Only the assigned provider can complete this job")

    assigned = await db.get(User, booking.provider_id)
    payout = await create_job_payout(db, booking, assigned)

    now = datetime.now(timezone.utc)
    booking.status = target
    booking.completed_at = now
    booking.updated_at = now
    assigned.total_jobs = (assigned.total_jobs or 0) + 1

    await _finish(db, booking, "complete", "Complete booking")
    logger.info(
        "Booking completed, payout %s scheduled", payout.amount,
        extra={
            "booking_id": str(booking.id),
            "provider_id": str(provider.id),
            "payout_id": str(payout.id),
        },
    )
    return booking


# === ADMIN ===

async def rollback_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    admin: User,
    reason: str,
) -> Booking:
    """Move a completed booking back to in progress and reverse its pending payout."""
    booking = await get_booking(db, booking_id)
    target = validate_transition("rollback", booking.status, reason)
    reason = reason.strip()

    reversed_count, skipped_count = await reverse_pending_job_payouts(db, booking.id, reason)
    if booking.provider_id:
        assigned = await db.get(User, booking.provider_id)
        if assigned and assigned.total_jobs:
            assigned.total_jobs -= 1

    now = datetime.now(timezone.utc)
    append_history(booking, history_entry(
        "rollback", booking.status, target, admin.id, reason,
        payouts_reversed=reversed_count,
        payouts_skipped=skipped_count,
    ))
    booking.status = target
    booking.completed_at = None
    booking.updated_at = now

    await _finish(db, booking, "rollback", "Roll back booking")
    logger.info(
        "Booking rolled back to in_progress (%d payout(s) reversed)", reversed_count,
        extra={"booking_id": str(booking.id), "user_id": str(admin.id), "action": "rollback"},
    )
    return booking


async def _cancel(
    db: AsyncSession,
    booking_id: uuid.UUID,
    action: str,
    admin: User,
    reason: str,
    request_refund: bool = False,
) -> Booking:
    booking = await get_booking(db, booking_id)
    target = validate_transition(action, booking.status, reason)
    reason = reason.strip()
    previous_provider_id = booking.provider_id

    now = datetime.now(timezone.utc)
    append_history(booking, history_entry(
        action, booking.status, target, admin.id, reason,
        previous_provider_id=str(previous_provider_id) if previous_provider_id else None,
        refund_requested=request_refund,
    ))
    booking.status = target
    booking.cancellation_reason = reason
    # Provider reference and assigned_at are released in the same UPDATE
    booking.provider_id = None
    booking.assigned_at = None
    booking.updated_at = now
    if request_refund:
        booking.refund_status = "pending"

    await _finish(
        db, booking, action, f"Cancel booking ({action})",
        notify_provider_id=previous_provider_id,
    )
    logger.info(
        "Booking cancelled via %s", action,
        extra={"booking_id": str(booking.id), "user_id": str(admin.id), "action": action},
    )
    return booking


async def cancel_with_refund(
    db: AsyncSession, booking_id: uuid.UUID, admin: User, reason: str,
) -> Booking:
    """Cancel and flag a refund as pending. No payment gateway call is made here."""
    return await _cancel(db, booking_id, "cancel_with_refund", admin, reason, request_refund=True)


async def mark_client_no_show(
    db: AsyncSession, booking_id: uuid.UUID, admin: User, reason: str,
) -> Booking:
    return await _cancel(db, booking_id, "mark_client_no_show", admin, reason)


async def mark_provider_no_show(
    db: AsyncSession, booking_id: uuid.UUID, admin: User, reason: str,
) -> Booking:
    return await _cancel(db, booking_id, "mark_provider_no_show", admin, reason)


ADMIN_HANDLERS = {
    "rollback": rollback_booking,
    "cancel_with_refund": cancel_with_refund,
    "mark_client_no_show": mark_client_no_show,
    "mark_provider_no_show": mark_provider_no_show,
}


async def apply_admin_action(
    db: AsyncSession,
    booking_id: uuid.UUID,
    action: str,
    admin: User,
    reason: Optional[str],
) -> Booking:
    """Dispatch one of the admin status actions by name."""
    handler = ADMIN_HANDLERS.get(action)
    if handler is None:
        raise ValidationFailed(f"Unknown booking action: {action}")
    if not (reason or "").strip():
        raise ValidationFailed("A reason is required for this action")
    return await handler(db, booking_id, admin, reason)


async def update_booking_details(
    db: AsyncSession,
    booking_id: uuid.UUID,
    admin: User,
    changes: dict,
    reason: Optional[str] = None,
) -> Booking:
    """Edit schedule/location details of a booking that is still open."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
    if not changes:
        raise ValidationFailed("No changes supplied")
    cleared = sorted(f for f in NON_NULL_DETAIL_FIELDS if f in changes and changes[f] is None)
    if cleared:
        raise ValidationFailed(f"Fields cannot be cleared: {', '.join(cleared)}")
    if "duration_minutes" in changes and (changes["duration_minutes"] or 0) <= 0:
        raise ValidationFailed("duration_minutes must be positive")
    if "location_town" in changes and not (changes["location_town"] or "").strip():
        raise ValidationFailed("location_town cannot be empty")

    booking = await get_booking(db, booking_id)
    if booking.status in BookingStatus.TERMINAL:
        raise InvalidTransition("update", booking.status)

    changed = {}
    for field, value in changes.items():
        old = getattr(booking, field)
        if old != value:
            changed[field] = [str(old) if old is not None else None, str(value) if value is not None else None]
            setattr(booking, field, value)

    if not changed:
        return booking

    booking.updated_at = datetime.now(timezone.utc)
    append_history(booking, history_entry(
        "update_details", booking.status, booking.status, admin.id,
        (reason or "").strip() or None,
        changes=changed,
    ))
    await flush_or_fail(db, "Update booking details")
    await commit_or_fail(db, "Update booking details")

    logger.info(
        "Booking details updated: %s", ", ".join(sorted(changed)),
        extra={"booking_id": str(booking.id), "user_id": str(admin.id), "action": "update_details"},
    )
    return booking


# === QUERIES ===

async def list_bookings(
    db: AsyncSession,
    status: Optional[str] = None,
    client_id: Optional[uuid.UUID] = None,
    provider_id: Optional[uuid.UUID] = None,
    location_town: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Booking], int]:
    """Filtered, paginated bookings, soonest booking date first."""
    conditions = []
    if status:
        conditions.append(Booking.status == status)
    if client_id:
        conditions.append(Booking.client_id == client_id)
    if provider_id:
        conditions.append(Booking.provider_id == provider_id)
    if location_town:
        conditions.append(Booking.location_town == location_town)
    if date_from:
        conditions.append(Booking.booking_date >= date_from)
    if date_to:
        conditions.append(Booking.booking_date <= date_to)

    count_query = select(func.count(Booking.id))
    query = select(Booking)
    if conditions:
        count_query = count_query.where(and_(*conditions))
        query = query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0
    query = (
        query.order_by(Booking.booking_date.asc(), Booking.booking_time.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    bookings = list((await db.execute(query)).scalars().all())
    return bookings, total
