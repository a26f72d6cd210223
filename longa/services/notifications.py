"""
In-app notifications for booking events.

Rows are built here and written by the caller as a secondary write, so a
notification failure never undoes the booking change that triggered it.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.booking import Booking
from longa.models.notification import Notification
from longa.services.errors import NotFound
from longa.services.store import commit_or_fail

logger = logging.getLogger(__name__)

# event -> (type, title, client message, provider message)
BOOKING_EVENT_MESSAGES: dict[str, tuple[str, str, Optional[str], Optional[str]]] = {
    "accept": (
        "booking_accepted",
        "Booking accepted",
        "A provider has accepted your booking for {date}.",
        "You accepted the booking for {date}.",
    ),
    "begin": (
        "booking_started",
        "Job started",
        "Your provider has checked in and started the job.",
        None,
    ),
    "complete": (
        "booking_completed",
        "Job completed",
        "Your booking for {date} has been completed.",
        "Job completed. Your payout has been scheduled.",
    ),
    "rollback": (
        "booking_reopened",
        "Job reopened",
        "Your completed booking for {date} has been reopened by our team.",
        "A completed job for {date} was moved back to in progress.",
    ),
    "cancel_with_refund": (
        "booking_cancelled",
        "Booking cancelled",
        "Your booking for {date} was cancelled. A refund has been requested.",
        "The booking for {date} was cancelled and you have been released from it.",
    ),
    "mark_client_no_show": (
        "booking_cancelled",
        "Booking cancelled - client no-show",
        "Your booking for {date} was cancelled because you were not available.",
        "The booking for {date} was recorded as a client no-show.",
    ),
    "mark_provider_no_show": (
        "booking_cancelled",
        "Booking cancelled - provider no-show",
        "Your provider did not arrive for {date}. Our team will follow up.",
        "You were recorded as a no-show for the booking on {date}.",
    ),
    "reassign": (
        "booking_reassigned",
        "Provider assigned",
        "A new provider has been assigned to your booking for {date}.",
        "You have been assigned a booking for {date}.",
    ),
}


def build_booking_notifications(
    booking: Booking,
    event: str,
    provider_id: Optional[uuid.UUID] = None,
) -> list[Notification]:
    """
    Build notification rows for a booking event.
    provider_id overrides the booking's provider, for events that clear it.
    """
    template = BOOKING_EVENT_MESSAGES.get(event)
    if not template:
        return []

    notif_type, title, client_msg, provider_msg = template
    date_text = booking.booking_date.strftime("%d %b %Y") if booking.booking_date else "your booking"
    recipient_provider = provider_id or booking.provider_id

    rows = []
    if client_msg:
        rows.append(Notification(
            user_id=booking.client_id,
            booking_id=booking.id,
            type=notif_type,
            title=title,
            message=client_msg.format(date=date_text),
        ))
    if provider_msg and recipient_provider:
        rows.append(Notification(
            user_id=recipient_provider,
            booking_id=booking.id,
            type=notif_type,
            title=title,
            message=provider_msg.format(date=date_text),
        ))
    return rows


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    unread_only: bool = False,
    limit: int = 50,
) -> tuple[list[Notification], int]:
    """Return the user's newest notifications and their unread count."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712
    query = query.order_by(Notification.created_at.desc()).limit(limit)
    notifications = list((await db.execute(query)).scalars().all())

    unread = (await db.execute(
        select(func.count(Notification.id)).where(
            and_(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        )
    )).scalar() or 0
    return notifications, unread


async def mark_read(db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    notification = await db.get(Notification, notification_id)
    if not notification or notification.user_id != user_id:
        raise NotFound("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        await commit_or_fail(db, "Mark notification read")
    return notification


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Mark every unread notification for the user as read. Returns rows changed."""
    result = await db.execute(
        update(Notification)
        .where(and_(Notification.user_id == user_id, Notification.is_read == False))  # noqa: E712
        .values(is_read=True, read_at=datetime.now(timezone.utc))
    )
    await commit_or_fail(db, "Mark notifications read")
    return result.rowcount or 0
