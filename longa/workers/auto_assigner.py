"""
Auto-assignment worker - gives pending bookings that nobody has accepted to
the best available provider in the booking's town.
Runs every AUTO_ASSIGN_POLL_SECONDS when AUTO_ASSIGN_ENABLED is set.

Process:
1. Find pending bookings with no provider older than AUTO_ASSIGN_AFTER_MINUTES
2. Rank available local providers (rating, then completed jobs)
3. Assign the best one and write an auto_assigned audit row
"""
import asyncio
import logging

from longa.database import async_session_factory
from longa.models.booking import Booking
from longa.services.assignment import auto_assign_booking, find_unassigned_bookings
from longa.services.errors import LongaError
from longa.utils.redis import write_heartbeat

logger = logging.getLogger(__name__)

WORKER_NAME = "auto_assigner"
BATCH_SIZE = 50


async def run_auto_assigner():
    """Main loop - assign stale pending bookings."""
    from longa.config import get_settings
    settings = get_settings()
    interval = settings.auto_assign_poll_seconds
    logger.info("Auto-assign worker started (poll every %ds)", interval)

    while True:
        try:
            assigned = await assign_stale_bookings(settings.auto_assign_after_minutes)
            if assigned > 0:
                logger.info("Auto-assigned %d booking(s)", assigned)
        except Exception as e:
            logger.error("Auto-assign error: %s", str(e), exc_info=True)
            from longa.utils.alerting import send_alert, AlertType
            await send_alert(AlertType.WORKER_ERROR, f"Auto-assign worker error: {e}")

        await write_heartbeat(WORKER_NAME, ttl_seconds=interval * 3)
        await asyncio.sleep(interval)


async def assign_stale_bookings(older_than_minutes: int) -> int:
    """One pass over unassigned bookings. Returns how many were assigned."""
    assigned_count = 0
    unmatched = []

    async with async_session_factory() as db:
        stale = await find_unassigned_bookings(db, older_than_minutes, limit=BATCH_SIZE)
        for booking_id, town in [(b.id, b.location_town) for b in stale]:
            try:
                # Reload - a failed assignment rolls back and expires the session
                booking = await db.get(Booking, booking_id)
                provider = await auto_assign_booking(db, booking)
            except LongaError as e:
                logger.warning(
                    "Auto-assign failed for booking %s: %s", booking_id, e.message,
                    extra={"booking_id": str(booking_id)},
                )
                continue
            if provider:
                assigned_count += 1
            else:
                unmatched.append(town or "unknown")

    if unmatched:
        towns = sorted(set(unmatched))
        logger.warning(
            "%d pending booking(s) have no available local provider: %s",
            len(unmatched), ", ".join(towns),
        )
        from longa.utils.alerting import send_alert, AlertType
        await send_alert(
            AlertType.AUTO_ASSIGN_NO_PROVIDER,
            f"{len(unmatched)} pending booking(s) could not be auto-assigned ({', '.join(towns)})",
            severity="warning",
        )

    return assigned_count
