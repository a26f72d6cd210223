"""
Provider self-service - work location and availability.

Both fields feed the reassignment candidate filters and the auto-assigner,
so a change takes effect on the next candidate lookup.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from longa.models.user import User, UserRole
from longa.services.errors import PermissionDenied, ValidationFailed
from longa.services.store import commit_or_fail

logger = logging.getLogger(__name__)

MAX_LOCATION_LENGTH = 100


def _require_provider(user: User) -> None:
    if user.role != UserRole.PROVIDER:
        raise PermissionDenied("Only providers have a work location and availability")


async def update_work_location(db: AsyncSession, provider: User, location: Optional[str]) -> User:
    _require_provider(provider)
    town = (location or "").strip()
    if not town:
        raise ValidationFailed("location is required")
    if len(town) > MAX_LOCATION_LENGTH:
        raise ValidationFailed(f"location cannot exceed {MAX_LOCATION_LENGTH} characters")

    previous = provider.current_work_location
    provider.current_work_location = town
    provider.updated_at = datetime.now(timezone.utc)
    await commit_or_fail(db, "Update work location")

    logger.info(
        "Work location changed: %s -> %s", previous, town,
        extra={"provider_id": str(provider.id), "action": "update_location"},
    )
    return provider


async def set_availability(db: AsyncSession, provider: User, is_available: bool) -> User:
    _require_provider(provider)
    provider.is_available = bool(is_available)
    provider.updated_at = datetime.now(timezone.utc)
    await commit_or_fail(db, "Update availability")

    logger.info(
        "Provider %s", "available" if provider.is_available else "unavailable",
        extra={"provider_id": str(provider.id), "action": "set_availability"},
    )
    return provider
