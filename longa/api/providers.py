"""
Provider self-service endpoints - profile, work location, availability.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_provider
from longa.api.helpers import http_error, provider_profile
from longa.database import get_db
from longa.models.user import User
from longa.schemas.api_requests import AvailabilityUpdate, WorkLocationUpdate
from longa.schemas.api_responses import ProviderProfile
from longa.services.errors import LongaError
from longa.services.providers import set_availability, update_work_location

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/providers", tags=["providers"])


@router.get("/me", response_model=ProviderProfile)
async def my_profile(provider: User = Depends(get_current_provider)):
    return provider_profile(provider)


@router.put("/me/location", response_model=ProviderProfile)
async def change_location(
    payload: WorkLocationUpdate,
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    """Set the town the provider works in. Jobs are matched against it."""
    try:
        provider = await update_work_location(db, provider, payload.location)
    except LongaError as e:
        raise http_error(e)
    return provider_profile(provider)


@router.put("/me/availability", response_model=ProviderProfile)
async def change_availability(
    payload: AvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    provider: User = Depends(get_current_provider),
):
    try:
        provider = await set_availability(db, provider, payload.is_available)
    except LongaError as e:
        raise http_error(e)
    return provider_profile(provider)
