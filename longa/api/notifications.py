"""
Notification center endpoints for any signed-in user.
"""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from longa.api.auth import get_current_user
from longa.api.helpers import http_error, notification_response, parse_uuid
from longa.database import get_db
from longa.models.user import User
from longa.schemas.api_responses import NotificationListResponse, NotificationResponse
from longa.services.errors import LongaError
from longa.services.notifications import list_notifications, mark_all_read, mark_read

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_mine(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notifications, unread = await list_notifications(db, user.id, unread_only=unread_only, limit=limit)
    return NotificationListResponse(
        notifications=[notification_response(n) for n in notifications],
        unread_count=unread,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def read_one(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        notification = await mark_read(db, user.id, parse_uuid(notification_id, "notification ID"))
    except LongaError as e:
        raise http_error(e)
    return notification_response(notification)


@router.post("/read-all")
async def read_all(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = await mark_all_read(db, user.id)
    return {"updated": updated}
