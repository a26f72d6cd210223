"""
Bearer-token auth dependencies.

Tokens are issued by the identity provider and carry the user id in "sub".
The role always comes from the users table, never from the token.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from longa.database import get_db
from longa.models.user import User, UserRole

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer()


def _jwt_secret() -> str:
    from longa.config import get_settings
    settings = get_settings()
    return settings.jwt_secret or settings.app_secret_key


def create_access_token(user_id: uuid.UUID, expires_in_hours: Optional[int] = None) -> str:
    """Sign a token for a user. Used by seed scripts and tests."""
    import jwt
    from longa.config import get_settings
    hours = expires_in_hours if expires_in_hours is not None else get_settings().jwt_expiry_hours
    return jwt.encode(
        {
            "sub": str(user_id),
            "exp": datetime.now(timezone.utc) + timedelta(hours=hours),
        },
        _jwt_secret(),
        algorithm="HS256",
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency to extract and verify the user from the JWT Bearer token."""
    import jwt as pyjwt

    try:
        payload = pyjwt.decode(
            credentials.credentials,
            _jwt_secret(),
            algorithms=["HS256"],
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    try:
        user_uuid = uuid.UUID(user_id)
    except (ValueError, AttributeError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    result = await db.execute(
        select(User).where(and_(User.id == user_uuid, User.is_active == True))  # noqa: E712
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that requires the authenticated user to be an admin."""
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def get_current_provider(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.PROVIDER:
        raise HTTPException(status_code=403, detail="Provider access required")
    return user


async def get_current_client(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.CLIENT:
        raise HTTPException(status_code=403, detail="Client access required")
    return user
