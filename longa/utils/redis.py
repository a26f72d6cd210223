"""
Shared async Redis client (lazily initialized) and worker heartbeats.
Redis is never required for a request to succeed - callers degrade gracefully.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

HEARTBEAT_KEY_PREFIX = "longa:worker_health:"

_redis_client = None


async def get_redis():
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as aioredis
        from longa.config import get_settings
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
        )
    return _redis_client


async def write_heartbeat(worker_name: str, ttl_seconds: int) -> None:
    """Store the worker's last-alive timestamp."""
    try:
        redis = await get_redis()
        await redis.set(
            f"{HEARTBEAT_KEY_PREFIX}{worker_name}",
            datetime.now(timezone.utc).isoformat(),
            ex=ttl_seconds,
        )
    except Exception as e:
        logger.debug("Heartbeat write failed for %s: %s", worker_name, str(e))


async def read_heartbeat(worker_name: str) -> Optional[datetime]:
    """Return the worker's last heartbeat, or None if missing/unreadable."""
    try:
        redis = await get_redis()
        raw = await redis.get(f"{HEARTBEAT_KEY_PREFIX}{worker_name}")
    except Exception as e:
        logger.debug("Heartbeat read failed for %s: %s", worker_name, str(e))
        return None
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None
