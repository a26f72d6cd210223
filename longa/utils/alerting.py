"""
Ops alerting - sends alerts on events that need a human but must not reach end users.

Alert channels:
1. Structured log (always)
2. Webhook (configurable) - Discord/Slack URL via ALERT_WEBHOOK_URL env var

Rate limiting: per-type cooldowns stored in Redis, with an in-memory
fallback when Redis is down.
"""
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

ALERT_COOLDOWN_SECONDS = 300

ALERT_COOLDOWN_OVERRIDES: dict[str, int] = {
    "auto_assign_no_provider": 3600,
}

_local_cooldowns: dict[str, float] = {}  # alert_type -> expiry (monotonic)


class AlertType:
    """Alert type constants."""
    SECONDARY_WRITE_FAILED = "secondary_write_failed"
    PAYOUT_MARKING_FAILED = "payout_marking_failed"
    PAYOUT_REVERSAL_SKIPPED = "payout_reversal_skipped"
    AUTO_ASSIGN_NO_PROVIDER = "auto_assign_no_provider"
    WORKER_ERROR = "worker_error"


def _get_cooldown_seconds(alert_type: str) -> int:
    return ALERT_COOLDOWN_OVERRIDES.get(alert_type, ALERT_COOLDOWN_SECONDS)


async def send_alert(
    alert_type: str,
    message: str,
    severity: str = "error",
    extra: Optional[dict] = None,
) -> None:
    """Send an alert through all configured channels, rate-limited per type."""
    if not await _acquire_cooldown(alert_type):
        return

    from longa.utils.logging import get_correlation_id
    cid = get_correlation_id()

    log_message = f"ALERT [{alert_type}]: {message}"
    if cid:
        log_message += f" (correlation_id={cid})"

    if severity == "critical":
        logger.critical(log_message)
    elif severity == "warning":
        logger.warning(log_message)
    else:
        logger.error(log_message)

    await _send_webhook_alert(alert_type, message, severity, cid, extra)


async def _acquire_cooldown(alert_type: str) -> bool:
    """Atomically check-and-set the cooldown. Returns True if the alert should go out."""
    cooldown = _get_cooldown_seconds(alert_type)

    try:
        from longa.utils.redis import get_redis
        redis = await get_redis()
        acquired = await redis.set(
            f"longa:alert_cooldown:{alert_type}", "1", nx=True, ex=cooldown
        )
        return bool(acquired)
    except Exception as e:
        logger.debug("Alert cooldown Redis check failed, using in-memory fallback: %s", str(e))
        now = time.monotonic()
        if now < _local_cooldowns.get(alert_type, 0):
            return False
        _local_cooldowns[alert_type] = now + cooldown
        return True


async def _send_webhook_alert(
    alert_type: str,
    message: str,
    severity: str,
    correlation_id: Optional[str],
    extra: Optional[dict],
) -> None:
    """Post the alert to the configured Discord/Slack webhook."""
    try:
        from longa.config import get_settings
        webhook_url = get_settings().alert_webhook_url
        if not webhook_url:
            return

        import httpx

        content = f"[{severity.upper()}] **{alert_type}**\n{message}"
        if correlation_id:
            content += f"\n`correlation_id: {correlation_id}`"
        for key, val in (extra or {}).items():
            content += f"\n`{key}: {val}`"

        async with httpx.AsyncClient(timeout=5.0) as client:
            await client.post(webhook_url, json={"content": content})
    except Exception as e:
        logger.warning("Failed to send webhook alert: %s", str(e))
