"""
Write helpers shared by the service layer.

Primary writes either land completely or raise StoreWriteFailed after a
rollback. Secondary writes (audit rows, notifications, export history) run
inside a SAVEPOINT: if they fail, only the savepoint is rolled back, the
failure is logged and alerted, and the primary write is kept.
"""
import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from longa.services.errors import StoreWriteFailed

logger = logging.getLogger(__name__)


async def flush_or_fail(db: AsyncSession, what: str) -> None:
    """Flush pending primary changes, rolling back and raising on error."""
    try:
        await db.flush()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("%s failed: %s", what, str(e))
        raise StoreWriteFailed(f"{what} failed: {e}") from e


async def commit_or_fail(db: AsyncSession, what: str) -> None:
    """Commit the current transaction, rolling back and raising on error."""
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("%s failed: %s", what, str(e))
        raise StoreWriteFailed(f"{what} failed: {e}") from e


async def add_secondary(
    db: AsyncSession,
    rows: Iterable,
    label: str,
    **log_extra,
) -> bool:
    """
    Insert rows that must not undo the primary write when they fail.
    Call after the primary change has been flushed. Returns True on success.
    """
    rows = list(rows)
    if not rows:
        return True
    try:
        async with db.begin_nested():
            db.add_all(rows)
        return True
    except SQLAlchemyError as e:
        logger.warning(
            "%s write failed (primary write kept): %s", label, str(e),
            extra=log_extra,
        )
        from longa.utils.alerting import send_alert, AlertType
        await send_alert(
            AlertType.SECONDARY_WRITE_FAILED,
            f"{label} write failed: {e}",
            severity="warning",
            extra={k: str(v) for k, v in log_extra.items()},
        )
        return False
