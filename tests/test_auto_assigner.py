"""
Tests for longa/workers/auto_assigner.py - auto-assignment worker.

Covers:
- assign_stale_bookings: assignment pass, unmatched towns alert
- run_auto_assigner: error alerting, heartbeat, loop sleep
"""
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from longa.models.booking import BookingStatus
from longa.utils.alerting import AlertType
from longa.workers.auto_assigner import WORKER_NAME, assign_stale_bookings, run_auto_assigner
from tests.factories import make_booking, make_provider, make_service, make_user


def _session_factory(db):
    @asynccontextmanager
    async def factory():
        yield db
    return factory


def _worker_settings():
    settings = MagicMock()
    settings.auto_assign_poll_seconds = 60
    settings.auto_assign_after_minutes = 30
    return settings


# ---------------------------------------------------------------------------
# assign_stale_bookings
# ---------------------------------------------------------------------------

class TestAssignStaleBookings:
    async def test_assigns_and_alerts_for_unmatched(self, db, mock_alert):
        client = await make_user(db)
        provider = await make_provider(db, current_work_location="Windhoek", rating=4.5)
        service = await make_service(db)
        old = datetime.now(timezone.utc) - timedelta(hours=1)
        matched = await make_booking(db, service, client, location_town="Windhoek", created_at=old)
        orphan = await make_booking(db, service, client, location_town="Rundu", created_at=old)
        await db.commit()

        with patch("longa.workers.auto_assigner.async_session_factory", _session_factory(db)):
            assigned = await assign_stale_bookings(30)

        assert assigned == 1
        assert matched.status == BookingStatus.ACCEPTED
        assert matched.provider_id == provider.id
        assert orphan.status == BookingStatus.PENDING
        mock_alert.assert_called_once()
        assert mock_alert.call_args[0][0] == AlertType.AUTO_ASSIGN_NO_PROVIDER
        assert "Rundu" in mock_alert.call_args[0][1]

    async def test_fresh_bookings_left_alone(self, db, mock_alert):
        client = await make_user(db)
        await make_provider(db)
        service = await make_service(db)
        booking = await make_booking(db, service, client)
        await db.commit()

        with patch("longa.workers.auto_assigner.async_session_factory", _session_factory(db)):
            assigned = await assign_stale_bookings(30)

        assert assigned == 0
        assert booking.status == BookingStatus.PENDING
        mock_alert.assert_not_called()


# ---------------------------------------------------------------------------
# run_auto_assigner
# ---------------------------------------------------------------------------

class TestRunAutoAssigner:
    async def test_error_is_alerted_and_heartbeat_written(self, mock_alert):
        with (
            patch("longa.config.get_settings", return_value=_worker_settings()),
            patch(
                "longa.workers.auto_assigner.assign_stale_bookings",
                new_callable=AsyncMock,
                side_effect=RuntimeError("db down"),
            ),
            patch("longa.workers.auto_assigner.write_heartbeat", new_callable=AsyncMock) as heartbeat,
            patch("longa.workers.auto_assigner.asyncio.sleep", new_callable=AsyncMock,
                  side_effect=asyncio.CancelledError),
        ):
            with pytest.raises(asyncio.CancelledError):
                await run_auto_assigner()

        mock_alert.assert_called_once()
        assert mock_alert.call_args[0][0] == AlertType.WORKER_ERROR
        heartbeat.assert_awaited_once_with(WORKER_NAME, ttl_seconds=180)

    async def test_passes_age_threshold(self):
        with (
            patch("longa.config.get_settings", return_value=_worker_settings()),
            patch(
                "longa.workers.auto_assigner.assign_stale_bookings",
                new_callable=AsyncMock, return_value=2,
            ) as assign,
            patch("longa.workers.auto_assigner.write_heartbeat", new_callable=AsyncMock),
            patch("longa.workers.auto_assigner.asyncio.sleep", new_callable=AsyncMock,
                  side_effect=asyncio.CancelledError) as sleep,
        ):
            with pytest.raises(asyncio.CancelledError):
                await run_auto_assigner()

        assign.assert_awaited_once_with(30)
        sleep.assert_awaited_once_with(60)
