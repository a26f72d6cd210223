"""
Tests for longa/api/health.py - liveness and readiness.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from longa.api.health import VERSION, health_check, readiness_check


class TestHealthCheck:
    async def test_returns_healthy(self):
        result = await health_check()
        assert result["status"] == "healthy"
        assert result["version"] == VERSION
        assert datetime.fromisoformat(result["timestamp"]).tzinfo is not None


class TestReadinessCheck:
    async def test_all_healthy(self, db, mock_redis):
        result = await readiness_check(db=db)
        assert result["status"] == "ready"
        assert result["checks"] == {"database": True, "redis": True}
        assert result["workers"] == {}

    async def test_redis_down_is_degraded(self, db):
        with patch("longa.utils.redis.get_redis", side_effect=ConnectionError("refused")):
            result = await readiness_check(db=db)
        assert result["status"] == "degraded"
        assert result["checks"]["database"] is True
        assert result["checks"]["redis"] is False

    async def test_database_down_is_degraded(self, mock_redis):
        broken_db = AsyncMock()
        broken_db.execute = AsyncMock(side_effect=Exception("connection refused"))
        result = await readiness_check(db=broken_db)
        assert result["checks"]["database"] is False
        assert result["status"] == "degraded"

    async def test_worker_heartbeat_reported_when_enabled(self, db, mock_redis):
        settings = MagicMock()
        settings.auto_assign_enabled = True
        seen = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
        mock_redis.get = AsyncMock(return_value=seen.isoformat())

        with patch("longa.config.get_settings", return_value=settings):
            result = await readiness_check(db=db)

        assert result["workers"] == {"auto_assigner": seen.isoformat()}
        mock_redis.get.assert_awaited_once_with("longa:worker_health:auto_assigner")
