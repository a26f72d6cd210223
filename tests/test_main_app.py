"""
Tests for longa/main.py - app factory, CORS origins, correlation IDs, lifespan.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from longa.database import get_db
from longa.main import _allowed_origins, create_app, lifespan


def _make_mock_settings(**overrides):
    """Build a mock Settings object."""
    defaults = {
        "app_env": "test",
        "app_base_url": "http://localhost:8000",
        "allowed_origins": "",
        "log_level": "WARNING",
        "jwt_secret": "test_jwt_secret_that_is_long_enough",
        "sentry_dsn": "",
        "auto_assign_enabled": False,
    }
    defaults.update(overrides)
    settings = MagicMock()
    for k, v in defaults.items():
        setattr(settings, k, v)
    return settings


async def _fake_db():
    yield AsyncMock()


def _app(**overrides) -> FastAPI:
    with (
        patch("longa.main.get_settings", return_value=_make_mock_settings(**overrides)),
        patch("longa.main.configure_structured_logging"),
    ):
        return create_app()


class TestCreateApp:
    def test_routes_registered(self):
        paths = _app().openapi()["paths"]
        assert "/health" in paths
        assert "/api/v1/bookings" in paths
        assert "/api/v1/admin/bookings/{booking_id}/reassign" in paths
        assert "/api/v1/admin/payouts/export" in paths
        assert "/api/v1/admin/analytics/financial" in paths
        assert "/api/v1/providers/me/location" in paths
        assert "/api/v1/providers/me/availability" in paths

    def test_correlation_id_echoed(self):
        with patch("longa.main.get_settings", return_value=_make_mock_settings()):
            client = TestClient(_app())
            response = client.get("/health", headers={"X-Correlation-ID": "corr-xyz"})
        assert response.status_code == 200
        assert response.headers["X-Correlation-ID"] == "corr-xyz"

    def test_correlation_id_generated(self):
        with patch("longa.main.get_settings", return_value=_make_mock_settings()):
            client = TestClient(_app())
            response = client.get("/health")
        assert response.headers.get("X-Correlation-ID")

    def test_missing_token_rejected(self):
        app = _app()
        app.dependency_overrides[get_db] = _fake_db
        with patch("longa.main.get_settings", return_value=_make_mock_settings()):
            client = TestClient(app)
            response = client.get("/api/v1/admin/bookings")
        assert response.status_code in (401, 403)


class TestAllowedOrigins:
    def test_development_adds_localhost(self):
        origins = _allowed_origins(_make_mock_settings(app_env="development"))
        assert "http://localhost:3000" in origins
        assert origins[-1] == "http://localhost:8000"

    def test_production_uses_configured_list(self):
        origins = _allowed_origins(_make_mock_settings(
            app_env="production",
            allowed_origins="https://admin.longa.example, https://app.longa.example",
            app_base_url="https://app.longa.example",
        ))
        assert origins == ["https://admin.longa.example", "https://app.longa.example"]


class TestLifespan:
    async def test_starts_and_stops_auto_assigner(self):
        started = asyncio.Event()

        async def fake_worker():
            started.set()
            await asyncio.sleep(3600)

        with (
            patch("longa.main.get_settings", return_value=_make_mock_settings(auto_assign_enabled=True)),
            patch("longa.workers.auto_assigner.run_auto_assigner", fake_worker),
        ):
            async with lifespan(FastAPI()):
                await asyncio.wait_for(started.wait(), timeout=1)

    async def test_no_worker_when_disabled(self):
        with (
            patch("longa.main.get_settings", return_value=_make_mock_settings()),
            patch("longa.workers.auto_assigner.run_auto_assigner") as worker,
        ):
            async with lifespan(FastAPI()):
                pass
        worker.assert_not_called()
