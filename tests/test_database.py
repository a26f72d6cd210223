"""
Tests for longa/database.py - engine options and the request session.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from longa.database import _engine_options, get_db


def _settings(url, env="production"):
    settings = MagicMock()
    settings.database_url = url
    settings.app_env = env
    settings.database_pool_size = 20
    settings.database_max_overflow = 10
    return settings


class TestEngineOptions:
    def test_postgres_gets_pool_sizing(self):
        options = _engine_options(_settings("postgresql+asyncpg://u:p@db/longa"))
        assert options["pool_size"] == 20
        assert options["max_overflow"] == 10
        assert options["echo"] is False

    def test_sqlite_skips_pool_sizing(self):
        options = _engine_options(_settings("sqlite+aiosqlite:///:memory:", env="development"))
        assert "pool_size" not in options
        assert "max_overflow" not in options
        assert options["echo"] is True


class TestGetDb:
    @staticmethod
    def _factory(session):
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=session)
        context.__aexit__ = AsyncMock(return_value=False)
        return MagicMock(return_value=context)

    async def test_commits_on_success(self):
        session = AsyncMock()
        with patch("longa.database._get_session_factory", return_value=self._factory(session)):
            gen = get_db()
            assert await gen.__anext__() is session
            with pytest.raises(StopAsyncIteration):
                await gen.__anext__()
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    async def test_rolls_back_on_error(self):
        session = AsyncMock()
        with patch("longa.database._get_session_factory", return_value=self._factory(session)):
            gen = get_db()
            await gen.__anext__()
            with pytest.raises(RuntimeError):
                await gen.athrow(RuntimeError("boom"))
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
