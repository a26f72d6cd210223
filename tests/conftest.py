"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks Redis and the alert webhook.
"""
import os

os.environ.setdefault("APP_SECRET_KEY", "test-app-secret-key-0123456789abcdef")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "a]v9$kLm!Qw2xR7nP4uY8bT1cF5dG6hZ3sE0")

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB
from longa.database import Base
import longa.models  # noqa: F401  (registers all tables)


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests, with working SAVEPOINTs."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    # pysqlite/aiosqlite emit BEGIN lazily, which breaks SAVEPOINT; take over BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture(autouse=True)
def mock_alert():
    """Mock for send_alert - prevents webhook posts and Redis cooldown lookups."""
    with patch("longa.utils.alerting.send_alert", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def mock_redis():
    """Mock for async Redis - prevents real Redis calls in tests."""
    with patch("longa.utils.redis.get_redis") as mock:
        redis_mock = AsyncMock()
        redis_mock.set = AsyncMock(return_value=True)
        redis_mock.get = AsyncMock(return_value=None)
        redis_mock.ping = AsyncMock(return_value=True)
        mock.return_value = redis_mock
        yield redis_mock
