"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks all external services.
"""
import os

# Required settings must exist before leadgate.main builds the app at import time
os.environ.setdefault("APP_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB
from leadgate.database import Base
from leadgate.models.lead import Lead
from leadgate.models.user import User


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are lru_cached; env tweaks in one test must not leak into the next."""
    from leadgate.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_redis():
    """Mock for async Redis — prevents real Redis calls in tests."""
    with patch("leadgate.utils.redis.get_redis") as mock:
        redis_mock = AsyncMock()
        redis_mock.get = AsyncMock(return_value=None)
        redis_mock.set = AsyncMock(return_value=True)
        redis_mock.lpush = AsyncMock(return_value=1)
        redis_mock.ping = AsyncMock(return_value=True)
        mock.return_value = redis_mock
        yield redis_mock


@pytest.fixture
async def user(db):
    u = User(name="Quiz Owner", email="owner@example.com")
    db.add(u)
    await db.flush()
    return u


@pytest.fixture
def make_lead(db):
    """Insert a lead directly, bypassing the intake pipeline."""
    counter = {"n": 0}

    async def _make(minutes_ago: int = 0, **fields) -> Lead:
        counter["n"] += 1
        created = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
        values = {
            "external_system": "example_system",
            "external_entity": "lead",
            "external_entity_id": f"entity-{counter['n']}",
            "data": {},
            "created_at": created,
            "updated_at": created,
        }
        values.update(fields)
        lead = Lead(**values)
        db.add(lead)
        await db.flush()
        return lead

    return _make
