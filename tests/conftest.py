"""
Shared fixtures: a throwaway SQLite database, an ASGI client and bearer tokens.
"""

import os
import tempfile
from datetime import datetime, timezone

_db_dir = tempfile.mkdtemp(prefix="gst-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_db_dir}/test.db"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["DEBUG"] = "false"

import pytest
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api.deps import get_clock
from app.core.security import create_access_token
from app.database import Base, engine, async_session_factory
from app.models import gst_invoice, pl_statement  # noqa: F401


# Mid-June 2025: financial year 2025-26
FIXED_NOW = datetime(2025, 6, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
async def db_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session():
    async with async_session_factory() as session:
        yield session


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
async def client(fixed_clock):
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-2')}"}
