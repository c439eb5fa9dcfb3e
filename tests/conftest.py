# tests/conftest.py
import os

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("CLINIC_TIMEZONE", "UTC")

import pytest
from sqlalchemy.pool import StaticPool

from clinic_app.db.base import Base, get_engine, get_session_factory
import clinic_app.db.models  # noqa: F401  (registers tables)


@pytest.fixture
async def engine():
    engine = await get_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    return await get_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
