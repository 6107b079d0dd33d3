"""
Shared pytest configuration for courtside tests.

Every test gets a fresh in-memory SQLite database, so nothing leaks
between tests and no external database is needed.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from courtside.database import db
from courtside.database.db import Base
from courtside.services import user_service, club_service, session_service
from courtside.utils.datetime_utils import get_match_clock
from courtside.utils.locks import get_entity_locks

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def reset_process_state():
    """Locks bind to the event loop that first waits on them; each test has its own loop."""
    get_entity_locks().reset()
    get_match_clock().reset()
    yield
    get_entity_locks().reset()
    get_match_clock().reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create an in-memory engine with all tables for a single test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # All sessions share the connection holding the data
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Monkey-patch AsyncSessionLocal so db.session_scope() (routes,
    # concurrent callers) sees the same database
    test_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = test_session_maker

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """A session bound to the per-test database."""
    async with db.AsyncSessionLocal() as session:
        yield session


# ============================================================================
# Data helpers
# ============================================================================

@pytest_asyncio.fixture
async def make_user(db_session):
    counter = {"n": 0}

    async def _make(name=None, email=None, skill_level=5):
        counter["n"] += 1
        n = counter["n"]
        return await user_service.create_user(
            db_session,
            name=name or f"Player {n}",
            email=email or f"player{n}@example.com",
            skill_level=skill_level,
        )

    return _make


@pytest_asyncio.fixture
async def club_with_admin(db_session, make_user):
    """A club plus its creator (the admin)."""
    admin = await make_user(name="Admin")
    club = await club_service.create_club(db_session, name="Shuttle Club", creator_user_id=admin["id"])
    return club, admin


@pytest_asyncio.fixture
async def make_session(db_session, club_with_admin):
    club, _ = club_with_admin

    async def _make(date="2099-01-01", start_time="18:00", end_time="20:00", **kwargs):
        created = await session_service.create_sessions(
            db_session, club["id"], date, start_time, end_time, **kwargs
        )
        return created[0]

    return _make
