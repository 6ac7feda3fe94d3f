"""
Shared pytest configuration for pickup tests.

Database tests run against TEST_DATABASE_URL when it is set (PostgreSQL in
CI) and otherwise against a fresh SQLite file per test.

SAFETY: a TEST_DATABASE_URL whose database name does not contain "test" is
refused, so a misconfigured environment can never wipe a real database.
"""

import os

os.environ.setdefault("ENV", "test")

from datetime import timedelta  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from pickup.database import db  # noqa: E402
from pickup.database.db import Base  # noqa: E402
from pickup.database.models import Room, RoomStatus, Sport, User  # noqa: E402
from pickup.services import realtime_service  # noqa: E402
from pickup.utils.datetime_utils import utcnow  # noqa: E402


def _resolve_test_database_url(tmp_path) -> str:
    """Return TEST_DATABASE_URL after the safety check, or a per-test SQLite file."""
    url = os.getenv("TEST_DATABASE_URL", "")
    if not url:
        return f"sqlite+aiosqlite:///{tmp_path / 'pickup_test.db'}"

    db_name = url.rsplit("/", 1)[-1].split("?")[0]
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n"
            f"{'=' * 70}"
        )
    return url


def _serialize_sqlite_transactions(engine) -> None:
    """
    Make every SQLite transaction BEGIN IMMEDIATE.

    pysqlite defers BEGIN until the first write, which lets two connections
    deadlock when both read and then try to write. Taking the write lock at
    BEGIN makes concurrent sessions queue on the busy timeout instead.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine with an empty schema."""
    url = _resolve_test_database_url(tmp_path)
    is_sqlite = url.startswith("sqlite")
    engine = create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,  # No connection pooling - each session gets a new connection
        connect_args={"timeout": 30} if is_sqlite else {},
    )
    if is_sqlite:
        _serialize_sqlite_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (seeding) must hit the test database
    original_async_session_local = db.AsyncSessionLocal
    db.AsyncSessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    yield engine

    db.AsyncSessionLocal = original_async_session_local
    if not is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    """Session maker for tests that need several independent sessions."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture(autouse=True)
def fresh_realtime_hub(monkeypatch):
    """Every test gets its own realtime hub."""
    monkeypatch.setattr(realtime_service, "_realtime_hub", None)
    return realtime_service.get_realtime_hub()


# ============================================================================
# Factories (each one commits, so other sessions can see the rows)
# ============================================================================


@pytest.fixture
def make_user(db_session):
    async def _make_user(user_id, nickname=None, **fields):
        user = User(id=user_id, nickname=nickname or user_id[:20], **fields)
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_sport(db_session):
    async def _make_sport(name="풋살", icon="🥅", is_active=True, **fields):
        sport = Sport(name=name, icon=icon, is_active=is_active, **fields)
        db_session.add(sport)
        await db_session.commit()
        return sport

    return _make_sport


@pytest.fixture
def make_room(db_session):
    async def _make_room(host, sport, **fields):
        values = {
            "title": "주말 풋살 같이 하실 분",
            "location_name": "강남 풋살파크",
            "play_date": utcnow() + timedelta(days=2),
            "max_participants": 4,
            "current_participants": 1,
            "cost_per_person": 0,
            "min_skill_level": 0,
            "max_skill_level": 10,
            "status": RoomStatus.RECRUITING.value,
        }
        values.update(fields)
        room = Room(host_id=host.id, sport_id=sport.id, **values)
        db_session.add(room)
        await db_session.commit()
        return room

    return _make_room


@pytest_asyncio.fixture
async def host(make_user):
    return await make_user("host-user", "호스트")


@pytest_asyncio.fixture
async def sport(make_sport):
    return await make_sport()


@pytest_asyncio.fixture
async def room(make_room, host, sport):
    """Recruiting room for four, host only."""
    return await make_room(host, sport)


@pytest.fixture
def no_database():
    """Route tests mock the services; hand routes a dummy session."""
    from pickup.api.main import app
    from pickup.database.db import get_db_session

    async def fake_session():
        yield AsyncMock()

    app.dependency_overrides[get_db_session] = fake_session
    yield
    app.dependency_overrides.pop(get_db_session, None)
