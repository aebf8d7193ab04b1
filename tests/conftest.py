'''
Pytest configuration for the VetBook backend.

This file sets up fixtures for:
1. Pointing the application at an in-memory SQLite database before any
   vetbook module is imported (the engine is created at import time).
2. Providing a fresh schema and session for each test, with foreign keys
   enforced as on Postgres. A file-backed variant gives every session its own
   connection for tests that run transactions side by side.
3. Providing an httpx AsyncClient bound to the app, with the session and the
   clock dependencies overridden.
4. Seeding a provider, a pet owner and slots.
'''

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("ENV", "test")

from collections.abc import AsyncGenerator, Callable, Sequence
from datetime import date

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel

# --- Application Imports ---
import vetbook.models  # noqa: F401 - register tables
from vetbook.api.deps import get_now, get_session
from vetbook.main import app
from vetbook.models.provider import PetOwner, Provider
from vetbook.models.slot import Slot, SlotStatus
from tests.constants import CONSULTATION_FEE, NOW


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite has no trio support).
    2. Promotes the scope to 'session'.
    """
    return "asyncio"


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """One in-memory database per test; StaticPool keeps it on one connection."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", _enable_foreign_keys)
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    File-backed database; NullPool gives each session its own connection.

    pysqlite's implicit BEGIN is switched off and every transaction opens with
    BEGIN IMMEDIATE, so concurrent writers wait on the database lock (up to the
    connect timeout) instead of failing when a read lock is upgraded.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'vetbook.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        _enable_foreign_keys(dbapi_connection, connection_record)

    @event.listens_for(test_engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(scope="function")
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture(scope="function")
def file_session_maker(file_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture(scope="function")
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for service-level tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture(scope="function")
async def client(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    AsyncClient against the app.

    Overrides `get_session` to use the test database and `get_now` so past/
    future checks are deterministic.
    """

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_now] = lambda: NOW

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- Seed data ---

@pytest.fixture(scope="function")
async def provider(db_session: AsyncSession) -> Provider:
    vet = Provider(
        name="Dr. Rivera",
        email="rivera@vetbook.example",
        timezone="UTC",
        consultation_fee=CONSULTATION_FEE,
    )
    db_session.add(vet)
    await db_session.commit()
    return vet


@pytest.fixture(scope="function")
async def other_provider(db_session: AsyncSession) -> Provider:
    vet = Provider(name="Dr. Okafor", email="okafor@vetbook.example", timezone="UTC")
    db_session.add(vet)
    await db_session.commit()
    return vet


@pytest.fixture(scope="function")
async def pet_owner(db_session: AsyncSession) -> PetOwner:
    owner = PetOwner(name="Sam Lee", email="sam@example.com")
    db_session.add(owner)
    await db_session.commit()
    return owner


SlotSpec = tuple[str, str, SlotStatus]


@pytest.fixture(scope="function")
def make_slots(db_session: AsyncSession) -> Callable:
    """
    Factory inserting slots for a provider on one day.

    Usage: await make_slots(provider_id, day, [("09:00", "09:30", SlotStatus.BOOKED), ...])
    """

    async def _make(
        provider_id: int,
        day: date,
        specs: Sequence[SlotSpec],
        timezone: str = "UTC",
    ) -> list[Slot]:
        slots = [
            Slot(
                provider_id=provider_id,
                slot_date=day,
                start_time=start,
                end_time=end,
                timezone=timezone,
                status=status,
            )
            for start, end, status in specs
        ]
        db_session.add_all(slots)
        await db_session.commit()
        return slots

    return _make
