"""
Shared pytest configuration for padel_stats tests.

Uses a local SQLite file through aiosqlite by default; point TEST_DATABASE_URL
at a PostgreSQL test database to run against the production engine.

SAFETY: This module REFUSES to run against any database whose name does not
contain the substring "test". This prevents accidental drops of the
development or production database when environment variables are missing
or misconfigured.
"""

import os

# Must be set before the app is imported so rate limiting is disabled
os.environ.setdefault("ENV", "test")

import asyncio  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from padel_stats.database.db import Base  # noqa: E402
from padel_stats.database.models import User  # noqa: E402
from padel_stats.services import auth_service  # noqa: E402


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if the resolved URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///./padel_stats_test.db")

    # ── Safety gate: database name MUST contain "test" ──────────────────
    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n\n"
            f"  Fix: set TEST_DATABASE_URL to a test database, e.g.:\n"
            f"    export TEST_DATABASE_URL=postgresql+asyncpg://.../{db_name}_test\n"
            f"{'=' * 70}"
        )

    return url


# Test database configuration, validated at import time so pytest fails
# immediately with a clear message rather than silently hitting the wrong DB.
TEST_DATABASE_URL = _resolve_test_database_url()

# Hashed once for the whole test run
TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = auth_service.hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine with a fresh schema for each test."""
    # NullPool avoids reusing connections across event loops
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    # Code that opens its own sessions (WebSocket route, health check) uses
    # db.AsyncSessionLocal, so point it at the test engine too
    from padel_stats.database import db

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

    try:
        await asyncio.sleep(0.05)  # Let connections finish
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Database session bound to the test engine."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


async def make_user(session: AsyncSession, username: str, first_name: str = "Test", last_name: str = "Player") -> User:
    """Insert a user directly and return it."""
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=TEST_PASSWORD_HASH,
        first_name=first_name,
        last_name=last_name,
    )
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def players(db_session):
    """Four users ready to be put on a match roster."""
    users = [
        await make_user(db_session, "ana", "Ana", "Lopez"),
        await make_user(db_session, "bea", "Bea", "Martin"),
        await make_user(db_session, "carla", "Carla", "Ruiz"),
        await make_user(db_session, "dani", "Dani", "Soto"),
    ]
    await db_session.commit()
    return users


@pytest_asyncio.fixture
async def observer(db_session):
    """A user who records events without playing."""
    user = await make_user(db_session, "coach", "Coach", "Vega")
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def user_factory(db_session):
    """Create extra users inside a test: ``await user_factory("name")``."""

    async def _create(username: str, first_name: str = "Test", last_name: str = "Player") -> User:
        user = await make_user(db_session, username, first_name, last_name)
        await db_session.commit()
        return user

    return _create
