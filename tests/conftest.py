"""
Pytest configuration and fixtures for the procedure tracker tests.

Tests run against a real database (TEST_DATABASE_URL), not mocks. The default
is a local SQLite file through aiosqlite; point TEST_DATABASE_URL at a
PostgreSQL database to run the same suite there.
"""

import os
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_procedures.db")
TEST_API_KEY = "test-public-key"

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["PUBLIC_API_KEY"] = TEST_API_KEY
os.environ["SEED_DEMO_DATA"] = "false"

from procedure_tracker.core.database import get_db
from procedure_tracker.main import app as fastapi_app
from procedure_tracker.models.base import Base
from procedure_tracker.client.api_client import ProcedureServiceClient

# Import all models to ensure they're registered
from procedure_tracker import models as _models  # noqa: F401


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for each test.

    Creates a new engine per test to avoid connection pooling issues.
    Rolls back after each test.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=NullPool,
    )

    # Ensure tables exist (idempotent)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Disable autoflush to control when writes happen
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def clean_db(db_session: AsyncSession) -> AsyncGenerator[None, None]:
    """
    Delete all rows before the test, children before parents.

    Use this fixture when tests need a completely clean database state.
    """
    for table in reversed(Base.metadata.sorted_tables):
        await db_session.execute(table.delete())
    await db_session.commit()

    yield


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an async HTTP client for API integration tests.

    Overrides the database dependency to use the test session and sends
    the public API key on every request.
    """
    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"apikey": TEST_API_KEY},
    ) as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def service_client(client: AsyncClient) -> AsyncGenerator[ProcedureServiceClient, None]:
    """A ProcedureServiceClient talking to the app in-process."""
    sc = ProcedureServiceClient(
        "http://test",
        TEST_API_KEY,
        transport=ASGITransport(app=fastapi_app),
    )
    yield sc
    await sc.close()

