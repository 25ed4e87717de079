"""Shared pytest fixtures for all test suites."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.db.models import Base, Clinic

CLINIC_A = "clinic-A"
CLINIC_B = "clinic-B"


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    """File-backed SQLite database with the schema and two clinics.

    A file is used instead of :memory: so that every NullPool connection,
    from any event loop, sees the same data.
    """
    path = tmp_path / "docita.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)

    with engine.begin() as conn:
        conn.execute(
            Clinic.__table__.insert(),
            [
                {"id": CLINIC_A, "name": "Clinic A", "timezone": "UTC", "tier": "CAPTURE", "active": True},
                {"id": CLINIC_B, "name": "Clinic B", "timezone": "UTC", "tier": "CAPTURE", "active": True},
            ],
        )

    engine.dispose()
    return path


@pytest_asyncio.fixture
async def sqlite_engine(sqlite_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Async engine over the test database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{sqlite_path}",
        poolclass=NullPool,
        echo=False,
    )

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Async session for SQL integration tests."""
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session
        await session.rollback()
