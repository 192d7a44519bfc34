import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

# Point the global engine at a throwaway database before backend is imported.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="studydeck-tests-")
os.environ.setdefault("STUDYDECK_DATABASE_URL", f"sqlite+aiosqlite:///{Path(_TEST_DB_DIR) / 'test.db'}")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from backend.models import Base  # noqa: E402

NOW = datetime(2024, 1, 1, 9, 0, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """A fresh database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'studydeck.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
