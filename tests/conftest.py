"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The wait timer is driven by ``ManualTicker``
so accrual is deterministic: ``ticker.fire(n)`` is *n* elapsed seconds.
"""

from typing import AsyncGenerator, Callable, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.domain.wait_timer import WaitTimeEngine
from src.infrastructure import models  # noqa: F401  (registers tables)
from src.infrastructure.database import Base


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DB_URL, echo=False)
TestSessionFactory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


# ── Deterministic ticker ──────────────────────────────────────────────


class ManualTicker:
    """``RepeatingTask`` stand-in; seconds pass only when ``fire`` is called."""

    def __init__(self):
        self.callback: Optional[Callable[[], object]] = None
        self.starts = 0
        self.cancels = 0

    @property
    def is_running(self) -> bool:
        return self.callback is not None

    def start(self, callback):
        self.callback = callback
        self.starts += 1

    def cancel(self):
        if self.callback is not None:
            self.cancels += 1
        self.callback = None

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.callback is None:
                return
            self.callback()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def timer(ticker: ManualTicker) -> WaitTimeEngine:
    return WaitTimeEngine(ticker)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield a session, then drop everything."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionFactory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()
