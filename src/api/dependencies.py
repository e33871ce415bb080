"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.wait_timer import WaitTimeEngine
from src.infrastructure.database import async_session_factory
from src.infrastructure.redis_client import get_redis


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_wait_timer(request: Request) -> WaitTimeEngine:
    """The single engine built by the application lifespan."""
    return request.app.state.wait_timer


async def get_redis_client() -> aioredis.Redis:
    return await get_redis()
