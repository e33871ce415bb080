"""
Durable wait-session storage (Redis key-value).

The engine keeps its session in memory; every change is mirrored here so
that an API restart can put the driver's timer back where it was.
``SessionPersister`` coalesces the once-per-second tick snapshots into a
single in-flight write, so writes land in order and never pile up.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisSessionStore:
    def __init__(self, client: aioredis.Redis, key: str = "wait-timer:session"):
        self.redis = client
        self.key = key

    async def save(self, snapshot: dict[str, Any]) -> None:
        await self.redis.set(self.key, json.dumps(snapshot))

    async def load(self) -> Optional[dict[str, Any]]:
        raw = await self.redis.get(self.key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable wait session at %s", self.key)
            return None
        if not isinstance(data, dict):
            logger.warning("Discarding non-object wait session at %s", self.key)
            return None
        return data

    async def delete(self) -> None:
        await self.redis.delete(self.key)


class SessionPersister:
    """``on_change`` listener for the engine: schedules saves on the event loop."""

    def __init__(self, store: RedisSessionStore):
        self.store = store
        self._pending: Optional[dict[str, Any]] = None
        self._task: Optional[asyncio.Task] = None

    def __call__(self, snapshot: dict[str, Any]) -> None:
        self._pending = snapshot
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._flush())

    async def _flush(self) -> None:
        while self._pending is not None:
            snapshot, self._pending = self._pending, None
            try:
                if snapshot.get("active_ride_id") is None:
                    await self.store.delete()
                else:
                    await self.store.save(snapshot)
            except Exception:
                logger.exception("Failed to persist wait session")

    async def drain(self) -> None:
        """Wait for the in-flight write (used on shutdown and in tests)."""
        if self._task is not None:
            await self._task
