"""
Wait-Timer Ticker
=================

Cancellable repeating task that drives ``WaitTimeEngine.tick`` once per
``TICK_INTERVAL_SECONDS`` (default 1 s) on the running event loop.

Only one callback is ever scheduled: ``start`` cancels any previous task
before creating the next one.  ``cancel`` is synchronous so the engine can
call it while holding its own lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class AsyncioTicker:
    def __init__(self, interval_seconds: float = 1.0):
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: Callable[[], Any]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._task = loop.create_task(self._loop(callback, self._stop_event))
        logger.debug("Ticker started (interval=%ss)", self.interval_seconds)

    def cancel(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Ticker cancelled")
        self._task = None
        self._stop_event = None

    async def wait_stopped(self) -> None:
        """Cancel and wait for the current task to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self, callback: Callable[[], Any], stop: asyncio.Event) -> None:
        """Periodic loop: sleep one interval, then tick."""
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass  # interval elapsed
            if stop.is_set():
                break
            try:
                callback()
            except Exception:
                logger.exception("Unhandled error in ticker callback")
