"""
Ride Event Listener
===================

Subscribes to the dispatch real-time channel (Redis pub/sub,
``RIDE_EVENTS_CHANNEL``) and applies ride lifecycle events to the wait
timer.

* ``CallUnassigned`` / ``CallCanceled`` for the ride that owns the timer
  clear it.  The wait-time charge is *not* captured: the ride is no longer
  the driver's to bill.
* Every other event, or an event for another ride, is ignored.

Messages are JSON objects: ``{"event": "CallCanceled", "rideId": 7}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from src.config import settings
from src.domain.entities import RideEvent
from src.domain.enums import RideEventType
from src.domain.wait_timer import WaitTimeEngine
from src.infrastructure.redis_client import get_redis

logger = logging.getLogger(__name__)

CLEARING_EVENTS = frozenset(
    {RideEventType.CALL_UNASSIGNED, RideEventType.CALL_CANCELED}
)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


def apply_ride_event(engine: WaitTimeEngine, event: RideEvent) -> bool:
    """Clear the timer if *event* ends the ride that owns it."""
    if event.event_type not in CLEARING_EVENTS:
        logger.debug("Ride event %s ignored by wait timer", event.event_type.value)
        return False
    if engine.active_ride_id != event.ride_id:
        logger.debug(
            "Ride event %s for ride %s does not affect active ride %s",
            event.event_type.value,
            event.ride_id,
            engine.active_ride_id,
        )
        return False
    cleared = engine.clear_timer(event.ride_id)
    if cleared:
        logger.info(
            "Wait timer cleared for ride %s after %s",
            event.ride_id,
            event.event_type.value,
        )
    return cleared


def handle_message(engine: WaitTimeEngine, data: str | bytes) -> bool:
    """Decode one pub/sub payload and apply it.  Malformed payloads are skipped."""
    try:
        event = RideEvent.from_message(json.loads(data))
    except (ValueError, TypeError) as exc:
        logger.warning("Skipping malformed ride event %r: %s", data, exc)
        return False
    return apply_ride_event(engine, event)


# ── Public API ────────────────────────────────────────────────────────


async def start_ride_event_listener(engine: WaitTimeEngine) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(engine, _stop_event))
    logger.info(
        "Ride event listener started (channel=%s)", settings.ride_events_channel
    )


async def stop_ride_event_listener() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Ride event listener stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(engine: WaitTimeEngine, stop: asyncio.Event) -> None:
    """Subscribe and dispatch; reconnect after a short back-off on errors."""
    while not stop.is_set():
        try:
            await listen(engine, stop)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Ride event subscription failed")
        try:
            await asyncio.wait_for(stop.wait(), timeout=5)
            break
        except asyncio.TimeoutError:
            pass  # resubscribe


async def listen(
    engine: WaitTimeEngine,
    stop: asyncio.Event,
    channel: Optional[str] = None,
) -> None:
    redis = await get_redis()
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel or settings.ride_events_channel)
    try:
        while not stop.is_set():
            message = await pubsub.get_message(
                ignore_subscribe_messages=True, timeout=1.0
            )
            if message is None or message.get("type") != "message":
                continue
            handle_message(engine, message["data"])
    finally:
        await pubsub.unsubscribe()
        await pubsub.aclose()
