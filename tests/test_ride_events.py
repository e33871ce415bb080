"""Tests for applying dispatch ride events to the wait timer."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.domain.entities import RideEvent
from src.domain.enums import RideEventType, WaitState
from src.workers.ride_events import (
    apply_ride_event,
    handle_message,
    listen,
    start_ride_event_listener,
    stop_ride_event_listener,
)


class TestApplyRideEvent:
    def test_cancel_for_active_ride_clears_timer(self, timer, ticker):
        timer.start_at_pickup(7)
        ticker.fire(400)
        event = RideEvent(RideEventType.CALL_CANCELED, 7)
        assert apply_ride_event(timer, event) is True
        assert timer.state == WaitState.IDLE
        assert timer.get_wait_time_for_ride(7) == 0

    def test_unassigned_for_active_ride_clears_timer(self, timer):
        timer.start_at_stop(7, 2)
        assert apply_ride_event(timer, RideEvent(RideEventType.CALL_UNASSIGNED, 7))
        assert timer.active_ride_id is None

    def test_event_for_other_ride_is_ignored(self, timer):
        timer.start_at_pickup(7)
        assert apply_ride_event(timer, RideEvent(RideEventType.CALL_CANCELED, 8)) is False
        assert timer.active_ride_id == 7

    def test_available_again_never_clears(self, timer):
        timer.start_at_pickup(7)
        event = RideEvent(RideEventType.CALL_AVAILABLE_AGAIN, 7)
        assert apply_ride_event(timer, event) is False
        assert timer.state == WaitState.FREE_WAIT

    def test_event_with_idle_timer(self, timer):
        assert apply_ride_event(timer, RideEvent(RideEventType.CALL_CANCELED, 7)) is False


class TestHandleMessage:
    def test_json_message(self, timer):
        timer.start_at_pickup(4)
        assert handle_message(timer, '{"event": "CallUnassigned", "RideId": 4}')
        assert timer.active_ride_id is None

    @pytest.mark.parametrize(
        "payload",
        ["not json", "[1, 2]", '{"event": "Nope", "rideId": 4}', '{"event": "CallCanceled"}'],
    )
    def test_malformed_messages_are_skipped(self, timer, payload):
        timer.start_at_pickup(4)
        assert handle_message(timer, payload) is False
        assert timer.active_ride_id == 4


class _FakePubSub:
    def __init__(self, messages, stop: asyncio.Event):
        self.messages = list(messages)
        self.stop = stop
        self.subscribed: list[str] = []
        self.closed = False

    async def subscribe(self, channel):
        self.subscribed.append(channel)

    async def get_message(self, ignore_subscribe_messages=False, timeout=None):
        if self.messages:
            return self.messages.pop(0)
        self.stop.set()
        await asyncio.sleep(0.01)
        return None

    async def unsubscribe(self):
        pass

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_listen_applies_published_events(timer):
    timer.start_at_pickup(3)
    stop = asyncio.Event()
    pubsub = _FakePubSub(
        [
            {"type": "message", "data": json.dumps({"event": "CallCanceled", "rideId": 9})},
            {"type": "message", "data": json.dumps({"event": "CallCanceled", "rideId": 3})},
        ],
        stop,
    )
    client = MagicMock()
    client.pubsub.return_value = pubsub

    with patch("src.workers.ride_events.get_redis", AsyncMock(return_value=client)):
        await listen(timer, stop, channel="test-events")

    assert pubsub.subscribed == ["test-events"]
    assert pubsub.closed
    assert timer.active_ride_id is None


@pytest.mark.asyncio
async def test_listener_start_and_stop(timer):
    timer.start_at_pickup(3)
    drained = asyncio.Event()
    pubsub = _FakePubSub(
        [{"type": "message", "data": json.dumps({"event": "CallUnassigned", "rideId": 3})}],
        drained,
    )
    client = MagicMock()
    client.pubsub.return_value = pubsub

    with patch("src.workers.ride_events.get_redis", AsyncMock(return_value=client)):
        await start_ride_event_listener(timer)
        await asyncio.wait_for(drained.wait(), timeout=1)
        await stop_ride_event_listener()

    assert timer.active_ride_id is None
    assert pubsub.closed
