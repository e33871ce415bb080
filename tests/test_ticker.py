"""Tests for the asyncio ticker that drives the wait timer in production."""

from __future__ import annotations

import asyncio

import pytest

from src.domain.enums import WaitState
from src.domain.wait_timer import WaitTimeEngine
from src.workers.ticker import AsyncioTicker


@pytest.mark.asyncio
async def test_ticker_calls_back_periodically():
    ticker = AsyncioTicker(interval_seconds=0.01)
    calls = []
    ticker.start(lambda: calls.append(1))
    await asyncio.sleep(0.1)
    assert ticker.is_running
    await ticker.wait_stopped()
    assert len(calls) >= 2
    assert not ticker.is_running


@pytest.mark.asyncio
async def test_cancel_stops_callbacks():
    ticker = AsyncioTicker(interval_seconds=0.01)
    calls = []
    ticker.start(lambda: calls.append(1))
    await asyncio.sleep(0.05)
    ticker.cancel()
    count = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == count


@pytest.mark.asyncio
async def test_restart_replaces_previous_callback():
    ticker = AsyncioTicker(interval_seconds=0.01)
    first, second = [], []
    ticker.start(lambda: first.append(1))
    ticker.start(lambda: second.append(1))
    await asyncio.sleep(0.05)
    await ticker.wait_stopped()
    assert first == []
    assert len(second) >= 1


@pytest.mark.asyncio
async def test_callback_errors_do_not_stop_the_loop():
    ticker = AsyncioTicker(interval_seconds=0.01)
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError("boom")

    ticker.start(flaky)
    await asyncio.sleep(0.08)
    await ticker.wait_stopped()
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_cancel_without_start_is_safe():
    ticker = AsyncioTicker()
    ticker.cancel()
    await ticker.wait_stopped()
    assert not ticker.is_running


@pytest.mark.asyncio
async def test_engine_accrues_in_real_time_and_pause_freezes_it():
    ticker = AsyncioTicker(interval_seconds=0.005)
    engine = WaitTimeEngine(ticker, pickup_free_seconds=2)
    engine.start_at_pickup(1)
    await asyncio.sleep(0.15)
    assert engine.state == WaitState.BILLABLE_WAIT
    assert engine.is_ticking

    engine.pause_timer(1)
    frozen = engine.session.billable_wait_seconds
    assert frozen > 0
    await asyncio.sleep(0.05)
    assert engine.session.billable_wait_seconds == frozen
    assert not engine.is_ticking
    engine.shutdown()
