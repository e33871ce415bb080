"""
Concurrency safety tests.

Demonstrates:
1. Charge idempotency keys prevent double-posting on retries.
2. The settlement lock refuses a second holder.
3. Distributed lock release is ownership-checked.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from src.domain.enums import ChargeKind
from src.infrastructure.locks import DistributedLock, LockNotAcquired
from src.infrastructure.models import RideChargeModel
from src.infrastructure.repositories import (
    RideChargeRepository,
    charge_idempotency_key,
)


class TestChargeIdempotency:
    @pytest.mark.asyncio
    async def test_same_charge_posted_once(self, db_session):
        repo = RideChargeRepository(db_session)
        first = await repo.add_charge(
            ride_id=1, kind=ChargeKind.WAIT_TIME, amount=3, wait_minutes=3
        )
        second = await repo.add_charge(
            ride_id=1, kind=ChargeKind.WAIT_TIME, amount=9, wait_minutes=9
        )
        assert first.id == second.id
        assert second.amount == 3

        count = await db_session.scalar(
            select(func.count()).select_from(RideChargeModel)
        )
        assert count == 1

    @pytest.mark.asyncio
    async def test_tip_and_wait_time_are_separate(self, db_session):
        repo = RideChargeRepository(db_session)
        await repo.add_charge(ride_id=1, kind=ChargeKind.WAIT_TIME, amount=2)
        await repo.add_charge(ride_id=1, kind=ChargeKind.TIP, amount=5)
        charges = await repo.list_for_ride(1)
        assert [c.kind for c in charges] == [ChargeKind.WAIT_TIME, ChargeKind.TIP]

    def test_idempotency_key_format(self):
        assert charge_idempotency_key(12, ChargeKind.TIP) == "TIP:12"


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock.for_settlement(mock_redis, 5)
        assert await lock.acquire() is True
        assert lock.key == "lock:settle:5"

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_passes_own_token(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[-1] == lock.token

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock.for_settlement(mock_redis, 5)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass
