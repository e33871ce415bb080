"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RideChargeModel, RideSettlementModel
from src.domain.enums import ChargeKind
from src.domain.pricing import Settlement


def charge_idempotency_key(ride_id: int, kind: ChargeKind) -> str:
    return f"{kind.value}:{ride_id}"


class RideChargeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_idempotency_key(self, key: str) -> Optional[RideChargeModel]:
        result = await self.session.execute(
            select(RideChargeModel).where(RideChargeModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def add_charge(
        self,
        *,
        ride_id: int,
        kind: ChargeKind,
        amount: int,
        wait_minutes: int | None = None,
    ) -> RideChargeModel:
        """Post a charge once per (ride, kind); repeats return the first row."""
        key = charge_idempotency_key(ride_id, kind)
        existing = await self.get_by_idempotency_key(key)
        if existing:
            return existing

        charge = RideChargeModel(
            ride_id=ride_id,
            kind=kind,
            amount=amount,
            wait_minutes=wait_minutes,
            idempotency_key=key,
        )
        self.session.add(charge)
        await self.session.flush()
        return charge

    async def list_for_ride(self, ride_id: int) -> list[RideChargeModel]:
        result = await self.session.execute(
            select(RideChargeModel)
            .where(RideChargeModel.ride_id == ride_id)
            .order_by(RideChargeModel.id)
        )
        return list(result.scalars().all())


class SettlementRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_ride(self, ride_id: int) -> Optional[RideSettlementModel]:
        result = await self.session.execute(
            select(RideSettlementModel).where(RideSettlementModel.ride_id == ride_id)
        )
        return result.scalar_one_or_none()

    async def create(self, settlement: Settlement) -> RideSettlementModel:
        row = RideSettlementModel(
            ride_id=settlement.ride_id,
            vehicle_type=settlement.vehicle_type,
            base_fare=settlement.base_fare,
            wait_minutes=settlement.wait_minutes,
            wait_charge=settlement.wait_charge,
            tip=settlement.tip,
            total=settlement.total,
            driver_compensation=settlement.driver_compensation,
        )
        self.session.add(row)
        await self.session.flush()
        return row
