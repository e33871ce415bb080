"""
Payment endpoints
=================

POST /api/v1/payments/{ride_id}/complete -- settle a finished ride
GET  /api/v1/payments/{ride_id}          -- fetch a stored settlement

Completing a ride reads the billable wait minutes from the timer *before*
clearing it, posts the wait-time charge and the tip (once per ride), stores
the payout breakdown and only then releases the timer.  Repeating the call
returns the stored settlement without posting anything twice.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_db, get_redis_client, get_wait_timer
from src.api.middleware import limiter
from src.api.schemas import (
    ChargeResponse,
    PaymentCompleteRequest,
    SettlementResponse,
)
from src.config import settings
from src.domain.enums import ChargeKind
from src.domain.pricing import CompensationSplit, PricingEngine, to_whole_units
from src.domain.wait_timer import WaitTimeEngine
from src.infrastructure.locks import DistributedLock, LockNotAcquired
from src.infrastructure.repositories import (
    RideChargeRepository,
    SettlementRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def build_pricing() -> PricingEngine:
    return PricingEngine(
        rate_per_minute=settings.wait_rate_per_minute,
        vehicle_rates=settings.vehicle_wait_rates,
        split=CompensationSplit(settings.driver_share, settings.tip_share),
    )


async def _settlement_response(
    db: AsyncSession, row
) -> SettlementResponse:
    charges = await RideChargeRepository(db).list_for_ride(row.ride_id)
    response = SettlementResponse.model_validate(row)
    response.charges = [ChargeResponse.model_validate(c) for c in charges]
    return response


@router.post(
    "/{ride_id}/complete",
    response_model=SettlementResponse,
    summary="Settle a finished ride and release the wait timer",
    responses={409: {"description": "Another request is settling this ride."}},
)
@limiter.limit("30/minute")
async def complete_payment(
    request: Request,
    ride_id: int,
    body: PaymentCompleteRequest,
    db: AsyncSession = Depends(get_db),
    timer: WaitTimeEngine = Depends(get_wait_timer),
    redis: aioredis.Redis = Depends(get_redis_client),
):
    settlements = SettlementRepository(db)

    # ── Idempotency guard ─────────────────────────────────────────
    existing = await settlements.get_by_ride(ride_id)
    if existing:
        return await _settlement_response(db, existing)

    try:
        async with DistributedLock.for_settlement(redis, ride_id):
            # A concurrent request may have settled while we waited
            existing = await settlements.get_by_ride(ride_id)
            if existing:
                return await _settlement_response(db, existing)

            # Minutes must be read before clear_timer zeroes them
            settlement = build_pricing().settle_from_timer(
                timer,
                ride_id,
                base_fare=body.base_fare,
                tip=body.tip,
                vehicle_type=body.vehicle_type,
            )

            charges = RideChargeRepository(db)
            if settlement.wait_minutes > 0:
                await charges.add_charge(
                    ride_id=ride_id,
                    kind=ChargeKind.WAIT_TIME,
                    amount=to_whole_units(settlement.wait_charge),
                    wait_minutes=settlement.wait_minutes,
                )
            if settlement.tip > 0:
                await charges.add_charge(
                    ride_id=ride_id,
                    kind=ChargeKind.TIP,
                    amount=to_whole_units(settlement.tip),
                )
            row = await settlements.create(settlement)
            await db.commit()
    except LockNotAcquired:
        raise HTTPException(
            status_code=409,
            detail=f"Ride {ride_id} is already being settled",
        )

    timer.clear_timer(ride_id)
    logger.info(
        "Ride %s settled: total=%.2f wait=%d min driver=%.2f",
        ride_id,
        settlement.total,
        settlement.wait_minutes,
        settlement.driver_compensation,
    )
    return await _settlement_response(db, row)


@router.get(
    "/{ride_id}",
    response_model=SettlementResponse,
    summary="Get the stored settlement of a ride",
)
@limiter.limit("100/minute")
async def get_settlement(
    request: Request,
    ride_id: int,
    db: AsyncSession = Depends(get_db),
):
    row = await SettlementRepository(db).get_by_ride(ride_id)
    if not row:
        raise HTTPException(status_code=404, detail="Settlement not found")
    return await _settlement_response(db, row)
