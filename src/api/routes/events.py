"""
Ride event endpoint
===================

POST /api/v1/ride-events -- apply a dispatch lifecycle event to the timer

Same payload as the real-time channel (``{"event": "CallCanceled",
"rideId": 7}``), for deployments where dispatch calls back over HTTP
instead of publishing to Redis.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_wait_timer
from src.api.middleware import limiter
from src.api.schemas import RideEventRequest, RideEventResponse
from src.domain.entities import RideEvent
from src.domain.wait_timer import WaitTimeEngine
from src.workers.ride_events import apply_ride_event

router = APIRouter(prefix="/ride-events", tags=["ride-events"])


@router.post(
    "",
    response_model=RideEventResponse,
    summary="Apply a ride lifecycle event",
)
@limiter.limit("100/minute")
async def post_ride_event(
    request: Request,
    body: RideEventRequest,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    applied = apply_ride_event(
        timer, RideEvent(event_type=body.event, ride_id=body.ride_id)
    )
    return RideEventResponse(applied=applied, active_ride_id=timer.active_ride_id)
