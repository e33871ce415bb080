"""
Wait-timer endpoints
====================

POST /api/v1/wait-timer/{ride_id}/pickup                        -- start at pickup
POST /api/v1/wait-timer/{ride_id}/stops/{stop_number}           -- start at a stop
POST /api/v1/wait-timer/{ride_id}/pause | /resume               -- pause / resume
POST /api/v1/wait-timer/{ride_id}/stop                          -- stop where we are
POST /api/v1/wait-timer/{ride_id}/picked-up                     -- passenger on board
POST /api/v1/wait-timer/{ride_id}/stops/{stop_number}/complete  -- stop done
POST /api/v1/wait-timer/{ride_id}/reset | /clear                -- drop the session
GET  /api/v1/wait-timer/{ride_id}                               -- status for display

Commands always answer 200.  ``ok=false`` means the engine refused the
command (another ride owns the timer, or nothing to do); the driver app
disables the control and shows ``detail``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_wait_timer
from src.api.middleware import limiter
from src.api.schemas import TimerCommandResponse, WaitTimerStatus
from src.domain.wait_timer import WaitTimeEngine

router = APIRouter(prefix="/wait-timer", tags=["wait-timer"])


def build_status(timer: WaitTimeEngine, ride_id: int) -> WaitTimerStatus:
    session = timer.session
    return WaitTimerStatus(
        ride_id=ride_id,
        active_ride_id=session.active_ride_id,
        state=session.state.value,
        location=session.location.label if session.location else None,
        free_wait_max_seconds=session.free_wait_max_seconds,
        free_wait_elapsed_seconds=session.free_wait_elapsed_seconds,
        billable_wait_seconds=session.billable_wait_seconds,
        wait_time_minutes=timer.get_wait_time_for_ride(ride_id),
        is_timer_active=timer.is_timer_active_for_ride(ride_id),
        can_control_timer=timer.can_control_timer(ride_id),
        has_accumulated_time=timer.has_accumulated_time(ride_id),
        formatted_time=timer.formatted_time,
        formatted_billable_time=timer.formatted_billable_time,
        formatted_free_time_remaining=timer.formatted_free_time_remaining,
    )


def _respond(timer: WaitTimeEngine, ride_id: int, ok: bool) -> TimerCommandResponse:
    detail = None
    if not ok:
        if not timer.can_control_timer(ride_id):
            detail = f"Wait timer already active for ride {timer.active_ride_id}"
        else:
            detail = f"Nothing to do for ride {ride_id} in state {timer.state.value}"
    return TimerCommandResponse(
        ok=ok, detail=detail, status=build_status(timer, ride_id)
    )


@router.get(
    "/{ride_id}",
    response_model=WaitTimerStatus,
    summary="Wait-timer status as seen by a ride",
)
@limiter.limit("300/minute")
async def get_status(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return build_status(timer, ride_id)


@router.post(
    "/{ride_id}/pickup",
    response_model=TimerCommandResponse,
    summary="Start waiting at the pickup (5 min free)",
)
@limiter.limit("100/minute")
async def start_at_pickup(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.start_at_pickup(ride_id))


@router.post(
    "/{ride_id}/stops/{stop_number}",
    response_model=TimerCommandResponse,
    summary="Start waiting at a stop (3 min free)",
)
@limiter.limit("100/minute")
async def start_at_stop(
    request: Request,
    ride_id: int,
    stop_number: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.start_at_stop(ride_id, stop_number))


@router.post("/{ride_id}/pause", response_model=TimerCommandResponse)
@limiter.limit("100/minute")
async def pause_timer(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.pause_timer(ride_id))


@router.post("/{ride_id}/resume", response_model=TimerCommandResponse)
@limiter.limit("100/minute")
async def resume_timer(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.resume_timer(ride_id))


@router.post("/{ride_id}/stop", response_model=TimerCommandResponse)
@limiter.limit("100/minute")
async def stop_at_current_location(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.stop_at_current_location(ride_id))


@router.post("/{ride_id}/picked-up", response_model=TimerCommandResponse)
@limiter.limit("100/minute")
async def mark_picked_up(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.mark_picked_up(ride_id))


@router.post(
    "/{ride_id}/stops/{stop_number}/complete",
    response_model=TimerCommandResponse,
)
@limiter.limit("100/minute")
async def mark_stop_complete(
    request: Request,
    ride_id: int,
    stop_number: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.mark_stop_complete(ride_id, stop_number))


@router.post(
    "/{ride_id}/reset",
    response_model=TimerCommandResponse,
    summary="Zero the timer (driver pressed reset)",
)
@limiter.limit("100/minute")
async def reset_timer(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.reset_timer(ride_id))


@router.post(
    "/{ride_id}/clear",
    response_model=TimerCommandResponse,
    summary="Release the timer without billing",
    description=(
        "Zeroes the session and frees it for other rides.  Any billable "
        "minutes are discarded; complete the payment first to bill them."
    ),
)
@limiter.limit("100/minute")
async def clear_timer(
    request: Request,
    ride_id: int,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return _respond(timer, ride_id, timer.clear_timer(ride_id))
