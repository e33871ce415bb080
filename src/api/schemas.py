"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import ChargeKind, RideEventType, VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class PaymentCompleteRequest(BaseModel):
    base_fare: float = Field(0.0, ge=0)
    tip: float = Field(0.0, ge=0)
    vehicle_type: Optional[VehicleType] = Field(
        None, description="Vehicle class used to pick the per-minute wait rate."
    )


class RideEventRequest(BaseModel):
    event: RideEventType
    ride_id: int = Field(..., alias="rideId")

    model_config = {"populate_by_name": True}


# ── Responses ─────────────────────────────────────────────────────────


class WaitTimerStatus(BaseModel):
    ride_id: int
    active_ride_id: Optional[int] = None
    state: str
    location: Optional[str] = None
    free_wait_max_seconds: int = 0
    free_wait_elapsed_seconds: int = 0
    billable_wait_seconds: int = 0
    wait_time_minutes: int = 0
    is_timer_active: bool = False
    can_control_timer: bool = True
    has_accumulated_time: bool = False
    formatted_time: str = "00:00"
    formatted_billable_time: str = "00:00"
    formatted_free_time_remaining: str = "00:00"


class TimerCommandResponse(BaseModel):
    ok: bool
    detail: Optional[str] = None
    status: WaitTimerStatus


class ChargeResponse(BaseModel):
    kind: ChargeKind
    amount: int
    wait_minutes: Optional[int] = None

    model_config = {"from_attributes": True}


class SettlementResponse(BaseModel):
    ride_id: int
    vehicle_type: Optional[VehicleType] = None
    base_fare: float
    wait_minutes: int
    wait_charge: float
    tip: float
    total: float
    driver_compensation: float
    charges: list[ChargeResponse] = []

    model_config = {"from_attributes": True}


class RideEventResponse(BaseModel):
    applied: bool
    active_ride_id: Optional[int] = None


class WaitSessionResponse(BaseModel):
    active_ride_id: Optional[int] = None
    state: str
    location_kind: Optional[str] = None
    stop_number: Optional[int] = None
    free_wait_max_seconds: int
    free_wait_elapsed_seconds: int
    billable_wait_seconds: int
    paused_from: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
