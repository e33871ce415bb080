"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``WaitSession``: enforces valid wait-timer transitions
  (IDLE -> FREE_WAIT -> BILLABLE_WAIT, with PAUSED / STOPPED side states).
- ``WaitLocation`` is a value object naming where the driver waits (pickup or
  a numbered stop); the engine assigns its free-wait budget.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import LocationKind, RideEventType, WaitState, WAIT_TRANSITIONS

PICKUP_FREE_WAIT_SECONDS = 300
STOP_FREE_WAIT_SECONDS = 180
MAX_STOPS = 10


class InvalidWaitTransition(Exception):
    """Raised when a wait-session state change violates the state machine."""


def format_clock(total_seconds: int) -> str:
    """Render seconds as ``MM:SS`` (minutes are not wrapped into hours)."""
    total_seconds = max(0, int(total_seconds))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class WaitLocation:
    kind: LocationKind = LocationKind.PICKUP
    stop_number: Optional[int] = None

    @classmethod
    def pickup(cls) -> "WaitLocation":
        return cls(LocationKind.PICKUP, None)

    @classmethod
    def stop(cls, stop_number: int) -> "WaitLocation":
        if not 1 <= stop_number <= MAX_STOPS:
            raise ValueError(
                f"Stop number must be between 1 and {MAX_STOPS}, got {stop_number}"
            )
        return cls(LocationKind.STOP, stop_number)

    @property
    def label(self) -> str:
        if self.kind == LocationKind.PICKUP:
            return "Pickup"
        return f"Stop {self.stop_number}"


@dataclass(frozen=True)
class RideEvent:
    event_type: RideEventType
    ride_id: int
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> "RideEvent":
        """Build an event from a hub message (``rideId`` or ``RideId``)."""
        try:
            event_type = RideEventType(message["event"])
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Unknown ride event: {message.get('event')!r}") from exc

        raw_id = message.get("rideId", message.get("RideId"))
        if raw_id is None:
            raise ValueError("Ride event is missing a ride id")
        payload = {
            k: v
            for k, v in message.items()
            if k not in ("event", "rideId", "RideId")
        }
        return cls(event_type=event_type, ride_id=int(raw_id), payload=payload)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class WaitSession:
    active_ride_id: Optional[int] = None
    state: WaitState = WaitState.IDLE
    location: Optional[WaitLocation] = None
    free_wait_max_seconds: int = 0
    free_wait_elapsed_seconds: int = 0
    billable_wait_seconds: int = 0
    # sub-state to return to on resume
    paused_from: Optional[WaitState] = None

    def transition_to(self, new_state: WaitState) -> None:
        """Move to *new_state* if the transition is legal, else raise."""
        allowed = WAIT_TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise InvalidWaitTransition(
                f"Cannot transition from {self.state} to {new_state}"
            )
        self.state = new_state

    @property
    def free_budget_exhausted(self) -> bool:
        return self.free_wait_elapsed_seconds >= self.free_wait_max_seconds

    def zero(self) -> None:
        self.active_ride_id = None
        self.state = WaitState.IDLE
        self.location = None
        self.free_wait_max_seconds = 0
        self.free_wait_elapsed_seconds = 0
        self.billable_wait_seconds = 0
        self.paused_from = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_ride_id": self.active_ride_id,
            "state": self.state.value,
            "location_kind": self.location.kind.value if self.location else None,
            "stop_number": self.location.stop_number if self.location else None,
            "free_wait_max_seconds": self.free_wait_max_seconds,
            "free_wait_elapsed_seconds": self.free_wait_elapsed_seconds,
            "billable_wait_seconds": self.billable_wait_seconds,
            "paused_from": self.paused_from.value if self.paused_from else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WaitSession":
        location = None
        if data.get("location_kind"):
            location = WaitLocation(
                LocationKind(data["location_kind"]), data.get("stop_number")
            )
        paused_from = data.get("paused_from")
        return cls(
            active_ride_id=data.get("active_ride_id"),
            state=WaitState(data.get("state", WaitState.IDLE.value)),
            location=location,
            free_wait_max_seconds=int(data.get("free_wait_max_seconds", 0)),
            free_wait_elapsed_seconds=int(data.get("free_wait_elapsed_seconds", 0)),
            billable_wait_seconds=int(data.get("billable_wait_seconds", 0)),
            paused_from=WaitState(paused_from) if paused_from else None,
        )
