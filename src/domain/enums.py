"""Domain enumerations and state-transition rules."""

import enum


class WaitState(str, enum.Enum):
    IDLE = "IDLE"
    FREE_WAIT = "FREE_WAIT"
    BILLABLE_WAIT = "BILLABLE_WAIT"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


# State machine: maps current state -> set of valid next states.
# FREE_WAIT is reachable from every non-idle state because a start for the
# owning ride re-applies the location and its free budget.
WAIT_TRANSITIONS: dict[WaitState, set[WaitState]] = {
    WaitState.IDLE: {WaitState.FREE_WAIT},
    WaitState.FREE_WAIT: {
        WaitState.FREE_WAIT,
        WaitState.BILLABLE_WAIT,
        WaitState.PAUSED,
        WaitState.STOPPED,
        WaitState.IDLE,
    },
    WaitState.BILLABLE_WAIT: {
        WaitState.FREE_WAIT,
        WaitState.PAUSED,
        WaitState.STOPPED,
        WaitState.IDLE,
    },
    WaitState.PAUSED: {
        WaitState.FREE_WAIT,
        WaitState.BILLABLE_WAIT,
        WaitState.STOPPED,
        WaitState.IDLE,
    },
    WaitState.STOPPED: {WaitState.FREE_WAIT, WaitState.IDLE},
}

# States in which the session still belongs to a ride that is waiting.
ACTIVE_STATES = frozenset(
    {WaitState.FREE_WAIT, WaitState.BILLABLE_WAIT, WaitState.PAUSED}
)
ACCRUING_STATES = frozenset({WaitState.FREE_WAIT, WaitState.BILLABLE_WAIT})


class LocationKind(str, enum.Enum):
    PICKUP = "PICKUP"
    STOP = "STOP"


class VehicleType(str, enum.Enum):
    SEDAN = "SEDAN"
    SUV = "SUV"
    VAN = "VAN"


class ChargeKind(str, enum.Enum):
    WAIT_TIME = "WAIT_TIME"
    TIP = "TIP"


class RideEventType(str, enum.Enum):
    """Ride lifecycle events pushed by dispatch over the real-time hub."""

    CALL_UNASSIGNED = "CallUnassigned"
    CALL_CANCELED = "CallCanceled"
    CALL_AVAILABLE_AGAIN = "CallAvailableAgain"
