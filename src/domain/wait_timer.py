"""
Wait-Time Billing Engine
========================

Owns the single process-wide wait session of a driver.  The first
``PICKUP_FREE_WAIT_SECONDS`` (300 s) at pickup and ``STOP_FREE_WAIT_SECONDS``
(180 s) at every stop are free; after that each tick adds one billable
second.

State machine
-------------
::

    IDLE -> FREE_WAIT -> BILLABLE_WAIT      (auto, when the free budget is spent)
    FREE_WAIT | BILLABLE_WAIT <-> PAUSED
    FREE_WAIT | BILLABLE_WAIT | PAUSED -> STOPPED
    any -> IDLE                              (reset / clear)

Ownership
---------
Only one ride owns the session.  Commands issued for any other ride while
the session is not IDLE return ``False`` and change nothing; the engine
never raises for a conflict.  Callers check the return value.

Ticking
-------
Accrual is driven by a ``RepeatingTask`` (see ``src.workers.ticker``).  The
engine cancels the previous task before starting a new one so that there is
never more than one tick callback.  Without a ticker, ``tick()`` is called
by hand.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

from .entities import (
    PICKUP_FREE_WAIT_SECONDS,
    STOP_FREE_WAIT_SECONDS,
    WaitLocation,
    WaitSession,
    format_clock,
)
from .enums import ACCRUING_STATES, ACTIVE_STATES, LocationKind, WaitState

logger = logging.getLogger(__name__)

ChangeListener = Callable[[dict[str, Any]], None]


class RepeatingTask(Protocol):
    """Cancellable periodic callback."""

    @property
    def is_running(self) -> bool: ...

    def start(self, callback: Callable[[], Any]) -> None: ...

    def cancel(self) -> None: ...


class WaitTimeEngine:
    def __init__(
        self,
        ticker: Optional[RepeatingTask] = None,
        *,
        pickup_free_seconds: int = PICKUP_FREE_WAIT_SECONDS,
        stop_free_seconds: int = STOP_FREE_WAIT_SECONDS,
        on_change: Optional[ChangeListener] = None,
    ):
        self._ticker = ticker
        self._pickup_free_seconds = pickup_free_seconds
        self._stop_free_seconds = stop_free_seconds
        self._on_change = on_change
        self._session = WaitSession()
        self._lock = threading.RLock()

    # ── Commands ──────────────────────────────────────────────────────

    def start_at_pickup(self, ride_id: int) -> bool:
        return self._start(ride_id, WaitLocation.pickup())

    def start_at_stop(self, ride_id: int, stop_number: int) -> bool:
        try:
            location = WaitLocation.stop(stop_number)
        except ValueError:
            logger.warning(
                "Rejected wait timer start for ride %s: invalid stop %s",
                ride_id,
                stop_number,
            )
            return False
        return self._start(ride_id, location)

    def pause_timer(self, ride_id: int) -> bool:
        with self._lock:
            s = self._session
            if not self._is_owner(ride_id):
                self._log_not_owner("pause", ride_id)
                return False
            if s.state not in ACCRUING_STATES:
                logger.debug("Pause ignored for ride %s in state %s", ride_id, s.state)
                return False
            self._stop_ticking()
            s.paused_from = s.state
            s.transition_to(WaitState.PAUSED)
            self._changed()
            return True

    def resume_timer(self, ride_id: int) -> bool:
        with self._lock:
            s = self._session
            if not self._is_owner(ride_id):
                self._log_not_owner("resume", ride_id)
                return False
            if s.state != WaitState.PAUSED:
                logger.debug("Resume ignored for ride %s in state %s", ride_id, s.state)
                return False
            target = (
                WaitState.BILLABLE_WAIT
                if s.free_budget_exhausted
                else WaitState.FREE_WAIT
            )
            s.paused_from = None
            s.transition_to(target)
            self._start_ticking()
            self._changed()
            return True

    def stop_at_current_location(self, ride_id: int) -> bool:
        with self._lock:
            s = self._session
            if s.state == WaitState.IDLE:
                return True
            if not self._is_owner(ride_id):
                self._log_not_owner("stop", ride_id)
                return False
            if s.state == WaitState.STOPPED:
                return True
            self._stop_ticking()
            s.paused_from = None
            s.transition_to(WaitState.STOPPED)
            logger.info(
                "Wait timer stopped for ride %s at %s (billable %ss)",
                ride_id,
                s.location.label if s.location else "-",
                s.billable_wait_seconds,
            )
            self._changed()
            return True

    def mark_picked_up(self, ride_id: int) -> bool:
        return self.stop_at_current_location(ride_id)

    def mark_stop_complete(self, ride_id: int, stop_number: int) -> bool:
        with self._lock:
            location = self._session.location
            if (
                location is not None
                and location.kind == LocationKind.STOP
                and location.stop_number != stop_number
            ):
                logger.debug(
                    "Completing stop %s while waiting at %s", stop_number, location.label
                )
            return self.stop_at_current_location(ride_id)

    def reset_timer(self, ride_id: int) -> bool:
        with self._lock:
            if self._session.state == WaitState.IDLE:
                return True
            if not self._is_owner(ride_id):
                self._log_not_owner("reset", ride_id)
                return False
            self._zero()
            return True

    def clear_timer(self, ride_id: Optional[int] = None) -> bool:
        """Drop the session; ``ride_id=None`` clears whatever ride owns it."""
        with self._lock:
            s = self._session
            if s.state == WaitState.IDLE and s.active_ride_id is None:
                return True
            if ride_id is not None and not self._is_owner(ride_id):
                self._log_not_owner("clear", ride_id)
                return False
            self._zero()
            return True

    def tick(self) -> bool:
        """Apply one second of accrual.  Returns False when nothing accrues."""
        with self._lock:
            s = self._session
            if s.state == WaitState.FREE_WAIT:
                s.free_wait_elapsed_seconds = min(
                    s.free_wait_elapsed_seconds + 1, s.free_wait_max_seconds
                )
                if s.free_budget_exhausted:
                    s.transition_to(WaitState.BILLABLE_WAIT)
                    logger.info(
                        "Free wait exhausted for ride %s at %s; billing started",
                        s.active_ride_id,
                        s.location.label if s.location else "-",
                    )
            elif s.state == WaitState.BILLABLE_WAIT:
                s.billable_wait_seconds += 1
            else:
                return False
            self._changed()
            return True

    def restore(self, snapshot: dict[str, Any]) -> bool:
        """Rehydrate a persisted session.  Accruing sessions come back PAUSED.

        An unreadable snapshot is discarded and the engine stays IDLE.
        """
        with self._lock:
            self._stop_ticking()
            try:
                session = WaitSession.from_dict(snapshot)
            except (ValueError, TypeError, KeyError, AttributeError):
                logger.exception("Discarding unreadable wait session snapshot")
                self._session = WaitSession()
                return False
            if session.state in ACCRUING_STATES:
                session.paused_from = session.state
                session.state = WaitState.PAUSED
            if session.active_ride_id is None:
                session.zero()
            self._session = session
            logger.info(
                "Restored wait session for ride %s in state %s",
                session.active_ride_id,
                session.state.value,
            )
            return True

    def shutdown(self) -> None:
        with self._lock:
            self._stop_ticking()

    # ── Queries ───────────────────────────────────────────────────────

    def get_wait_time_for_ride(self, ride_id: int) -> int:
        """Billable minutes for *ride_id*, rounded up; 0 for non-owners."""
        with self._lock:
            if not self._is_owner(ride_id):
                return 0
            return -(-self._session.billable_wait_seconds // 60)

    def is_timer_active_for_ride(self, ride_id: int) -> bool:
        with self._lock:
            return self._is_owner(ride_id) and self._session.state in ACTIVE_STATES

    def can_control_timer(self, ride_id: int) -> bool:
        with self._lock:
            s = self._session
            return (
                s.active_ride_id is None
                or s.state == WaitState.IDLE
                or s.active_ride_id == ride_id
            )

    def has_accumulated_time(self, ride_id: int) -> bool:
        with self._lock:
            return self._is_owner(ride_id) and self._session.billable_wait_seconds > 0

    @property
    def active_ride_id(self) -> Optional[int]:
        return self._session.active_ride_id

    @property
    def state(self) -> WaitState:
        return self._session.state

    @property
    def session(self) -> WaitSession:
        """A detached copy of the session; mutating it has no effect."""
        with self._lock:
            return WaitSession.from_dict(self._session.to_dict())

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return self._session.to_dict()

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None and self._ticker.is_running

    # ── Display values ────────────────────────────────────────────────

    @property
    def formatted_free_time_remaining(self) -> str:
        with self._lock:
            s = self._session
            if not self._in_free_period():
                return format_clock(0)
            return format_clock(
                max(0, s.free_wait_max_seconds - s.free_wait_elapsed_seconds)
            )

    @property
    def formatted_billable_time(self) -> str:
        with self._lock:
            s = self._session
            if s.state in (
                WaitState.BILLABLE_WAIT,
                WaitState.PAUSED,
                WaitState.STOPPED,
            ):
                return format_clock(s.billable_wait_seconds)
            return format_clock(0)

    @property
    def formatted_time(self) -> str:
        """What the single timer widget shows: countdown, then billable time."""
        with self._lock:
            if self._in_free_period():
                return self.formatted_free_time_remaining
            return self.formatted_billable_time

    @property
    def wait_time_minutes(self) -> int:
        with self._lock:
            if self._session.active_ride_id is None:
                return 0
            return self.get_wait_time_for_ride(self._session.active_ride_id)

    # ── Internals ─────────────────────────────────────────────────────

    def _start(self, ride_id: int, location: WaitLocation) -> bool:
        with self._lock:
            s = self._session
            if not self._is_owner(ride_id) and s.state != WaitState.IDLE:
                logger.warning(
                    "Wait timer already active for ride %s; start for ride %s rejected",
                    s.active_ride_id,
                    ride_id,
                )
                return False

            budget = (
                self._pickup_free_seconds
                if location.kind == LocationKind.PICKUP
                else self._stop_free_seconds
            )
            self._stop_ticking()
            s.transition_to(WaitState.FREE_WAIT)
            s.active_ride_id = ride_id
            s.location = location
            s.free_wait_max_seconds = budget
            s.free_wait_elapsed_seconds = 0
            s.paused_from = None
            if s.free_budget_exhausted:
                s.transition_to(WaitState.BILLABLE_WAIT)
            self._start_ticking()
            logger.info(
                "Wait timer started for ride %s at %s (free %ss)",
                ride_id,
                location.label,
                budget,
            )
            self._changed()
            return True

    def _in_free_period(self) -> bool:
        s = self._session
        return s.state == WaitState.FREE_WAIT or (
            s.state == WaitState.PAUSED and s.paused_from == WaitState.FREE_WAIT
        )

    def _is_owner(self, ride_id: int) -> bool:
        s = self._session
        return s.active_ride_id is not None and s.active_ride_id == ride_id

    def _log_not_owner(self, action: str, ride_id: int) -> None:
        owner = self._session.active_ride_id
        if owner is None:
            logger.debug("No wait timer to %s for ride %s", action, ride_id)
        else:
            logger.warning(
                "Wait timer already active for ride %s; %s for ride %s rejected",
                owner,
                action,
                ride_id,
            )

    def _zero(self) -> None:
        self._stop_ticking()
        ride_id = self._session.active_ride_id
        self._session.zero()
        logger.info("Wait timer cleared for ride %s", ride_id)
        self._changed()

    def _start_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker.start(self.tick)

    def _stop_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self._session.to_dict())
        except Exception:
            logger.exception("Wait session change listener failed")
