"""
Wait-Time Pricing & Payout  (Strategy Pattern)
==============================================

Formula
-------
Wait_Charge = Billable_Minutes x Rate_Per_Minute(vehicle class)

Total = Base_Fare + Wait_Charge + Tip

Driver_Compensation = (Base_Fare + Wait_Charge) x Driver_Share + Tip x Tip_Share

* **Billable_Minutes** comes from ``WaitTimeEngine.get_wait_time_for_ride``
  (already rounded up to whole minutes).
* **Driver_Share** defaults to 85 %, **Tip_Share** to 100 %.

Complexity: O(1) per settlement.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .enums import VehicleType

if TYPE_CHECKING:
    from .wait_timer import WaitTimeEngine


# ── Strategy hierarchy ────────────────────────────────────────────────


class WaitPricingStrategy(ABC):
    @abstractmethod
    def charge(self, minutes: int) -> float: ...


class FlatRateWaitPricing(WaitPricingStrategy):
    def __init__(self, rate_per_minute: float = 1.0):
        self.rate_per_minute = rate_per_minute

    def charge(self, minutes: int) -> float:
        return round(minutes * self.rate_per_minute, 2)


class VehicleClassWaitPricing(WaitPricingStrategy):
    """Per-minute rate picked by vehicle class, falling back to *default_rate*."""

    def __init__(
        self,
        vehicle_type: VehicleType,
        rates: dict[VehicleType, float],
        default_rate: float = 1.0,
    ):
        self.rate_per_minute = rates.get(vehicle_type, default_rate)

    def charge(self, minutes: int) -> float:
        return round(minutes * self.rate_per_minute, 2)


@dataclass(frozen=True)
class CompensationSplit:
    driver_share: float = 0.85
    tip_share: float = 1.0

    def driver_compensation(self, fare: float, wait_charge: float, tip: float) -> float:
        return round(
            (fare + wait_charge) * self.driver_share + tip * self.tip_share, 2
        )


@dataclass(frozen=True)
class Settlement:
    ride_id: int
    base_fare: float
    wait_minutes: int
    wait_charge: float
    tip: float
    total: float
    driver_compensation: float
    vehicle_type: Optional[VehicleType] = None


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the payment route."""

    def __init__(
        self,
        rate_per_minute: float = 1.0,
        vehicle_rates: Optional[dict[VehicleType, float]] = None,
        split: Optional[CompensationSplit] = None,
    ):
        self.rate_per_minute = rate_per_minute
        self.vehicle_rates = dict(vehicle_rates or {})
        self.split = split or CompensationSplit()

    def strategy_for(self, vehicle_type: Optional[VehicleType]) -> WaitPricingStrategy:
        if vehicle_type is None:
            return FlatRateWaitPricing(self.rate_per_minute)
        return VehicleClassWaitPricing(
            vehicle_type, self.vehicle_rates, self.rate_per_minute
        )

    def wait_charge(
        self, minutes: int, vehicle_type: Optional[VehicleType] = None
    ) -> float:
        if minutes < 0:
            raise ValueError("Wait minutes cannot be negative")
        return self.strategy_for(vehicle_type).charge(minutes)

    def settle(
        self,
        ride_id: int,
        base_fare: float = 0.0,
        wait_minutes: int = 0,
        tip: float = 0.0,
        vehicle_type: Optional[VehicleType] = None,
    ) -> Settlement:
        if base_fare < 0 or tip < 0:
            raise ValueError("Fare and tip cannot be negative")
        wait_charge = self.wait_charge(wait_minutes, vehicle_type)
        return Settlement(
            ride_id=ride_id,
            base_fare=base_fare,
            wait_minutes=wait_minutes,
            wait_charge=wait_charge,
            tip=tip,
            total=round(base_fare + wait_charge + tip, 2),
            driver_compensation=self.split.driver_compensation(
                base_fare, wait_charge, tip
            ),
            vehicle_type=vehicle_type,
        )

    def settle_from_timer(
        self,
        timer: "WaitTimeEngine",
        ride_id: int,
        base_fare: float = 0.0,
        tip: float = 0.0,
        vehicle_type: Optional[VehicleType] = None,
    ) -> Settlement:
        """Settle using the timer's billable minutes.  Call before clearing it."""
        minutes = timer.get_wait_time_for_ride(ride_id)
        return self.settle(ride_id, base_fare, minutes, tip, vehicle_type)


def to_whole_units(amount: float) -> int:
    """Round half up to whole currency units (the ride API stores integers)."""
    return int(math.floor(amount + 0.5))
