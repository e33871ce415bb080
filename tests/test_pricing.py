"""Unit tests for wait-time pricing and the payout split."""

from unittest.mock import MagicMock

import pytest

from src.domain.enums import VehicleType
from src.domain.pricing import (
    CompensationSplit,
    FlatRateWaitPricing,
    PricingEngine,
    VehicleClassWaitPricing,
    to_whole_units,
)
from src.domain.wait_timer import WaitTimeEngine

RATES = {VehicleType.SEDAN: 1.0, VehicleType.SUV: 1.5, VehicleType.VAN: 1.75}


class TestWaitPricingStrategies:
    def test_flat_rate(self):
        assert FlatRateWaitPricing(1.0).charge(5) == 5.0

    def test_vehicle_class_rate(self):
        strategy = VehicleClassWaitPricing(VehicleType.SUV, RATES)
        assert strategy.charge(3) == 4.5

    def test_vehicle_class_falls_back_to_default(self):
        strategy = VehicleClassWaitPricing(
            VehicleType.VAN, {VehicleType.SEDAN: 1.0}, default_rate=2.0
        )
        assert strategy.charge(2) == 4.0

    def test_zero_minutes_is_free(self):
        assert FlatRateWaitPricing(3.0).charge(0) == 0.0


class TestCompensationSplit:
    def test_driver_gets_85_percent_plus_full_tip(self):
        split = CompensationSplit()
        assert split.driver_compensation(100.0, 10.0, 5.0) == pytest.approx(98.5)

    def test_custom_split(self):
        split = CompensationSplit(driver_share=0.5, tip_share=0.5)
        assert split.driver_compensation(20.0, 0.0, 10.0) == pytest.approx(15.0)


class TestPricingEngine:
    def setup_method(self):
        self.engine = PricingEngine(rate_per_minute=1.0, vehicle_rates=RATES)

    def test_wait_charge_without_vehicle_uses_flat_rate(self):
        assert self.engine.wait_charge(4) == 4.0

    def test_wait_charge_for_van(self):
        assert self.engine.wait_charge(4, VehicleType.VAN) == 7.0

    def test_negative_minutes_rejected(self):
        with pytest.raises(ValueError):
            self.engine.wait_charge(-1)

    def test_negative_tip_rejected(self):
        with pytest.raises(ValueError):
            self.engine.settle(1, base_fare=10.0, tip=-1.0)

    def test_settle(self):
        s = self.engine.settle(
            7, base_fare=20.0, wait_minutes=3, tip=4.0, vehicle_type=VehicleType.SEDAN
        )
        assert s.ride_id == 7
        assert s.wait_charge == 3.0
        assert s.total == 27.0
        assert s.driver_compensation == pytest.approx(23.55)

    def test_settle_from_timer_reads_only_the_query_api(self):
        timer = MagicMock(spec=["get_wait_time_for_ride"])
        timer.get_wait_time_for_ride.return_value = 4
        s = self.engine.settle_from_timer(timer, 11, base_fare=10.0)
        timer.get_wait_time_for_ride.assert_called_once_with(11)
        assert s.wait_minutes == 4
        assert s.wait_charge == 4.0

    def test_settle_from_live_timer_rounds_minutes_up(self):
        timer = WaitTimeEngine()
        timer.start_at_pickup(3)
        for _ in range(300 + 61):
            timer.tick()
        s = self.engine.settle_from_timer(timer, 3, vehicle_type=VehicleType.SUV)
        assert s.wait_minutes == 2
        assert s.wait_charge == 3.0

    def test_minutes_must_be_read_before_clearing(self):
        timer = WaitTimeEngine()
        timer.start_at_pickup(3)
        for _ in range(400):
            timer.tick()
        before = self.engine.settle_from_timer(timer, 3)
        timer.clear_timer(3)
        after = self.engine.settle_from_timer(timer, 3)
        assert before.wait_minutes == 2
        assert after.wait_minutes == 0


class TestWholeUnits:
    @pytest.mark.parametrize(
        "amount, expected", [(4.5, 5), (4.49, 4), (2.5, 3), (0.0, 0), (7.0, 7)]
    )
    def test_rounds_half_up(self, amount, expected):
        assert to_whole_units(amount) == expected
