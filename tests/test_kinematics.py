"""
Unit Tests for Kinematics Module
Tests slider-crank positions, valve lift profiles and spark timing.
"""

import pytest
import math
import numpy as np
from four_stroke_sim.engine_config import EngineGeometry, ValveTimingParams
from four_stroke_sim.kinematics import (
    SliderCrank,
    ValveTiming,
    compute_lift,
    cycle_distance,
    ease_in_out,
)


class TestSliderCrank:
    """Test cases for SliderCrank class."""

    def setup_method(self):
        """Default scene: R = 80, L = 140, pivot (400, 480), piston height 60."""
        self.geometry = EngineGeometry()
        self.sc = SliderCrank(self.geometry)

    def test_initialization(self):
        assert self.sc.r == 80.0
        assert self.sc.l == 140.0

    def test_top_dead_centre(self):
        """θ = −π/2: pin straight above pivot, rod vertical."""
        pos = self.sc.piston_position(-math.pi / 2.0)
        assert pos.crank_pin_x == pytest.approx(400.0, abs=1e-9)
        assert pos.crank_pin_y == pytest.approx(400.0, abs=1e-9)
        assert pos.piston_center_y == pytest.approx(400.0 - 140.0, abs=1e-9)
        assert pos.piston_y == pytest.approx(260.0 - 30.0, abs=1e-9)

    def test_bottom_dead_centre(self):
        pos = self.sc.piston_position(math.pi / 2.0)
        assert pos.crank_pin_y == pytest.approx(560.0, abs=1e-9)
        assert pos.piston_y == pytest.approx(560.0 - 140.0 - 30.0, abs=1e-9)

    def test_dead_centre_properties(self):
        assert self.sc.top_dead_centre_y == pytest.approx(230.0, abs=1e-9)
        assert self.sc.bottom_dead_centre_y == pytest.approx(390.0, abs=1e-9)

    def test_horizontal_crank_shortens_rod_reach(self):
        """θ = 0: rod spans 80 horizontally, reach = √(140² − 80²)."""
        pos = self.sc.piston_position(0.0)
        assert pos.crank_pin_x == pytest.approx(480.0)
        assert pos.crank_pin_y == pytest.approx(480.0)
        assert pos.piston_center_y == pytest.approx(480.0 - math.sqrt(140.0**2 - 80.0**2))

    def test_piston_range(self):
        for deg in range(0, 361):
            y = self.sc.piston_position(math.radians(deg)).piston_y
            assert (
                self.sc.top_dead_centre_y - 1e-9 <= y <= self.sc.bottom_dead_centre_y + 1e-9
            ), f"Piston y {y:.4f} out of range at theta={deg} deg"

    def test_rod_reach_clamped_when_rod_equals_crank(self):
        """R = L: at θ = 0 the reach is exactly zero, never NaN."""
        sc = SliderCrank(EngineGeometry(crank_radius=100.0, rod_length=100.0))
        for angle in (0.0, math.pi, 2.0 * math.pi, -math.pi):
            pos = sc.piston_position(angle)
            assert all(math.isfinite(v) for v in pos)
            assert pos.piston_center_y == pytest.approx(pos.crank_pin_y, abs=1e-5)

    def test_rod_reach_overshoot(self):
        assert self.sc.rod_reach(140.0 + 1e-12) == 0.0

    def test_periodicity(self):
        for deg in [0, 45, 90, 180, 270]:
            theta = math.radians(deg)
            p1 = self.sc.piston_position(theta)
            p2 = self.sc.piston_position(theta + 2 * math.pi)
            assert abs(p1.piston_y - p2.piston_y) < 1e-9


class TestEasing:
    def test_endpoints(self):
        assert ease_in_out(0.0) == 0.0
        assert ease_in_out(1.0) == 1.0
        assert ease_in_out(0.5) == pytest.approx(0.5)

    def test_clamped_outside_unit_interval(self):
        assert ease_in_out(-3.0) == 0.0
        assert ease_in_out(4.0) == 1.0

    def test_cycle_distance_wraps(self):
        assert cycle_distance(0.95, 0.05) == pytest.approx(0.1)
        assert cycle_distance(0.5, 0.5) == 0.0
        assert cycle_distance(0.25, 0.75) == pytest.approx(0.5)


class TestComputeLift:
    """Test cases for compute_lift."""

    def test_closed_outside_plain_window(self):
        assert compute_lift(0.1, 0.2, 0.6) == 0.0
        assert compute_lift(0.6, 0.2, 0.6) == 0.0
        assert compute_lift(0.9, 0.2, 0.6) == 0.0

    def test_zero_at_opening(self):
        assert compute_lift(0.2, 0.2, 0.6) == 0.0

    def test_plateau(self):
        assert compute_lift(0.4, 0.2, 0.6, ramp=0.08) == 1.0

    def test_ramp_is_eased(self):
        # Halfway up the opening ramp
        assert compute_lift(0.24, 0.2, 0.6, ramp=0.08) == pytest.approx(0.5)
        # Halfway down the closing ramp
        assert compute_lift(0.56, 0.2, 0.6, ramp=0.08) == pytest.approx(0.5)

    def test_wrapping_window(self):
        """Intake window 0.92 → 0.32 spans the cycle start."""
        assert compute_lift(0.12, 0.92, 0.32, 0.07) == 1.0
        assert compute_lift(0.5, 0.92, 0.32, 0.07) == 0.0
        assert compute_lift(0.955, 0.92, 0.32, 0.07) == pytest.approx(0.5)
        assert compute_lift(0.32, 0.92, 0.32, 0.07) == 0.0

    def test_inputs_normalised(self):
        assert compute_lift(1.4, 0.2, 0.6) == compute_lift(0.4, 0.2, 0.6)
        assert compute_lift(-0.6, 0.2, 0.6) == compute_lift(0.4, 0.2, 0.6)
        assert compute_lift(0.4, 1.2, -0.4) == compute_lift(0.4, 0.2, 0.6)

    def test_degenerate_window_is_open(self):
        assert compute_lift(0.3, 0.4, 0.4) == 1.0
        assert compute_lift(0.9, 0.0, 0.0) == 1.0

    def test_zero_ramp_is_square(self):
        assert compute_lift(0.2, 0.2, 0.6, ramp=0.0) == 1.0
        assert compute_lift(0.59, 0.2, 0.6, ramp=0.0) == 1.0
        assert compute_lift(0.19, 0.2, 0.6, ramp=0.0) == 0.0

    def test_ramp_longer_than_half_window(self):
        """Ramp is capped at half the window, so the midpoint still reaches 1."""
        assert compute_lift(0.3, 0.2, 0.4, ramp=0.5) == pytest.approx(1.0)

    def test_continuous_across_ramp_boundaries(self):
        eps = 1e-7
        for edge in (0.28, 0.52):
            below = compute_lift(edge - eps, 0.2, 0.6, ramp=0.08)
            above = compute_lift(edge + eps, 0.2, 0.6, ramp=0.08)
            assert abs(below - above) < 1e-5


class TestValveTiming:
    """Test cases for ValveTiming class."""

    def setup_method(self):
        self.vt = ValveTiming()

    def test_default_params(self):
        assert self.vt.params == ValveTimingParams()

    def test_intake_open_during_intake_stroke(self):
        assert self.vt.is_intake_open(0.05)
        assert self.vt.is_intake_open(0.2)

    def test_intake_closed_during_power(self):
        assert not self.vt.is_intake_open(0.6)

    def test_exhaust_open_during_exhaust_stroke(self):
        assert self.vt.exhaust_lift(0.85) == 1.0

    def test_exhaust_closed_during_compression(self):
        assert not self.vt.is_exhaust_open(0.4)

    def test_valve_overlap_period(self):
        """Both valves open around the exhaust/intake TDC."""
        assert self.vt.is_intake_open(0.99)
        assert self.vt.is_exhaust_open(0.99)

    def test_spark_window(self):
        assert self.vt.spark_active(0.5)
        assert self.vt.spark_active(0.511)
        assert not self.vt.spark_active(0.513)
        assert not self.vt.spark_active(0.0)

    def test_lifts_bounded_over_cycle(self):
        for f in np.linspace(0.0, 1.0, 721):
            assert 0.0 <= self.vt.intake_lift(float(f)) <= 1.0
            assert 0.0 <= self.vt.exhaust_lift(float(f)) <= 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
