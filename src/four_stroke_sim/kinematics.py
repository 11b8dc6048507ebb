"""
Kinematics Module
Piston motion from the slider-crank constraint and valve lift timing.

Mathematical Basis
------------------
Slider-crank notation (screen coordinates, +y down)
    R  = crank radius
    L  = connecting rod length
    θ  = crank angle measured from +x, increasing clockwise on screen
    (x₀, y₀) = crank pivot

    crank pin   P = (x₀ + R cos θ,  y₀ + R sin θ)
    rod reach   v = √(L² − (R cos θ)²)
    piston pin  y_c = P_y − v
    piston top  y_p = y_c − h/2          (h = piston height)

The piston pin is kept on the bore axis, so the rod's horizontal span is the
crank pin's horizontal offset R cos θ.  L² − (R cos θ)² is clamped at zero to absorb
floating-point overshoot when |R cos θ| ≈ L.

Valve lift
----------
Lift is a normalised [0, 1] openness over a cycle-fraction window
[open, close), wrapping across 1 → 0.  Each window opens and closes through a
smoothstep ramp  s(u) = u²(3 − 2u)  and holds a flat plateau between.
"""

import math
from typing import NamedTuple

from .engine_config import EngineGeometry, ValveTimingParams


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into [low, high]."""
    return min(max(value, low), high)


def ease_in_out(t: float) -> float:
    """Smoothstep easing  s(t) = t²(3 − 2t),  t clamped to [0, 1]."""
    u = clamp(t, 0.0, 1.0)
    return u * u * (3.0 - 2.0 * u)


def normalise_fraction(value: float) -> float:
    """Wrap a cycle position into [0, 1)."""
    wrapped = value % 1.0
    # -1e-20 % 1.0 rounds up to 1.0
    return 0.0 if wrapped >= 1.0 else wrapped


def cycle_distance(a: float, b: float) -> float:
    """Shortest distance between two cycle fractions on the unit circle."""
    diff = abs(a - b) % 1.0
    return min(diff, 1.0 - diff)


def compute_lift(
    fraction: float, open_start: float, open_end: float, ramp: float = 0.08
) -> float:
    """Normalised valve lift at a cycle position.

    Parameters
    ----------
    fraction   : float  Cycle position (any real; normalised into [0, 1))
    open_start : float  Opening event (cycle fraction)
    open_end   : float  Closing event (cycle fraction)
    ramp       : float  Length of the opening/closing ramps (cycle fraction)

    Returns
    -------
    float  Lift ∈ [0, 1].  0 outside [open_start, open_end), 1 on the
           plateau.  A zero-length window (open_start == open_end after
           normalisation) is treated as a valve that never closes.
    """
    f = normalise_fraction(fraction)
    start = normalise_fraction(open_start)
    end = normalise_fraction(open_end)

    if start == end:
        return 1.0

    if start < end:
        if f < start or f >= end:
            return 0.0
        duration = end - start
        local = f - start
    else:
        # Window wraps across the 1 → 0 boundary
        duration = (1.0 - start) + end
        if f >= start:
            local = f - start
        elif f < end:
            local = (1.0 - start) + f
        else:
            return 0.0

    ramp_duration = min(max(ramp, 0.0), duration / 2.0)
    if ramp_duration <= 0.0:
        return 1.0

    if local < ramp_duration:
        lift = ease_in_out(local / ramp_duration)
    elif local > duration - ramp_duration:
        closing = (local - (duration - ramp_duration)) / ramp_duration
        lift = 1.0 - ease_in_out(closing)
    else:
        lift = 1.0
    return clamp(lift, 0.0, 1.0)


class PistonPosition(NamedTuple):
    """Output of :meth:`SliderCrank.piston_position`."""

    piston_y: float  # piston crown (top edge)
    crank_pin_x: float
    crank_pin_y: float
    piston_center_y: float  # piston (gudgeon) pin


class SliderCrank:
    """Slider-crank mechanism on screen coordinates.

    Attributes
    ----------
    geometry : EngineGeometry  Scene geometry supplying R, L, pivot and piston height
    """

    def __init__(self, geometry: EngineGeometry) -> None:
        self.geometry = geometry
        self.r = geometry.crank_radius
        self.l = geometry.rod_length

    def rod_reach(self, horizontal: float) -> float:
        """Vertical span of the rod for a given horizontal offset.

        √(L² − h²), clamped to 0 when rounding pushes |h| past L.
        """
        return math.sqrt(max(self.l**2 - horizontal**2, 0.0))

    def piston_position(self, angle: float) -> PistonPosition:
        """Piston crown and crank-pin positions at crank angle *angle* [rad]."""
        g = self.geometry
        offset_x = math.cos(angle) * self.r
        offset_y = math.sin(angle) * self.r

        pin_x = g.crank_x + offset_x
        pin_y = g.crank_y + offset_y

        center_y = pin_y - self.rod_reach(offset_x)
        return PistonPosition(
            piston_y=center_y - g.piston_height / 2.0,
            crank_pin_x=pin_x,
            crank_pin_y=pin_y,
            piston_center_y=center_y,
        )

    @property
    def top_dead_centre_y(self) -> float:
        """Highest piston crown position (θ = −π/2)."""
        return self.piston_position(-math.pi / 2.0).piston_y

    @property
    def bottom_dead_centre_y(self) -> float:
        """Lowest piston crown position (θ = +π/2)."""
        return self.piston_position(math.pi / 2.0).piston_y


class ValveTiming:
    """Intake/exhaust lift profiles and spark window for one cylinder.

    Built from :class:`ValveTimingParams`; every query is a pure function of
    the cycle fraction.
    """

    def __init__(self, params: ValveTimingParams = None) -> None:
        self.params = params if params is not None else ValveTimingParams()

    def intake_lift(self, fraction: float) -> float:
        p = self.params
        return compute_lift(fraction, p.intake_open, p.intake_close, p.ramp)

    def exhaust_lift(self, fraction: float) -> float:
        p = self.params
        return compute_lift(fraction, p.exhaust_open, p.exhaust_close, p.ramp)

    def spark_active(self, fraction: float) -> bool:
        """True while the cycle position lies inside the spark window."""
        return cycle_distance(fraction, self.params.spark_center) < self.params.spark_window

    def is_intake_open(self, fraction: float) -> bool:
        return self.intake_lift(fraction) > 0.0

    def is_exhaust_open(self, fraction: float) -> bool:
        return self.exhaust_lift(fraction) > 0.0
