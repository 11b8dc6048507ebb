"""
Cycle Clock Module
Owns simulation time and the four-stroke phase state machine.

One four-stroke cycle spans 2π of cycle time and two crank revolutions:

    ─────────────────────────────────────────────────
    Index   Stroke        Cycle time      Fraction
    ─────────────────────────────────────────────────
    0       Intake        [0,    π/2)     [0,    0.25)
    1       Compression   [π/2,  π)       [0.25, 0.5)
    2       Power         [π,    3π/2)    [0.5,  0.75)
    3       Exhaust       [3π/2, 2π)      [0.75, 1)
    ─────────────────────────────────────────────────

Crank angle  θ = 2·t_cycle − π/2, so the cycle starts with the piston at TDC.
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

CYCLE_LENGTH = 2.0 * math.pi
STROKE_LENGTH = CYCLE_LENGTH / 4.0


class Stroke(IntEnum):
    """Stroke phases of the four-stroke cycle, in firing order."""

    INTAKE = 0
    COMPRESSION = 1
    POWER = 2
    EXHAUST = 3

    @property
    def display_name(self) -> str:
        return STROKE_INFO[self][0]

    @property
    def description(self) -> str:
        return STROKE_INFO[self][1]


STROKE_INFO = {
    Stroke.INTAKE: (
        "Intake",
        "Air-fuel mixture enters through the intake valve as the piston moves down.",
    ),
    Stroke.COMPRESSION: (
        "Compression",
        "Both valves close and the piston moves up, compressing the air-fuel mixture.",
    ),
    Stroke.POWER: (
        "Power (Combustion)",
        "Spark plug ignites the compressed mixture, creating an explosion that "
        "drives the piston down.",
    ),
    Stroke.EXHAUST: (
        "Exhaust",
        "Exhaust valve opens and the piston moves up, pushing burnt gases out.",
    ),
}


@dataclass
class CycleState:
    """Mutable clock state.  Only :class:`CycleClock` writes to it."""

    time: float = 0.0
    is_playing: bool = True
    speed_factor: float = 1.0
    last_piston_y: Optional[float] = None
    last_stroke_index: Optional[int] = None


@dataclass(frozen=True)
class StrokeTransition:
    """A crossing from one stroke into the next."""

    previous_index: int
    new_index: int


@dataclass(frozen=True)
class ClockReading:
    """Cycle position computed by one :meth:`CycleClock.step`."""

    time: float
    cycle_time: float
    stroke_index: int
    stroke_phase: float  # ∈ [0, 1)
    cycle_fraction: float  # ∈ [0, 1)
    crank_angle: float  # rad
    advanced: bool  # True if time moved this tick
    transition: Optional[StrokeTransition] = None

    @property
    def stroke(self) -> Stroke:
        return Stroke(self.stroke_index)


def read_cycle(time: float) -> tuple:
    """(cycle_time, stroke_index, stroke_phase, cycle_fraction, crank_angle) at *time*."""
    cycle_time = time % CYCLE_LENGTH
    if cycle_time >= CYCLE_LENGTH:
        cycle_time = 0.0
    scaled = cycle_time / STROKE_LENGTH
    stroke_index = min(int(math.floor(scaled)), 3)
    stroke_phase = min(max(scaled - stroke_index, 0.0), math.nextafter(1.0, 0.0))
    cycle_fraction = cycle_time / CYCLE_LENGTH
    crank_angle = 2.0 * cycle_time - math.pi / 2.0
    return cycle_time, stroke_index, stroke_phase, cycle_fraction, crank_angle


class CycleClock:
    """Four-stroke phase state machine.

    The clock detects stroke crossings but never acts on them; pausing at a
    crossing is left to whoever consumes :attr:`ClockReading.transition`.
    """

    def __init__(self, state: Optional[CycleState] = None) -> None:
        self.state = state if state is not None else CycleState()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def reset(self) -> None:
        s = self.state
        s.time = 0.0
        s.is_playing = True
        s.last_piston_y = None
        s.last_stroke_index = None

    def set_playing(self, playing: bool) -> None:
        self.state.is_playing = bool(playing)

    def set_speed(self, speed_factor: float) -> None:
        if not (speed_factor >= 0.0 and math.isfinite(speed_factor)):
            raise ValueError(f"speed_factor must be a finite value ≥ 0, got {speed_factor}")
        self.state.speed_factor = float(speed_factor)

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def time(self) -> float:
        return self.state.time

    # ── Tick ──────────────────────────────────────────────────────────────

    def step(self, dt_requested: float) -> ClockReading:
        """Advance time by *dt_requested* if playing and read the cycle position.

        Parameters
        ----------
        dt_requested : float  Cycle-time increment [rad], ≥ 0

        Returns
        -------
        ClockReading  Position after the step; ``transition`` is set when the
                      stroke index differs from the previous call's.

        A step longer than one stroke (π/2) can skip strokes; the single
        transition then reports the first and last index, e.g. (0, 2).
        """
        s = self.state
        advanced = s.is_playing and dt_requested > 0.0
        if advanced:
            s.time += dt_requested

        cycle_time, index, phase, fraction, angle = read_cycle(s.time)

        transition = None
        if s.last_stroke_index is not None and index != s.last_stroke_index:
            transition = StrokeTransition(s.last_stroke_index, index)
        s.last_stroke_index = index

        return ClockReading(
            time=s.time,
            cycle_time=cycle_time,
            stroke_index=index,
            stroke_phase=phase,
            cycle_fraction=fraction,
            crank_angle=angle,
            advanced=advanced,
            transition=transition,
        )

    def track_piston(self, piston_y: float, advanced: bool) -> float:
        """Record the piston crown and return its per-tick velocity.

        Velocity is the change since the previous tick divided by the speed
        factor, and 0 when the clock did not advance, no previous position
        exists, or the speed is 0.  Positive values mean the piston is moving
        down (toward BDC).
        """
        s = self.state
        velocity = 0.0
        if advanced and s.last_piston_y is not None and s.speed_factor > 0.0:
            velocity = (piston_y - s.last_piston_y) / s.speed_factor
        s.last_piston_y = piston_y
        return velocity
