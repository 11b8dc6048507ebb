"""
Engine Core
Wires the cycle clock, slider-crank, valve timing and particle simulator into
one per-tick ``step()`` producing a render-ready snapshot.

The core never touches presentation state.  Inputs arrive through
``step(speed_factor)``, ``set_playing`` and ``reset``; outputs leave as a
:class:`Snapshot` and as stroke-transition notifications.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from .cycle_clock import CycleClock, Stroke
from .engine_config import (
    AnimationParameters,
    EngineConfiguration,
    EngineGeometry,
    PoolLimits,
    ValveTimingParams,
)
from .kinematics import SliderCrank, ValveTiming
from .particles import ParticleSimulator, PoolsView, TickContext
from .random_source import RandomSource

TransitionListener = Callable[[int, int], None]


@dataclass(frozen=True)
class Snapshot:
    """Everything a renderer needs to draw one frame."""

    time: float
    piston_y: float
    crank_pin_x: float
    crank_pin_y: float
    crank_angle: float
    stroke_index: int
    stroke_name: str
    stroke_description: str
    stroke_phase: float
    cycle_fraction: float
    intake_lift: float
    exhaust_lift: float
    spark_active: bool
    is_playing: bool
    pools: PoolsView

    @property
    def stroke(self) -> Stroke:
        return Stroke(self.stroke_index)


class EngineCore:
    """Composition root of the four-stroke animation.

    Parameters
    ----------
    config : EngineConfiguration, optional
        Scene, pool and timing configuration (defaults reproduce the stock scene).
    rng : RandomSource, optional
        Random source for the particle simulator; seeded from
        ``config.animation.seed`` when omitted.
    """

    def __init__(
        self,
        config: Optional[EngineConfiguration] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.config = config if config is not None else EngineConfiguration()
        self.rng = rng if rng is not None else RandomSource(self.config.animation.seed)

        self.clock = CycleClock()
        self.slider_crank = SliderCrank(self.config.geometry)
        self.valve_timing = ValveTiming(self.config.valve_timing)
        self.particles = ParticleSimulator(
            self.config.geometry, self.config.pool_limits, self.rng
        )
        self._listeners: List[TransitionListener] = []

    @classmethod
    def configure(
        cls,
        geometry: Optional[EngineGeometry] = None,
        pool_limits: Optional[PoolLimits] = None,
        valve_timing: Optional[ValveTimingParams] = None,
        animation: Optional[AnimationParameters] = None,
        rng: Optional[RandomSource] = None,
    ) -> "EngineCore":
        """Build a core from individual configuration parts.

        Pools start empty and the clock starts at time 0, playing.
        """
        config = EngineConfiguration(
            geometry=geometry or EngineGeometry(),
            pool_limits=pool_limits or PoolLimits(),
            valve_timing=valve_timing or ValveTimingParams(),
            animation=animation or AnimationParameters(),
        )
        return cls(config, rng=rng)

    # ── Notifications ─────────────────────────────────────────────────────

    def add_transition_listener(self, listener: TransitionListener) -> None:
        """Call ``listener(previous_index, new_index)`` on every stroke crossing."""
        self._listeners.append(listener)

    def remove_transition_listener(self, listener: TransitionListener) -> None:
        self._listeners.remove(listener)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    @property
    def is_playing(self) -> bool:
        return self.clock.is_playing

    @property
    def time(self) -> float:
        return self.clock.time

    def set_playing(self, playing: bool) -> None:
        self.clock.set_playing(playing)

    def reset(self) -> None:
        """Return to time 0, playing, with all pools empty."""
        self.clock.reset()
        self.particles.reset()

    # ── Tick ──────────────────────────────────────────────────────────────

    def step(self, speed_factor: float = 1.0) -> Snapshot:
        """Advance one tick at *speed_factor* and return the new frame.

        A paused core, or a speed of 0, re-reads the frozen frame without
        moving time or particles.

        A tick covers ``time_step * speed_factor`` of cycle time; when that
        exceeds one stroke, listeners see one transition that skips the
        intermediate strokes.

        Raises
        ------
        ValueError
            If speed_factor is negative or not finite.
        """
        if not (speed_factor >= 0.0 and math.isfinite(speed_factor)):
            raise ValueError(f"speed_factor must be a finite value ≥ 0, got {speed_factor}")

        self.clock.set_speed(speed_factor)
        reading = self.clock.step(self.config.animation.time_step * speed_factor)

        # Listeners may pause the clock; this tick still integrates.
        if reading.transition is not None:
            for listener in list(self._listeners):
                listener(reading.transition.previous_index, reading.transition.new_index)

        pos = self.slider_crank.piston_position(reading.crank_angle)
        intake_lift = self.valve_timing.intake_lift(reading.cycle_fraction)
        exhaust_lift = self.valve_timing.exhaust_lift(reading.cycle_fraction)
        spark_active = self.valve_timing.spark_active(reading.cycle_fraction)
        piston_velocity = self.clock.track_piston(pos.piston_y, reading.advanced)

        if reading.advanced:
            self.particles.update(
                TickContext(
                    intake_lift=intake_lift,
                    exhaust_lift=exhaust_lift,
                    spark_active=spark_active,
                    stroke_index=reading.stroke_index,
                    piston_y=pos.piston_y,
                    piston_velocity=piston_velocity,
                    speed_factor=speed_factor,
                )
            )

        stroke = reading.stroke
        return Snapshot(
            time=reading.time,
            piston_y=pos.piston_y,
            crank_pin_x=pos.crank_pin_x,
            crank_pin_y=pos.crank_pin_y,
            crank_angle=reading.crank_angle,
            stroke_index=reading.stroke_index,
            stroke_name=stroke.display_name,
            stroke_description=stroke.description,
            stroke_phase=reading.stroke_phase,
            cycle_fraction=reading.cycle_fraction,
            intake_lift=intake_lift,
            exhaust_lift=exhaust_lift,
            spark_active=spark_active,
            is_playing=self.clock.is_playing,
            pools=self.particles.pools_view(),
        )


class AutoPausePolicy:
    """Pauses a core whenever it crosses into a new stroke.

    Attach with ``AutoPausePolicy(core)``; the policy registers itself as a
    transition listener.  Disabling the policy resumes a paused core.
    """

    def __init__(self, core: EngineCore, enabled: bool = True) -> None:
        self.core = core
        self.enabled = enabled
        self.paused_at: Optional[int] = None
        core.add_transition_listener(self)

    def __call__(self, previous_index: int, new_index: int) -> None:
        if self.enabled and self.core.is_playing:
            self.core.set_playing(False)
            self.paused_at = new_index

    @property
    def awaiting_resume(self) -> bool:
        """True while the core is held at a stroke boundary by this policy."""
        return self.enabled and not self.core.is_playing and self.paused_at is not None

    def resume(self) -> None:
        self.paused_at = None
        self.core.set_playing(True)

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)
        if not self.enabled and not self.core.is_playing:
            self.resume()

    def detach(self) -> None:
        self.core.remove_transition_listener(self)
