"""
Engine Configuration Module
Defines scene geometry, pool limits, valve timing and animation parameters.

All quantities are scene-scale abstractions (screen pixels, +y pointing down)
rather than real-world units.
"""

import math
import json
import warnings
from dataclasses import dataclass, field
from typing import Dict, Optional

# ── Geometry ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineGeometry:
    """Cutaway scene geometry of a single cylinder.

    Attributes
    ----------
    cylinder_x, cylinder_y : centre-x and top edge of the cylinder bore
    cylinder_width         : bore width drawn on screen
    cylinder_height        : bore height from head to bottom
    piston_width           : piston crown width
    piston_height          : piston skirt height
    crank_radius           : R, pivot to crank-pin distance
    rod_length             : L, connecting rod length  (must be ≥ R)
    crank_x, crank_y       : crankshaft main journal (pivot)
    valve_offset           : horizontal distance of each valve from the bore axis
    valve_stroke           : valve head travel at full lift
    """

    cylinder_x: float = 400.0
    cylinder_y: float = 150.0
    cylinder_width: float = 180.0
    cylinder_height: float = 280.0
    piston_width: float = 170.0
    piston_height: float = 60.0
    crank_radius: float = 80.0
    rod_length: float = 140.0
    crank_x: float = 400.0
    crank_y: float = 480.0
    valve_offset: float = 55.0
    valve_stroke: float = 28.0

    def __post_init__(self) -> None:
        for name in (
            "cylinder_width",
            "cylinder_height",
            "piston_width",
            "piston_height",
            "crank_radius",
            "rod_length",
        ):
            value = getattr(self, name)
            if not value > 0.0:
                raise ValueError(f"{name} must be > 0, got {value}")
        if self.crank_radius > self.rod_length:
            raise ValueError(
                f"crank_radius ({self.crank_radius}) must be ≤ rod_length "
                f"({self.rod_length}); otherwise the slider-crank cannot close."
            )
        if self.valve_stroke < 0.0:
            raise ValueError(f"valve_stroke must be ≥ 0, got {self.valve_stroke}")
        if self.piston_width > self.cylinder_width:
            warnings.warn(
                f"piston_width {self.piston_width} exceeds cylinder_width "
                f"{self.cylinder_width}; piston will overlap the walls",
                stacklevel=3,
            )

    # ── Derived properties ────────────────────────────────────────────────

    @property
    def intake_valve_x(self) -> float:
        return self.cylinder_x - self.valve_offset

    @property
    def exhaust_valve_x(self) -> float:
        return self.cylinder_x + self.valve_offset

    @property
    def head_y(self) -> float:
        """Top of the combustion chamber (valve seat line)."""
        return self.cylinder_y - 30.0

    @property
    def rod_ratio(self) -> float:
        """Rod ratio  L/R  [dimensionless]."""
        return self.rod_length / self.crank_radius


# ── Particle pools ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PoolLimits:
    """Maximum number of live particles held by each pool."""

    intake: int = 100
    chamber: int = 220
    exhaust: int = 160

    def __post_init__(self) -> None:
        for name in ("intake", "chamber", "exhaust"):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(f"{name} pool limit must be an integer ≥ 0, got {value}")


# ── Valve timing ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ValveTimingParams:
    """Valve events as cycle fractions (0 = start of the intake stroke).

    Both windows wrap across the 1 → 0 boundary, giving a short overlap
    around the exhaust/intake TDC.

    ─────────────────────────────────────────────
    Event            Default   Stroke
    ─────────────────────────────────────────────
    Intake opens     0.92      late exhaust
    Intake closes    0.32      early compression
    Exhaust opens    0.68      late power
    Exhaust closes   0.08      early intake
    Spark            0.50      compression → power TDC
    ─────────────────────────────────────────────
    """

    intake_open: float = 0.92
    intake_close: float = 0.32
    exhaust_open: float = 0.68
    exhaust_close: float = 0.08
    ramp: float = 0.07
    spark_center: float = 0.5
    spark_window: float = 0.012

    def __post_init__(self) -> None:
        for name in (
            "intake_open",
            "intake_close",
            "exhaust_open",
            "exhaust_close",
            "spark_center",
        ):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")
        if not (self.ramp >= 0.0 and math.isfinite(self.ramp)):
            raise ValueError(f"ramp must be a finite value ≥ 0, got {self.ramp}")
        if not (self.spark_window >= 0.0 and math.isfinite(self.spark_window)):
            raise ValueError(
                f"spark_window must be a finite value ≥ 0, got {self.spark_window}"
            )
        if self.spark_window > 0.25:
            warnings.warn(
                f"spark_window {self.spark_window} spans more than half a stroke",
                stacklevel=3,
            )


# ── Animation ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AnimationParameters:
    """Runtime animation parameters."""

    time_step: float = 0.02  # rad of cycle time per tick at speed 1
    auto_pause: bool = True
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not (self.time_step > 0.0 and math.isfinite(self.time_step)):
            raise ValueError(f"time_step must be > 0, got {self.time_step}")
        if self.time_step > math.pi / 2.0:
            warnings.warn(
                f"time_step {self.time_step} skips whole strokes per tick",
                stacklevel=3,
            )

    @property
    def ticks_per_cycle(self) -> int:
        """Ticks needed for one four-stroke cycle at speed 1."""
        return int(math.ceil(2.0 * math.pi / self.time_step))


# ── Top-level configuration ───────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineConfiguration:
    """Complete animator configuration."""

    geometry: EngineGeometry = field(default_factory=EngineGeometry)
    pool_limits: PoolLimits = field(default_factory=PoolLimits)
    valve_timing: ValveTimingParams = field(default_factory=ValveTimingParams)
    animation: AnimationParameters = field(default_factory=AnimationParameters)

    # ── Serialisation ─────────────────────────────────────────────────────

    def to_dict(self) -> Dict:
        """Serialise configuration to a plain dictionary."""
        g = self.geometry
        p = self.pool_limits
        v = self.valve_timing
        a = self.animation
        return {
            "geometry": {
                "cylinder_x": g.cylinder_x,
                "cylinder_y": g.cylinder_y,
                "cylinder_width": g.cylinder_width,
                "cylinder_height": g.cylinder_height,
                "piston_width": g.piston_width,
                "piston_height": g.piston_height,
                "crank_radius": g.crank_radius,
                "rod_length": g.rod_length,
                "crank_x": g.crank_x,
                "crank_y": g.crank_y,
                "valve_offset": g.valve_offset,
                "valve_stroke": g.valve_stroke,
            },
            "pool_limits": {
                "intake": p.intake,
                "chamber": p.chamber,
                "exhaust": p.exhaust,
            },
            "valve_timing": {
                "intake_open": v.intake_open,
                "intake_close": v.intake_close,
                "exhaust_open": v.exhaust_open,
                "exhaust_close": v.exhaust_close,
                "ramp": v.ramp,
                "spark_center": v.spark_center,
                "spark_window": v.spark_window,
            },
            "animation": {
                "time_step": a.time_step,
                "auto_pause": a.auto_pause,
                "seed": a.seed,
            },
        }

    def to_json(self, filepath: str) -> None:
        """Persist configuration to a JSON file."""
        with open(filepath, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2)

    @classmethod
    def from_dict(cls, data: Dict) -> "EngineConfiguration":
        """Build a configuration from a dictionary produced by :meth:`to_dict`.

        Raises
        ------
        KeyError
            If a required section is missing.
        ValueError
            If a field has an invalid value.
        """
        try:
            geo_data = dict(data["geometry"])
            pool_data = dict(data["pool_limits"])
            valve_data = dict(data["valve_timing"])
        except KeyError as exc:
            raise KeyError(f"Missing section in configuration: {exc}") from exc

        # Animation section is optional; JSON has no int/bool distinction for
        # some writers, so cast explicitly.
        anim_data = dict(data.get("animation", {}))
        if "auto_pause" in anim_data:
            anim_data["auto_pause"] = bool(anim_data["auto_pause"])
        if anim_data.get("seed") is not None:
            anim_data["seed"] = int(anim_data["seed"])

        try:
            return cls(
                geometry=EngineGeometry(**geo_data),
                pool_limits=PoolLimits(**pool_data),
                valve_timing=ValveTimingParams(**valve_data),
                animation=AnimationParameters(**anim_data),
            )
        except TypeError as exc:
            raise ValueError(f"Unknown configuration field: {exc}") from exc

    @classmethod
    def from_json(cls, filepath: str) -> "EngineConfiguration":
        """Load configuration from a JSON file.

        Raises
        ------
        FileNotFoundError
            If filepath does not exist.
        KeyError
            If a required section is missing from the JSON.
        ValueError
            If a field has an invalid value.
        """
        with open(filepath, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return cls.from_dict(data)


# ── Factory functions ─────────────────────────────────────────────────────────


def create_default_configuration(
    seed: Optional[int] = None, auto_pause: bool = True
) -> EngineConfiguration:
    """Create the default single-cylinder cutaway scene.

        Bore (drawn)   : 180 × 280
        Crank / rod    : 80 / 140   (rod ratio 1.75)
        Pools          : 100 intake, 220 chamber, 160 exhaust
    """
    return EngineConfiguration(
        geometry=EngineGeometry(),
        pool_limits=PoolLimits(),
        valve_timing=ValveTimingParams(),
        animation=AnimationParameters(seed=seed, auto_pause=auto_pause),
    )
