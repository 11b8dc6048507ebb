"""
Particle Simulator Module
Three bounded particle pools depicting intake mixture, combustion and exhaust.

Life cycle
----------
    spawn ──► intake pool ──(crosses bore top)──► chamber pool
                                                  │  mixture ─spark─► ignited
                                                  │  ignited ─exhaust─► burnt
                                                  └─(exits corridor)──► exhaust pool ──► fade

A particle changes pool by being removed from one list and replaced by a new,
fully initialised variant in the next.  When the destination pool is full the
particle is dropped.  Every pass compacts its list in place; order inside a
pool carries no meaning.

Integration uses a per-tick step  dt = max(speed_factor, 0.01)  so motion
scales with animation speed.  Constants are tuned for the default scene
geometry (pixels, +y down).
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

import numpy as np

from .engine_config import EngineGeometry, PoolLimits
from .kinematics import clamp
from .random_source import RandomSource

# ── Tuning constants ──────────────────────────────────────────────────────────

SPAWN_LIFT_THRESHOLD = 0.05
SPAWN_RATE = 6.0
INTAKE_MAX_LIFE = 120.0
CHAMBER_MAX_LIFE = 280.0
EXHAUST_MAX_LIFE = 160.0

WALL_INSET = 12.0
CEILING_INSET = 8.0
FLOOR_CLEARANCE = 10.0
RESTITUTION = -0.45

CORRIDOR_LIFT_THRESHOLD = 0.08
CORRIDOR_WIDTH = 44.0
EXIT_DIRECTION = (0.1, -0.995)

EXHAUST_ALPHA_DECAY = 0.965
EXHAUST_ALPHA_FLOOR = 0.06

MIXTURE_PALETTE = (
    (70, 170, 220),
    (60, 190, 200),
    (80, 180, 210),
    (90, 200, 240),
)
BURNT_COLOR = (110, 110, 110)


class ChamberState(Enum):
    """Combustion state of a particle inside the cylinder."""

    MIXTURE = "mixture"
    IGNITED = "ignited"
    BURNT = "burnt"


class Color(NamedTuple):
    r: int
    g: int
    b: int


# ── Particle variants ─────────────────────────────────────────────────────────


@dataclass
class Particle:
    """Fields shared by every pool."""

    x: float
    y: float
    vx: float
    vy: float
    radius: float
    alpha: float
    life: float
    max_life: float
    color: Color


@dataclass
class IntakeParticle(Particle):
    spin: float


@dataclass
class ChamberParticle(Particle):
    state: ChamberState
    spin: float
    fill_ratio: float  # target height within the chamber, 0 = head, 1 = piston
    base_fill: float
    spread_bias: float  # target lateral offset, −1 = left wall, +1 = right wall


@dataclass
class ExhaustParticle(Particle):
    pass


@dataclass(frozen=True)
class TickContext:
    """Per-tick inputs shared by all three pool passes."""

    intake_lift: float
    exhaust_lift: float
    spark_active: bool
    stroke_index: int
    piston_y: float
    piston_velocity: float  # + moving down
    speed_factor: float

    @property
    def dt(self) -> float:
        return max(self.speed_factor, 0.01)


# ── Read-only view for renderers ──────────────────────────────────────────────


class ParticleSprite(NamedTuple):
    """Immutable drawing record for one particle."""

    x: float
    y: float
    radius: float
    alpha: float
    color: Color
    state: Optional[str] = None  # chamber state value, None outside the chamber


def _sprite(p: Particle) -> ParticleSprite:
    state = p.state.value if isinstance(p, ChamberParticle) else None
    return ParticleSprite(p.x, p.y, p.radius, clamp(p.alpha, 0.0, 1.0), p.color, state)


@dataclass(frozen=True)
class PoolsView:
    """Snapshot of all three pools, detached from the live simulation."""

    intake: Tuple[ParticleSprite, ...] = ()
    chamber: Tuple[ParticleSprite, ...] = ()
    exhaust: Tuple[ParticleSprite, ...] = ()

    @property
    def counts(self) -> dict:
        return {
            "intake": len(self.intake),
            "chamber": len(self.chamber),
            "exhaust": len(self.exhaust),
        }

    def _pool(self, name: str) -> Tuple[ParticleSprite, ...]:
        if name not in ("intake", "chamber", "exhaust"):
            raise ValueError(f"Unknown pool '{name}'")
        return getattr(self, name)

    def positions(self, name: str) -> np.ndarray:
        """(n, 2) array of particle centres in pool *name*."""
        pool = self._pool(name)
        if not pool:
            return np.empty((0, 2), dtype=float)
        return np.array([(s.x, s.y) for s in pool], dtype=float)

    def rgba(self, name: str) -> np.ndarray:
        """(n, 4) array of colours in [0, 1] for pool *name*."""
        pool = self._pool(name)
        if not pool:
            return np.empty((0, 4), dtype=float)
        return np.array(
            [(s.color.r / 255.0, s.color.g / 255.0, s.color.b / 255.0, s.alpha) for s in pool],
            dtype=float,
        ).clip(0.0, 1.0)


# ── Exhaust corridor ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExhaustCorridor:
    """Rectangle in front of the exhaust valve through which gas leaves.

    Only active during the exhaust stroke with the valve sufficiently open.
    """

    active: bool
    valve_x: float
    half_width: float
    top: float
    bottom: float

    def contains(self, x: float, y: float) -> bool:
        return (
            self.active
            and self.valve_x - self.half_width <= x <= self.valve_x + self.half_width
            and self.top <= y <= self.bottom
        )


@dataclass(frozen=True)
class _ChamberField:
    """Per-tick chamber quantities computed once before the particle loop."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float
    corridor: ExhaustCorridor
    pressure_center: Tuple[float, float]
    suction_scale: float
    pressure_factor: float


# ── Simulator ─────────────────────────────────────────────────────────────────


class ParticleSimulator:
    """Owns and advances the intake, chamber and exhaust pools.

    Parameters
    ----------
    geometry : EngineGeometry  Scene geometry (bore, piston, valves)
    limits   : PoolLimits      Capacity of each pool
    rng      : RandomSource    Source of every random draw
    """

    def __init__(
        self,
        geometry: EngineGeometry,
        limits: PoolLimits,
        rng: RandomSource,
    ) -> None:
        self.geometry = geometry
        self.limits = limits
        self.rng = rng
        self.intake: List[IntakeParticle] = []
        self.chamber: List[ChamberParticle] = []
        self.exhaust: List[ExhaustParticle] = []

    # ── Pool bookkeeping ──────────────────────────────────────────────────

    def reset(self) -> None:
        """Destroy every particle in all three pools."""
        self.intake.clear()
        self.chamber.clear()
        self.exhaust.clear()

    def remaining(self, name: str) -> int:
        """Free slots left in pool *name*."""
        pool = getattr(self, name)
        return max(getattr(self.limits, name) - len(pool), 0)

    def pools_view(self) -> PoolsView:
        return PoolsView(
            intake=tuple(_sprite(p) for p in self.intake),
            chamber=tuple(_sprite(p) for p in self.chamber),
            exhaust=tuple(_sprite(p) for p in self.exhaust),
        )

    def _mixture_color(self) -> Color:
        r, g, b = self.rng.choice(MIXTURE_PALETTE)
        return Color(
            r + math.floor(self.rng.uniform(-10, 10)),
            g + math.floor(self.rng.uniform(-15, 15)),
            b + math.floor(self.rng.uniform(-10, 10)),
        )

    # ── Tick ──────────────────────────────────────────────────────────────

    def update(self, ctx: TickContext) -> None:
        """Spawn, integrate and transition all pools for one tick."""
        dt = ctx.dt
        if ctx.intake_lift > SPAWN_LIFT_THRESHOLD and ctx.piston_velocity > 0.0:
            self.spawn_intake(ctx.intake_lift, ctx.piston_velocity, dt)
        self._update_intake(dt)
        self._update_chamber(ctx, dt)
        self._update_exhaust(dt)

    def spawn_count(self, lift: float, dt: float) -> int:
        """Particles spawned for *lift* at step *dt*, limited by free capacity."""
        available = self.remaining("intake")
        if lift <= 0.0 or available <= 0:
            return 0
        base = math.ceil(lift * SPAWN_RATE * max(dt, 1.0))
        return min(max(base, 1), available)

    def spawn_intake(self, lift: float, piston_velocity: float, dt: float) -> int:
        """Release new mixture particles behind the intake valve.

        Returns the number of particles created.
        """
        count = self.spawn_count(lift, dt)
        g = self.geometry
        origin_x = g.intake_valve_x
        origin_y = g.cylinder_y - 55.0
        rand = self.rng.uniform
        for _ in range(count):
            self.intake.append(
                IntakeParticle(
                    x=origin_x + rand(-9, 9),
                    y=origin_y + rand(-12, 6),
                    vx=rand(0.25, 0.9),
                    vy=rand(1.8, 2.8) + max(piston_velocity, 0.0) * 0.02 * dt,
                    radius=rand(1.6, 2.4),
                    alpha=rand(0.5, 0.8),
                    life=0.0,
                    max_life=INTAKE_MAX_LIFE,
                    color=self._mixture_color(),
                    spin=rand(-0.018, 0.018),
                )
            )
        return count

    # ── Intake pass ───────────────────────────────────────────────────────

    def _enter_chamber(self, p: IntakeParticle) -> ChamberParticle:
        rand = self.rng.uniform
        fill = self.rng.random()
        return ChamberParticle(
            x=p.x + rand(-10, 10),
            y=self.geometry.cylinder_y + rand(8, 38),
            vx=rand(-0.25, 0.25),
            vy=rand(-0.18, 0.18),
            radius=p.radius * rand(0.95, 1.6),
            alpha=rand(0.45, 0.7),
            life=0.0,
            max_life=CHAMBER_MAX_LIFE,
            color=self._mixture_color(),
            state=ChamberState.MIXTURE,
            spin=p.spin,
            fill_ratio=fill,
            base_fill=fill,
            spread_bias=rand(-1, 1),
        )

    def _update_intake(self, dt: float) -> None:
        pool = self.intake
        boundary = self.geometry.cylinder_y + 6.0
        write = 0
        for p in pool:
            p.life += dt
            p.x += p.vx * dt + self.rng.uniform(-0.02, 0.02) * dt
            p.y += p.vy * dt + self.rng.uniform(-0.01, 0.04) * dt

            if p.y >= boundary:
                if len(self.chamber) < self.limits.chamber:
                    self.chamber.append(self._enter_chamber(p))
                continue

            if p.life < p.max_life:
                pool[write] = p
                write += 1
        del pool[write:]

    # ── Chamber pass ──────────────────────────────────────────────────────

    def exhaust_corridor(self, ctx: TickContext) -> ExhaustCorridor:
        g = self.geometry
        return ExhaustCorridor(
            active=ctx.stroke_index == 3 and ctx.exhaust_lift > CORRIDOR_LIFT_THRESHOLD,
            valve_x=g.exhaust_valve_x,
            half_width=CORRIDOR_WIDTH / 2.0,
            top=g.cylinder_y - 32.0,
            bottom=g.cylinder_y + 68.0,
        )

    def _chamber_field(self, ctx: TickContext) -> _ChamberField:
        g = self.geometry
        corridor = self.exhaust_corridor(ctx)
        suction = 0.0
        if corridor.active:
            suction = clamp(
                (g.cylinder_y + g.cylinder_height - ctx.piston_y) / g.cylinder_height,
                0.05,
                1.0,
            )
        pressure = 1.0
        if ctx.stroke_index == 3:
            pressure = (
                1.0
                + clamp(-ctx.piston_velocity, 0.0, 22.0) * 0.1
                + suction * 1.8
                + ctx.exhaust_lift * 0.5
            )
        return _ChamberField(
            min_x=g.cylinder_x - g.piston_width / 2.0 + WALL_INSET,
            max_x=g.cylinder_x + g.piston_width / 2.0 - WALL_INSET,
            min_y=g.cylinder_y + CEILING_INSET,
            max_y=ctx.piston_y - FLOOR_CLEARANCE,
            corridor=corridor,
            pressure_center=(g.cylinder_x, g.cylinder_y + (ctx.piston_y - g.cylinder_y) * 0.42),
            suction_scale=suction,
            pressure_factor=pressure,
        )

    def _update_chamber(self, ctx: TickContext, dt: float) -> None:
        field = self._chamber_field(ctx)
        pool = self.chamber
        write = 0
        for p in pool:
            if self._advance_chamber_particle(p, ctx, field, dt):
                pool[write] = p
                write += 1
        del pool[write:]

    def _advance_chamber_particle(
        self, p: ChamberParticle, ctx: TickContext, field: _ChamberField, dt: float
    ) -> bool:
        """Move one chamber particle through a tick; False if it leaves the pool."""
        g = self.geometry
        rand = self.rng.uniform
        corridor = field.corridor
        v = ctx.piston_velocity
        lift = ctx.exhaust_lift
        pf = field.pressure_factor
        suction = field.suction_scale

        p.life += dt
        p.vx += rand(-0.025, 0.025) * dt
        p.vy += (rand(-0.035, 0.035) + v * 0.0025) * dt
        p.x += p.vx * dt
        p.y += p.vy * dt

        # Rising piston drives gas outward from the pressure centre
        if ctx.stroke_index == 3:
            magnitude = clamp(-v, 0.0, 18.0)
            if magnitude > 0.0:
                gx = p.x - field.pressure_center[0]
                gy = p.y - field.pressure_center[1]
                distance = max(math.hypot(gx, gy), 1.0)
                push = magnitude * 0.0022 * pf * dt
                p.vx += gx / distance * push
                p.vy += gy / distance * push
                turbulence = magnitude * pf * dt
                p.vx += rand(-0.0022, 0.0022) * turbulence
                p.vy += rand(-0.0022, 0.0022) * turbulence

        in_corridor = corridor.contains(p.x, p.y)

        if corridor.active:
            dx = corridor.valve_x - p.x
            dy = g.cylinder_y + 24.0 - p.y
            distance = max(math.hypot(dx, dy), 1.0)
            pull = lift * (0.007 + suction * 0.011) * pf * dt
            p.vx += dx / distance * pull
            p.vy += dy / distance * pull
            p.vy -= (0.05 + suction * 0.14) * lift * pf * dt

            if in_corridor:
                ex, ey = EXIT_DIRECTION
                mag = max(math.hypot(ex, ey), 0.001)
                push = 0.1 * lift * (1.0 + suction * 1.9) * pf * dt
                p.vx += ex / mag * push
                p.vy += ey / mag * push
                if p.y > g.cylinder_y:
                    p.vy -= 0.085 * lift * (1.0 + suction * 1.2) * pf * dt

        # Walls and piston crown; the corridor is open on the right and top
        if p.x < field.min_x:
            p.x = field.min_x
            p.vx *= RESTITUTION
        elif p.x > field.max_x and not in_corridor:
            p.x = field.max_x
            p.vx *= RESTITUTION

        if p.y < field.min_y and not (
            in_corridor and p.x >= corridor.valve_x - corridor.half_width
        ):
            p.y = field.min_y
            p.vy *= RESTITUTION
        elif p.y > field.max_y:
            p.y = field.max_y
            p.vy *= RESTITUTION

        in_corridor = corridor.contains(p.x, p.y)

        pressurised = p.state is not ChamberState.BURNT or ctx.stroke_index < 3
        if pressurised:
            self._apply_fill_dynamics(p, ctx, dt)

        self._apply_state_transition(p, ctx, dt)

        if self._ready_to_exit(p, corridor):
            if len(self.exhaust) < self.limits.exhaust:
                self.exhaust.append(self._leave_chamber(p, lift, pf))
                return False

        return p.life < p.max_life

    def _apply_fill_dynamics(self, p: ChamberParticle, ctx: TickContext, dt: float) -> None:
        """Ease the particle toward its stroke-dependent place in the charge."""
        g = self.geometry
        stroke = ctx.stroke_index
        v = ctx.piston_velocity
        chamber_height = max(ctx.piston_y - g.cylinder_y - 22.0, 28.0)

        target = p.fill_ratio
        if stroke == 0:
            target += (self.rng.random() - 0.5) * 0.02
        elif stroke == 1:
            target -= min(v, 0.0) * 0.005
        elif stroke == 2:
            expansion = max(v, 0.0)
            target = (
                p.base_fill * (0.75 + expansion * 0.04)
                + p.fill_ratio * 0.15
                + (self.rng.random() - 0.5) * 0.06
            )
        target = clamp(target, 0.0, 1.0)
        p.fill_ratio = clamp((p.fill_ratio * 4.0 + target) / 5.0, 0.0, 1.0)

        desired_y = g.cylinder_y + 12.0 + p.fill_ratio * chamber_height
        p.vy += clamp(desired_y - p.y, -180.0, 180.0) * 0.00135 * dt

        spread = g.piston_width / 2.0 - 18.0
        desired_x = g.cylinder_x + p.spread_bias * spread
        p.vx += clamp(desired_x - p.x, -150.0, 150.0) * 0.0012 * dt

        if stroke == 0:
            p.vx += p.spin * 0.5 * dt
            p.spread_bias = clamp(p.spread_bias + p.spin * 0.015 * dt, -1.0, 1.0)
        elif stroke == 1:
            p.vy += v * 0.01 * dt
        elif stroke == 2:
            p.vx += p.spin * 0.35 * dt
            expansion = max(v, 0.0)
            p.vy += expansion * 0.006 * dt
            p.vy -= (1.0 - p.fill_ratio) * expansion * 0.012 * dt
            # Flame front pushes away from the spark plug
            gx = p.x - g.cylinder_x
            gy = p.y - (g.cylinder_y + 12.0)
            distance = max(math.hypot(gx, gy), 1.0)
            push = 0.06 * clamp(1.0 - distance / (g.piston_width * 0.6), 0.12, 1.0) * dt
            p.vx += gx / distance * push
            p.vy += gy / distance * push

    def _apply_state_transition(self, p: ChamberParticle, ctx: TickContext, dt: float) -> None:
        rand = self.rng.uniform
        if ctx.spark_active and p.state is ChamberState.MIXTURE:
            p.state = ChamberState.IGNITED
            p.color = Color(
                220 + self.rng.integer(35),
                140 + self.rng.integer(60),
                30 + self.rng.integer(45),
            )
            p.radius *= rand(1.2, 1.6)
            p.alpha = rand(0.72, 0.9)
        elif not ctx.spark_active and p.state is ChamberState.IGNITED and ctx.stroke_index == 3:
            p.state = ChamberState.BURNT
            p.color = Color(*BURNT_COLOR)
            p.alpha = 0.55

        if p.state is ChamberState.MIXTURE:
            p.alpha = clamp(p.alpha + rand(-0.01, 0.015) * dt, 0.35, 0.7)
        elif p.state is ChamberState.IGNITED:
            p.alpha = clamp(p.alpha - 0.004 * dt, 0.45, 0.9)
        else:
            p.alpha = clamp(p.alpha - 0.003 * dt, 0.25, 0.6)

    def _ready_to_exit(self, p: ChamberParticle, corridor: ExhaustCorridor) -> bool:
        if not corridor.contains(p.x, p.y):
            return False
        if abs(p.x - corridor.valve_x) > corridor.half_width * 0.6:
            return False
        top = self.geometry.cylinder_y
        return p.y <= top - 4.0 or (p.y <= top + 2.0 and p.vy <= -0.12)

    def _leave_chamber(self, p: ChamberParticle, lift: float, pressure: float) -> ExhaustParticle:
        rand = self.rng.uniform
        exit_vx = max(p.vx, 0.35) + 0.28 * lift * pressure
        exit_vy = p.vy * 0.45 - (0.32 + lift * 0.12) * pressure
        if p.state is ChamberState.IGNITED:
            color = Color(
                230 + self.rng.integer(15),
                120 + self.rng.integer(30),
                60 + self.rng.integer(30),
            )
        else:
            color = Color(
                80 + self.rng.integer(30),
                80 + self.rng.integer(30),
                80 + self.rng.integer(30),
            )
        return ExhaustParticle(
            x=p.x + rand(-3, 3),
            y=p.y + rand(-3, 3),
            vx=exit_vx + rand(0.3, 0.8),
            vy=exit_vy + rand(-0.85, 0.05),
            radius=p.radius * rand(0.9, 1.35),
            alpha=rand(0.5, 0.72),
            life=0.0,
            max_life=EXHAUST_MAX_LIFE,
            color=color,
        )

    # ── Exhaust pass ──────────────────────────────────────────────────────

    def _update_exhaust(self, dt: float) -> None:
        g = self.geometry
        ceiling = g.cylinder_y - 200.0
        far_x = g.exhaust_valve_x + 300.0
        decay = EXHAUST_ALPHA_DECAY**dt
        pool = self.exhaust
        write = 0
        for p in pool:
            p.life += dt
            p.vx += 0.018 * dt
            p.vy -= 0.012 * dt
            p.x += p.vx * dt + self.rng.uniform(-0.05, 0.05) * dt
            p.y += p.vy * dt + self.rng.uniform(-0.08, 0.08) * dt
            p.alpha *= decay

            if (
                p.life < p.max_life
                and p.alpha > EXHAUST_ALPHA_FLOOR
                and p.y > ceiling
                and p.x < far_x
            ):
                pool[write] = p
                write += 1
        del pool[write:]
