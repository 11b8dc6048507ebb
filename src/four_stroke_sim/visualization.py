"""
Visualization Module
Draws snapshot frames and per-tick traces of the four-stroke animation.

The plotter only reads :class:`Snapshot` and :class:`TraceRecorder` data; it
never calls back into the simulation.
"""

import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec
from matplotlib.patches import Circle, Ellipse, Rectangle
import numpy as np
from typing import Optional

from .cycle_clock import Stroke
from .engine_config import EngineGeometry
from .engine_core import Snapshot
from .utilities import TraceRecorder

STROKE_COLORS = {
    Stroke.INTAKE: "#4CAF50",
    Stroke.COMPRESSION: "#FFB74D",
    Stroke.POWER: "#FF5722",
    Stroke.EXHAUST: "#757575",
}

# Marker scale from scene radius to scatter area (points²)
_SPRITE_SCALE = 6.0


class EnginePlotter:
    """
    Renders engine frames and run traces with matplotlib.

    Supports:
    - Cutaway frame of cylinder, piston, rod, crank and particles
    - Valve lift / piston travel / pool occupancy traces
    """

    def __init__(self, geometry: Optional[EngineGeometry] = None, style: str = "default"):
        """
        Initialize plotter with scene geometry and style.

        Args:
            geometry: Scene geometry the snapshots were produced with
            style: Matplotlib style ('default', 'seaborn', 'ggplot')
        """
        if style != "default":
            try:
                plt.style.use(style)
            except (OSError, ValueError) as e:
                print(f"Warning: Style '{style}' not found, using default. Error: {e}")

        self.geometry = geometry if geometry is not None else EngineGeometry()
        self.fig_size = (8, 9)
        self.dpi = 100

    def _finish(self, fig, save_path: Optional[str], label: str, show: bool):
        if save_path:
            fig.savefig(save_path, dpi=self.dpi * 2, bbox_inches="tight")
            print(f"{label} saved to {save_path}")
        if show:
            plt.show()
        else:
            plt.close(fig)
        return fig

    def draw_frame(self, ax, snapshot: Snapshot) -> None:
        """Draw one cutaway frame onto *ax* (scene coordinates, y down)."""
        g = self.geometry
        left = g.cylinder_x - g.cylinder_width / 2.0

        # Cylinder block and head
        ax.add_patch(
            Rectangle((left, g.cylinder_y), g.cylinder_width, g.cylinder_height,
                      facecolor="#777777", edgecolor="#333333", linewidth=2)
        )
        ax.add_patch(
            Rectangle((left, g.head_y), g.cylinder_width, 30.0,
                      facecolor="#444444", edgecolor="#333333", linewidth=2)
        )

        # Charge tint by stroke
        chamber_h = snapshot.piston_y - g.cylinder_y
        if chamber_h > 0:
            ax.add_patch(
                Rectangle((g.cylinder_x - g.piston_width / 2.0 + 5, g.cylinder_y),
                          g.piston_width - 10, chamber_h,
                          facecolor=STROKE_COLORS[snapshot.stroke], alpha=0.2, linewidth=0)
            )

        # Particles
        for name, offset in (("intake", (0.0, -2.0)), ("chamber", (0.0, 0.0)), ("exhaust", (4.0, -6.0))):
            pool = getattr(snapshot.pools, name)
            if not pool:
                continue
            xy = snapshot.pools.positions(name) + np.asarray(offset)
            sizes = np.array([s.radius for s in pool]) ** 2 * _SPRITE_SCALE
            ax.scatter(xy[:, 0], xy[:, 1], s=sizes, c=snapshot.pools.rgba(name),
                       linewidths=0, zorder=3)

        # Valves
        for x, lift, color in (
            (g.intake_valve_x, snapshot.intake_lift, "#4CAF50"),
            (g.exhaust_valve_x, snapshot.exhaust_lift, "#f44336"),
        ):
            head_y = g.head_y + g.valve_stroke * lift
            ax.plot([x, x], [g.head_y - 85.0, head_y - 11.0], color="#6d7075", linewidth=3, zorder=4)
            ax.add_patch(Ellipse((x, head_y), 64.0, 22.0, facecolor="#e0e2e4",
                                 edgecolor=color, linewidth=2, zorder=4))

        # Spark plug
        ax.plot([g.cylinder_x, g.cylinder_x], [g.head_y - 40.0, g.head_y + 15.0],
                color="#FFFF00" if snapshot.spark_active else "#666666", linewidth=4, zorder=4)

        # Piston, rod, crank
        ax.add_patch(
            Rectangle((g.cylinder_x - g.piston_width / 2.0, snapshot.piston_y),
                      g.piston_width, g.piston_height,
                      facecolor="#cccccc", edgecolor="#333333", linewidth=2, zorder=5)
        )
        pin_y = snapshot.piston_y + g.piston_height / 2.0
        ax.plot([g.cylinder_x, snapshot.crank_pin_x], [pin_y, snapshot.crank_pin_y],
                color="#555555", linewidth=6, solid_capstyle="round", zorder=6)
        ax.plot([g.crank_x, snapshot.crank_pin_x], [g.crank_y, snapshot.crank_pin_y],
                color="#555555", linewidth=9, zorder=6)
        ax.add_patch(Circle((g.crank_x, g.crank_y), 25.0, facecolor="#444444", zorder=7))
        ax.add_patch(Circle((snapshot.crank_pin_x, snapshot.crank_pin_y), 10.0,
                            facecolor="#777777", zorder=7))

        ax.set_xlim(left - 80.0, g.exhaust_valve_x + 320.0)
        ax.set_ylim(g.crank_y + g.crank_radius + 40.0, g.cylinder_y - 220.0)
        ax.set_aspect("equal")
        ax.axis("off")
        ax.set_title(
            f"{snapshot.stroke_name}  ({snapshot.stroke_phase * 100:.0f}%)",
            fontsize=14,
            fontweight="bold",
        )

    def plot_frame(self, snapshot: Snapshot, save_path: Optional[str] = None, show: bool = True):
        """
        Render a single snapshot as a cutaway engine frame.

        Args:
            snapshot: Frame returned by EngineCore.step
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        fig, ax = plt.subplots(figsize=self.fig_size)
        self.draw_frame(ax, snapshot)
        ax.text(
            0.02,
            0.02,
            snapshot.stroke_description,
            transform=ax.transAxes,
            fontsize=9,
            wrap=True,
            bbox=dict(boxstyle="round", facecolor="white", alpha=0.8),
        )
        plt.tight_layout()
        return self._finish(fig, save_path, "Frame", show)

    def plot_trace(self, trace: TraceRecorder, save_path: Optional[str] = None, show: bool = True):
        """
        Plot valve lifts, piston travel and pool occupancy over a run.

        Args:
            trace: Recorded per-tick trace
            save_path: Optional path to save figure
            show: Display the figure interactively
        """
        if len(trace) == 0:
            raise ValueError("Trace is empty; nothing to plot")
        data = trace.as_arrays()
        ticks = np.arange(len(trace))

        fig = plt.figure(figsize=(12, 10))
        gs = GridSpec(3, 1, figure=fig, hspace=0.35)

        ax1 = fig.add_subplot(gs[0, 0])
        ax1.plot(ticks, data["intake_lift"], color="#4CAF50", linewidth=2, label="Intake lift")
        ax1.plot(ticks, data["exhaust_lift"], color="#f44336", linewidth=2, label="Exhaust lift")
        ax1.fill_between(ticks, 0, data["spark_active"], color="#FFD400", alpha=0.4, label="Spark")
        ax1.set_ylabel("Lift (-)", fontweight="bold")
        ax1.set_title("Valve Timing", fontweight="bold")
        ax1.grid(True, alpha=0.3)
        ax1.legend(fontsize=9, loc="upper right")

        ax2 = fig.add_subplot(gs[1, 0], sharex=ax1)
        ax2.plot(ticks, data["piston_y"], "b-", linewidth=2)
        ax2.invert_yaxis()
        ax2.set_ylabel("Piston crown y", fontweight="bold")
        ax2.set_title("Piston Travel", fontweight="bold")
        ax2.grid(True, alpha=0.3)

        # Shade strokes
        strokes = data["stroke_index"].astype(int)
        start = 0
        for i in range(1, len(strokes) + 1):
            if i == len(strokes) or strokes[i] != strokes[start]:
                ax2.axvspan(start, i, color=STROKE_COLORS[Stroke(strokes[start])], alpha=0.15)
                start = i

        ax3 = fig.add_subplot(gs[2, 0], sharex=ax1)
        for name in ("intake", "chamber", "exhaust"):
            ax3.plot(ticks, data[f"{name}_count"], linewidth=2, label=name.capitalize())
        ax3.set_xlabel("Tick", fontweight="bold")
        ax3.set_ylabel("Particles", fontweight="bold")
        ax3.set_title("Pool Occupancy", fontweight="bold")
        ax3.grid(True, alpha=0.3)
        ax3.legend(fontsize=9)

        fig.suptitle("Four-Stroke Animation Trace", fontsize=16, fontweight="bold")
        return self._finish(fig, save_path, "Trace plot", show)
