"""
Basic Animation Example
Demonstrates driving the four-stroke animator core from a script.
"""

import os

import matplotlib.pyplot as plt

# Headless environment check
if "DISPLAY" not in os.environ and os.name != "nt":
    import matplotlib
    matplotlib.use("Agg")
    print("Physical display not detected. Using 'Agg' backend for plot exports.")

from four_stroke_sim.engine_config import (
    AnimationParameters,
    EngineConfiguration,
    EngineGeometry,
    PoolLimits,
    ValveTimingParams,
)
from four_stroke_sim.engine_core import AutoPausePolicy, EngineCore
from four_stroke_sim.utilities import DataExporter, TraceRecorder
from four_stroke_sim.visualization import EnginePlotter


def example_1_default_scene():
    """Example 1: One cycle of the stock scene, pausing at each stroke"""

    print("=" * 70)
    print("EXAMPLE 1: Stock Scene With Auto-Pause")
    print("=" * 70)
    print()

    core = EngineCore(EngineConfiguration(animation=AnimationParameters(seed=7)))
    policy = AutoPausePolicy(core)

    # A viewer would click "resume"; here we resume as soon as the core stops
    for _ in range(core.config.animation.ticks_per_cycle):
        snap = core.step(1.0)
        if policy.awaiting_resume:
            counts = snap.pools.counts
            print(
                f"  Paused entering {snap.stroke_name:<20} t={snap.time:6.3f}  "
                f"intake={counts['intake']:3d} chamber={counts['chamber']:3d} "
                f"exhaust={counts['exhaust']:3d}"
            )
            policy.resume()

    plotter = EnginePlotter(core.config.geometry)
    plotter.plot_frame(snap, save_path="example1_frame.png", show=False)
    print()


def example_2_custom_scene():
    """Example 2: Longer rod, smaller pools, late intake closing"""

    print("=" * 70)
    print("EXAMPLE 2: Custom Scene, Double Speed")
    print("=" * 70)
    print()

    config = EngineConfiguration(
        geometry=EngineGeometry(crank_radius=70.0, rod_length=170.0),
        pool_limits=PoolLimits(intake=60, chamber=120, exhaust=90),
        valve_timing=ValveTimingParams(intake_close=0.38),
        animation=AnimationParameters(seed=21, auto_pause=False),
    )
    core = EngineCore(config)
    trace = TraceRecorder()

    for _ in range(3 * config.animation.ticks_per_cycle // 2):
        trace.record(core.step(2.0))

    summary = trace.summary()
    print(DataExporter.create_run_report(summary))

    DataExporter.export_to_csv(trace, "example2_trace.csv", ["time", "piston_y", "chamber_count"])
    DataExporter.export_to_json(summary, "example2_summary.json")
    config.to_json("example2_config.json")

    plotter = EnginePlotter(config.geometry)
    plotter.plot_trace(trace, save_path="example2_trace.png", show=False)
    print()


if __name__ == "__main__":
    example_1_default_scene()
    example_2_custom_scene()
    plt.close("all")
