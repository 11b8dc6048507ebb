"""
CLI entry point for four_stroke_sim.
"""
import argparse
import os
import sys

from .engine_config import EngineConfiguration, create_default_configuration
from .engine_core import AutoPausePolicy, EngineCore
from .utilities import DataExporter, TraceRecorder


def run(config, ticks, speed, csv_path=None, json_path=None, frame_path=None, trace_plot_path=None):
    core = EngineCore(config)
    policy = AutoPausePolicy(core, enabled=config.animation.auto_pause)
    trace = TraceRecorder()

    print("\n" + "═" * 50)
    print(f"  ANIMATION: {ticks} ticks at {speed:.1f}x")
    print("═" * 50)

    snapshot = None
    pauses = 0
    for _ in range(ticks):
        snapshot = core.step(speed)
        trace.record(snapshot)
        # Headless run: acknowledge every stroke-boundary pause immediately
        if policy.awaiting_resume:
            pauses += 1
            policy.resume()

    summary = trace.summary()
    summary["auto_pauses"] = pauses
    print(DataExporter.create_run_report(summary))

    if csv_path:
        DataExporter.export_to_csv(trace, csv_path)
    if json_path:
        DataExporter.export_to_json(summary, json_path)

    if frame_path or trace_plot_path:
        # Headless environment check
        if "DISPLAY" not in os.environ and os.name != "nt":
            import matplotlib

            matplotlib.use("Agg")
        from .visualization import EnginePlotter

        plotter = EnginePlotter(config.geometry)
        if frame_path and snapshot is not None:
            plotter.plot_frame(snapshot, save_path=frame_path, show=False)
        if trace_plot_path:
            plotter.plot_trace(trace, save_path=trace_plot_path, show=False)

    print("═" * 50 + "\n")
    return summary


def main(argv=None):
    parser = argparse.ArgumentParser(description="Four-stroke engine cycle animator (headless)")
    parser.add_argument("--ticks", type=int, default=630, help="Number of ticks to run (default: 630, two cycles)")
    parser.add_argument("--speed", type=float, default=1.0, help="Animation speed factor (default: 1.0)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible particles")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument("--no-auto-pause", action="store_true", help="Do not pause at stroke boundaries")
    parser.add_argument("--csv", default=None, help="Export per-tick trace to CSV")
    parser.add_argument("--json", default=None, help="Export run summary to JSON")
    parser.add_argument("--frame", default=None, help="Save the final frame as an image")
    parser.add_argument("--trace-plot", default=None, help="Save the trace plot as an image")

    args = parser.parse_args(argv)
    if args.ticks < 0:
        parser.error("--ticks must be ≥ 0")
    if args.speed < 0:
        parser.error("--speed must be ≥ 0")

    try:
        if args.config:
            config = EngineConfiguration.from_json(args.config)
        else:
            config = create_default_configuration()
    except (OSError, KeyError, ValueError) as exc:
        print(f"Error: could not load configuration: {exc}")
        sys.exit(1)

    if args.seed is not None or args.no_auto_pause:
        data = config.to_dict()
        if args.seed is not None:
            data["animation"]["seed"] = args.seed
        if args.no_auto_pause:
            data["animation"]["auto_pause"] = False
        config = EngineConfiguration.from_dict(data)

    run(config, args.ticks, args.speed, args.csv, args.json, args.frame, args.trace_plot)


if __name__ == "__main__":
    main()
