"""
Utilities Module
Per-tick trace recording, statistics and data export.
"""

import csv
import json
from typing import Any, Dict, List, Optional

import numpy as np

from .engine_core import Snapshot

TRACE_FIELDS = (
    "time",
    "cycle_fraction",
    "stroke_index",
    "stroke_phase",
    "piston_y",
    "crank_pin_x",
    "crank_pin_y",
    "intake_lift",
    "exhaust_lift",
    "spark_active",
    "intake_count",
    "chamber_count",
    "exhaust_count",
)


class TraceRecorder:
    """Accumulates the scalar fields of successive snapshots.

    Pools are reduced to their particle counts; particle positions are not
    kept.
    """

    def __init__(self) -> None:
        self._rows: Dict[str, List[float]] = {name: [] for name in TRACE_FIELDS}

    def __len__(self) -> int:
        return len(self._rows["time"])

    def record(self, snapshot: Snapshot) -> None:
        counts = snapshot.pools.counts
        row = {
            "time": snapshot.time,
            "cycle_fraction": snapshot.cycle_fraction,
            "stroke_index": snapshot.stroke_index,
            "stroke_phase": snapshot.stroke_phase,
            "piston_y": snapshot.piston_y,
            "crank_pin_x": snapshot.crank_pin_x,
            "crank_pin_y": snapshot.crank_pin_y,
            "intake_lift": snapshot.intake_lift,
            "exhaust_lift": snapshot.exhaust_lift,
            "spark_active": float(snapshot.spark_active),
            "intake_count": counts["intake"],
            "chamber_count": counts["chamber"],
            "exhaust_count": counts["exhaust"],
        }
        for name, value in row.items():
            self._rows[name].append(value)

    def as_arrays(self) -> Dict[str, np.ndarray]:
        """Recorded fields as aligned float arrays."""
        return {name: np.asarray(values, dtype=float) for name, values in self._rows.items()}

    def summary(self) -> Dict[str, Any]:
        """Peak pool occupancy and run extent."""
        arrays = self.as_arrays()
        if len(self) == 0:
            return {"ticks": 0}
        return {
            "ticks": len(self),
            "final_time": float(arrays["time"][-1]),
            "cycles": float(arrays["time"][-1] / (2.0 * np.pi)),
            "peak_intake": int(arrays["intake_count"].max()),
            "peak_chamber": int(arrays["chamber_count"].max()),
            "peak_exhaust": int(arrays["exhaust_count"].max()),
            "spark_ticks": int(arrays["spark_active"].sum()),
            "chamber_occupancy": calculate_statistics(arrays["chamber_count"]),
            "piston_travel": calculate_statistics(arrays["piston_y"]),
        }


class DataExporter:
    """
    Export recorded traces to various formats.

    Supports: CSV, JSON, text report
    """

    @staticmethod
    def export_to_csv(
        trace: TraceRecorder, filepath: str, variables: Optional[List[str]] = None
    ):
        """
        Export a trace to CSV file.

        Args:
            trace: Recorded per-tick trace
            filepath: Output file path
            variables: List of field names to export (None = all)
        """
        data_dict = trace.as_arrays()

        # Filter by requested variables
        if variables:
            data_dict = {k: v for k, v in data_dict.items() if k in variables}

        if len(data_dict) == 0:
            raise ValueError("No data to export")

        num_rows = len(next(iter(data_dict.values())))

        with open(filepath, "w", newline="") as csvfile:
            writer = csv.writer(csvfile)
            writer.writerow(data_dict.keys())
            for i in range(num_rows):
                writer.writerow([data_dict[key][i] for key in data_dict.keys()])

        print(f"Data exported to {filepath}")

    @staticmethod
    def export_to_json(data: Dict[str, Any], filepath: str):
        """
        Export data dictionary to JSON file.

        Args:
            data: Dictionary of data to export
            filepath: Output file path
        """
        # Convert numpy arrays and scalars for JSON serialization
        serializable_data = {}
        for key, value in data.items():
            if isinstance(value, np.ndarray):
                serializable_data[key] = value.tolist()
            elif isinstance(value, np.generic):
                serializable_data[key] = value.item()
            elif isinstance(value, (int, float, str, bool, list, dict, type(None))):
                serializable_data[key] = value
            else:
                serializable_data[key] = str(value)

        with open(filepath, "w") as f:
            json.dump(serializable_data, f, indent=2)

        print(f"Data exported to {filepath}")

    @staticmethod
    def create_run_report(summary: Dict[str, Any]) -> str:
        """
        Create formatted run report string.

        Args:
            summary: Output of :meth:`TraceRecorder.summary`

        Returns:
            Formatted report string
        """
        report = []
        report.append("=" * 60)
        report.append("FOUR-STROKE ANIMATION RUN")
        report.append("=" * 60)
        report.append(f"  Ticks:                  {summary.get('ticks', 0)}")
        if "cycles" in summary:
            report.append(f"  Cycles completed:       {summary['cycles']:.2f}")
        report.append("")
        report.append("PEAK POOL OCCUPANCY:")
        report.append("-" * 60)
        for name in ("intake", "chamber", "exhaust"):
            key = f"peak_{name}"
            if key in summary:
                report.append(f"  {name.capitalize():<24}{summary[key]}")
        if "spark_ticks" in summary:
            report.append("")
            report.append(f"  Spark-active ticks:     {summary['spark_ticks']}")
        if "chamber_occupancy" in summary:
            occupancy = summary["chamber_occupancy"]
            report.append(f"  Mean chamber occupancy: {occupancy['mean']:.1f} (std {occupancy['std']:.1f})")
        report.append("=" * 60)
        return "\n".join(report)


def calculate_statistics(data: List[float]) -> Dict[str, float]:
    """
    Calculate basic statistics for a trace series (piston travel, pool occupancy).

    Args:
        data: List or array of numerical data

    Returns:
        Dictionary of statistics
    """
    data_array = np.array(data, dtype=float)
    if data_array.size == 0:
        raise ValueError("Cannot compute statistics of an empty series")

    return {
        "mean": float(np.mean(data_array)),
        "std": float(np.std(data_array, ddof=0)),
        "min": float(np.min(data_array)),
        "max": float(np.max(data_array)),
        "median": float(np.median(data_array)),
        "range": float(np.max(data_array) - np.min(data_array)),  # peak-to-peak
    }
