"""
Smoke tests for the matplotlib plotter (non-interactive backend).
"""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from four_stroke_sim.engine_core import EngineCore  # noqa: E402
from four_stroke_sim.random_source import RandomSource  # noqa: E402
from four_stroke_sim.utilities import TraceRecorder  # noqa: E402
from four_stroke_sim.visualization import EnginePlotter  # noqa: E402


class TestEnginePlotter:

    def setup_method(self):
        self.core = EngineCore(rng=RandomSource(8))
        self.trace = TraceRecorder()
        self.snapshot = None
        for _ in range(170):
            self.snapshot = self.core.step(1.0)
            self.trace.record(self.snapshot)
        self.plotter = EnginePlotter(self.core.config.geometry)

    def teardown_method(self):
        plt.close("all")

    def test_frame_saved(self, tmp_path):
        path = tmp_path / "frame.png"
        fig = self.plotter.plot_frame(self.snapshot, save_path=str(path), show=False)
        assert fig is not None
        assert path.exists() and path.stat().st_size > 0

    def test_figures_closed_when_not_shown(self, tmp_path):
        plt.close("all")
        for i in range(3):
            self.plotter.plot_frame(self.snapshot, save_path=str(tmp_path / f"f{i}.png"), show=False)
        self.plotter.plot_trace(self.trace, save_path=str(tmp_path / "t.png"), show=False)
        assert plt.get_fignums() == []

    def test_trace_saved(self, tmp_path):
        path = tmp_path / "trace.png"
        self.plotter.plot_trace(self.trace, save_path=str(path), show=False)
        assert path.exists() and path.stat().st_size > 0

    def test_empty_trace_rejected(self):
        with pytest.raises(ValueError):
            self.plotter.plot_trace(TraceRecorder(), show=False)

    def test_draw_frame_on_existing_axes(self):
        fig, ax = plt.subplots()
        self.plotter.draw_frame(ax, self.snapshot)
        assert len(ax.patches) > 0
