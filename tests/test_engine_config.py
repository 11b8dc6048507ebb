"""
Configuration and export tests.
"""

import csv
import json
import warnings

import numpy as np
import pytest

from four_stroke_sim.engine_config import (
    AnimationParameters,
    EngineConfiguration,
    EngineGeometry,
    PoolLimits,
    ValveTimingParams,
    create_default_configuration,
)
from four_stroke_sim.engine_core import EngineCore
from four_stroke_sim.random_source import RandomSource
from four_stroke_sim.utilities import (
    TRACE_FIELDS,
    DataExporter,
    TraceRecorder,
    calculate_statistics,
)


class TestEngineGeometry:

    def test_defaults(self):
        g = EngineGeometry()
        assert g.cylinder_x == 400.0
        assert g.cylinder_y == 150.0
        assert g.intake_valve_x == 345.0
        assert g.exhaust_valve_x == 455.0
        assert g.head_y == 120.0
        assert g.rod_ratio == pytest.approx(1.75)

    def test_crank_longer_than_rod_rejected(self):
        with pytest.raises(ValueError, match="rod_length"):
            EngineGeometry(crank_radius=150.0, rod_length=140.0)

    def test_non_positive_size_rejected(self):
        with pytest.raises(ValueError):
            EngineGeometry(cylinder_height=0.0)

    def test_wide_piston_warns(self):
        with pytest.warns(UserWarning):
            EngineGeometry(piston_width=200.0)

    def test_default_geometry_is_quiet(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            EngineGeometry()


class TestParameters:

    def test_pool_limits_defaults(self):
        assert PoolLimits() == PoolLimits(100, 220, 160)

    def test_negative_pool_limit_rejected(self):
        with pytest.raises(ValueError):
            PoolLimits(chamber=-1)

    def test_zero_pool_limit_allowed(self):
        assert PoolLimits(intake=0).intake == 0

    def test_negative_ramp_rejected(self):
        with pytest.raises(ValueError):
            ValveTimingParams(ramp=-0.01)

    def test_time_step_must_be_positive(self):
        with pytest.raises(ValueError):
            AnimationParameters(time_step=0.0)

    def test_ticks_per_cycle(self):
        assert AnimationParameters().ticks_per_cycle == 315


class TestEngineConfiguration:

    def test_factory(self):
        config = create_default_configuration(seed=4, auto_pause=False)
        assert config.animation.seed == 4
        assert not config.animation.auto_pause
        assert config.geometry == EngineGeometry()

    def test_json_round_trip(self, tmp_path):
        config = EngineConfiguration(
            geometry=EngineGeometry(crank_radius=70.0),
            pool_limits=PoolLimits(intake=50, chamber=90, exhaust=40),
            animation=AnimationParameters(seed=11, auto_pause=False),
        )
        path = tmp_path / "engine.json"
        config.to_json(str(path))
        assert EngineConfiguration.from_json(str(path)) == config

    def test_animation_section_optional(self):
        data = create_default_configuration().to_dict()
        del data["animation"]
        assert EngineConfiguration.from_dict(data).animation == AnimationParameters()

    def test_missing_section(self):
        data = create_default_configuration().to_dict()
        del data["pool_limits"]
        with pytest.raises(KeyError):
            EngineConfiguration.from_dict(data)

    def test_unknown_field(self):
        data = create_default_configuration().to_dict()
        data["geometry"]["bore_diameter"] = 1.0
        with pytest.raises(ValueError):
            EngineConfiguration.from_dict(data)

    def test_invalid_value_in_file(self, tmp_path):
        data = create_default_configuration().to_dict()
        data["geometry"]["rod_length"] = 10.0
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ValueError):
            EngineConfiguration.from_json(str(path))

    def test_fractional_pool_limit_rejected(self):
        data = create_default_configuration().to_dict()
        data["pool_limits"]["intake"] = 1.5
        with pytest.raises(ValueError):
            EngineConfiguration.from_dict(data)


class TestTraceAndExport:

    def setup_method(self):
        core = EngineCore(rng=RandomSource(2))
        self.trace = TraceRecorder()
        for _ in range(120):
            self.trace.record(core.step(1.0))

    def test_recorder_arrays(self):
        arrays = self.trace.as_arrays()
        assert len(self.trace) == 120
        assert set(arrays) == set(TRACE_FIELDS)
        assert np.all(np.diff(arrays["time"]) > 0)
        assert arrays["intake_count"].max() <= 100

    def test_summary(self):
        summary = self.trace.summary()
        assert summary["ticks"] == 120
        assert summary["final_time"] == pytest.approx(2.4)
        assert summary["peak_intake"] > 0
        occupancy = summary["chamber_occupancy"]
        assert occupancy["max"] == summary["peak_chamber"]
        assert 0.0 <= occupancy["mean"] <= occupancy["max"]
        travel = summary["piston_travel"]
        assert travel["min"] >= 230.0 - 1e-9
        assert travel["max"] <= 390.0 + 1e-9

    def test_csv_export(self, tmp_path):
        path = tmp_path / "trace.csv"
        DataExporter.export_to_csv(self.trace, str(path), ["time", "piston_y"])
        with open(path, newline="") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == ["time", "piston_y"]
        assert len(rows) == 121

    def test_json_export(self, tmp_path):
        path = tmp_path / "summary.json"
        DataExporter.export_to_json(self.trace.summary(), str(path))
        loaded = json.loads(path.read_text())
        assert loaded["ticks"] == 120

    def test_statistics(self):
        stats = calculate_statistics(np.array([1.0, 2.0, 3.0]))
        assert stats["mean"] == pytest.approx(2.0)
        assert stats["max"] == 3.0
        with pytest.raises(ValueError):
            calculate_statistics(np.array([]))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
