"""Tests for the engine configuration dataclasses."""

from __future__ import annotations

import pytest

from workout_engine.config import (
    AdjustmentConfig,
    CalibrationConfig,
    DeviceLimits,
    EngineConfig,
)
from workout_engine.models.enums import InBandPolicy


class TestAdjustmentConfig:
    def test_hr_defaults(self) -> None:
        config = AdjustmentConfig.for_hr()
        assert config.settling_time_s == 30
        assert config.min_interval_s == 10
        assert config.in_band_policy == InBandPolicy.HOLD

    def test_power_defaults_are_faster(self) -> None:
        hr = AdjustmentConfig.for_hr()
        power = AdjustmentConfig.for_power()
        assert power.trend_window_s < hr.trend_window_s
        assert power.settling_time_s < hr.settling_time_s
        assert power.trend_threshold_per_min > hr.trend_threshold_per_min

    def test_power_overrides(self) -> None:
        config = AdjustmentConfig.for_power(min_interval_s=0)
        assert config.min_interval_s == 0
        assert config.trend_window_s == 20

    def test_inverted_clamps_rejected(self) -> None:
        with pytest.raises(ValueError, match="min_clamp"):
            AdjustmentConfig(min_clamp=1.2, max_clamp=0.8)

    def test_negative_step_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            AdjustmentConfig(max_step=-0.1)

    def test_damping_range(self) -> None:
        with pytest.raises(ValueError, match="converging_damping"):
            AdjustmentConfig(converging_damping=1.5)


class TestDeviceLimits:
    def test_clamps(self) -> None:
        limits = DeviceLimits()
        assert limits.clamp_speed(0.5) == 1.6
        assert limits.clamp_speed(25.0) == 20.0
        assert limits.clamp_speed(12.0) == 12.0
        assert limits.clamp_incline(-10.0) == -6.0
        assert limits.clamp_incline(45.0) == 40.0


class TestCalibrationConfig:
    def test_defaults(self) -> None:
        config = CalibrationConfig()
        assert config.max_runs == 10
        assert config.degree == 3

    @pytest.mark.parametrize("degree", [0, 4])
    def test_degree_bounds(self, degree: int) -> None:
        with pytest.raises(ValueError, match="degree"):
            CalibrationConfig(degree=degree)

    def test_max_runs_positive(self) -> None:
        with pytest.raises(ValueError, match="max_runs"):
            CalibrationConfig(max_runs=0)


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig()
        assert config.lthr_bpm == 170
        assert config.ftp_watts == 250
        assert config.hr_range_grace_s == 5
        assert config.step_end_countdown_s == 3
        assert config.power_adjustment.min_interval_s == 5
