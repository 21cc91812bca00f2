"""Tests for the trend-aware adjustment controller."""

from __future__ import annotations

import pytest

from workout_engine.config import AdjustmentConfig
from workout_engine.execution.adjustment import (
    AdjustmentController,
    AdjustmentStatus,
    compute_trend,
    direction_from_neutral,
)
from workout_engine.models.enums import AdjustmentDirection, InBandPolicy, MetricKind
from workout_engine.models.execution_step import TargetBand
from workout_engine.models.telemetry import MetricSample

BAND = TargetBand(140, 150)


def _samples(values: list[float], start_ms: int = 0, step_ms: int = 1000) -> list[MetricSample]:
    return [MetricSample(start_ms + i * step_ms, v) for i, v in enumerate(values)]


def _fast(**overrides) -> AdjustmentConfig:
    return AdjustmentConfig.for_hr(settling_time_s=0, min_interval_s=0, **overrides)


class TestTrend:
    def test_rising_trend_per_minute(self) -> None:
        samples = _samples([140 + i * 0.5 for i in range(31)])
        # +15 bpm over 30 s
        assert compute_trend(samples, 30_000, 30) == pytest.approx(30.0)

    def test_window_excludes_old_samples(self) -> None:
        samples = _samples([100.0] * 30 + [150.0] * 31)
        assert compute_trend(samples, 60_000, 30) == pytest.approx(0.0)

    def test_too_few_samples(self) -> None:
        assert compute_trend(_samples([150.0]), 0, 30) == 0.0

    def test_span_too_short(self) -> None:
        # 5 s span is below the 6 s minimum
        assert compute_trend(_samples([140, 150], step_ms=5000), 5000, 30) == 0.0


class TestDecisions:
    def test_above_band_stable_reduces(self) -> None:
        controller = AdjustmentController()
        decision = controller.evaluate(160, BAND, 1.0, _samples([160.0] * 20), 20_000, _fast())
        assert decision.status == AdjustmentStatus.ADJUSTED
        assert decision.coefficient < 1.0
        assert decision.direction == AdjustmentDirection.DECREASING

    def test_below_band_stable_increases(self) -> None:
        controller = AdjustmentController()
        decision = controller.evaluate(130, BAND, 1.0, _samples([130.0] * 20), 20_000, _fast())
        assert decision.status == AdjustmentStatus.ADJUSTED
        assert decision.coefficient > 1.0
        assert decision.direction == AdjustmentDirection.INCREASING

    def test_above_band_falling_waits(self) -> None:
        controller = AdjustmentController()
        samples = _samples([170 - i for i in range(21)])   # -60 bpm/min
        decision = controller.evaluate(155, BAND, 1.0, samples, 20_000, _fast())
        assert decision.status == AdjustmentStatus.WAITING
        assert decision.coefficient == 1.0

    def test_below_band_rising_waits(self) -> None:
        controller = AdjustmentController()
        samples = _samples([110 + i for i in range(21)])
        decision = controller.evaluate(130, BAND, 1.0, samples, 20_000, _fast())
        assert decision.status == AdjustmentStatus.WAITING

    def test_converging_damping_scales_correction(self) -> None:
        controller = AdjustmentController()
        samples = _samples([170 - i for i in range(21)])
        decision = controller.evaluate(155, BAND, 1.0, samples, 20_000, _fast(converging_damping=0.5))
        full = min(0.05, 0.004 * 5)
        assert decision.coefficient == pytest.approx(1.0 - full * 0.5)

    def test_correction_proportional_to_distance(self) -> None:
        controller = AdjustmentController()
        decision = controller.evaluate(152, BAND, 1.0, [], 20_000, _fast())
        assert decision.coefficient == pytest.approx(1.0 - 0.004 * 2)

    def test_in_band_holds(self) -> None:
        controller = AdjustmentController()
        decision = controller.evaluate(145, BAND, 0.9, [], 20_000, _fast())
        assert decision.status == AdjustmentStatus.NO_ACTION
        assert decision.coefficient == 0.9

    def test_in_band_drift_to_neutral(self) -> None:
        controller = AdjustmentController()
        config = _fast(in_band_policy=InBandPolicy.DRIFT_TO_NEUTRAL, drift_rate=0.01)
        decision = controller.evaluate(145, BAND, 0.9, [], 20_000, config)
        assert decision.status == AdjustmentStatus.ADJUSTED
        assert decision.coefficient == pytest.approx(0.91)
        assert decision.direction == AdjustmentDirection.INCREASING

    def test_drift_does_not_overshoot_neutral(self) -> None:
        controller = AdjustmentController()
        config = _fast(in_band_policy=InBandPolicy.DRIFT_TO_NEUTRAL, drift_rate=0.05)
        decision = controller.evaluate(145, BAND, 1.02, [], 20_000, config)
        assert decision.coefficient == 1.0


class TestTiming:
    def test_settling_after_step_start(self) -> None:
        controller = AdjustmentController()
        config = AdjustmentConfig.for_hr(min_interval_s=0)
        controller.on_step_started(0)
        assert controller.evaluate(170, BAND, 1.0, [], 29_000, config).status == AdjustmentStatus.WAITING
        assert controller.evaluate(170, BAND, 1.0, [], 30_000, config).status == AdjustmentStatus.ADJUSTED

    def test_settling_restarts_on_resume(self) -> None:
        controller = AdjustmentController()
        config = AdjustmentConfig.for_hr(min_interval_s=0)
        controller.on_step_started(0)
        controller.on_resumed(60_000)
        assert controller.evaluate(170, BAND, 1.0, [], 70_000, config).status == AdjustmentStatus.WAITING

    def test_evaluation_interval(self) -> None:
        controller = AdjustmentController()
        config = _fast()
        first = controller.evaluate(170, BAND, 1.0, [], 10_000, config)
        second = controller.evaluate(170, BAND, first.coefficient, [], 10_500, config)
        assert second.status == AdjustmentStatus.NO_ACTION
        assert second.reason == "evaluation interval"

    def test_min_interval_between_adjustments(self) -> None:
        controller = AdjustmentController()
        config = AdjustmentConfig.for_hr(settling_time_s=0)   # 10 s interval
        first = controller.evaluate(170, BAND, 1.0, [], 1_000, config)
        assert first.status == AdjustmentStatus.ADJUSTED
        waiting = controller.evaluate(170, BAND, first.coefficient, [], 5_000, config)
        assert waiting.status == AdjustmentStatus.WAITING
        again = controller.evaluate(170, BAND, first.coefficient, [], 11_000, config)
        assert again.status == AdjustmentStatus.ADJUSTED


class TestBounds:
    @pytest.mark.parametrize("value", [0.5, 80.0, 400.0, 10_000.0])
    def test_coefficient_stays_clamped(self, value: float) -> None:
        controller = AdjustmentController()
        config = _fast(max_step=1.0, gain_per_unit=1.0)
        coefficient = 1.0
        for second in range(1, 60):
            coefficient = controller.evaluate(value, BAND, coefficient, [], second * 1000, config).coefficient
            assert 0.5 <= coefficient <= 1.5

    def test_pinned_at_clamp_is_no_action(self) -> None:
        controller = AdjustmentController()
        decision = controller.evaluate(190, BAND, 0.5, [], 10_000, _fast())
        assert decision.status == AdjustmentStatus.NO_ACTION
        assert decision.coefficient == 0.5

    def test_worsening_trend_bounded_negative_deltas(self) -> None:
        """Sustained and rising above the band: every tick reduces, never by more than the cap."""
        controller = AdjustmentController()
        config = _fast()
        coefficient = 1.0
        samples: list[MetricSample] = []
        for second in range(1, 9):
            hr = 160 + second
            samples.append(MetricSample(second * 1000, hr))
            decision = controller.evaluate(hr, BAND, coefficient, samples, second * 1000, config, MetricKind.HR)
            delta = decision.coefficient - coefficient
            assert delta < 0
            assert abs(delta) <= config.max_step + 1e-12
            coefficient = decision.coefficient


class TestDirectionFromNeutral:
    def test_deadband(self) -> None:
        assert direction_from_neutral(1.005) == AdjustmentDirection.UNCHANGED
        assert direction_from_neutral(1.02) == AdjustmentDirection.INCREASING
        assert direction_from_neutral(0.98) == AdjustmentDirection.DECREASING
