"""Trend-aware adjustment controller for HR and power driven steps.

The controller nudges a speed or incline coefficient so that the live metric
moves into its target band. It looks at the recent trend before acting:

    Metric above band, trend falling  → wait (already recovering)
    Metric above band, stable/rising  → reduce the coefficient
    Metric below band, trend rising   → wait
    Metric below band, stable/falling → raise the coefficient
    Metric inside band                → hold, or drift toward 1.0

A correction is proportional to the distance outside the band, capped at
``max_step``, and never applied more often than ``min_interval_s``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Sequence

from workout_engine.config import AdjustmentConfig
from workout_engine.models.coefficients import clamp_coefficient
from workout_engine.models.enums import (
    DIRECTION_DEADBAND,
    EVALUATION_INTERVAL_MS,
    MIN_TREND_SPAN_MIN,
    NEUTRAL_COEFFICIENT,
    AdjustmentDirection,
    InBandPolicy,
    MetricKind,
)
from workout_engine.models.execution_step import TargetBand
from workout_engine.models.telemetry import MetricSample

logger = logging.getLogger(__name__)


class AdjustmentStatus(IntEnum):
    NO_ACTION = auto()   # Nothing to do (in band, too soon, or pinned at a clamp)
    WAITING = auto()     # Out of band but deliberately holding
    ADJUSTED = auto()    # Coefficient changed


@dataclass(frozen=True)
class AdjustmentDecision:
    """Result of one controller evaluation.

    Attributes:
        status: What the controller did.
        coefficient: Coefficient to use from now on (unchanged unless ADJUSTED).
        direction: Direction of this change.
        reason: Short human-readable explanation for logs and events.
    """

    status: AdjustmentStatus
    coefficient: float
    direction: AdjustmentDirection = AdjustmentDirection.UNCHANGED
    reason: str = ""

    @property
    def adjusted(self) -> bool:
        return self.status == AdjustmentStatus.ADJUSTED


def compute_trend(
    samples: Sequence[MetricSample],
    now_ms: int,
    window_s: int,
) -> float:
    """Metric change per minute across the trend window.

    Uses the oldest and newest samples inside ``window_s``. Fewer than two
    samples, or a span shorter than 6 s, gives a flat trend (0.0).
    """
    window_start = now_ms - window_s * 1000
    recent = [s for s in samples if s.elapsed_ms >= window_start]
    if len(recent) < 2:
        return 0.0
    oldest, newest = recent[0], recent[-1]
    span_min = (newest.elapsed_ms - oldest.elapsed_ms) / 60_000.0
    if span_min < MIN_TREND_SPAN_MIN:
        return 0.0
    return (newest.value - oldest.value) / span_min


def direction_from_neutral(coefficient: float) -> AdjustmentDirection:
    """Which way a coefficient currently leans from 1.0, with a small deadband."""
    if coefficient > NEUTRAL_COEFFICIENT + DIRECTION_DEADBAND:
        return AdjustmentDirection.INCREASING
    if coefficient < NEUTRAL_COEFFICIENT - DIRECTION_DEADBAND:
        return AdjustmentDirection.DECREASING
    return AdjustmentDirection.UNCHANGED


class AdjustmentController:
    """Keeps the timers that gate adjustments; one instance per engine.

    Times are active workout milliseconds (paused time excluded).
    """

    def __init__(self) -> None:
        self._settle_from_ms: int | None = None
        self._last_evaluation_ms: int | None = None
        self._last_adjustment_ms: int | None = None

    def on_step_started(self, now_ms: int) -> None:
        """Restart settling and forget the previous step's adjustment time."""
        self._settle_from_ms = now_ms
        self._last_evaluation_ms = None
        self._last_adjustment_ms = None

    def on_resumed(self, now_ms: int) -> None:
        """Restart settling after a pause; the metric needs time to recover."""
        self._settle_from_ms = now_ms
        self._last_evaluation_ms = None

    def reset(self) -> None:
        self._settle_from_ms = None
        self._last_evaluation_ms = None
        self._last_adjustment_ms = None

    def evaluate(
        self,
        value: float,
        band: TargetBand,
        coefficient: float,
        samples: Sequence[MetricSample],
        now_ms: int,
        config: AdjustmentConfig,
        metric: MetricKind = MetricKind.HR,
    ) -> AdjustmentDecision:
        """Decide whether and how far to move ``coefficient``.

        Args:
            value: Live metric (bpm or watts). Callers only pass positive values.
            band: Absolute target band.
            coefficient: Coefficient currently applied.
            samples: Recent samples, oldest first.
            now_ms: Active workout time of this evaluation.
            config: HR or power tuning.
            metric: Used for log messages only.

        Returns:
            An AdjustmentDecision; its coefficient is always inside
            ``[config.min_clamp, config.max_clamp]``.
        """
        current = clamp_coefficient(coefficient, config.min_clamp, config.max_clamp)

        if (
            self._last_evaluation_ms is not None
            and now_ms - self._last_evaluation_ms < EVALUATION_INTERVAL_MS
        ):
            return AdjustmentDecision(AdjustmentStatus.NO_ACTION, current, reason="evaluation interval")
        self._last_evaluation_ms = now_ms

        if (
            self._settle_from_ms is not None
            and now_ms - self._settle_from_ms < config.settling_time_s * 1000
        ):
            return AdjustmentDecision(AdjustmentStatus.WAITING, current, reason="settling")

        distance = band.distance_outside(value)
        if distance == 0.0:
            return self._in_band(current, now_ms, config)

        if not self._interval_elapsed(now_ms, config):
            return AdjustmentDecision(AdjustmentStatus.WAITING, current, reason="min interval")

        trend = compute_trend(samples, now_ms, config.trend_window_s)
        above = distance > 0
        converging = (
            trend < -config.trend_threshold_per_min if above
            else trend > config.trend_threshold_per_min
        )

        magnitude = min(config.max_step, config.gain_per_unit * abs(distance))
        if converging:
            magnitude *= config.converging_damping
        if magnitude <= 0.0:
            return AdjustmentDecision(
                AdjustmentStatus.WAITING,
                current,
                reason=f"{'above' if above else 'below'} band, trend {trend:+.1f}/min converging",
            )

        target = current - magnitude if above else current + magnitude
        new_coefficient = clamp_coefficient(target, config.min_clamp, config.max_clamp)
        if new_coefficient == current:
            return AdjustmentDecision(AdjustmentStatus.NO_ACTION, current, reason="at clamp limit")

        self._last_adjustment_ms = now_ms
        direction = (
            AdjustmentDirection.DECREASING if new_coefficient < current
            else AdjustmentDirection.INCREASING
        )
        reason = (
            f"{metric.name} {value:.0f} {'above' if above else 'below'} "
            f"{band.low:.0f}-{band.high:.0f}, trend {trend:+.1f}/min"
        )
        logger.debug("Adjusting %.3f -> %.3f (%s)", current, new_coefficient, reason)
        return AdjustmentDecision(AdjustmentStatus.ADJUSTED, new_coefficient, direction, reason)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _interval_elapsed(self, now_ms: int, config: AdjustmentConfig) -> bool:
        return (
            self._last_adjustment_ms is None
            or now_ms - self._last_adjustment_ms >= config.min_interval_s * 1000
        )

    def _in_band(self, current: float, now_ms: int, config: AdjustmentConfig) -> AdjustmentDecision:
        if config.in_band_policy == InBandPolicy.HOLD or current == NEUTRAL_COEFFICIENT:
            return AdjustmentDecision(AdjustmentStatus.NO_ACTION, current, reason="in band")
        if not self._interval_elapsed(now_ms, config):
            return AdjustmentDecision(AdjustmentStatus.NO_ACTION, current, reason="in band")

        if current > NEUTRAL_COEFFICIENT:
            new_coefficient = max(NEUTRAL_COEFFICIENT, current - config.drift_rate)
            direction = AdjustmentDirection.DECREASING
        else:
            new_coefficient = min(NEUTRAL_COEFFICIENT, current + config.drift_rate)
            direction = AdjustmentDirection.INCREASING
        self._last_adjustment_ms = now_ms
        return AdjustmentDecision(
            AdjustmentStatus.ADJUSTED,
            clamp_coefficient(new_coefficient, config.min_clamp, config.max_clamp),
            direction,
            reason="in band, drifting to neutral",
        )
