"""Engine configuration — frozen dataclasses built from the defaults in models.enums."""

from __future__ import annotations

from dataclasses import dataclass, field

from workout_engine.models.enums import (
    CALIBRATION_DEFAULT_DEGREE,
    CALIBRATION_MAX_RUNS,
    CALIBRATION_MIN_SAMPLES,
    COEFFICIENT_MAX_CLAMP,
    COEFFICIENT_MIN_CLAMP,
    CONVERGING_DAMPING,
    DEFAULT_FTP_WATTS,
    DEFAULT_LTHR_BPM,
    DEVICE_MAX_INCLINE_PERCENT,
    DEVICE_MAX_SPEED_KPH,
    DEVICE_MIN_INCLINE_PERCENT,
    DEVICE_MIN_SPEED_KPH,
    DEVICE_SETTLE_INCLINE_PERCENT,
    DEVICE_SETTLE_SPEED_KPH,
    HR_GAIN_PER_UNIT,
    HR_MAX_STEP,
    HR_MIN_INTERVAL_S,
    HR_RANGE_GRACE_S,
    HR_SETTLING_TIME_S,
    HR_TREND_THRESHOLD_PER_MIN,
    HR_TREND_WINDOW_S,
    IN_BAND_DRIFT_RATE,
    METRIC_HISTORY_S,
    POWER_GAIN_PER_UNIT,
    POWER_MAX_STEP,
    POWER_MIN_INTERVAL_S,
    POWER_SETTLING_TIME_S,
    POWER_TREND_THRESHOLD_PER_MIN,
    POWER_TREND_WINDOW_S,
    STEP_END_COUNTDOWN_S,
    InBandPolicy,
)


@dataclass(frozen=True)
class AdjustmentConfig:
    """Tuning for the trend-aware adjustment controller.

    Attributes:
        trend_window_s: Window of recent samples used for the trend.
        trend_threshold_per_min: |trend| below this counts as stable.
        settling_time_s: No adjustment this soon after a step start or resume.
        min_interval_s: Minimum time between two adjustments.
        gain_per_unit: Coefficient change per bpm/watt outside the band.
        max_step: Cap on a single coefficient change.
        converging_damping: Multiplier on the correction when the metric is
            already moving toward the band (0 waits, 1 ignores the trend).
        in_band_policy: HOLD keeps the coefficient while in band;
            DRIFT_TO_NEUTRAL eases it back toward 1.0.
        drift_rate: Per-interval step used by DRIFT_TO_NEUTRAL.
        min_clamp: Lower coefficient bound.
        max_clamp: Upper coefficient bound.
    """

    trend_window_s: int = HR_TREND_WINDOW_S
    trend_threshold_per_min: float = HR_TREND_THRESHOLD_PER_MIN
    settling_time_s: int = HR_SETTLING_TIME_S
    min_interval_s: int = HR_MIN_INTERVAL_S
    gain_per_unit: float = HR_GAIN_PER_UNIT
    max_step: float = HR_MAX_STEP
    converging_damping: float = CONVERGING_DAMPING
    in_band_policy: InBandPolicy = InBandPolicy.HOLD
    drift_rate: float = IN_BAND_DRIFT_RATE
    min_clamp: float = COEFFICIENT_MIN_CLAMP
    max_clamp: float = COEFFICIENT_MAX_CLAMP

    def __post_init__(self) -> None:
        if self.min_clamp > self.max_clamp:
            raise ValueError(
                f"min_clamp {self.min_clamp} exceeds max_clamp {self.max_clamp}"
            )
        if self.max_step < 0 or self.gain_per_unit < 0:
            raise ValueError("gain_per_unit and max_step must be non-negative")
        if not 0.0 <= self.converging_damping <= 1.0:
            raise ValueError(
                f"converging_damping must be in [0, 1], got {self.converging_damping}"
            )

    @classmethod
    def for_hr(cls, **overrides) -> AdjustmentConfig:
        """Defaults for heart-rate driven steps."""
        return cls(**overrides)

    @classmethod
    def for_power(cls, **overrides) -> AdjustmentConfig:
        """Defaults for power driven steps: shorter windows, wider trend threshold."""
        values = dict(
            trend_window_s=POWER_TREND_WINDOW_S,
            trend_threshold_per_min=POWER_TREND_THRESHOLD_PER_MIN,
            settling_time_s=POWER_SETTLING_TIME_S,
            min_interval_s=POWER_MIN_INTERVAL_S,
            gain_per_unit=POWER_GAIN_PER_UNIT,
            max_step=POWER_MAX_STEP,
        )
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class DeviceLimits:
    """Treadmill command limits; outgoing commands are clamped to these.

    The settle tolerances decide when the reported belt speed and incline
    have caught up with a command, after which console changes are adopted.
    """

    min_speed_kph: float = DEVICE_MIN_SPEED_KPH
    max_speed_kph: float = DEVICE_MAX_SPEED_KPH
    min_incline_percent: float = DEVICE_MIN_INCLINE_PERCENT
    max_incline_percent: float = DEVICE_MAX_INCLINE_PERCENT
    settle_speed_kph: float = DEVICE_SETTLE_SPEED_KPH
    settle_incline_percent: float = DEVICE_SETTLE_INCLINE_PERCENT

    def clamp_speed(self, speed_kph: float) -> float:
        return max(self.min_speed_kph, min(self.max_speed_kph, speed_kph))

    def clamp_incline(self, incline_percent: float) -> float:
        return max(self.min_incline_percent, min(self.max_incline_percent, incline_percent))


@dataclass(frozen=True)
class CalibrationConfig:
    """Regression settings applied after each completed run."""

    max_runs: int = CALIBRATION_MAX_RUNS
    degree: int = CALIBRATION_DEFAULT_DEGREE
    min_samples: int = CALIBRATION_MIN_SAMPLES

    def __post_init__(self) -> None:
        if self.max_runs < 1:
            raise ValueError(f"max_runs must be >= 1, got {self.max_runs}")
        if not 1 <= self.degree <= 3:
            raise ValueError(f"degree must be in 1..3, got {self.degree}")


@dataclass(frozen=True)
class EngineConfig:
    """Everything the execution engine needs besides the workout itself."""

    lthr_bpm: int = DEFAULT_LTHR_BPM
    ftp_watts: int = DEFAULT_FTP_WATTS
    hr_adjustment: AdjustmentConfig = field(default_factory=AdjustmentConfig.for_hr)
    power_adjustment: AdjustmentConfig = field(default_factory=AdjustmentConfig.for_power)
    device_limits: DeviceLimits = field(default_factory=DeviceLimits)
    hr_range_grace_s: int = HR_RANGE_GRACE_S
    step_end_countdown_s: int = STEP_END_COUNTDOWN_S
    metric_history_s: int = METRIC_HISTORY_S
