"""Telemetry inputs and device command outputs at the engine boundary."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TelemetryTick:
    """One decoded telemetry update.

    Deltas are relative to the previous tick. Speed is the treadmill's raw
    (uncalibrated) value. A missing or non-positive HR/power means the sensor
    is absent and is never used for control.
    """

    elapsed_delta_ms: int
    distance_delta_m: float = 0.0
    raw_speed_kph: float = 0.0
    raw_incline_percent: float = 0.0
    heart_rate_bpm: float | None = None
    power_watts: float | None = None


@dataclass(frozen=True)
class MetricSample:
    """A timestamped HR or power value used for trend estimation."""

    elapsed_ms: int
    value: float


@dataclass(frozen=True)
class DeviceCommand:
    """Speed/incline to send to the treadmill.

    ``raw_speed_kph`` has already been passed through the calibration
    inverse; it is the only speed value that may be transmitted.
    """

    adjusted_speed_kph: float
    raw_speed_kph: float
    incline_percent: float
