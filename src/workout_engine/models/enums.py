"""Enumerations and tuning constants for the workout engine.

Defaults mirror the treadmill controller's shipped settings; every value can be
overridden through the dataclasses in ``workout_engine.config``.
"""

from enum import IntEnum, auto


class StepType(IntEnum):
    """Workout step types."""

    WARMUP = auto()
    RUN = auto()        # Work interval
    RECOVER = auto()    # Easy pace between intervals
    REST = auto()       # Full stop or very slow
    COOLDOWN = auto()
    REPEAT = auto()     # Marker; its children follow it positionally


class DurationType(IntEnum):
    """How a step's planned duration is measured."""

    TIME = auto()       # seconds
    DISTANCE = auto()   # metres


class EarlyEndCondition(IntEnum):
    """Optional rule letting a step end before (or after) its planned duration."""

    NONE = auto()
    OPEN = auto()       # Runs until "next" is pressed
    HR_RANGE = auto()   # Ends once HR settles inside a band


class AutoAdjustMode(IntEnum):
    """Which physiological signal drives auto-adjustment for a step."""

    NONE = auto()
    HR = auto()
    POWER = auto()


class AdjustmentType(IntEnum):
    """What the controller changes when the metric leaves its band."""

    SPEED = auto()
    INCLINE = auto()


class AdjustmentScope(IntEnum):
    """How learned coefficients are shared between steps.

    ALL_STEPS: one coefficient pair per phase.
    ONE_STEP: one pair per identity key; repeat children share by position.
    """

    ALL_STEPS = auto()
    ONE_STEP = auto()


class WorkoutPhase(IntEnum):
    """Stitched workout phases. Coefficients never survive a phase change."""

    WARMUP = auto()
    MAIN = auto()
    COOLDOWN = auto()


class AdjustmentDirection(IntEnum):
    """Direction of a coefficient change, reported for feedback."""

    UNCHANGED = auto()
    INCREASING = auto()
    DECREASING = auto()


class InBandPolicy(IntEnum):
    """What the controller does while the metric is inside its band."""

    HOLD = auto()               # Keep the learned coefficient
    DRIFT_TO_NEUTRAL = auto()   # Ease back toward 1.0


class CalibrationMode(IntEnum):
    """Which calibration model converts raw ↔ adjusted speed."""

    LINEAR = auto()       # User-set a, b
    POLYNOMIAL = auto()   # Auto-fitted after each run


class MetricKind(IntEnum):
    """Physiological signal names used in logs and events."""

    HR = auto()
    POWER = auto()


# ---------------------------------------------------------------------------
# Athlete thresholds
# ---------------------------------------------------------------------------
DEFAULT_LTHR_BPM = 170
DEFAULT_FTP_WATTS = 250

# ---------------------------------------------------------------------------
# Coefficient bounds
# ---------------------------------------------------------------------------
NEUTRAL_COEFFICIENT = 1.0
COEFFICIENT_MIN_CLAMP = 0.5
COEFFICIENT_MAX_CLAMP = 1.5

# Direction is only reported once a coefficient moves this far from neutral
DIRECTION_DEADBAND = 0.01

# ---------------------------------------------------------------------------
# Adjustment controller: HR defaults
# ---------------------------------------------------------------------------
HR_TREND_WINDOW_S = 30
HR_TREND_THRESHOLD_PER_MIN = 2.0
HR_SETTLING_TIME_S = 30
HR_MIN_INTERVAL_S = 10
HR_GAIN_PER_UNIT = 0.004       # coefficient change per bpm outside the band
HR_MAX_STEP = 0.05             # per-adjustment cap

# ---------------------------------------------------------------------------
# Adjustment controller: power defaults (power is instant but noisy)
# ---------------------------------------------------------------------------
POWER_TREND_WINDOW_S = 20
POWER_TREND_THRESHOLD_PER_MIN = 10.0
POWER_SETTLING_TIME_S = 20
POWER_MIN_INTERVAL_S = 5
POWER_GAIN_PER_UNIT = 0.001    # coefficient change per watt outside the band
POWER_MAX_STEP = 0.05

# Shared controller behaviour
EVALUATION_INTERVAL_MS = 1_000
MIN_TREND_SPAN_MIN = 0.1        # trend needs at least 6 s between samples
CONVERGING_DAMPING = 0.0        # 0 = wait while the metric recovers on its own
IN_BAND_DRIFT_RATE = 0.005

# ---------------------------------------------------------------------------
# Step execution
# ---------------------------------------------------------------------------
STEP_END_COUNTDOWN_S = 3
HR_RANGE_GRACE_S = 5
METRIC_HISTORY_S = 120
PACE_ROUNDING_KPH = 0.1

# ---------------------------------------------------------------------------
# Treadmill limits
# ---------------------------------------------------------------------------
DEVICE_MIN_SPEED_KPH = 1.6
DEVICE_MAX_SPEED_KPH = 20.0
DEVICE_MIN_INCLINE_PERCENT = -6.0
DEVICE_MAX_INCLINE_PERCENT = 40.0

# Changes made on the treadmill console are adopted once the belt has
# settled within these tolerances of the engine's own target
DEVICE_SETTLE_SPEED_KPH = 0.15
DEVICE_SETTLE_INCLINE_PERCENT = 0.5
DEVICE_CHANGE_THRESHOLD = 0.01  # smallest coefficient change adopted from the device

# ---------------------------------------------------------------------------
# Speed calibration
# ---------------------------------------------------------------------------
CALIBRATION_MIN_SAMPLES = 10
CALIBRATION_MIN_SPEED_RANGE_KPH = 2.0   # spread needed to identify an intercept
CALIBRATION_MAX_RUNS = 10
CALIBRATION_DEFAULT_DEGREE = 3
CALIBRATION_MAX_DEGREE = 3
CALIBRATION_MAX_DISCREPANCY = 0.30      # rejects transition artifacts
CALIBRATION_MIN_SLOPE = 0.5
CALIBRATION_MAX_SLOPE = 1.5
CALIBRATION_MIN_INTERCEPT = -5.0
CALIBRATION_MAX_INTERCEPT = 5.0
CALIBRATION_BOUNDARY_RATIO = (0.5, 1.5)  # predicted/raw at the domain ends

# Newton–Raphson inversion (hot path: every speed command)
INVERSION_MAX_ITERATIONS = 50
INVERSION_TOLERANCE = 1e-6
INVERSION_MIN_DERIVATIVE = 1e-9
