"""Data models for the workout engine."""

from workout_engine.models.calibration import (
    CalibrationSample,
    CalibrationSnapshot,
    LinearCalibration,
    PolynomialCalibration,
)
from workout_engine.models.coefficients import NEUTRAL, CoefficientSet
from workout_engine.models.enums import (
    AdjustmentDirection,
    AdjustmentScope,
    AdjustmentType,
    AutoAdjustMode,
    CalibrationMode,
    DurationType,
    EarlyEndCondition,
    InBandPolicy,
    MetricKind,
    StepType,
    WorkoutPhase,
)
from workout_engine.models.execution_state import (
    Completed,
    Countdown,
    CountdownKind,
    ExecutionState,
    Idle,
    Paused,
    PauseInterval,
    Running,
)
from workout_engine.models.execution_step import ExecutionStep, TargetBand
from workout_engine.models.telemetry import DeviceCommand, MetricSample, TelemetryTick
from workout_engine.models.workout import WorkoutDefinition, WorkoutStep

__all__ = [
    "AdjustmentDirection",
    "AdjustmentScope",
    "AdjustmentType",
    "AutoAdjustMode",
    "CalibrationMode",
    "CalibrationSample",
    "CalibrationSnapshot",
    "CoefficientSet",
    "Completed",
    "Countdown",
    "CountdownKind",
    "DeviceCommand",
    "DurationType",
    "EarlyEndCondition",
    "ExecutionState",
    "ExecutionStep",
    "Idle",
    "InBandPolicy",
    "LinearCalibration",
    "MetricKind",
    "MetricSample",
    "NEUTRAL",
    "Paused",
    "PauseInterval",
    "PolynomialCalibration",
    "Running",
    "StepType",
    "TargetBand",
    "TelemetryTick",
    "WorkoutDefinition",
    "WorkoutPhase",
    "WorkoutStep",
]
