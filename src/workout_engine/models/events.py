"""Events emitted by the execution engine for recording and display collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, auto

from workout_engine.models.enums import AdjustmentDirection, MetricKind
from workout_engine.models.execution_state import CountdownKind
from workout_engine.models.execution_step import ExecutionStep


class StepEndReason(IntEnum):
    """Why a step stopped being the active step."""

    DURATION_REACHED = auto()
    HR_RANGE_REACHED = auto()
    SKIPPED_FORWARD = auto()
    SKIPPED_BACKWARD = auto()
    RESTARTED = auto()
    JUMPED = auto()
    WORKOUT_STOPPED = auto()


class WorkoutEvent:
    """Marker base class for all engine events."""


@dataclass(frozen=True)
class StepStarted(WorkoutEvent):
    """A step became active. Targets include the current coefficients."""

    step: ExecutionStep
    effective_pace_kph: float
    effective_incline_percent: float


@dataclass(frozen=True)
class StepEnded(WorkoutEvent):
    step: ExecutionStep
    reason: StepEndReason
    elapsed_ms: int
    distance_m: float


@dataclass(frozen=True)
class SpeedAdjusted(WorkoutEvent):
    new_speed_kph: float
    coefficient: float
    direction: AdjustmentDirection
    reason: str


@dataclass(frozen=True)
class InclineAdjusted(WorkoutEvent):
    new_incline_percent: float
    coefficient: float
    direction: AdjustmentDirection
    reason: str


@dataclass(frozen=True)
class CountdownTick(WorkoutEvent):
    kind: CountdownKind
    seconds: int


@dataclass(frozen=True)
class MetricOutOfRange(WorkoutEvent):
    metric: MetricKind
    value: float
    target_low: float
    target_high: float


@dataclass(frozen=True)
class MetricBackInRange(WorkoutEvent):
    metric: MetricKind
    value: float
    target_low: float
    target_high: float


@dataclass(frozen=True)
class WorkoutPaused(WorkoutEvent):
    step: ExecutionStep


@dataclass(frozen=True)
class WorkoutResumed(WorkoutEvent):
    step: ExecutionStep
    effective_pace_kph: float
    effective_incline_percent: float


@dataclass(frozen=True)
class WorkoutSummary:
    workout_name: str
    steps_completed: int
    total_steps: int
    total_duration_ms: int
    total_distance_m: float
    paused_ms: int


@dataclass(frozen=True)
class WorkoutCompleted(WorkoutEvent):
    summary: WorkoutSummary
