"""Execution state — a tagged union of Idle, Running, Paused and Completed.

Exactly one variant describes the engine at any moment:

    Idle -> Running <-> Paused -> Completed
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, auto

from workout_engine.models.coefficients import NEUTRAL, CoefficientSet
from workout_engine.models.enums import AdjustmentDirection
from workout_engine.models.execution_step import ExecutionStep


class CountdownKind(IntEnum):
    """What a countdown is counting toward."""

    STEP_END = auto()   # Last seconds of a TIME/DISTANCE step
    HR_RANGE = auto()   # Grace period of an HR_RANGE early end


@dataclass(frozen=True)
class Countdown:
    kind: CountdownKind
    seconds: int


@dataclass(frozen=True)
class PauseInterval:
    """Pause boundaries in total wall-clock run time (active + paused), ms."""

    started_at_ms: int
    ended_at_ms: int | None = None


@dataclass(frozen=True)
class Idle:
    """No workout is active."""


@dataclass(frozen=True)
class Running:
    step_index: int
    step: ExecutionStep
    step_elapsed_ms: int = 0
    step_distance_m: float = 0.0
    workout_elapsed_ms: int = 0
    workout_distance_m: float = 0.0
    coefficients: CoefficientSet = NEUTRAL
    planned_pace_kph: float = 0.0
    effective_pace_kph: float = 0.0
    effective_incline_percent: float = 0.0
    adjustment_active: bool = False
    adjustment_direction: AdjustmentDirection = AdjustmentDirection.UNCHANGED
    countdown: Countdown | None = None


@dataclass(frozen=True)
class Paused:
    step_index: int
    step: ExecutionStep
    step_elapsed_ms: int = 0
    step_distance_m: float = 0.0
    workout_elapsed_ms: int = 0
    workout_distance_m: float = 0.0
    coefficients: CoefficientSet = NEUTRAL


@dataclass(frozen=True)
class Completed:
    """Terminal state. No further ticks are accepted."""

    total_duration_ms: int
    total_distance_m: float
    steps_completed: int
    total_steps: int
    pauses: tuple[PauseInterval, ...] = field(default_factory=tuple)


ExecutionState = Idle | Running | Paused | Completed
