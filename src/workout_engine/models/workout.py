"""Workout definition models — the hierarchical plan as stored by the caller."""

from __future__ import annotations

from dataclasses import dataclass, field

from workout_engine.models.enums import (
    AdjustmentScope,
    AdjustmentType,
    AutoAdjustMode,
    DurationType,
    EarlyEndCondition,
    StepType,
)


@dataclass(frozen=True)
class WorkoutStep:
    """A single row of a workout definition.

    A REPEAT step is a marker: its children are the rows immediately after it
    with ``in_repeat=True``. Only one level of repeat is supported.

    Pace is in kph, incline in percent. HR bands are % of LTHR, power bands
    are % of FTP.
    """

    step_type: StepType
    duration_type: DurationType | None = DurationType.TIME
    duration_value: float | None = None    # s if TIME, m if DISTANCE
    pace_target_kph: float = 0.0
    pace_end_target_kph: float | None = None   # progression end pace
    incline_target_percent: float = 0.0
    auto_adjust_mode: AutoAdjustMode = AutoAdjustMode.NONE
    adjustment_type: AdjustmentType | None = None
    hr_target_min_pct: float | None = None
    hr_target_max_pct: float | None = None
    power_target_min_pct: float | None = None
    power_target_max_pct: float | None = None
    early_end_condition: EarlyEndCondition = EarlyEndCondition.NONE
    hr_end_target_min_pct: float | None = None
    hr_end_target_max_pct: float | None = None
    repeat_count: int | None = None
    in_repeat: bool = False

    @property
    def is_repeat(self) -> bool:
        return self.step_type == StepType.REPEAT


@dataclass(frozen=True)
class WorkoutDefinition:
    """A runnable workout: the main steps plus optional stitched phases.

    Each phase is flattened independently and concatenated as
    warmup → main → cooldown.
    """

    name: str
    steps: tuple[WorkoutStep, ...]
    warmup_steps: tuple[WorkoutStep, ...] = field(default_factory=tuple)
    cooldown_steps: tuple[WorkoutStep, ...] = field(default_factory=tuple)
    adjustment_scope: AdjustmentScope = AdjustmentScope.ALL_STEPS
