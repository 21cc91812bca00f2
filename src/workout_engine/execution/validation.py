"""Workout definition checks run before a run is allowed to start."""

from __future__ import annotations

from typing import Sequence

from workout_engine.exceptions import InvalidWorkoutDefinition
from workout_engine.execution.flattener import flatten_steps
from workout_engine.models.enums import AutoAdjustMode, EarlyEndCondition, WorkoutPhase
from workout_engine.models.workout import WorkoutDefinition, WorkoutStep


def validate_workout(definition: WorkoutDefinition) -> None:
    """Check that every leaf of every phase can be executed.

    All problems are collected before raising so the caller can show them
    together.

    Raises:
        InvalidWorkoutDefinition: If the main phase is empty or any step is
            malformed.
    """
    problems: list[str] = []

    if not flatten_steps(definition.steps):
        problems.append("main phase has no executable steps")

    phases = (
        (WorkoutPhase.WARMUP, definition.warmup_steps),
        (WorkoutPhase.MAIN, definition.steps),
        (WorkoutPhase.COOLDOWN, definition.cooldown_steps),
    )
    for phase, steps in phases:
        problems.extend(_check_phase(phase, steps))

    if problems:
        raise InvalidWorkoutDefinition(problems)


def _check_phase(phase: WorkoutPhase, steps: Sequence[WorkoutStep]) -> list[str]:
    problems = []
    for position, step in enumerate(steps):
        label = f"{phase.name.lower()} step {position}"
        if step.is_repeat:
            if position + 1 >= len(steps) or not steps[position + 1].in_repeat:
                problems.append(f"{label}: REPEAT has no child steps")
            continue
        problems.extend(f"{label}: {p}" for p in _check_leaf(step))
    return problems


def _check_leaf(step: WorkoutStep) -> list[str]:
    problems = []
    early_end = step.early_end_condition

    if step.duration_type is None and early_end == EarlyEndCondition.NONE:
        problems.append("no duration type and no early-end condition")
    elif step.duration_type is not None and early_end == EarlyEndCondition.NONE:
        if step.duration_value is None or step.duration_value <= 0:
            problems.append(
                f"{step.duration_type.name} duration must be positive, "
                f"got {step.duration_value}"
            )

    if step.pace_target_kph < 0:
        problems.append(f"negative pace target {step.pace_target_kph}")
    if step.pace_end_target_kph is not None and step.pace_end_target_kph < 0:
        problems.append(f"negative end pace {step.pace_end_target_kph}")

    if step.auto_adjust_mode == AutoAdjustMode.HR:
        problems.extend(_check_band("HR target", step.hr_target_min_pct, step.hr_target_max_pct))
    elif step.auto_adjust_mode == AutoAdjustMode.POWER:
        problems.extend(
            _check_band("power target", step.power_target_min_pct, step.power_target_max_pct)
        )
    if step.auto_adjust_mode != AutoAdjustMode.NONE and step.adjustment_type is None:
        problems.append(f"{step.auto_adjust_mode.name} auto-adjust without an adjustment type")

    if early_end == EarlyEndCondition.HR_RANGE:
        problems.extend(
            _check_band("HR end", step.hr_end_target_min_pct, step.hr_end_target_max_pct)
        )

    return problems


def _check_band(label: str, low: float | None, high: float | None) -> list[str]:
    if low is None or high is None:
        return [f"{label} band is incomplete"]
    if low > high:
        return [f"{label} band min {low} exceeds max {high}"]
    return []
