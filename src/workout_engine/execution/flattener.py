"""Step flattening — expands REPEAT blocks into an addressable execution sequence.

A definition such as::

    Warmup
    Repeat 3x
        Run
        Recover
    Cooldown

becomes ``Warmup, Run 1/3, Recover 1/3, Run 2/3, Recover 2/3, Run 3/3,
Recover 3/3, Cooldown`` with identity keys ``s0, r1_c0, r1_c1, r1_c0, r1_c1,
r1_c0, r1_c1, s2``.
"""

from __future__ import annotations

import logging
from typing import Sequence

from workout_engine.models.enums import DurationType, StepType, WorkoutPhase
from workout_engine.models.execution_step import ExecutionStep
from workout_engine.models.workout import WorkoutStep

logger = logging.getLogger(__name__)

_DISPLAY_NAMES = {
    StepType.WARMUP: "Warmup",
    StepType.RUN: "Run",
    StepType.RECOVER: "Recover",
    StepType.REST: "Rest",
    StepType.COOLDOWN: "Cooldown",
    StepType.REPEAT: "Repeat",
}


def flatten_steps(
    steps: Sequence[WorkoutStep],
    phase: WorkoutPhase = WorkoutPhase.MAIN,
    start_index: int = 0,
) -> list[ExecutionStep]:
    """Flatten definition rows into execution steps.

    Children of a REPEAT are found by position: every ``in_repeat`` row
    directly after the marker. Stored parent identifiers are never consulted,
    so the result is stable across reloads that renumber rows.

    Args:
        steps: Definition rows in order.
        phase: Phase stamped on every emitted step.
        start_index: ``flat_index`` of the first emitted step, so phases can
            be concatenated.

    Returns:
        The execution steps, ``Σ leaves + Σ repeat_count × children`` long.
    """
    result: list[ExecutionStep] = []
    flat_index = start_index
    position = 0
    top_level_index = 0

    while position < len(steps):
        step = steps[position]

        if step.is_repeat:
            children: list[WorkoutStep] = []
            child_position = position + 1
            while child_position < len(steps) and steps[child_position].in_repeat:
                children.append(steps[child_position])
                child_position += 1

            repeat_count = step.repeat_count if step.repeat_count and step.repeat_count > 0 else 1

            for iteration in range(1, repeat_count + 1):
                for child_index, child in enumerate(children):
                    result.append(_to_execution_step(
                        child,
                        flat_index=flat_index,
                        phase=phase,
                        identity_key=f"r{top_level_index}_c{child_index}",
                        repeat_iteration=iteration,
                        repeat_total=repeat_count,
                    ))
                    flat_index += 1

            top_level_index += 1
            position = child_position
        elif not step.in_repeat:
            result.append(_to_execution_step(
                step,
                flat_index=flat_index,
                phase=phase,
                identity_key=f"s{top_level_index}",
            ))
            flat_index += 1
            top_level_index += 1
            position += 1
        else:
            # Orphan child with no REPEAT before it. Kept as a no-op.
            logger.debug("Skipping repeat child at position %d with no REPEAT marker", position)
            position += 1

    return result


def total_duration_seconds(steps: Sequence[ExecutionStep]) -> float | None:
    """Sum of TIME step durations, or None when no step is time based."""
    durations = [
        s.duration_value for s in steps
        if s.duration_type == DurationType.TIME and s.duration_value is not None
    ]
    return sum(durations) if durations else None


def total_distance_meters(steps: Sequence[ExecutionStep]) -> float | None:
    """Sum of DISTANCE step durations, or None when no step is distance based."""
    distances = [
        s.duration_value for s in steps
        if s.duration_type == DurationType.DISTANCE and s.duration_value is not None
    ]
    return sum(distances) if distances else None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _to_execution_step(
    step: WorkoutStep,
    flat_index: int,
    phase: WorkoutPhase,
    identity_key: str,
    repeat_iteration: int | None = None,
    repeat_total: int | None = None,
) -> ExecutionStep:
    return ExecutionStep(
        identity_key=identity_key,
        flat_index=flat_index,
        step_type=step.step_type,
        duration_type=step.duration_type,
        duration_value=step.duration_value,
        pace_target_kph=step.pace_target_kph,
        incline_target_percent=step.incline_target_percent,
        phase=phase,
        pace_end_target_kph=step.pace_end_target_kph,
        auto_adjust_mode=step.auto_adjust_mode,
        adjustment_type=step.adjustment_type,
        hr_target_min_pct=step.hr_target_min_pct,
        hr_target_max_pct=step.hr_target_max_pct,
        power_target_min_pct=step.power_target_min_pct,
        power_target_max_pct=step.power_target_max_pct,
        early_end_condition=step.early_end_condition,
        hr_end_target_min_pct=step.hr_end_target_min_pct,
        hr_end_target_max_pct=step.hr_end_target_max_pct,
        repeat_iteration=repeat_iteration,
        repeat_total=repeat_total,
        display_name=_display_name(step.step_type, repeat_iteration, repeat_total),
    )


def _display_name(step_type: StepType, iteration: int | None, total: int | None) -> str:
    base = _DISPLAY_NAMES[step_type]
    if iteration is not None and total is not None and total > 1:
        return f"{base} {iteration}/{total}"
    return base
