"""Step progress, pace progression and the step-end countdown.

All functions are pure so the engine can recompute them on every tick.
"""

from __future__ import annotations

import math

from workout_engine.models.enums import DurationType, PACE_ROUNDING_KPH
from workout_engine.models.execution_step import ExecutionStep


def step_progress(step: ExecutionStep, elapsed_ms: int, distance_m: float) -> float:
    """Fraction of the step completed, clamped to [0, 1].

    TIME steps use elapsed time, DISTANCE steps use accumulated distance. A
    step without a usable duration has no progress (0.0).
    """
    if step.duration_value is None or step.duration_value <= 0:
        return 0.0
    if step.duration_type == DurationType.TIME:
        done = elapsed_ms / 1000.0
    elif step.duration_type == DurationType.DISTANCE:
        done = distance_m
    else:
        return 0.0
    return max(0.0, min(1.0, done / step.duration_value))


def round_pace(pace_kph: float) -> float:
    """Round half-up to the nearest 0.1 kph."""
    steps = 1.0 / PACE_ROUNDING_KPH
    return math.floor(pace_kph * steps + 0.5) / steps


def planned_pace(step: ExecutionStep, elapsed_ms: int, distance_m: float) -> float:
    """Instantaneous planned pace for a step before any coefficient.

    With an end pace set, the pace moves linearly from ``pace_target_kph`` to
    ``pace_end_target_kph`` over the step and is rounded to 0.1 kph.

    Example:
        10 → 12 kph over 300 s gives 11.0 kph at 150 s.
    """
    if not step.has_progression:
        return step.pace_target_kph
    progress = step_progress(step, elapsed_ms, distance_m)
    start = step.pace_target_kph
    end = step.pace_end_target_kph
    return round_pace(start + (end - start) * progress)


def is_duration_reached(step: ExecutionStep, elapsed_ms: int, distance_m: float) -> bool:
    """Whether a TIME/DISTANCE step has run its planned course.

    OPEN steps never complete on their own.
    """
    if step.is_open or step.duration_value is None:
        return False
    if step.duration_type == DurationType.TIME:
        return elapsed_ms >= step.duration_value * 1000
    if step.duration_type == DurationType.DISTANCE:
        return distance_m >= step.duration_value
    return False


def seconds_remaining(
    step: ExecutionStep,
    elapsed_ms: int,
    distance_m: float,
    speed_kph: float,
) -> int | None:
    """Whole seconds left in the step, or None when it cannot be estimated.

    DISTANCE steps estimate from the remaining metres at ``speed_kph``.
    """
    if step.is_open or step.duration_value is None:
        return None
    if step.duration_type == DurationType.TIME:
        remaining_ms = step.duration_value * 1000 - elapsed_ms
        return math.ceil(remaining_ms / 1000.0)
    if step.duration_type == DurationType.DISTANCE:
        speed_m_per_s = speed_kph / 3.6
        if speed_m_per_s <= 0:
            return None
        remaining_m = step.duration_value - distance_m
        return math.ceil(remaining_m / speed_m_per_s)
    return None


def step_end_countdown(
    step: ExecutionStep,
    elapsed_ms: int,
    distance_m: float,
    speed_kph: float,
    countdown_s: int,
) -> int | None:
    """The 3-2-1 value to show near the end of a step, or None."""
    remaining = seconds_remaining(step, elapsed_ms, distance_m, speed_kph)
    if remaining is None or not 0 < remaining <= countdown_s:
        return None
    return remaining
