"""JSON-style dict conversion for workout definitions.

Repeat blocks are nested in the dict form::

    {"step_type": "REPEAT", "repeat_count": 3, "children": [{...}, {...}]}

and positional in the model form (a REPEAT row followed by its children
with ``in_repeat=True``). Enum values are written by name.

All functions are pure (no I/O).
"""

from __future__ import annotations

import json
from enum import IntEnum
from typing import Any, TypeVar

from workout_engine.models.enums import (
    AdjustmentScope,
    AdjustmentType,
    AutoAdjustMode,
    DurationType,
    EarlyEndCondition,
    StepType,
)
from workout_engine.models.workout import WorkoutDefinition, WorkoutStep

E = TypeVar("E", bound=IntEnum)

# Optional numeric fields copied as-is when present
_NUMERIC_FIELDS = (
    "duration_value",
    "pace_end_target_kph",
    "hr_target_min_pct",
    "hr_target_max_pct",
    "power_target_min_pct",
    "power_target_max_pct",
    "hr_end_target_min_pct",
    "hr_end_target_max_pct",
)


def workout_from_dict(data: dict[str, Any]) -> WorkoutDefinition:
    """Build a WorkoutDefinition from its dict form.

    Raises:
        ValueError: On unknown enum names, missing ``step_type``, or nested
            repeats.
    """
    return WorkoutDefinition(
        name=data.get("name", ""),
        steps=_steps_from_list(data.get("steps", [])),
        warmup_steps=_steps_from_list(data.get("warmup_steps", [])),
        cooldown_steps=_steps_from_list(data.get("cooldown_steps", [])),
        adjustment_scope=_enum(AdjustmentScope, data.get("adjustment_scope", "ALL_STEPS")),
    )


def workout_to_dict(workout: WorkoutDefinition) -> dict[str, Any]:
    """Convert a WorkoutDefinition to its dict form (nested repeats)."""
    result: dict[str, Any] = {
        "name": workout.name,
        "adjustment_scope": workout.adjustment_scope.name,
        "steps": _steps_to_list(workout.steps),
    }
    if workout.warmup_steps:
        result["warmup_steps"] = _steps_to_list(workout.warmup_steps)
    if workout.cooldown_steps:
        result["cooldown_steps"] = _steps_to_list(workout.cooldown_steps)
    return result


def workout_from_json(text: str) -> WorkoutDefinition:
    return workout_from_dict(json.loads(text))


def workout_to_json(workout: WorkoutDefinition, indent: int = 2) -> str:
    return json.dumps(workout_to_dict(workout), indent=indent)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _enum(enum_cls: type[E], name: str | None) -> E | None:
    if name is None:
        return None
    try:
        return enum_cls[str(name).upper()]
    except KeyError:
        valid = ", ".join(m.name for m in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} {name!r}; expected one of {valid}") from None


def _steps_from_list(items: list[dict[str, Any]]) -> tuple[WorkoutStep, ...]:
    steps: list[WorkoutStep] = []
    for item in items:
        step = _step_from_dict(item, in_repeat=bool(item.get("in_repeat", False)))
        steps.append(step)
        if step.is_repeat:
            for child in item.get("children", []):
                if child.get("step_type", "").upper() == "REPEAT":
                    raise ValueError("Nested REPEAT steps are not supported")
                steps.append(_step_from_dict(child, in_repeat=True))
    return tuple(steps)


def _step_from_dict(item: dict[str, Any], in_repeat: bool) -> WorkoutStep:
    if "step_type" not in item:
        raise ValueError(f"Step is missing 'step_type': {item!r}")
    step_type = _enum(StepType, item["step_type"])
    numeric = {key: float(item[key]) for key in _NUMERIC_FIELDS if item.get(key) is not None}
    repeat_count = item.get("repeat_count")
    return WorkoutStep(
        step_type=step_type,
        duration_type=_enum(DurationType, item.get("duration_type", "TIME")),
        pace_target_kph=float(item.get("pace_target_kph", 0.0)),
        incline_target_percent=float(item.get("incline_target_percent", 0.0)),
        auto_adjust_mode=_enum(AutoAdjustMode, item.get("auto_adjust_mode", "NONE")),
        adjustment_type=_enum(AdjustmentType, item.get("adjustment_type")),
        early_end_condition=_enum(EarlyEndCondition, item.get("early_end_condition", "NONE")),
        repeat_count=int(repeat_count) if repeat_count is not None else None,
        in_repeat=in_repeat,
        **numeric,
    )


def _steps_to_list(steps: tuple[WorkoutStep, ...]) -> list[dict[str, Any]]:
    result: list[dict[str, Any]] = []
    current_repeat: dict[str, Any] | None = None
    for step in steps:
        if step.in_repeat and current_repeat is not None:
            current_repeat["children"].append(_step_to_dict(step))
            continue
        entry = _step_to_dict(step)
        if step.in_repeat:
            # Orphan child; kept so a reload flattens the same way
            entry["in_repeat"] = True
        if step.is_repeat:
            entry["children"] = []
            current_repeat = entry
        else:
            current_repeat = None
        result.append(entry)
    return result


def _step_to_dict(step: WorkoutStep) -> dict[str, Any]:
    entry: dict[str, Any] = {"step_type": step.step_type.name}
    if step.is_repeat:
        entry["repeat_count"] = step.repeat_count
        return entry

    entry["duration_type"] = step.duration_type.name if step.duration_type is not None else None
    entry["pace_target_kph"] = step.pace_target_kph
    entry["incline_target_percent"] = step.incline_target_percent
    if step.auto_adjust_mode != AutoAdjustMode.NONE:
        entry["auto_adjust_mode"] = step.auto_adjust_mode.name
    if step.adjustment_type is not None:
        entry["adjustment_type"] = step.adjustment_type.name
    if step.early_end_condition != EarlyEndCondition.NONE:
        entry["early_end_condition"] = step.early_end_condition.name
    for key in _NUMERIC_FIELDS:
        value = getattr(step, key)
        if value is not None:
            entry[key] = value
    return entry
