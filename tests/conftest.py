"""Shared test fixtures: workout definitions, engine configs, telemetry helpers."""

from __future__ import annotations

from typing import Callable

import pytest

from workout_engine.config import AdjustmentConfig, EngineConfig
from workout_engine.engine import ExecutionEngine
from workout_engine.models.enums import (
    AdjustmentScope,
    AdjustmentType,
    AutoAdjustMode,
    DurationType,
    EarlyEndCondition,
    StepType,
)
from workout_engine.models.telemetry import TelemetryTick
from workout_engine.models.workout import WorkoutDefinition, WorkoutStep


def run_step(seconds: float = 60.0, pace: float = 10.0, **overrides) -> WorkoutStep:
    """A TIME-based RUN step."""
    values = dict(
        step_type=StepType.RUN,
        duration_type=DurationType.TIME,
        duration_value=seconds,
        pace_target_kph=pace,
    )
    values.update(overrides)
    return WorkoutStep(**values)


def recover_step(seconds: float = 60.0, pace: float = 7.0, **overrides) -> WorkoutStep:
    values = dict(
        step_type=StepType.RECOVER,
        duration_type=DurationType.TIME,
        duration_value=seconds,
        pace_target_kph=pace,
    )
    values.update(overrides)
    return WorkoutStep(**values)


def repeat_marker(count: int) -> WorkoutStep:
    return WorkoutStep(step_type=StepType.REPEAT, duration_type=None, repeat_count=count)


def hr_run_step(seconds: float = 600.0, pace: float = 10.0, **overrides) -> WorkoutStep:
    """RUN step steering speed to keep HR at 80-90 % of LTHR (136-153 bpm at LTHR 170)."""
    values = dict(
        auto_adjust_mode=AutoAdjustMode.HR,
        adjustment_type=AdjustmentType.SPEED,
        hr_target_min_pct=80.0,
        hr_target_max_pct=90.0,
    )
    values.update(overrides)
    return run_step(seconds, pace, **values)


def tick(ms: int = 1000, metres: float = 3.0, speed: float = 0.0, **overrides) -> TelemetryTick:
    """One telemetry update; belt speed is unreported (0) unless given."""
    values = dict(
        elapsed_delta_ms=ms,
        distance_delta_m=metres,
        raw_speed_kph=speed,
    )
    values.update(overrides)
    return TelemetryTick(**values)


@pytest.fixture
def interval_workout() -> WorkoutDefinition:
    """Warmup, 3 × (Run 60 s / Recover 60 s), Cooldown."""
    return WorkoutDefinition(
        name="3x1min",
        steps=(
            WorkoutStep(step_type=StepType.WARMUP, duration_value=120.0, pace_target_kph=8.0),
            repeat_marker(3),
            run_step(60.0, in_repeat=True),
            recover_step(60.0, in_repeat=True),
            WorkoutStep(step_type=StepType.COOLDOWN, duration_value=120.0, pace_target_kph=7.0),
        ),
    )


@pytest.fixture
def phased_workout() -> Callable[[AdjustmentScope], WorkoutDefinition]:
    """Factory: one warmup step, two HR-steered main steps, one cooldown step."""

    def _make(scope: AdjustmentScope = AdjustmentScope.ALL_STEPS) -> WorkoutDefinition:
        return WorkoutDefinition(
            name="phased",
            warmup_steps=(WorkoutStep(step_type=StepType.WARMUP, duration_value=60.0, pace_target_kph=8.0),),
            steps=(hr_run_step(120.0), hr_run_step(120.0, pace=11.0)),
            cooldown_steps=(WorkoutStep(step_type=StepType.COOLDOWN, duration_value=60.0, pace_target_kph=7.0),),
            adjustment_scope=scope,
        )

    return _make


@pytest.fixture
def fast_config() -> EngineConfig:
    """Controller with no settling and no minimum interval, for short tests."""
    return EngineConfig(
        hr_adjustment=AdjustmentConfig.for_hr(settling_time_s=0, min_interval_s=0),
        power_adjustment=AdjustmentConfig.for_power(settling_time_s=0, min_interval_s=0),
    )


@pytest.fixture
def engine(fast_config: EngineConfig) -> ExecutionEngine:
    return ExecutionEngine(config=fast_config)


@pytest.fixture
def open_step() -> WorkoutStep:
    return run_step(duration_type=None, duration_value=None, early_end_condition=EarlyEndCondition.OPEN)
