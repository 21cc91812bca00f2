"""Tests for repeat expansion and identity keys."""

from __future__ import annotations

import dataclasses

from conftest import recover_step, repeat_marker, run_step

from workout_engine.execution.flattener import (
    flatten_steps,
    total_distance_meters,
    total_duration_seconds,
)
from workout_engine.models.enums import DurationType, StepType, WorkoutPhase
from workout_engine.models.workout import WorkoutStep


def _repeat(count: int, *children: WorkoutStep) -> list[WorkoutStep]:
    return [repeat_marker(count)] + [
        dataclasses.replace(c, in_repeat=True) for c in children
    ]


class TestRepeatExpansion:
    def test_three_by_run_recover_keys(self) -> None:
        steps = _repeat(3, run_step(), recover_step())
        flat = flatten_steps(steps)
        assert [s.identity_key for s in flat] == ["r0_c0", "r0_c1"] * 3

    def test_iterations_and_display_names(self) -> None:
        flat = flatten_steps(_repeat(2, run_step(), recover_step()))
        assert [s.repeat_iteration for s in flat] == [1, 1, 2, 2]
        assert all(s.repeat_total == 2 for s in flat)
        assert [s.display_name for s in flat] == ["Run 1/2", "Recover 1/2", "Run 2/2", "Recover 2/2"]

    def test_length_formula(self) -> None:
        steps = (
            [run_step()]
            + _repeat(4, run_step(), recover_step(), run_step(30.0))
            + [recover_step()]
            + _repeat(2, run_step())
        )
        flat = flatten_steps(steps)
        assert len(flat) == 2 + 4 * 3 + 2 * 1

    def test_top_level_index_counts_leaves_and_repeats(self) -> None:
        steps = [run_step()] + _repeat(2, run_step()) + [recover_step()]
        keys = [s.identity_key for s in flatten_steps(steps)]
        assert keys == ["s0", "r1_c0", "r1_c0", "s2"]

    def test_single_iteration_has_plain_name(self) -> None:
        flat = flatten_steps(_repeat(1, run_step()))
        assert flat[0].display_name == "Run"
        assert flat[0].is_repeated

    def test_non_positive_count_runs_once(self) -> None:
        assert len(flatten_steps(_repeat(0, run_step(), recover_step()))) == 2
        assert len(flatten_steps(_repeat(-3, run_step()))) == 1

    def test_missing_count_runs_once(self) -> None:
        steps = [WorkoutStep(step_type=StepType.REPEAT), run_step(in_repeat=True)]
        assert len(flatten_steps(steps)) == 1

    def test_flat_indices_are_sequential(self) -> None:
        flat = flatten_steps(_repeat(3, run_step(), recover_step()), start_index=5)
        assert [s.flat_index for s in flat] == list(range(5, 11))


class TestMalformedInput:
    def test_orphan_child_is_skipped(self) -> None:
        orphan = run_step(in_repeat=True)
        flat = flatten_steps([orphan, recover_step()])
        assert len(flat) == 1
        assert flat[0].step_type == StepType.RECOVER

    def test_repeat_without_children_emits_nothing(self) -> None:
        flat = flatten_steps([repeat_marker(3), run_step()])
        assert [s.identity_key for s in flat] == ["s1"]


class TestPurity:
    def test_same_input_same_output(self) -> None:
        steps = _repeat(3, run_step(), recover_step())
        assert flatten_steps(steps) == flatten_steps(steps)

    def test_phase_is_stamped(self) -> None:
        flat = flatten_steps([run_step()], phase=WorkoutPhase.COOLDOWN)
        assert flat[0].phase == WorkoutPhase.COOLDOWN

    def test_fields_are_copied(self) -> None:
        step = run_step(90.0, 12.5, pace_end_target_kph=14.0, incline_target_percent=2.0)
        flat = flatten_steps([step])[0]
        assert flat.duration_value == 90.0
        assert flat.pace_target_kph == 12.5
        assert flat.pace_end_target_kph == 14.0
        assert flat.incline_target_percent == 2.0


class TestTotals:
    def test_total_duration(self) -> None:
        flat = flatten_steps(_repeat(3, run_step(60.0), recover_step(30.0)))
        assert total_duration_seconds(flat) == 270.0

    def test_total_distance(self) -> None:
        flat = flatten_steps([
            run_step(duration_type=DurationType.DISTANCE, duration_value=400.0),
            run_step(120.0),
            run_step(duration_type=DurationType.DISTANCE, duration_value=1000.0),
        ])
        assert total_distance_meters(flat) == 1400.0
        assert total_duration_seconds(flat) == 120.0

    def test_totals_none_when_absent(self) -> None:
        flat = flatten_steps([run_step()])
        assert total_distance_meters(flat) is None
