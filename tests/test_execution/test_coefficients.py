"""Tests for scope-aware coefficient storage."""

from __future__ import annotations

from workout_engine.execution.coefficients import CoefficientStore
from workout_engine.models.coefficients import NEUTRAL, CoefficientSet
from workout_engine.models.enums import AdjustmentScope


class TestAllSteps:
    def test_pair_shared_across_steps(self) -> None:
        store = CoefficientStore(AdjustmentScope.ALL_STEPS)
        store.enter_step(None, "s0")
        store.update(CoefficientSet(speed=0.9), "s0")
        assert store.enter_step("s0", "s1") == CoefficientSet(speed=0.9)

    def test_reset_phase(self) -> None:
        store = CoefficientStore(AdjustmentScope.ALL_STEPS)
        store.update(CoefficientSet(speed=1.2, incline=0.8), "s0")
        store.reset_phase()
        assert store.active == NEUTRAL

    def test_snapshot_single_entry(self) -> None:
        store = CoefficientStore(AdjustmentScope.ALL_STEPS)
        store.update(CoefficientSet(speed=1.1), "s0")
        assert store.snapshot("s0") == {"*": CoefficientSet(speed=1.1)}


class TestOneStep:
    def test_new_key_starts_neutral(self) -> None:
        store = CoefficientStore(AdjustmentScope.ONE_STEP)
        store.enter_step(None, "r0_c0")
        store.update(CoefficientSet(speed=0.9), "r0_c0")
        assert store.enter_step("r0_c0", "r0_c1") == NEUTRAL

    def test_repeat_iterations_share_entry(self) -> None:
        store = CoefficientStore(AdjustmentScope.ONE_STEP)
        store.enter_step(None, "r0_c0")
        store.update(CoefficientSet(speed=0.9), "r0_c0")
        store.enter_step("r0_c0", "r0_c1")
        store.update(CoefficientSet(speed=1.05), "r0_c1")
        assert store.enter_step("r0_c1", "r0_c0") == CoefficientSet(speed=0.9)
        assert store.enter_step("r0_c0", "r0_c1") == CoefficientSet(speed=1.05)

    def test_reset_phase_clears_map(self) -> None:
        store = CoefficientStore(AdjustmentScope.ONE_STEP)
        store.enter_step(None, "r0_c0")
        store.update(CoefficientSet(speed=0.9), "r0_c0")
        store.reset_phase()
        assert store.snapshot() == {}
        assert store.enter_step(None, "r0_c0") == NEUTRAL

    def test_snapshot_overlays_active(self) -> None:
        store = CoefficientStore(AdjustmentScope.ONE_STEP)
        store.enter_step(None, "s0")
        store.update(CoefficientSet(speed=0.9), "s0")
        store.enter_step("s0", "s1")
        store.active = CoefficientSet(incline=1.2)
        assert store.snapshot("s1") == {
            "s0": CoefficientSet(speed=0.9),
            "s1": CoefficientSet(incline=1.2),
        }
