"""Flattened execution step — one addressable entry of a running workout."""

from __future__ import annotations

from dataclasses import dataclass

from workout_engine.models.enums import (
    AdjustmentType,
    AutoAdjustMode,
    DurationType,
    EarlyEndCondition,
    StepType,
    WorkoutPhase,
)


@dataclass(frozen=True)
class TargetBand:
    """Closed absolute band ``[low, high]`` in bpm or watts."""

    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def distance_outside(self, value: float) -> float:
        """Signed distance outside the band: positive above, negative below, 0 inside."""
        if value > self.high:
            return value - self.high
        if value < self.low:
            return value - self.low
        return 0.0


def percent_to_absolute(percent: float, threshold: int) -> int:
    """Convert a % of threshold (LTHR or FTP) into whole bpm/watts."""
    return int(round(percent * threshold / 100.0))


def _band(low_pct: float | None, high_pct: float | None, threshold: int) -> TargetBand | None:
    if low_pct is None or high_pct is None:
        return None
    return TargetBand(
        low=percent_to_absolute(low_pct, threshold),
        high=percent_to_absolute(high_pct, threshold),
    )


@dataclass(frozen=True)
class ExecutionStep:
    """A step ready for execution, with repeat blocks already expanded.

    ``identity_key`` is derived from the step's position in the definition
    and is shared by every iteration of the same repeat child, so coefficients
    learned in one iteration carry into the next under ONE_STEP scope.
    """

    identity_key: str
    flat_index: int
    step_type: StepType
    duration_type: DurationType | None
    duration_value: float | None
    pace_target_kph: float
    incline_target_percent: float
    phase: WorkoutPhase = WorkoutPhase.MAIN
    pace_end_target_kph: float | None = None
    auto_adjust_mode: AutoAdjustMode = AutoAdjustMode.NONE
    adjustment_type: AdjustmentType | None = None
    hr_target_min_pct: float | None = None
    hr_target_max_pct: float | None = None
    power_target_min_pct: float | None = None
    power_target_max_pct: float | None = None
    early_end_condition: EarlyEndCondition = EarlyEndCondition.NONE
    hr_end_target_min_pct: float | None = None
    hr_end_target_max_pct: float | None = None
    repeat_iteration: int | None = None    # 1-based
    repeat_total: int | None = None
    display_name: str = ""

    # ------------------------------------------------------------------
    # Convenience properties
    # ------------------------------------------------------------------

    @property
    def has_hr_target(self) -> bool:
        return (
            self.auto_adjust_mode == AutoAdjustMode.HR
            and self.hr_target_min_pct is not None
            and self.hr_target_max_pct is not None
            and self.adjustment_type is not None
        )

    @property
    def has_power_target(self) -> bool:
        return (
            self.auto_adjust_mode == AutoAdjustMode.POWER
            and self.power_target_min_pct is not None
            and self.power_target_max_pct is not None
            and self.adjustment_type is not None
        )

    @property
    def has_auto_adjust_target(self) -> bool:
        return self.has_hr_target or self.has_power_target

    @property
    def has_hr_end_target(self) -> bool:
        return (
            self.early_end_condition == EarlyEndCondition.HR_RANGE
            and self.hr_end_target_min_pct is not None
            and self.hr_end_target_max_pct is not None
        )

    @property
    def has_progression(self) -> bool:
        return self.pace_end_target_kph is not None

    @property
    def is_repeated(self) -> bool:
        return self.repeat_iteration is not None and self.repeat_total is not None

    @property
    def is_open(self) -> bool:
        return self.early_end_condition == EarlyEndCondition.OPEN

    # ------------------------------------------------------------------
    # Threshold conversions
    # ------------------------------------------------------------------

    def hr_target_band(self, lthr_bpm: int) -> TargetBand | None:
        return _band(self.hr_target_min_pct, self.hr_target_max_pct, lthr_bpm)

    def power_target_band(self, ftp_watts: int) -> TargetBand | None:
        return _band(self.power_target_min_pct, self.power_target_max_pct, ftp_watts)

    def hr_end_target_band(self, lthr_bpm: int) -> TargetBand | None:
        return _band(self.hr_end_target_min_pct, self.hr_end_target_max_pct, lthr_bpm)
