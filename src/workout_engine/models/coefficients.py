"""Adjustment coefficient pair applied to planned pace and incline."""

from __future__ import annotations

from dataclasses import dataclass

from workout_engine.models.enums import (
    COEFFICIENT_MAX_CLAMP,
    COEFFICIENT_MIN_CLAMP,
    NEUTRAL_COEFFICIENT,
    AdjustmentType,
)


def clamp_coefficient(
    value: float,
    min_clamp: float = COEFFICIENT_MIN_CLAMP,
    max_clamp: float = COEFFICIENT_MAX_CLAMP,
) -> float:
    """Clamp a coefficient into ``[min_clamp, max_clamp]``."""
    return max(min_clamp, min(max_clamp, value))


@dataclass(frozen=True)
class CoefficientSet:
    """Multiplicative factors for speed and incline (1.0 = as planned)."""

    speed: float = NEUTRAL_COEFFICIENT
    incline: float = NEUTRAL_COEFFICIENT

    @property
    def is_neutral(self) -> bool:
        return self.speed == NEUTRAL_COEFFICIENT and self.incline == NEUTRAL_COEFFICIENT

    def get(self, adjustment_type: AdjustmentType) -> float:
        if adjustment_type == AdjustmentType.SPEED:
            return self.speed
        return self.incline

    def with_value(self, adjustment_type: AdjustmentType, value: float) -> CoefficientSet:
        """Return a copy with one coefficient replaced."""
        if adjustment_type == AdjustmentType.SPEED:
            return CoefficientSet(speed=value, incline=self.incline)
        return CoefficientSet(speed=self.speed, incline=value)


NEUTRAL = CoefficientSet()
