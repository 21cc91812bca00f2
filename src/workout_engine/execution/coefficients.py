"""Scope-aware storage of learned adjustment coefficients.

ALL_STEPS keeps a single active pair for the whole phase. ONE_STEP also keeps
a map keyed by identity key: the active pair is saved when a step is left and
loaded when a step with the same key is entered, so repeat iterations share
what they learned. A phase change clears both.
"""

from __future__ import annotations

import logging

from workout_engine.models.coefficients import NEUTRAL, CoefficientSet
from workout_engine.models.enums import AdjustmentScope

logger = logging.getLogger(__name__)


class CoefficientStore:
    """Holds the active coefficient pair and, in ONE_STEP scope, the per-step map."""

    def __init__(self, scope: AdjustmentScope = AdjustmentScope.ALL_STEPS) -> None:
        self.scope = scope
        self.active: CoefficientSet = NEUTRAL
        self._per_step: dict[str, CoefficientSet] = {}

    def enter_step(self, previous_key: str | None, next_key: str) -> CoefficientSet:
        """Move the active pair from one step to the next within a phase.

        Returns:
            The active pair for ``next_key``.
        """
        if self.scope == AdjustmentScope.ONE_STEP:
            if previous_key is not None:
                self._per_step[previous_key] = self.active
            self.active = self._per_step.get(next_key, NEUTRAL)
        return self.active

    def update(self, coefficients: CoefficientSet, step_key: str) -> None:
        self.active = coefficients
        if self.scope == AdjustmentScope.ONE_STEP:
            self._per_step[step_key] = coefficients

    def reset_phase(self) -> None:
        """Back to neutral in both scopes."""
        if not self.active.is_neutral or self._per_step:
            logger.debug("Clearing coefficients (%d per-step entries)", len(self._per_step))
        self.active = NEUTRAL
        self._per_step.clear()

    def snapshot(self, current_key: str | None = None) -> dict[str, CoefficientSet]:
        """Per-step map with the live active pair overlaid for ``current_key``.

        In ALL_STEPS scope the single pair is returned under the key ``"*"``.
        """
        if self.scope == AdjustmentScope.ALL_STEPS:
            return {"*": self.active}
        result = dict(self._per_step)
        if current_key is not None:
            result[current_key] = self.active
        return result
