"""Per-run calibration refits.

After each completed run the recorded (raw, reference) speed pairs are added
to a bounded history of recent runs and a new polynomial is fitted. On success
the calibrator's polynomial is swapped in one step; on failure the previous
one stays in place. Fitting may run on a worker thread while the engine ticks.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Iterable

from workout_engine.calibration.model import SpeedCalibrator
from workout_engine.config import CalibrationConfig
from workout_engine.exceptions import CalibrationFitRejected, InsufficientCalibrationData
from workout_engine.math.regression import LinearFit, PolynomialFit, fit_linear, fit_polynomial
from workout_engine.models.calibration import CalibrationSample, PolynomialCalibration
from workout_engine.models.enums import CALIBRATION_MAX_DISCREPANCY

logger = logging.getLogger(__name__)


class RefitStatus(IntEnum):
    UPDATED = auto()
    INSUFFICIENT_DATA = auto()
    REJECTED = auto()


@dataclass(frozen=True)
class RegressionOutcome:
    """What a refit did.

    Attributes:
        status: UPDATED when a new polynomial was published.
        polynomial: The accepted fit, if any.
        linear_suggestion: OLS line for the user's manual model, if one could
            be fitted. Never applied automatically.
        sample_count: Samples considered.
        message: Reason for a non-UPDATED status.
    """

    status: RefitStatus
    polynomial: PolynomialFit | None = None
    linear_suggestion: LinearFit | None = None
    sample_count: int = 0
    message: str = ""


def extract_pairs(
    pairs: Iterable[tuple[float, float]],
    run_id: int,
    max_discrepancy: float = CALIBRATION_MAX_DISCREPANCY,
) -> list[CalibrationSample]:
    """Turn recorded (raw, reference) pairs into usable samples.

    Pairs where either speed is not positive are dropped (stopped belt, no
    foot pod). So are pairs whose reference differs from raw by more than
    ``max_discrepancy``; those come from speed transitions where the two
    sensors lag each other.
    """
    samples = []
    for raw, reference in pairs:
        if raw <= 0 or reference <= 0:
            continue
        if abs(reference - raw) / raw > max_discrepancy:
            continue
        samples.append(CalibrationSample(raw, reference, run_id))
    return samples


class RegressionEngine:
    """Keeps recent runs' samples and republishes the polynomial calibration."""

    def __init__(
        self,
        calibrator: SpeedCalibrator,
        config: CalibrationConfig | None = None,
    ) -> None:
        self.calibrator = calibrator
        self.config = config or CalibrationConfig()
        self._runs: OrderedDict[int, list[CalibrationSample]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def run_ids(self) -> list[int]:
        with self._lock:
            return list(self._runs)

    def samples(self) -> list[CalibrationSample]:
        with self._lock:
            return [s for run in self._runs.values() for s in run]

    def add_run(self, run_id: int, samples: Iterable[CalibrationSample]) -> None:
        """Store a run's samples, trimming the oldest runs beyond ``max_runs``.

        Re-adding an existing run id replaces its samples and makes it the
        most recent run.
        """
        run_samples = list(samples)
        with self._lock:
            self._runs.pop(run_id, None)
            self._runs[run_id] = run_samples
            while len(self._runs) > self.config.max_runs:
                dropped, _ = self._runs.popitem(last=False)
                logger.debug("Dropped calibration samples of run %s", dropped)

    def refit(self) -> RegressionOutcome:
        """Fit the retained samples and publish on success."""
        samples = self.samples()
        raw = [s.raw_speed_kph for s in samples]
        reference = [s.reference_speed_kph for s in samples]

        linear = self._linear_suggestion(raw, reference)

        try:
            fit = fit_polynomial(raw, reference, self.config.degree, self.config.min_samples)
        except InsufficientCalibrationData as exc:
            logger.info("Calibration not updated: %s", exc)
            return RegressionOutcome(
                RefitStatus.INSUFFICIENT_DATA,
                linear_suggestion=linear,
                sample_count=len(samples),
                message=str(exc),
            )
        except CalibrationFitRejected as exc:
            logger.warning("Calibration fit rejected: %s", exc)
            return RegressionOutcome(
                RefitStatus.REJECTED,
                linear_suggestion=linear,
                sample_count=len(samples),
                message=str(exc),
            )

        self.calibrator.publish_polynomial(PolynomialCalibration(
            coefficients=fit.coefficients,
            degree=fit.degree,
            domain_min_kph=fit.domain_min,
            domain_max_kph=fit.domain_max,
            r_squared=fit.r_squared,
            sample_count=fit.n,
        ))
        return RegressionOutcome(
            RefitStatus.UPDATED,
            polynomial=fit,
            linear_suggestion=linear,
            sample_count=len(samples),
        )

    def on_run_completed(
        self,
        run_id: int,
        pairs: Iterable[tuple[float, float]],
    ) -> RegressionOutcome:
        """Filter a finished run's pairs, store them and refit.

        Runs without any usable pair are not stored, so they never push older
        runs out of the window.
        """
        samples = extract_pairs(pairs, run_id)
        if samples:
            self.add_run(run_id, samples)
        else:
            logger.info("Run %s has no usable reference speed samples", run_id)
        return self.refit()

    def _linear_suggestion(self, raw: list[float], reference: list[float]) -> LinearFit | None:
        try:
            return fit_linear(raw, reference, self.config.min_samples)
        except (InsufficientCalibrationData, CalibrationFitRejected) as exc:
            logger.debug("No linear suggestion: %s", exc)
            return None
