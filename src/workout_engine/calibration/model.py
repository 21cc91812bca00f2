"""Raw ↔ adjusted speed conversion.

The treadmill reports (and accepts) raw speed; everything else works in
adjusted speed. ``SpeedCalibrator`` keeps the manual linear model and the
auto-fitted polynomial side by side in one immutable snapshot. Writers build
a new snapshot and swap the reference, so a reader on another thread sees
either the old models or the new ones, never a mix.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import threading

from workout_engine.math.polynomial import evaluate, invert_polynomial
from workout_engine.models.calibration import (
    CalibrationSnapshot,
    LinearCalibration,
    PolynomialCalibration,
)
from workout_engine.models.enums import INVERSION_MIN_DERIVATIVE, CalibrationMode

logger = logging.getLogger(__name__)


class SpeedCalibrator:
    """Thread-safe holder of the active calibration snapshot.

    Usage:
        calibrator = SpeedCalibrator()
        calibrator.set_linear(1.02, -0.1)
        raw = calibrator.adjusted_to_raw(10.0)
    """

    def __init__(self, snapshot: CalibrationSnapshot | None = None) -> None:
        self._snapshot = snapshot or CalibrationSnapshot()
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> CalibrationSnapshot:
        return self._snapshot

    @property
    def mode(self) -> CalibrationMode:
        return self._snapshot.mode

    def raw_to_adjusted(self, raw_kph: float) -> float:
        """Convert a treadmill-reported speed to calibrated speed."""
        snap = self._snapshot
        if not math.isfinite(raw_kph):
            return 0.0
        if snap.mode == CalibrationMode.POLYNOMIAL:
            return evaluate(snap.polynomial.coefficients, raw_kph)
        return snap.linear.a * raw_kph + snap.linear.b

    def adjusted_to_raw(self, adjusted_kph: float) -> float:
        """Convert a calibrated speed to the raw value the treadmill expects.

        Every outgoing speed command must pass through here.
        """
        snap = self._snapshot
        if not math.isfinite(adjusted_kph):
            return 0.0
        if snap.mode == CalibrationMode.POLYNOMIAL:
            poly = snap.polynomial
            return invert_polynomial(
                poly.coefficients,
                adjusted_kph,
                poly.domain_min_kph,
                poly.domain_max_kph,
            ).value
        return (adjusted_kph - snap.linear.b) / snap.linear.a

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_linear(self, a: float, b: float) -> None:
        """Replace the manual linear model.

        Raises:
            ValueError: If ``a`` is zero (not invertible) or either value is
                not finite.
        """
        if not (math.isfinite(a) and math.isfinite(b)):
            raise ValueError(f"Linear calibration must be finite, got a={a}, b={b}")
        if abs(a) < INVERSION_MIN_DERIVATIVE:
            raise ValueError(f"Linear calibration slope must be non-zero, got {a}")
        with self._write_lock:
            self._snapshot = dataclasses.replace(self._snapshot, linear=LinearCalibration(a, b))
        logger.info("Linear calibration set to a=%.4f b=%.4f", a, b)

    def set_mode(self, mode: CalibrationMode) -> None:
        with self._write_lock:
            self._snapshot = dataclasses.replace(self._snapshot, mode=mode)
        logger.info("Calibration mode set to %s", mode.name)

    def publish_polynomial(self, polynomial: PolynomialCalibration) -> None:
        """Atomically replace the fitted polynomial (the mode is untouched)."""
        with self._write_lock:
            self._snapshot = dataclasses.replace(self._snapshot, polynomial=polynomial)
        logger.info(
            "Published degree %d calibration (R²=%.4f, n=%d)",
            polynomial.degree, polynomial.r_squared, polynomial.sample_count,
        )
