"""Least-squares fits of reference speed against raw treadmill speed.

Two fits are offered:

- ``fit_linear``: ordinary least squares ``ref = a*raw + b``, used to suggest
  coefficients for the user's manual linear model. With too little speed
  spread to identify an intercept it falls back to a ratio model (b = 0).
- ``fit_polynomial``: degree 1–3 fit solved on centred and scaled speeds,
  degraded to a lower degree until the curve is monotonic and sane.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from workout_engine.exceptions import CalibrationFitRejected, InsufficientCalibrationData
from workout_engine.math.linear_system import solve_linear_system
from workout_engine.math.polynomial import (
    denormalize,
    evaluate,
    is_monotonic_non_decreasing,
    pad_coefficients,
)
from workout_engine.models.enums import (
    CALIBRATION_BOUNDARY_RATIO,
    CALIBRATION_DEFAULT_DEGREE,
    CALIBRATION_MAX_DEGREE,
    CALIBRATION_MAX_INTERCEPT,
    CALIBRATION_MAX_SLOPE,
    CALIBRATION_MIN_INTERCEPT,
    CALIBRATION_MIN_SAMPLES,
    CALIBRATION_MIN_SLOPE,
    CALIBRATION_MIN_SPEED_RANGE_KPH,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinearFit:
    """Result of an OLS fit ``reference = a * raw + b``.

    Attributes:
        a: Slope.
        b: Intercept (0.0 for a ratio model).
        r_squared: Coefficient of determination.
        n: Number of samples used.
        ratio_only: True when the speed spread was too narrow for an intercept.
    """

    a: float
    b: float
    r_squared: float
    n: int
    ratio_only: bool = False


@dataclass(frozen=True)
class PolynomialFit:
    """Accepted polynomial calibration fit.

    Attributes:
        coefficients: c0..c3 in the original (raw kph) domain.
        degree: Degree actually accepted (may be below the requested one).
        domain_min: Lowest raw speed in the data.
        domain_max: Highest raw speed in the data.
        r_squared: Coefficient of determination.
        n: Number of samples used.
    """

    coefficients: tuple[float, ...]
    degree: int
    domain_min: float
    domain_max: float
    r_squared: float
    n: int


def r_squared(observed: np.ndarray, predicted: np.ndarray) -> float:
    """Coefficient of determination; 1.0 for a perfect fit of constant data."""
    ss_res = float(np.sum((observed - predicted) ** 2))
    ss_tot = float(np.sum((observed - np.mean(observed)) ** 2))
    if ss_tot == 0.0:
        return 1.0 if ss_res < 1e-12 else 0.0
    return 1.0 - ss_res / ss_tot


def fit_linear(
    raw: Sequence[float],
    reference: Sequence[float],
    min_samples: int = CALIBRATION_MIN_SAMPLES,
) -> LinearFit:
    """Fit ``reference = a * raw + b`` by ordinary least squares.

    Args:
        raw: Raw treadmill speeds (kph).
        reference: Reference speeds (kph), same length as ``raw``.
        min_samples: Minimum number of pairs required.

    Returns:
        LinearFit with slope, intercept, R² and sample count.

    Raises:
        ValueError: If the sequences differ in length.
        InsufficientCalibrationData: If fewer than ``min_samples`` pairs.
        CalibrationFitRejected: If slope or intercept is implausible.
    """
    x, y = _as_arrays(raw, reference, min_samples)

    spread = float(np.max(x) - np.min(x))
    ratio_only = spread < CALIBRATION_MIN_SPEED_RANGE_KPH
    if ratio_only:
        denominator = float(np.sum(x * x))
        if denominator <= 0.0:
            raise CalibrationFitRejected("All raw speeds are zero")
        a = float(np.sum(x * y) / denominator)
        b = 0.0
    else:
        a, b = (float(v) for v in np.polyfit(x, y, 1))

    if not _slope_intercept_ok(a, b):
        raise CalibrationFitRejected(
            f"Implausible linear fit a={a:.4f}, b={b:.4f} "
            f"(slope must be in [{CALIBRATION_MIN_SLOPE}, {CALIBRATION_MAX_SLOPE}], "
            f"intercept in [{CALIBRATION_MIN_INTERCEPT}, {CALIBRATION_MAX_INTERCEPT}])"
        )

    return LinearFit(
        a=a,
        b=b,
        r_squared=r_squared(y, a * x + b),
        n=len(x),
        ratio_only=ratio_only,
    )


def fit_polynomial(
    raw: Sequence[float],
    reference: Sequence[float],
    degree: int = CALIBRATION_DEFAULT_DEGREE,
    min_samples: int = CALIBRATION_MIN_SAMPLES,
) -> PolynomialFit:
    """Fit a degree 1–3 calibration polynomial, degrading until acceptable.

    The normal equations are built on ``z = (raw - mean) / std`` and solved
    by Gaussian elimination; coefficients are then mapped back to raw kph.
    A candidate is accepted when:

    - degree ≥ 2: non-decreasing over ``[min(raw), max(raw)]``;
    - degree 1: slope and intercept within their plausibility bounds;
    - any degree: predictions at both domain ends lie within 0.5×–1.5× of
      the raw speed.

    Raises:
        ValueError: If the sequences differ in length or degree is not 1–3.
        InsufficientCalibrationData: Too few samples or too narrow a range.
        CalibrationFitRejected: No degree passed its checks.
    """
    if not 1 <= degree <= CALIBRATION_MAX_DEGREE:
        raise ValueError(f"degree must be in 1..{CALIBRATION_MAX_DEGREE}, got {degree}")

    x, y = _as_arrays(raw, reference, min_samples)
    domain_min, domain_max = float(np.min(x)), float(np.max(x))
    if domain_max - domain_min < CALIBRATION_MIN_SPEED_RANGE_KPH:
        raise InsufficientCalibrationData(
            f"Raw speed range {domain_max - domain_min:.2f} kph is below "
            f"{CALIBRATION_MIN_SPEED_RANGE_KPH} kph"
        )

    for candidate in range(degree, 0, -1):
        try:
            coefficients = _solve_scaled(x, y, candidate)
        except np.linalg.LinAlgError as exc:
            logger.debug("Degree %d normal equations are singular: %s", candidate, exc)
            continue

        if candidate >= 2 and not is_monotonic_non_decreasing(coefficients, domain_min, domain_max):
            logger.debug("Degree %d fit is not monotonic over %.1f-%.1f kph", candidate, domain_min, domain_max)
            continue
        if candidate == 1 and not _slope_intercept_ok(coefficients[1], coefficients[0]):
            logger.debug(
                "Degree 1 fit rejected: slope %.4f, intercept %.4f",
                coefficients[1], coefficients[0],
            )
            continue
        if not _boundaries_ok(coefficients, domain_min, domain_max):
            logger.debug("Degree %d fit predicts implausible speeds at the domain ends", candidate)
            continue

        predicted = np.array([evaluate(coefficients, v) for v in x])
        return PolynomialFit(
            coefficients=pad_coefficients(coefficients),
            degree=candidate,
            domain_min=domain_min,
            domain_max=domain_max,
            r_squared=r_squared(y, predicted),
            n=len(x),
        )

    raise CalibrationFitRejected(f"No polynomial of degree {degree} or lower passed validation")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_arrays(
    raw: Sequence[float],
    reference: Sequence[float],
    min_samples: int,
) -> tuple[np.ndarray, np.ndarray]:
    if len(raw) != len(reference):
        raise ValueError(
            f"raw and reference must have the same length, got {len(raw)} and {len(reference)}"
        )
    if len(raw) < min_samples:
        raise InsufficientCalibrationData(
            f"Need at least {min_samples} calibration samples, got {len(raw)}"
        )
    return np.asarray(raw, dtype=float), np.asarray(reference, dtype=float)


def _solve_scaled(x: np.ndarray, y: np.ndarray, degree: int) -> tuple[float, ...]:
    mean = float(np.mean(x))
    std = float(np.std(x))
    z = (x - mean) / std
    vander = np.vander(z, degree + 1, increasing=True)
    scaled = solve_linear_system(vander.T @ vander, vander.T @ y)
    return denormalize([float(v) for v in scaled], mean, std)


def _slope_intercept_ok(slope: float, intercept: float) -> bool:
    return (
        CALIBRATION_MIN_SLOPE <= slope <= CALIBRATION_MAX_SLOPE
        and CALIBRATION_MIN_INTERCEPT <= intercept <= CALIBRATION_MAX_INTERCEPT
    )


def _boundaries_ok(coefficients: Sequence[float], domain_min: float, domain_max: float) -> bool:
    low_ratio, high_ratio = CALIBRATION_BOUNDARY_RATIO
    for speed in (domain_min, domain_max):
        if speed <= 0:
            continue
        ratio = evaluate(coefficients, speed) / speed
        if not low_ratio <= ratio <= high_ratio:
            return False
    return True
