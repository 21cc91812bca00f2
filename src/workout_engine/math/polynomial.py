"""Cubic-or-lower polynomial helpers for speed calibration.

Coefficients are stored lowest power first: ``(c0, c1, c2, c3)`` means
``c0 + c1*x + c2*x² + c3*x³``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from workout_engine.models.enums import (
    INVERSION_MAX_ITERATIONS,
    INVERSION_MIN_DERIVATIVE,
    INVERSION_TOLERANCE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InversionResult:
    """Outcome of solving ``f(x) = target`` for x.

    Attributes:
        value: The raw-domain solution (never NaN, never negative).
        iterations: Newton–Raphson iterations used (0 for closed form).
        converged: False when the linear fallback produced ``value``.
    """

    value: float
    iterations: int
    converged: bool


def evaluate(coefficients: Sequence[float], x: float) -> float:
    """Evaluate the polynomial at x with Horner's method."""
    result = 0.0
    for c in reversed(coefficients):
        result = result * x + c
    return result


def derivative_coefficients(coefficients: Sequence[float]) -> tuple[float, ...]:
    """Coefficients of f'(x), lowest power first."""
    return tuple(i * c for i, c in enumerate(coefficients) if i > 0)


def evaluate_derivative(coefficients: Sequence[float], x: float) -> float:
    return evaluate(derivative_coefficients(coefficients), x)


def is_monotonic_non_decreasing(
    coefficients: Sequence[float],
    x_min: float,
    x_max: float,
) -> bool:
    """Whether f'(x) ≥ 0 everywhere on ``[x_min, x_max]``.

    For a cubic the derivative is a quadratic whose minimum on an interval is
    at an endpoint or at its vertex, so checking those points is exact.
    """
    deriv = derivative_coefficients(coefficients)
    candidates = [x_min, x_max]
    # Vertex of the quadratic derivative: d/dx (c1 + 2c2x + 3c3x²) = 0
    if len(deriv) >= 3 and deriv[2] != 0.0:
        vertex = -deriv[1] / (2.0 * deriv[2])
        if x_min < vertex < x_max:
            candidates.append(vertex)
    return all(evaluate(deriv, x) >= 0.0 for x in candidates)


def denormalize(
    scaled_coefficients: Sequence[float],
    mean: float,
    std: float,
) -> tuple[float, ...]:
    """Convert coefficients fitted on ``z = (x - mean) / std`` back to x.

    Expands each ``a_k * ((x - mean) / std)^k`` with the binomial theorem.
    """
    degree = len(scaled_coefficients) - 1
    result = [0.0] * (degree + 1)
    for k, a_k in enumerate(scaled_coefficients):
        scale = a_k / std ** k
        for j in range(k + 1):
            result[j] += scale * math.comb(k, j) * (-mean) ** (k - j)
    return tuple(result)


def pad_coefficients(coefficients: Sequence[float], length: int = 4) -> tuple[float, ...]:
    """Pad with zeros to ``length`` entries (c0..c3 by default)."""
    padded = list(coefficients) + [0.0] * (length - len(coefficients))
    return tuple(float(c) for c in padded[:length])


def invert_polynomial(
    coefficients: Sequence[float],
    target: float,
    domain_min: float | None = None,
    domain_max: float | None = None,
    max_iterations: int = INVERSION_MAX_ITERATIONS,
    tolerance: float = INVERSION_TOLERANCE,
) -> InversionResult:
    """Solve ``f(x) = target`` for x on the fitted, increasing branch of f.

    Degree 0/1 polynomials are inverted in closed form. Higher degrees use
    Newton–Raphson starting at ``target`` clamped into the fitted domain
    (calibrations are near-identity). A root is only accepted when it is
    non-negative and f is non-decreasing from the domain through it.

    Targets beyond ``f(domain_min)`` / ``f(domain_max)`` are not solved: the
    polynomial is unconstrained there, so they are extrapolated linearly from
    the nearest domain end. When Newton–Raphson stalls, hits the iteration
    cap or lands on another branch, the result is interpolated along the
    domain secant instead. Both estimates are non-decreasing in ``target``.

    Args:
        coefficients: c0..c3.
        target: Adjusted speed to invert.
        domain_min: Lowest raw speed of the fitted domain, if known.
        domain_max: Highest raw speed of the fitted domain, if known.
        max_iterations: Newton–Raphson cap.
        tolerance: Absolute tolerance on ``|f(x) - target|``.

    Returns:
        InversionResult; ``value`` is finite and ≥ 0.
    """
    if not math.isfinite(target):
        logger.warning("Cannot invert non-finite target %r; returning 0.0", target)
        return InversionResult(0.0, 0, False)

    degree = _effective_degree(coefficients)
    if degree <= 1:
        c0 = coefficients[0] if coefficients else 0.0
        c1 = coefficients[1] if len(coefficients) > 1 else 0.0
        if abs(c1) < INVERSION_MIN_DERIVATIVE:
            return _fallback(coefficients, target, domain_min, domain_max, 0)
        return InversionResult(max(0.0, (target - c0) / c1), 0, True)

    x = target
    if _has_domain(domain_min, domain_max):
        low_value = evaluate(coefficients, domain_min)
        high_value = evaluate(coefficients, domain_max)
        if target > high_value or target < low_value:
            value = max(0.0, _linear_estimate(coefficients, target, domain_min, domain_max))
            logger.debug(
                "Target %.3f is outside the fitted range %.3f-%.3f; extrapolated to %.3f",
                target, low_value, high_value, value,
            )
            return InversionResult(value, 0, False)
        x = max(domain_min, min(domain_max, target))

    for iteration in range(1, max_iterations + 1):
        residual = evaluate(coefficients, x) - target
        if abs(residual) < tolerance:
            if _on_fitted_branch(coefficients, x, domain_min, domain_max):
                return InversionResult(x, iteration - 1, True)
            return _fallback(coefficients, target, domain_min, domain_max, iteration)
        slope = evaluate_derivative(coefficients, x)
        if abs(slope) < INVERSION_MIN_DERIVATIVE:
            return _fallback(coefficients, target, domain_min, domain_max, iteration)
        x -= residual / slope
        if not math.isfinite(x):
            return _fallback(coefficients, target, domain_min, domain_max, iteration)

    if (
        abs(evaluate(coefficients, x) - target) < tolerance
        and _on_fitted_branch(coefficients, x, domain_min, domain_max)
    ):
        return InversionResult(x, max_iterations, True)
    return _fallback(coefficients, target, domain_min, domain_max, max_iterations)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _effective_degree(coefficients: Sequence[float]) -> int:
    for power in range(len(coefficients) - 1, 0, -1):
        if coefficients[power] != 0.0:
            return power
    return 0


def _has_domain(domain_min: float | None, domain_max: float | None) -> bool:
    return domain_min is not None and domain_max is not None and domain_max > domain_min


def _on_fitted_branch(
    coefficients: Sequence[float],
    x: float,
    domain_min: float | None,
    domain_max: float | None,
) -> bool:
    """Whether root ``x`` lies on the increasing branch that contains the domain."""
    if x < 0.0 or evaluate_derivative(coefficients, x) < INVERSION_MIN_DERIVATIVE:
        return False
    if not _has_domain(domain_min, domain_max):
        return True
    return is_monotonic_non_decreasing(coefficients, min(x, domain_min), max(x, domain_max))


def _valid_slope(slope: float | None) -> float | None:
    if slope is None or not math.isfinite(slope) or slope < INVERSION_MIN_DERIVATIVE:
        return None
    return slope


def _linear_estimate(
    coefficients: Sequence[float],
    target: float,
    domain_min: float | None,
    domain_max: float | None,
) -> float:
    """``x = x0 + (target - f(x0)) / slope`` around the domain end nearest the target.

    Above ``f(domain_max)`` the anchor is ``domain_max``, below ``f(domain_min)``
    it is ``domain_min``, each with its own derivative. Between the two the
    estimate follows the domain secant. Without a domain the anchor is the
    target itself.
    """
    secant = _valid_slope(_domain_secant(coefficients, domain_min, domain_max))
    if _has_domain(domain_min, domain_max):
        if target >= evaluate(coefficients, domain_max):
            anchor = domain_max
            slope = _valid_slope(evaluate_derivative(coefficients, anchor)) or secant
        elif target <= evaluate(coefficients, domain_min):
            anchor = domain_min
            slope = _valid_slope(evaluate_derivative(coefficients, anchor)) or secant
        else:
            anchor = domain_min
            slope = secant
    else:
        anchor = max(0.0, target)
        slope = _valid_slope(evaluate_derivative(coefficients, anchor))

    value = anchor + (target - evaluate(coefficients, anchor)) / (slope or 1.0)
    return value if math.isfinite(value) else target


def _fallback(
    coefficients: Sequence[float],
    target: float,
    domain_min: float | None,
    domain_max: float | None,
    iterations: int,
) -> InversionResult:
    value = max(0.0, _linear_estimate(coefficients, target, domain_min, domain_max))
    logger.warning(
        "Polynomial inversion did not converge for %.3f after %d iterations; "
        "linear fallback gives %.3f",
        target, iterations, value,
    )
    return InversionResult(value, iterations, False)


def _domain_secant(
    coefficients: Sequence[float],
    domain_min: float | None,
    domain_max: float | None,
) -> float | None:
    if not _has_domain(domain_min, domain_max):
        return None
    rise = evaluate(coefficients, domain_max) - evaluate(coefficients, domain_min)
    return rise / (domain_max - domain_min)
