"""Speed calibration records — samples and the two model variants."""

from __future__ import annotations

from dataclasses import dataclass, field

from workout_engine.models.enums import CalibrationMode

# c0..c3 for the identity polynomial y = x
IDENTITY_POLYNOMIAL = (0.0, 1.0, 0.0, 0.0)


@dataclass(frozen=True)
class CalibrationSample:
    """A raw treadmill speed paired with a trusted reference speed (foot pod)."""

    raw_speed_kph: float
    reference_speed_kph: float
    run_id: int


@dataclass(frozen=True)
class LinearCalibration:
    """User-set linear model: ``adjusted = a * raw + b``."""

    a: float = 1.0
    b: float = 0.0


@dataclass(frozen=True)
class PolynomialCalibration:
    """Auto-fitted model: ``adjusted = c0 + c1*x + c2*x² + c3*x³``.

    Attributes:
        coefficients: Always four entries (c0..c3); unused powers are 0.
        degree: Fitted degree (1-3).
        domain_min_kph: Lowest raw speed seen by the fit.
        domain_max_kph: Highest raw speed seen by the fit.
        r_squared: Goodness of fit on the training samples.
        sample_count: Number of samples used.
    """

    coefficients: tuple[float, ...] = IDENTITY_POLYNOMIAL
    degree: int = 1
    domain_min_kph: float | None = None
    domain_max_kph: float | None = None
    r_squared: float = 0.0
    sample_count: int = 0


@dataclass(frozen=True)
class CalibrationSnapshot:
    """Both models plus the active mode, replaced as a whole on every change."""

    mode: CalibrationMode = CalibrationMode.LINEAR
    linear: LinearCalibration = field(default_factory=LinearCalibration)
    polynomial: PolynomialCalibration = field(default_factory=PolynomialCalibration)
