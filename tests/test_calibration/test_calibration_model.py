"""Tests for raw ↔ adjusted speed conversion."""

from __future__ import annotations

import math
import threading

import pytest

from workout_engine.calibration.model import SpeedCalibrator
from workout_engine.models.calibration import (
    IDENTITY_POLYNOMIAL,
    CalibrationSnapshot,
    PolynomialCalibration,
)
from workout_engine.models.enums import CalibrationMode

_CURVE = PolynomialCalibration(
    coefficients=(0.3, 0.95, 0.002, 0.0001),
    degree=3,
    domain_min_kph=4.0,
    domain_max_kph=20.0,
    r_squared=0.99,
    sample_count=120,
)


@pytest.fixture
def polynomial_calibrator() -> SpeedCalibrator:
    calibrator = SpeedCalibrator()
    calibrator.publish_polynomial(_CURVE)
    calibrator.set_mode(CalibrationMode.POLYNOMIAL)
    return calibrator


class TestIdentity:
    def test_default_linear_is_identity(self) -> None:
        calibrator = SpeedCalibrator()
        assert calibrator.mode == CalibrationMode.LINEAR
        for x in (0.0, 4.2, 12.0, 19.9):
            assert calibrator.raw_to_adjusted(x) == x
            assert calibrator.adjusted_to_raw(x) == x

    def test_default_polynomial_is_identity(self) -> None:
        calibrator = SpeedCalibrator()
        calibrator.set_mode(CalibrationMode.POLYNOMIAL)
        assert calibrator.snapshot().polynomial.coefficients == IDENTITY_POLYNOMIAL
        for x in (1.6, 8.0, 15.5):
            assert calibrator.raw_to_adjusted(x) == pytest.approx(x)
            assert calibrator.adjusted_to_raw(x) == pytest.approx(x)


class TestLinear:
    def test_conversion(self) -> None:
        calibrator = SpeedCalibrator()
        calibrator.set_linear(1.05, -0.2)
        assert calibrator.raw_to_adjusted(10.0) == pytest.approx(10.3)
        assert calibrator.adjusted_to_raw(10.3) == pytest.approx(10.0)

    @pytest.mark.parametrize("x", [2.0, 7.5, 12.0, 18.0])
    def test_round_trip(self, x: float) -> None:
        calibrator = SpeedCalibrator()
        calibrator.set_linear(0.97, 0.35)
        assert calibrator.adjusted_to_raw(calibrator.raw_to_adjusted(x)) == pytest.approx(x, abs=1e-9)

    def test_zero_slope_rejected(self) -> None:
        calibrator = SpeedCalibrator()
        with pytest.raises(ValueError, match="non-zero"):
            calibrator.set_linear(0.0, 1.0)
        assert calibrator.snapshot().linear.a == 1.0

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(ValueError, match="finite"):
            SpeedCalibrator().set_linear(math.nan, 0.0)


class TestPolynomial:
    @pytest.mark.parametrize("x", [4.0, 6.5, 10.0, 14.2, 20.0])
    def test_round_trip(self, polynomial_calibrator: SpeedCalibrator, x: float) -> None:
        adjusted = polynomial_calibrator.raw_to_adjusted(x)
        assert polynomial_calibrator.adjusted_to_raw(adjusted) == pytest.approx(x, abs=1e-5)

    def test_linear_model_kept_while_polynomial_active(self, polynomial_calibrator: SpeedCalibrator) -> None:
        polynomial_calibrator.set_linear(1.1, 0.0)
        assert polynomial_calibrator.raw_to_adjusted(10.0) != pytest.approx(11.0)
        polynomial_calibrator.set_mode(CalibrationMode.LINEAR)
        assert polynomial_calibrator.raw_to_adjusted(10.0) == pytest.approx(11.0)

    def test_polynomial_fitted_but_inactive(self) -> None:
        calibrator = SpeedCalibrator()
        calibrator.publish_polynomial(_CURVE)
        assert calibrator.raw_to_adjusted(10.0) == 10.0

    def test_non_finite_input(self, polynomial_calibrator: SpeedCalibrator) -> None:
        assert polynomial_calibrator.adjusted_to_raw(math.nan) == 0.0
        assert polynomial_calibrator.raw_to_adjusted(math.inf) == 0.0


class TestAtomicPublish:
    def test_snapshot_replaced_not_mutated(self, polynomial_calibrator: SpeedCalibrator) -> None:
        before = polynomial_calibrator.snapshot()
        polynomial_calibrator.publish_polynomial(PolynomialCalibration())
        assert before.polynomial == _CURVE
        assert polynomial_calibrator.snapshot() is not before

    def test_readers_never_see_mixed_models(self) -> None:
        """Concurrent publishes: every snapshot read is one of the published ones."""
        first = PolynomialCalibration(coefficients=(0.0, 1.0, 0.0, 0.0), degree=1)
        second = PolynomialCalibration(coefficients=(0.5, 1.02, 0.0, 0.0), degree=1)
        calibrator = SpeedCalibrator(CalibrationSnapshot(polynomial=first))
        stop = threading.Event()

        def writer() -> None:
            while not stop.is_set():
                calibrator.publish_polynomial(second)
                calibrator.publish_polynomial(first)

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            for _ in range(2000):
                assert calibrator.snapshot().polynomial in (first, second)
        finally:
            stop.set()
            thread.join()
