"""Tests for Gaussian elimination with partial pivoting."""

from __future__ import annotations

import numpy as np
import pytest

from workout_engine.math.linear_system import solve_linear_system


class TestSolveLinearSystem:
    def test_matches_numpy(self) -> None:
        a = np.array([
            [4.0, 1.0, 2.0, 0.5],
            [1.0, 5.0, 0.3, 1.0],
            [2.0, 0.3, 6.0, 0.2],
            [0.5, 1.0, 0.2, 3.0],
        ])
        b = np.array([1.0, 2.0, 3.0, 4.0])
        np.testing.assert_allclose(solve_linear_system(a, b), np.linalg.solve(a, b), rtol=1e-10)

    def test_requires_pivoting(self) -> None:
        """A zero in the first pivot position only works with row swaps."""
        a = np.array([[0.0, 2.0], [3.0, 1.0]])
        b = np.array([4.0, 5.0])
        np.testing.assert_allclose(solve_linear_system(a, b), [1.0, 2.0])

    def test_inputs_not_modified(self) -> None:
        a = np.array([[0.0, 2.0], [3.0, 1.0]])
        b = np.array([4.0, 5.0])
        solve_linear_system(a, b)
        np.testing.assert_array_equal(a, [[0.0, 2.0], [3.0, 1.0]])

    def test_singular_raises(self) -> None:
        a = np.array([[1.0, 2.0], [2.0, 4.0]])
        with pytest.raises(np.linalg.LinAlgError):
            solve_linear_system(a, np.array([1.0, 2.0]))

    def test_shape_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="n×n"):
            solve_linear_system(np.ones((2, 3)), np.ones(2))
