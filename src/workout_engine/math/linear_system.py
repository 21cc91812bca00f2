"""Gaussian elimination with partial pivoting for small dense systems."""

from __future__ import annotations

import numpy as np

# Pivots smaller than this mark the system as singular
_SINGULAR_PIVOT = 1e-12


def solve_linear_system(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``a @ x = b`` for x.

    Intended for the at most 4×4 normal equations of a calibration fit. Rows
    are swapped so the largest remaining pivot is used at every column.

    Args:
        a: Square coefficient matrix.
        b: Right-hand side vector.

    Returns:
        The solution vector.

    Raises:
        ValueError: If the shapes do not match.
        numpy.linalg.LinAlgError: If the matrix is singular.
    """
    m = np.array(a, dtype=float)
    rhs = np.array(b, dtype=float)
    n = m.shape[0]
    if m.shape != (n, n) or rhs.shape != (n,):
        raise ValueError(f"Expected an n×n matrix and length-n vector, got {m.shape} and {rhs.shape}")

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(m[col:, col])))
        if abs(m[pivot_row, col]) < _SINGULAR_PIVOT:
            raise np.linalg.LinAlgError(f"Singular matrix at column {col}")
        if pivot_row != col:
            m[[col, pivot_row]] = m[[pivot_row, col]]
            rhs[[col, pivot_row]] = rhs[[pivot_row, col]]

        for row in range(col + 1, n):
            factor = m[row, col] / m[col, col]
            m[row, col:] -= factor * m[col, col:]
            rhs[row] -= factor * rhs[col]

    x = np.zeros(n)
    for row in range(n - 1, -1, -1):
        x[row] = (rhs[row] - m[row, row + 1:] @ x[row + 1:]) / m[row, row]
    return x
