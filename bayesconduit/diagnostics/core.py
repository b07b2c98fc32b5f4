"""Invariant checks run by estimators while debug mode is enabled."""

from __future__ import annotations

import numpy as np


def is_symmetric(matrix: np.ndarray, atol: float = 1e-8) -> bool:
    """
    Check whether a square matrix equals its transpose within a tolerance.

    Parameters
    ----------
    matrix:
        Array of shape (d, d).
    atol:
        Absolute tolerance on each entry of ``matrix - matrix.T``.

    Returns
    -------
    bool
        False for non-square input.
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        return False
    return bool(np.allclose(matrix, matrix.T, atol=atol, rtol=0.0))


def assert_symmetric_psd(matrix: np.ndarray, atol: float = 1e-8) -> None:
    """
    Assert that a covariance matrix is symmetric positive semi-definite.

    Parameters
    ----------
    matrix:
        Array of shape (d, d).
    atol:
        Tolerance for the symmetry check and for negative eigenvalues.

    Raises
    ------
    ValueError
        If the matrix is non-finite, not symmetric, or has an eigenvalue
        below ``-atol``.
    """
    matrix = np.asarray(matrix, dtype=float)
    if not np.all(np.isfinite(matrix)):
        raise ValueError("Covariance contains non-finite values.")
    if not is_symmetric(matrix, atol=atol):
        raise ValueError(f"Covariance is not symmetric within tolerance {atol}.")

    min_eig = float(np.min(np.linalg.eigvalsh(matrix)))
    if min_eig < -atol:
        raise ValueError(
            f"Covariance is not positive semi-definite (min eigenvalue {min_eig:.3e})."
        )


def assert_normalized_weights(weights: np.ndarray, atol: float = 1e-8) -> None:
    """
    Assert that weights are finite, non-negative and sum to one.

    Raises
    ------
    ValueError
        If any condition is violated.
    """
    weights = np.asarray(weights, dtype=float)
    if not np.all(np.isfinite(weights)):
        raise ValueError("Weights contain non-finite values.")
    if np.any(weights < 0.0):
        raise ValueError("Weights contain negative entries.")
    total = float(np.sum(weights))
    if abs(total - 1.0) > atol:
        raise ValueError(f"Weights sum to {total}, expected 1 within tolerance {atol}.")


def assert_envelope_bounds(
    lower: np.ndarray,
    log_values: np.ndarray,
    upper: np.ndarray,
    atol: float = 1e-8,
) -> None:
    """
    Assert ``lower <= log_values <= upper`` elementwise.

    Used to verify that an adaptive rejection envelope still sandwiches the
    target log density at the points where it has been evaluated.

    Raises
    ------
    ValueError
        If any point violates the sandwich.
    """
    lower = np.asarray(lower, dtype=float)
    log_values = np.asarray(log_values, dtype=float)
    upper = np.asarray(upper, dtype=float)

    if np.any(lower > log_values + atol):
        raise ValueError("Lower envelope exceeds the log density.")
    if np.any(upper < log_values - atol):
        raise ValueError("Upper envelope lies below the log density.")
