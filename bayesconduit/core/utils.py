"""Numerical utilities shared by the estimators and samplers.

Provides stable log-sum-exp, Gaussian log densities, log-weight
normalization, effective sample size and the resampling schemes used by
sequential Monte Carlo.

References:
    Douc, R., & Cappe, O. (2005). Comparison of resampling schemes for
    particle filtering. ISPA 2005.
"""

from typing import Callable, Dict, Optional, Tuple

import numpy as np


def logsumexp(a: np.ndarray, axis: Optional[int] = None) -> np.ndarray:
    """Compute log(sum(exp(a))) without overflow.

    Entries equal to ``-inf`` contribute nothing; an input that is entirely
    ``-inf`` (or empty) yields ``-inf``.

    Args:
        a: Input array of log-values.
        axis: Axis along which to reduce. If None, flattens the array.

    Returns:
        Log-sum-exp result with ``axis`` removed.

    Examples:
        >>> float(logsumexp(np.array([0.0, 0.0])))
        0.6931471805599453
        >>> float(logsumexp(np.array([-np.inf, -np.inf])))
        -inf
    """
    a = np.asarray(a, dtype=float)
    if axis is None:
        a = a.ravel()
        if a.size == 0:
            return np.array(-np.inf)
        a_max = np.max(a)
        if not np.isfinite(a_max):
            return np.array(a_max)
        return a_max + np.log(np.sum(np.exp(a - a_max)))

    a_max = np.max(a, axis=axis, keepdims=True)
    # Rows that are entirely -inf would produce nan from (-inf) - (-inf)
    a_max = np.where(np.isfinite(a_max), a_max, 0.0)
    with np.errstate(divide="ignore"):
        result = a_max + np.log(np.sum(np.exp(a - a_max), axis=axis, keepdims=True))
    return np.squeeze(result, axis=axis)


def log_normal_pdf(x: np.ndarray, mean: np.ndarray, cov: np.ndarray) -> float:
    """Compute the log multivariate normal density.

    Uses a Cholesky factorization for numerical stability.

    Args:
        x: Observation vector, shape (d,).
        mean: Mean vector, shape (d,).
        cov: Covariance matrix, shape (d, d). Must be positive definite.

    Returns:
        Log density (scalar).

    Raises:
        ValueError: If shapes are incompatible or cov is not positive definite.

    Examples:
        >>> log_normal_pdf(np.array([0.0]), np.array([0.0]), np.array([[1.0]]))
        -0.9189385332046727
    """
    x = np.atleast_1d(np.asarray(x, dtype=float))
    mean = np.atleast_1d(np.asarray(mean, dtype=float))
    cov = np.atleast_2d(np.asarray(cov, dtype=float))

    if x.shape != mean.shape:
        raise ValueError(f"x shape {x.shape} != mean shape {mean.shape}")
    if cov.shape != (len(mean), len(mean)):
        raise ValueError(f"cov shape {cov.shape} incompatible with mean shape {mean.shape}")

    d = len(mean)
    diff = x - mean

    try:
        L = np.linalg.cholesky(cov)
    except np.linalg.LinAlgError:
        raise ValueError("Covariance matrix is not positive definite")

    y = np.linalg.solve(L, diff)
    log_det = np.sum(np.log(np.diag(L)))

    return float(-0.5 * d * np.log(2 * np.pi) - log_det - 0.5 * np.dot(y, y))


def normalize_log_weights(log_w: np.ndarray) -> Tuple[np.ndarray, float]:
    """Normalize log-weights and return normalized weights + log-evidence.

    Computes ``w = exp(log_w - logsumexp(log_w))``.

    Args:
        log_w: Log-weights, shape (N,).

    Returns:
        Tuple of (normalized_weights, log_evidence).

    Raises:
        ValueError: If every weight is zero (all log-weights are ``-inf``).

    Examples:
        >>> w, log_z = normalize_log_weights(np.array([-1.0, -2.0, -3.0]))
        >>> np.allclose(np.sum(w), 1.0)
        True
    """
    log_w = np.asarray(log_w, dtype=float)
    log_z = float(logsumexp(log_w))
    if not np.isfinite(log_z):
        raise ValueError("Cannot normalize weights: every weight is zero.")
    w = np.exp(log_w - log_z)
    return w, log_z


def effective_sample_size(weights: np.ndarray) -> float:
    """Compute the effective sample size ``(sum w)^2 / sum w^2``.

    Weights need not be normalized. ESS equals N for uniform weights and 1
    when a single particle carries all the mass. All-zero weights give 0.

    Examples:
        >>> effective_sample_size(np.ones(4))
        4.0
    """
    weights = np.asarray(weights, dtype=float)
    total = np.sum(weights)
    if total <= 0.0:
        return 0.0
    weights = weights / total
    return float(1.0 / np.sum(weights**2))


def _cumulative(weights: np.ndarray) -> np.ndarray:
    weights = np.asarray(weights, dtype=float)
    cumsum = np.cumsum(weights / np.sum(weights))
    cumsum[-1] = 1.0
    return cumsum


def multinomial_resample(
    weights: np.ndarray, rng: np.random.Generator, n_samples: Optional[int] = None
) -> np.ndarray:
    """Draw indices i.i.d. from the categorical distribution given by ``weights``.

    Args:
        weights: Non-negative weights, shape (N,). Need not be normalized.
        rng: Random number generator.
        n_samples: Number of indices to draw (default: N).

    Returns:
        Array of indices, shape (n_samples,).
    """
    n = len(weights)
    n_samples = n if n_samples is None else n_samples
    indices = np.searchsorted(_cumulative(weights), rng.random(n_samples), side="right")
    return np.clip(indices, 0, n - 1)


def systematic_resample(
    weights: np.ndarray, rng: np.random.Generator, n_samples: Optional[int] = None
) -> np.ndarray:
    """Systematic resampling: a single uniform offset, then regular spacing.

    Deterministic given the RNG state. Each index appears either
    ``floor(n w_i)`` or ``ceil(n w_i)`` times.

    Examples:
        >>> rng = np.random.default_rng(0)
        >>> indices = systematic_resample(np.array([0.5, 0.3, 0.2]), rng)
        >>> len(indices)
        3
    """
    n = len(weights)
    n_samples = n if n_samples is None else n_samples
    positions = (rng.random() + np.arange(n_samples)) / n_samples
    indices = np.searchsorted(_cumulative(weights), positions, side="left")
    return np.clip(indices, 0, n - 1)


def residual_resample(
    weights: np.ndarray, rng: np.random.Generator, n_samples: Optional[int] = None
) -> np.ndarray:
    """Residual resampling.

    Copies ``floor(n w_i)`` of each particle deterministically, then fills
    the remainder by multinomial draws on the residual weights.
    """
    weights = np.asarray(weights, dtype=float)
    weights = weights / np.sum(weights)
    n = len(weights)
    n_samples = n if n_samples is None else n_samples

    counts = np.floor(n_samples * weights).astype(int)
    indices = np.repeat(np.arange(n), counts)

    n_residual = n_samples - len(indices)
    if n_residual > 0:
        residual = n_samples * weights - counts
        indices = np.concatenate([indices, multinomial_resample(residual, rng, n_residual)])
    return indices


RESAMPLERS: Dict[str, Callable[..., np.ndarray]] = {
    "multinomial": multinomial_resample,
    "systematic": systematic_resample,
    "residual": residual_resample,
}


def get_resampler(name: str) -> Callable[..., np.ndarray]:
    """Look up a resampling scheme by name.

    Raises:
        ValueError: If ``name`` is not one of ``RESAMPLERS``.
    """
    try:
        return RESAMPLERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown resample method {name!r}; expected one of {sorted(RESAMPLERS)}"
        ) from None


def sample_log_categorical(log_weights: np.ndarray, rng: np.random.Generator) -> int:
    """Draw one index with probability proportional to ``exp(log_weights)``."""
    weights, _ = normalize_log_weights(log_weights)
    return int(min(np.searchsorted(np.cumsum(weights), rng.random(), side="right"), len(weights) - 1))


def ensure_1d(x: np.ndarray) -> np.ndarray:
    """Return ``x`` as a 1D float array, promoting scalars.

    Raises:
        ValueError: If ``x`` has more than one dimension.
    """
    x = np.asarray(x, dtype=float)
    if x.ndim == 0:
        return x.reshape(1)
    if x.ndim > 1:
        raise ValueError(f"Expected 1D array, got shape {x.shape}")
    return x
