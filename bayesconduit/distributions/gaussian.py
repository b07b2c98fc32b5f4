"""Multivariate Gaussian belief used by the Kalman family of filters."""

from __future__ import annotations

import copy
from typing import Optional

import numpy as np

from bayesconduit.core.utils import ensure_1d


class MultivariateGaussian:
    """
    Mutable multivariate normal distribution N(mean, covariance).

    Parameters
    ----------
    mean:
        Mean vector, shape (d,). Scalars are promoted to shape (1,).
    covariance:
        Covariance matrix, shape (d, d). Defaults to the identity.

    Raises
    ------
    ValueError
        If the covariance is not square, does not match the mean, or is
        not symmetric.
    """

    def __init__(self, mean=None, covariance=None) -> None:
        if mean is None:
            mean = np.zeros(1) if covariance is None else np.zeros(np.atleast_2d(covariance).shape[0])
        self._mean = ensure_1d(mean).copy()
        if covariance is None:
            covariance = np.eye(len(self._mean))
        self._covariance = self._check_covariance(covariance, len(self._mean))

    @staticmethod
    def _check_covariance(covariance, dim: int) -> np.ndarray:
        covariance = np.atleast_2d(np.asarray(covariance, dtype=float)).copy()
        if covariance.ndim != 2 or covariance.shape[0] != covariance.shape[1]:
            raise ValueError(f"Covariance must be square, got shape {covariance.shape}")
        if covariance.shape[0] != dim:
            raise ValueError(
                f"Covariance shape {covariance.shape} does not match mean dimension {dim}"
            )
        if not np.allclose(covariance, covariance.T, atol=1e-8):
            raise ValueError("Covariance must be symmetric")
        return covariance

    @property
    def dimensionality(self) -> int:
        return len(self._mean)

    @property
    def mean(self) -> np.ndarray:
        return self._mean

    @mean.setter
    def mean(self, value) -> None:
        value = ensure_1d(value).copy()
        if value.shape != self._mean.shape:
            raise ValueError(f"Mean must have shape {self._mean.shape}, got {value.shape}")
        self._mean = value

    @property
    def covariance(self) -> np.ndarray:
        return self._covariance

    @covariance.setter
    def covariance(self, value) -> None:
        self._covariance = self._check_covariance(value, self.dimensionality)

    @property
    def covariance_inverse(self) -> np.ndarray:
        return np.linalg.inv(self._covariance)

    def log_determinant(self) -> float:
        """Return log|covariance|."""
        sign, logdet = np.linalg.slogdet(self._covariance)
        if sign <= 0:
            return -np.inf
        return float(logdet)

    def logpdf(self, x) -> np.ndarray | float:
        """
        Log density at ``x``.

        Parameters
        ----------
        x:
            A single point, shape (d,), or a batch, shape (n, d). For d == 1
            a 1D array of length n is read as n scalar points.

        Returns
        -------
        float or np.ndarray
            Scalar for a single point, shape (n,) for a batch.

        Raises
        ------
        ValueError
            If the covariance is not positive definite.
        """
        x = np.asarray(x, dtype=float)
        d = self.dimensionality
        single = x.ndim == 0 or (x.ndim == 1 and (d > 1 or x.shape[0] == 1))
        points = x.reshape(-1, d)

        try:
            L = np.linalg.cholesky(self._covariance)
        except np.linalg.LinAlgError:
            raise ValueError("Covariance matrix is not positive definite")

        z = np.linalg.solve(L, (points - self._mean).T)
        log_det = np.sum(np.log(np.diag(L)))
        values = -0.5 * d * np.log(2 * np.pi) - log_det - 0.5 * np.sum(z * z, axis=0)
        return float(values[0]) if single else values

    def pdf(self, x) -> np.ndarray | float:
        return np.exp(self.logpdf(x))

    def sample(self, rng: np.random.Generator, n: Optional[int] = None) -> np.ndarray:
        """Draw one vector (shape (d,)) or ``n`` vectors (shape (n, d))."""
        return rng.multivariate_normal(self._mean, self._covariance, size=n)

    def clone(self) -> "MultivariateGaussian":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"MultivariateGaussian(mean={self._mean!r}, covariance={self._covariance!r})"
