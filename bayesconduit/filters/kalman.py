"""Kalman filter for linear-Gaussian dynamical systems.

State-space model:
    x_t = A x_{t-1} + B u_t + w_t    w_t ~ N(0, Q)
    y_t = C x_t + v_t                v_t ~ N(0, R)

References:
    - Durbin & Koopman (2012): Time Series Analysis by State Space Methods
    - Bishop (2006): Pattern Recognition and Machine Learning, section 13.3
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from bayesconduit.core.utils import ensure_1d
from bayesconduit.diagnostics.core import assert_symmetric_psd
from bayesconduit.diagnostics.debug_mode import is_debug_enabled
from bayesconduit.distributions.gaussian import MultivariateGaussian
from bayesconduit.filters.base import RecursiveBayesianEstimator
from bayesconduit.logging import get_logger

logger = get_logger(__name__)

_LOG_2PI = np.log(2.0 * np.pi)


@dataclass
class LinearDynamicalSystem:
    """Matrices of a linear dynamical system.

    Attributes:
        A: State transition matrix, shape (n_state, n_state).
        B: Input matrix, shape (n_state, n_input).
        C: Observation matrix, shape (n_obs, n_state).
    """

    A: np.ndarray
    B: np.ndarray
    C: np.ndarray

    def __post_init__(self) -> None:
        """Validate system dimensions."""
        self.A = np.atleast_2d(np.asarray(self.A, dtype=float))
        self.B = np.atleast_2d(np.asarray(self.B, dtype=float))
        self.C = np.atleast_2d(np.asarray(self.C, dtype=float))
        n_state = self.A.shape[0]

        if self.A.shape != (n_state, n_state):
            raise ValueError(f"A must be square, got shape {self.A.shape}")
        if self.B.shape[0] != n_state:
            raise ValueError(f"B must have n_state={n_state} rows, got shape {self.B.shape}")
        if self.C.shape[1] != n_state:
            raise ValueError(
                f"C must have n_state={n_state} columns, got shape {self.C.shape}"
            )

    @classmethod
    def identity(cls, dim: int = 1) -> "LinearDynamicalSystem":
        """Random-walk system: A = C = I, B = 0 with a single input."""
        return cls(A=np.eye(dim), B=np.zeros((dim, 1)), C=np.eye(dim))

    @property
    def state_dimensionality(self) -> int:
        return self.A.shape[0]

    @property
    def input_dimensionality(self) -> int:
        return self.B.shape[1]

    @property
    def output_dimensionality(self) -> int:
        return self.C.shape[0]


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """Return the symmetric part of ``matrix``."""
    return 0.5 * (matrix + matrix.T)


def gaussian_measurement_update(
    belief: MultivariateGaussian,
    innovation: np.ndarray,
    C: np.ndarray,
    measurement_covariance: np.ndarray,
) -> float:
    """Apply the Kalman measurement equations to ``belief`` in place.

    Shared by the linear and extended filters, which differ only in how
    the innovation and the observation Jacobian ``C`` are obtained.

    Returns:
        Log density of the innovation under N(0, S).

    Raises:
        ValueError: If the innovation covariance S is not positive definite.
    """
    P = belief.covariance
    S = symmetrize(C @ P @ C.T + measurement_covariance)

    try:
        L = np.linalg.cholesky(S)
    except np.linalg.LinAlgError:
        raise ValueError("Innovation covariance is not positive definite")

    # K = P C^T S^{-1}, solved rather than inverted
    K = np.linalg.solve(S, C @ P).T

    belief.mean = belief.mean + K @ innovation
    I = np.eye(len(belief.mean))
    belief.covariance = symmetrize((I - K @ C) @ P)

    z = np.linalg.solve(L, innovation)
    return float(
        -0.5 * len(innovation) * _LOG_2PI - np.sum(np.log(np.diag(L))) - 0.5 * np.dot(z, z)
    )


class KalmanFilter(RecursiveBayesianEstimator):
    """
    Optimal recursive estimator for a linear dynamical system with Gaussian noise.

    Args:
        model: The dynamical system. Defaults to the 1-d identity system.
        model_covariance: Process noise Q, shape (n_state, n_state). Defaults to I.
        measurement_covariance: Measurement noise R, shape (n_obs, n_obs).
            Defaults to I.
        current_input: Control input u applied at every prediction, shape
            (n_input,). Defaults to zeros.
        initial_belief: Prior over the state. Defaults to N(0, I).

    Attributes:
        log_likelihood: Sum of innovation log densities of all measurements
            folded in since the last ``create_initial_belief`` call, so each
            ``learn`` from the prior reports its own total. Continuing from
            a passed-in belief keeps accumulating.

    Raises:
        ValueError: If any matrix does not match the system dimensions.

    Examples:
        >>> kf = KalmanFilter(model_covariance=np.zeros((1, 1)))
        >>> belief = kf.learn([1.0, 1.2, 0.8])
        >>> belief.mean.shape
        (1,)
    """

    def __init__(
        self,
        model: Optional[LinearDynamicalSystem] = None,
        model_covariance: Any = None,
        measurement_covariance: Any = None,
        current_input: Any = None,
        initial_belief: Optional[MultivariateGaussian] = None,
    ) -> None:
        self.model = model if model is not None else LinearDynamicalSystem.identity()
        n_state = self.model.state_dimensionality
        n_obs = self.model.output_dimensionality

        if model_covariance is None:
            model_covariance = np.eye(n_state)
        if measurement_covariance is None:
            measurement_covariance = np.eye(n_obs)
        self.model_covariance = np.atleast_2d(np.asarray(model_covariance, dtype=float))
        self.measurement_covariance = np.atleast_2d(np.asarray(measurement_covariance, dtype=float))

        if self.model_covariance.shape != (n_state, n_state):
            raise ValueError(
                f"model_covariance must be shape ({n_state}, {n_state}), "
                f"got {self.model_covariance.shape}"
            )
        if self.measurement_covariance.shape != (n_obs, n_obs):
            raise ValueError(
                f"measurement_covariance must be shape ({n_obs}, {n_obs}), "
                f"got {self.measurement_covariance.shape}"
            )

        self.current_input = (
            np.zeros(self.model.input_dimensionality)
            if current_input is None
            else ensure_1d(current_input)
        )
        if self.current_input.shape != (self.model.input_dimensionality,):
            raise ValueError(
                f"current_input must be shape ({self.model.input_dimensionality},), "
                f"got {self.current_input.shape}"
            )

        if initial_belief is None:
            initial_belief = MultivariateGaussian(np.zeros(n_state), np.eye(n_state))
        if initial_belief.dimensionality != n_state:
            raise ValueError(
                f"initial_belief has dimension {initial_belief.dimensionality}, expected {n_state}"
            )
        self.initial_belief = initial_belief
        self.log_likelihood = 0.0

    def create_initial_belief(self) -> MultivariateGaussian:
        """Fresh copy of the prior; also restarts ``log_likelihood`` at zero."""
        self.log_likelihood = 0.0
        return self.initial_belief.clone()

    def predict(self, belief: MultivariateGaussian) -> MultivariateGaussian:
        """Time update: m <- A m + B u, P <- A P A^T + Q."""
        A = self.model.A
        belief.mean = A @ belief.mean + self.model.B @ self.current_input
        belief.covariance = symmetrize(A @ belief.covariance @ A.T + self.model_covariance)
        if is_debug_enabled():
            assert_symmetric_psd(belief.covariance)
        return belief

    def measure(self, belief: MultivariateGaussian, observation: Any) -> MultivariateGaussian:
        """Measurement update with observation y."""
        y = ensure_1d(observation)
        if y.shape != (self.model.output_dimensionality,):
            raise ValueError(
                f"Observation must be shape ({self.model.output_dimensionality},), got {y.shape}"
            )
        innovation = y - self.model.C @ belief.mean
        self.log_likelihood += gaussian_measurement_update(
            belief, innovation, self.model.C, self.measurement_covariance
        )
        if is_debug_enabled():
            assert_symmetric_psd(belief.covariance)
        logger.debug("Kalman update: innovation norm %.4g", float(np.linalg.norm(innovation)))
        return belief

    def update(self, belief: MultivariateGaussian, observation: Any) -> MultivariateGaussian:
        return self.measure(belief, observation)
