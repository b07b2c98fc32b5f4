"""Extended Kalman filter for non-linear dynamical systems.

The motion model f and the observation model h are linearized around the
current mean at every step; the resulting covariances are first-order
approximations.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np
import torch

from bayesconduit.core.evaluator import as_evaluator
from bayesconduit.core.utils import ensure_1d
from bayesconduit.diagnostics.core import assert_symmetric_psd
from bayesconduit.diagnostics.debug_mode import is_debug_enabled
from bayesconduit.distributions.gaussian import MultivariateGaussian
from bayesconduit.filters.base import RecursiveBayesianEstimator
from bayesconduit.filters.jacobian import autograd_jacobian, numerical_jacobian
from bayesconduit.filters.kalman import gaussian_measurement_update, symmetrize
from bayesconduit.logging import get_logger

logger = get_logger(__name__)

JACOBIAN_METHODS = ("numerical", "autograd")


class ExtendedKalmanFilter(RecursiveBayesianEstimator):
    """
    Kalman filter that linearizes non-linear motion and observation models.

    Args:
        motion_model: Evaluator (or callable) mapping state x_{t-1} to the
            predicted state f(x_{t-1}).
        observation_model: Evaluator (or callable) mapping state x_t to the
            expected observation h(x_t).
        model_covariance: Process noise Q, shape (n_state, n_state).
        measurement_covariance: Measurement noise R, shape (n_obs, n_obs).
        initial_belief: Prior over the state. Defaults to N(0, I).
        motion_jacobian: Optional callable x -> df/dx. Overrides
            ``jacobian_method`` for the motion model.
        observation_jacobian: Optional callable x -> dh/dx.
        jacobian_method: ``"numerical"`` (central differences) or
            ``"autograd"`` (torch; the models must accept tensors).

    Attributes:
        log_likelihood: Innovation log-likelihood accumulated since the last
            ``create_initial_belief`` call.

    Raises:
        ValueError: On unknown Jacobian method or mismatched dimensions.
    """

    def __init__(
        self,
        motion_model: Any,
        observation_model: Any,
        model_covariance: Any,
        measurement_covariance: Any,
        initial_belief: Optional[MultivariateGaussian] = None,
        motion_jacobian: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        observation_jacobian: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        jacobian_method: str = "numerical",
    ) -> None:
        if jacobian_method not in JACOBIAN_METHODS:
            raise ValueError(
                f"Unknown jacobian_method {jacobian_method!r}; expected one of {JACOBIAN_METHODS}"
            )
        self.motion_model = as_evaluator(motion_model)
        self.observation_model = as_evaluator(observation_model)
        self.model_covariance = np.atleast_2d(np.asarray(model_covariance, dtype=float))
        self.measurement_covariance = np.atleast_2d(np.asarray(measurement_covariance, dtype=float))
        self.motion_jacobian = motion_jacobian
        self.observation_jacobian = observation_jacobian
        self.jacobian_method = jacobian_method

        n_state = self.model_covariance.shape[0]
        if self.model_covariance.shape != (n_state, n_state):
            raise ValueError(f"model_covariance must be square, got {self.model_covariance.shape}")
        n_obs = self.measurement_covariance.shape[0]
        if self.measurement_covariance.shape != (n_obs, n_obs):
            raise ValueError(
                f"measurement_covariance must be square, got {self.measurement_covariance.shape}"
            )

        if initial_belief is None:
            initial_belief = MultivariateGaussian(np.zeros(n_state), np.eye(n_state))
        if initial_belief.dimensionality != n_state:
            raise ValueError(
                f"initial_belief has dimension {initial_belief.dimensionality}, expected {n_state}"
            )
        self.initial_belief = initial_belief
        self.log_likelihood = 0.0

    def _evaluate(self, model, x: np.ndarray) -> np.ndarray:
        if self.jacobian_method == "autograd":
            value = model.evaluate(torch.as_tensor(x, dtype=torch.float64))
            return ensure_1d(torch.as_tensor(value).detach().cpu().numpy())
        return ensure_1d(np.asarray(model.evaluate(x), dtype=float))

    def _jacobian(self, model, analytic, x: np.ndarray) -> np.ndarray:
        if analytic is not None:
            return np.atleast_2d(np.asarray(analytic(x), dtype=float))
        if self.jacobian_method == "autograd":
            return autograd_jacobian(model.evaluate, x)
        return numerical_jacobian(lambda point: self._evaluate(model, point), x)

    def create_initial_belief(self) -> MultivariateGaussian:
        """Fresh copy of the prior; also restarts ``log_likelihood`` at zero."""
        self.log_likelihood = 0.0
        return self.initial_belief.clone()

    def predict(self, belief: MultivariateGaussian) -> MultivariateGaussian:
        F = self._jacobian(self.motion_model, self.motion_jacobian, belief.mean)
        n_state = belief.dimensionality
        if F.shape != (n_state, n_state):
            raise ValueError(f"Motion Jacobian must be ({n_state}, {n_state}), got {F.shape}")

        belief.mean = self._evaluate(self.motion_model, belief.mean)
        belief.covariance = symmetrize(F @ belief.covariance @ F.T + self.model_covariance)
        if is_debug_enabled():
            assert_symmetric_psd(belief.covariance)
        return belief

    def update(self, belief: MultivariateGaussian, observation: Any) -> MultivariateGaussian:
        y = ensure_1d(observation)
        n_obs = self.measurement_covariance.shape[0]
        if y.shape != (n_obs,):
            raise ValueError(f"Observation must be shape ({n_obs},), got {y.shape}")

        H = self._jacobian(self.observation_model, self.observation_jacobian, belief.mean)
        if H.shape != (n_obs, belief.dimensionality):
            raise ValueError(
                f"Observation Jacobian must be ({n_obs}, {belief.dimensionality}), got {H.shape}"
            )
        innovation = y - self._evaluate(self.observation_model, belief.mean)
        self.log_likelihood += gaussian_measurement_update(
            belief, innovation, H, self.measurement_covariance
        )
        if is_debug_enabled():
            assert_symmetric_psd(belief.covariance)
        logger.debug("EKF update: innovation norm %.4g", float(np.linalg.norm(innovation)))
        return belief
