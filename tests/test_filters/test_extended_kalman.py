"""Tests for the extended Kalman filter."""

import numpy as np
import pytest
import torch

from bayesconduit.distributions import MultivariateGaussian
from bayesconduit.filters import (
    ExtendedKalmanFilter,
    KalmanFilter,
    LinearDynamicalSystem,
    autograd_jacobian,
    numerical_jacobian,
)

A = np.array([[0.9, 0.1], [0.0, 0.95]])
C = np.array([[1.0, 0.5]])
Q = 0.05 * np.eye(2)
R = np.array([[0.2]])


def linear_kalman():
    return KalmanFilter(LinearDynamicalSystem(A, np.zeros((2, 1)), C), Q, R)


def test_numerical_jacobian_of_linear_map():
    np.testing.assert_allclose(numerical_jacobian(lambda x: A @ x, np.array([1.0, -2.0])), A, atol=1e-6)


def test_autograd_jacobian_matches_analytic():
    x = np.array([0.3, 1.2])
    jacobian = autograd_jacobian(lambda t: torch.stack([torch.sin(t[0]), t[0] * t[1]]), x)
    expected = np.array([[np.cos(0.3), 0.0], [1.2, 0.3]])
    np.testing.assert_allclose(jacobian, expected, atol=1e-12)


@pytest.mark.parametrize("method", ["numerical", "autograd"])
def test_agrees_with_kalman_on_linear_model(method, rng):
    """On a linear model the EKF reproduces the Kalman filter."""
    if method == "autograd":
        A_t, C_t = torch.as_tensor(A), torch.as_tensor(C)
        motion, observation = (lambda x: A_t @ x), (lambda x: C_t @ x)
    else:
        motion, observation = (lambda x: A @ x), (lambda x: C @ x)
    ekf = ExtendedKalmanFilter(motion, observation, Q, R, jacobian_method=method)
    observations = rng.normal(size=30)

    expected = linear_kalman().learn(observations)
    actual = ekf.learn(observations)

    np.testing.assert_allclose(actual.mean, expected.mean, atol=1e-5)
    np.testing.assert_allclose(actual.covariance, expected.covariance, atol=1e-5)


def test_analytic_jacobians_take_precedence(rng):
    calls = []

    def motion_jacobian(x):
        calls.append(x)
        return A

    ekf = ExtendedKalmanFilter(
        lambda x: A @ x,
        lambda x: C @ x,
        Q,
        R,
        motion_jacobian=motion_jacobian,
        observation_jacobian=lambda x: C,
    )
    observations = rng.normal(size=5)
    belief = ekf.learn(observations)
    assert len(calls) == 5
    np.testing.assert_allclose(belief.mean, linear_kalman().learn(observations).mean, atol=1e-10)


def test_nonlinear_range_observation(rng):
    """A static 1-d position observed through its square is recovered."""
    true_position = 2.0
    observations = true_position**2 + rng.normal(0.0, 0.1, size=200)
    ekf = ExtendedKalmanFilter(
        lambda x: x,
        lambda x: x**2,
        model_covariance=[[1e-6]],
        measurement_covariance=[[0.01]],
        initial_belief=MultivariateGaussian([1.0], [[1.0]]),
    )
    belief = ekf.learn(observations)
    assert belief.mean[0] == pytest.approx(true_position, abs=0.05)


def test_unknown_jacobian_method():
    with pytest.raises(ValueError, match="Unknown jacobian_method"):
        ExtendedKalmanFilter(lambda x: x, lambda x: x, [[1.0]], [[1.0]], jacobian_method="symbolic")


def test_observation_dimension_checked():
    ekf = ExtendedKalmanFilter(lambda x: x, lambda x: x, [[1.0]], [[1.0]])
    with pytest.raises(ValueError, match="Observation must be shape"):
        ekf.update(ekf.create_initial_belief(), [1.0, 2.0])


def test_log_likelihood_restarts_with_each_learn(rng):
    ekf = ExtendedKalmanFilter(lambda x: A @ x, lambda x: C @ x, Q, R)
    observations = rng.normal(size=10)
    ekf.learn(observations)
    first = ekf.log_likelihood
    ekf.learn(observations)
    assert ekf.log_likelihood == pytest.approx(first)
    kf = linear_kalman()
    kf.learn(observations)
    assert ekf.log_likelihood == pytest.approx(kf.log_likelihood, abs=1e-4)
