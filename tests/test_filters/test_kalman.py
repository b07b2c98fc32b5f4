"""Tests for the Kalman filter."""

import numpy as np
import pytest

from bayesconduit.distributions import MultivariateGaussian, MultivariateGaussianMeanEstimator
from bayesconduit.filters import KalmanFilter, LinearDynamicalSystem


def make_constant_velocity_filter(dt=1.0):
    model = LinearDynamicalSystem(
        A=np.array([[1.0, dt], [0.0, 1.0]]),
        B=np.zeros((2, 1)),
        C=np.array([[1.0, 0.0]]),
    )
    return KalmanFilter(
        model,
        model_covariance=0.01 * np.eye(2),
        measurement_covariance=np.array([[0.5]]),
        initial_belief=MultivariateGaussian(np.zeros(2), 10.0 * np.eye(2)),
    )


class TestLinearDynamicalSystem:
    def test_dimensions(self):
        model = LinearDynamicalSystem(np.eye(3), np.zeros((3, 2)), np.ones((1, 3)))
        assert model.state_dimensionality == 3
        assert model.input_dimensionality == 2
        assert model.output_dimensionality == 1

    def test_invalid_shapes(self):
        with pytest.raises(ValueError, match="A must be square"):
            LinearDynamicalSystem(np.ones((2, 3)), np.zeros((2, 1)), np.eye(2))
        with pytest.raises(ValueError, match="B must have"):
            LinearDynamicalSystem(np.eye(2), np.zeros((3, 1)), np.eye(2))
        with pytest.raises(ValueError, match="C must have"):
            LinearDynamicalSystem(np.eye(2), np.zeros((2, 1)), np.eye(3))


class TestKalmanFilter:
    def test_default_model(self):
        kf = KalmanFilter()
        belief = kf.create_initial_belief()
        assert belief.dimensionality == 1

    def test_matches_conjugate_mean_estimator(self, rng):
        """Identity dynamics with zero process noise is Bayesian mean estimation."""
        true_mean = np.array([3.0, -1.0])
        known = np.array([[1.0, 0.3], [0.3, 2.0]])
        data = rng.multivariate_normal(true_mean, known, size=1000)

        kf = KalmanFilter(
            LinearDynamicalSystem.identity(2),
            model_covariance=np.zeros((2, 2)),
            measurement_covariance=known,
        )
        kf_belief = kf.learn(data)
        conjugate = MultivariateGaussianMeanEstimator(known).learn(data)

        np.testing.assert_allclose(kf_belief.mean, conjugate.mean, atol=1e-5)
        np.testing.assert_allclose(kf_belief.covariance, conjugate.covariance, atol=1e-5)
        np.testing.assert_allclose(kf_belief.mean, true_mean, atol=1e-1)

    def test_learn_equals_manual_predict_update(self, rng):
        kf = make_constant_velocity_filter()
        observations = np.cumsum(rng.normal(1.0, 0.5, size=25))
        batch = kf.learn(observations)

        manual = kf.create_initial_belief()
        for y in observations:
            kf.predict(manual)
            kf.update(manual, y)

        np.testing.assert_allclose(manual.mean, batch.mean, atol=1e-5)
        np.testing.assert_allclose(manual.covariance, batch.covariance, atol=1e-5)

    def test_predict_grows_uncertainty(self):
        kf = KalmanFilter(
            LinearDynamicalSystem.identity(2),
            model_covariance=0.1 * np.eye(2),
        )
        belief = kf.create_initial_belief()
        previous = belief.log_determinant()
        for _ in range(5):
            kf.predict(belief)
            current = belief.log_determinant()
            assert current > previous
            previous = current

    def test_repeated_measurement_of_sum(self):
        """Observing x1 + x2 = 10 drives the symmetric prior mean toward (5, 5)."""
        model = LinearDynamicalSystem(np.eye(2), np.zeros((2, 1)), np.array([[1.0, 1.0]]))
        kf = KalmanFilter(model, model_covariance=np.zeros((2, 2)))
        belief = kf.create_initial_belief()
        for _ in range(100):
            kf.measure(belief, [10.0])
        np.testing.assert_allclose(belief.mean, [5.0, 5.0], atol=0.1)

    def test_control_input_shifts_prediction(self):
        model = LinearDynamicalSystem(np.eye(1), np.array([[2.0]]), np.eye(1))
        kf = KalmanFilter(model, current_input=[1.5])
        belief = kf.predict(kf.create_initial_belief())
        assert belief.mean[0] == pytest.approx(3.0)

    def test_tracks_constant_velocity(self, rng):
        kf = make_constant_velocity_filter()
        positions = 2.0 * np.arange(1, 61)
        observations = positions + rng.normal(0.0, np.sqrt(0.5), size=len(positions))
        belief = kf.learn(observations)
        assert belief.mean[1] == pytest.approx(2.0, abs=0.1)

    def test_log_likelihood_accumulates(self):
        kf = KalmanFilter()
        kf.learn([0.1, -0.2])
        assert np.isfinite(kf.log_likelihood)
        assert kf.log_likelihood < 0.0

    def test_log_likelihood_restarts_with_each_learn(self):
        kf = KalmanFilter()
        kf.learn([0.1, -0.2])
        first = kf.log_likelihood
        kf.learn([0.1, -0.2])
        assert kf.log_likelihood == pytest.approx(first)

    def test_log_likelihood_continues_from_passed_belief(self):
        kf = KalmanFilter()
        belief = kf.learn([0.1])
        after_one = kf.log_likelihood
        kf.learn([-0.2], belief)
        separate = KalmanFilter()
        separate.learn([0.1, -0.2])
        assert kf.log_likelihood == pytest.approx(separate.log_likelihood)
        assert kf.log_likelihood < after_one

    def test_observation_dimension_checked(self):
        kf = KalmanFilter()
        with pytest.raises(ValueError, match="Observation must be shape"):
            kf.update(kf.create_initial_belief(), [1.0, 2.0])

    def test_covariance_shape_checked(self):
        with pytest.raises(ValueError, match="model_covariance"):
            KalmanFilter(LinearDynamicalSystem.identity(2), model_covariance=np.eye(3))
        with pytest.raises(ValueError, match="current_input"):
            KalmanFilter(current_input=[1.0, 2.0])

    def test_create_initial_belief_returns_fresh_copy(self):
        kf = KalmanFilter()
        a = kf.create_initial_belief()
        a.mean = [7.0]
        assert kf.create_initial_belief().mean[0] == 0.0

    def test_clone_is_independent(self):
        kf = KalmanFilter()
        clone = kf.clone()
        clone.learn([1.0])
        assert kf.log_likelihood == 0.0
