"""Tests for conjugate Gaussian estimators."""

import numpy as np
import pytest
from scipy import stats

from bayesconduit.distributions import (
    MultivariateGaussian,
    MultivariateGaussianMeanCovarianceEstimator,
    MultivariateGaussianMeanEstimator,
    NormalInverseWishart,
    as_observation_matrix,
)


class TestMeanEstimator:
    def test_scalar_posterior_closed_form(self):
        estimator = MultivariateGaussianMeanEstimator(
            [[4.0]], MultivariateGaussian([0.0], [[1.0]])
        )
        belief = estimator.learn([2.0, 4.0])
        # precision 1 + 2/4 = 1.5
        assert belief.covariance[0, 0] == pytest.approx(1.0 / 1.5)
        assert belief.mean[0] == pytest.approx((2.0 / 4.0 * 3.0) / 1.5)

    def test_online_equals_batch(self, rng):
        known = np.array([[1.0, 0.2], [0.2, 0.5]])
        estimator = MultivariateGaussianMeanEstimator(known)
        data = rng.multivariate_normal([1.0, -2.0], known, size=50)

        batch = estimator.learn(data)
        online = estimator.create_initial_belief()
        for x in data:
            estimator.update(estimator.predict(online), x)

        np.testing.assert_allclose(online.mean, batch.mean, atol=1e-10)
        np.testing.assert_allclose(online.covariance, batch.covariance, atol=1e-10)

    def test_predictive_adds_known_covariance(self):
        estimator = MultivariateGaussianMeanEstimator([[2.0]])
        predictive = estimator.predictive(estimator.create_initial_belief())
        assert predictive.covariance[0, 0] == pytest.approx(3.0)
        assert estimator.conditional([1.0]).mean[0] == 1.0

    def test_dimension_mismatch(self):
        estimator = MultivariateGaussianMeanEstimator(np.eye(2))
        with pytest.raises(ValueError, match="2 components"):
            estimator.update(estimator.create_initial_belief(), [1.0, 2.0, 3.0])
        with pytest.raises(ValueError, match="does not match"):
            MultivariateGaussianMeanEstimator(np.eye(2), MultivariateGaussian([0.0]))

    def test_empty_batch_leaves_belief(self):
        estimator = MultivariateGaussianMeanEstimator(np.eye(2))
        belief = estimator.learn([])
        np.testing.assert_array_equal(belief.mean, np.zeros(2))


class TestNormalInverseWishart:
    def test_validation(self):
        with pytest.raises(ValueError, match="kappa"):
            NormalInverseWishart(np.zeros(2), kappa=0.0)
        with pytest.raises(ValueError, match="dof"):
            NormalInverseWishart(np.zeros(3), dof=1.0)

    def test_posterior_parameters(self):
        prior = NormalInverseWishart(np.zeros(1), kappa=1.0, dof=3.0, scale=[[1.0]])
        posterior = prior.posterior([1.0, 3.0])
        assert posterior.kappa == 3.0
        assert posterior.dof == 5.0
        assert posterior.mean[0] == pytest.approx(4.0 / 3.0)
        # scatter 2 + (1*2/3) * 2^2
        assert posterior.scale[0, 0] == pytest.approx(1.0 + 2.0 + 8.0 / 3.0)

    def test_predictive_is_student_t(self):
        prior = NormalInverseWishart(np.zeros(1), kappa=1.0, dof=3.0, scale=[[1.0]])
        predictive = prior.predictive()
        # df = 3, shape = 1 * 2 / (1 * 3)
        expected = stats.t(df=3.0, loc=0.0, scale=np.sqrt(2.0 / 3.0)).logpdf(0.7)
        assert predictive.logpdf(np.array([0.7])) == pytest.approx(expected)

    def test_sample_shapes(self, rng):
        niw = NormalInverseWishart(np.zeros(2))
        mu, sigma = niw.sample(rng)
        assert mu.shape == (2,)
        assert sigma.shape == (2, 2)
        assert len(niw.sample(rng, 3)) == 3

    def test_mean_covariance_estimator_recovers_parameters(self, rng):
        true_cov = np.array([[1.0, 0.3], [0.3, 0.5]])
        data = rng.multivariate_normal([2.0, -1.0], true_cov, size=2000)
        estimator = MultivariateGaussianMeanCovarianceEstimator(NormalInverseWishart(np.zeros(2)))
        belief = estimator.learn(data)
        np.testing.assert_allclose(belief.mean, [2.0, -1.0], atol=0.1)
        np.testing.assert_allclose(belief.expected_covariance(), true_cov, atol=0.1)

    def test_online_update_matches_batch(self, rng):
        data = rng.normal(size=(20, 2))
        estimator = MultivariateGaussianMeanCovarianceEstimator(NormalInverseWishart(np.zeros(2)))
        batch = estimator.learn(data)
        online = estimator.create_initial_belief()
        for x in data:
            estimator.update(online, x)
        np.testing.assert_allclose(online.mean, batch.mean)
        np.testing.assert_allclose(online.scale, batch.scale)
        assert online.dof == batch.dof


def test_as_observation_matrix_shapes():
    assert as_observation_matrix([1.0, 2.0, 3.0], 1).shape == (3, 1)
    assert as_observation_matrix([1.0, 2.0], 2).shape == (1, 2)
    assert as_observation_matrix([], 3).shape == (0, 3)
    with pytest.raises(ValueError):
        as_observation_matrix(np.zeros((2, 3)), 2)
