"""Tests for importance sampling."""

import logging
from io import StringIO

import numpy as np
import pytest
from scipy import stats

from bayesconduit.distributions import BayesianParameter
from bayesconduit.logging import configure_logging
from bayesconduit.sampling import DefaultImportanceUpdater, ImportanceSampling


class GaussianImportanceUpdater:
    """Target N(target_mean, 1) sampled through N(0, importance_scale)."""

    def __init__(self, target_mean=0.0, importance_scale=1.0, target_scale=1.0):
        self.target = stats.norm(target_mean, target_scale)
        self.importance = stats.norm(0.0, importance_scale)

    def make_proposal(self, rng):
        return self.importance.rvs(random_state=rng)

    def compute_log_likelihood(self, parameter, data):
        return self.target.logpdf(parameter)

    def compute_log_importance(self, parameter):
        return self.importance.logpdf(parameter)


class HalfSupportUpdater(GaussianImportanceUpdater):
    def compute_log_importance(self, parameter):
        return -np.inf if parameter < 0.0 else self.importance.logpdf(parameter)


class ZeroTargetUpdater(GaussianImportanceUpdater):
    def compute_log_likelihood(self, parameter, data):
        return -np.inf


def test_weights_are_one_when_importance_equals_target(rng):
    samples = ImportanceSampling(GaussianImportanceUpdater(), num_samples=500, rng=rng).learn()
    np.testing.assert_allclose(samples.weights, np.ones(500))
    assert samples.effective_sample_size() == pytest.approx(500.0)


def test_weighted_mean_converges(rng):
    updater = GaussianImportanceUpdater(target_mean=1.5, importance_scale=3.0)
    samples = ImportanceSampling(updater, num_samples=10000, rng=rng).learn()
    assert samples.mean == pytest.approx(1.5, abs=0.1)


def test_normalized_weights_option(rng):
    updater = GaussianImportanceUpdater(target_mean=1.0, importance_scale=2.0)
    samples = ImportanceSampling(updater, num_samples=200, rng=rng, normalize=True).learn()
    assert samples.total_weight == pytest.approx(1.0)


def test_zero_importance_density_gets_zero_weight(rng):
    sampler = ImportanceSampling(HalfSupportUpdater(), num_samples=400, rng=rng)
    samples = sampler.learn()
    for value, weight in samples:
        if value < 0.0:
            assert weight == 0.0
        else:
            assert weight > 0.0


def test_all_zero_weights_are_reported(rng):
    captured = StringIO()
    try:
        configure_logging(level=logging.WARNING, stream=captured)
        samples = ImportanceSampling(ZeroTargetUpdater(), num_samples=20, rng=rng).learn()
        assert samples.effective_sample_size() == 0.0
        assert "importance weights are zero" in captured.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_default_updater_prior_as_importance(rng):
    parameter = BayesianParameter(stats.bernoulli, stats.uniform(0.0, 1.0), "p")
    data = [1, 1, 0, 1]
    sampler = ImportanceSampling(DefaultImportanceUpdater(parameter), num_samples=10000, rng=rng)
    samples = sampler.learn(data)
    assert samples.mean == pytest.approx(stats.beta(4, 2).mean(), abs=0.02)
    # mean raw weight estimates the marginal likelihood B(4, 2)
    assert np.exp(sampler.log_evidence) == pytest.approx(1.0 / 20.0, rel=0.05)


def test_num_samples_validated():
    with pytest.raises(ValueError, match="num_samples"):
        ImportanceSampling(GaussianImportanceUpdater(), num_samples=0)


def test_long_data_set_keeps_weights_in_range(rng):
    """Thousands of observations push raw likelihoods below the float range."""
    parameter = BayesianParameter(stats.bernoulli, stats.uniform(0.0, 1.0), "p")
    data = (rng.random(3000) < 0.3).astype(int)
    sampler = ImportanceSampling(DefaultImportanceUpdater(parameter), num_samples=2000, rng=rng)
    samples = sampler.learn(data)

    assert samples.total_weight > 0.0
    assert np.max(samples.weights) == pytest.approx(1.0)
    assert sampler.log_weight_shift == pytest.approx(np.max(sampler.log_weights))
    assert np.isfinite(sampler.log_evidence)
    exact = stats.beta(1 + data.sum(), 1 + len(data) - data.sum())
    assert samples.mean == pytest.approx(exact.mean(), abs=0.01)


def test_huge_likelihoods_do_not_overflow(rng):
    parameter = BayesianParameter(
        lambda m: stats.norm(m, 0.01), stats.norm(0.0, 1.0), "m"
    )
    data = rng.normal(0.3, 0.01, size=300)
    sampler = ImportanceSampling(DefaultImportanceUpdater(parameter), num_samples=500, rng=rng)
    samples = sampler.learn(data)

    assert np.all(np.isfinite(samples.weights))
    assert samples.total_weight > 0.0
    assert np.max(sampler.log_weights) > np.log(np.finfo(float).max)
    np.testing.assert_allclose(
        np.log(samples.weights[samples.weights > 0]) + sampler.log_weight_shift,
        sampler.log_weights[samples.weights > 0],
    )
    assert samples.effective_sample_size() >= 1.0


def test_representable_weights_stay_raw(rng):
    sampler = ImportanceSampling(GaussianImportanceUpdater(1.0, 2.0), num_samples=100, rng=rng)
    samples = sampler.learn()
    assert sampler.log_weight_shift == 0.0
    np.testing.assert_allclose(samples.weights, np.exp(sampler.log_weights))
