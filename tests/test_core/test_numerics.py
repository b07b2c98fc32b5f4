"""Tests for log-domain numerics and resampling schemes."""

import numpy as np
import pytest
from scipy import stats

from bayesconduit.core.utils import (
    effective_sample_size,
    ensure_1d,
    get_resampler,
    log_normal_pdf,
    logsumexp,
    multinomial_resample,
    normalize_log_weights,
    residual_resample,
    sample_log_categorical,
    systematic_resample,
)


class TestLogSumExp:
    def test_matches_naive_for_moderate_values(self):
        a = np.array([-1.0, 0.5, 2.0])
        assert float(logsumexp(a)) == pytest.approx(np.log(np.sum(np.exp(a))))

    def test_large_values_do_not_overflow(self):
        assert float(logsumexp(np.array([1000.0, 1000.0]))) == pytest.approx(1000.0 + np.log(2.0))

    def test_all_negative_infinity(self):
        assert float(logsumexp(np.array([-np.inf, -np.inf]))) == -np.inf

    def test_axis_with_infinite_row(self):
        a = np.array([[0.0, 0.0], [-np.inf, -np.inf]])
        result = logsumexp(a, axis=1)
        assert result[0] == pytest.approx(np.log(2.0))
        assert result[1] == -np.inf


def test_log_normal_pdf_matches_scipy():
    mean = np.array([1.0, -1.0])
    cov = np.array([[2.0, 0.3], [0.3, 1.0]])
    x = np.array([0.5, 0.0])
    expected = stats.multivariate_normal(mean, cov).logpdf(x)
    assert log_normal_pdf(x, mean, cov) == pytest.approx(expected)


def test_log_normal_pdf_rejects_indefinite_covariance():
    with pytest.raises(ValueError, match="positive definite"):
        log_normal_pdf(np.zeros(2), np.zeros(2), np.diag([1.0, -1.0]))


def test_normalize_log_weights():
    w, log_z = normalize_log_weights(np.log(np.array([1.0, 3.0])))
    np.testing.assert_allclose(w, [0.25, 0.75])
    assert log_z == pytest.approx(np.log(4.0))


def test_normalize_log_weights_all_zero():
    with pytest.raises(ValueError, match="every weight is zero"):
        normalize_log_weights(np.full(3, -np.inf))


def test_effective_sample_size():
    assert effective_sample_size(np.ones(10)) == pytest.approx(10.0)
    assert effective_sample_size(np.array([1.0, 0.0, 0.0])) == pytest.approx(1.0)
    assert effective_sample_size(np.zeros(3)) == 0.0


@pytest.mark.parametrize("resampler", [multinomial_resample, systematic_resample, residual_resample])
def test_resamplers_preserve_count_and_skip_zero_weights(resampler, rng):
    weights = np.array([0.0, 0.5, 0.0, 0.5])
    indices = resampler(weights, rng)
    assert len(indices) == 4
    assert set(indices.tolist()) <= {1, 3}


def test_systematic_resample_counts_are_floor_or_ceil(rng):
    weights = np.array([0.5, 0.3, 0.2])
    n = 10
    counts = np.bincount(systematic_resample(weights, rng, n), minlength=3)
    assert np.all(counts >= np.floor(n * weights))
    assert np.all(counts <= np.ceil(n * weights))


def test_residual_resample_keeps_deterministic_copies(rng):
    weights = np.array([0.55, 0.25, 0.2])
    counts = np.bincount(residual_resample(weights, rng, 20), minlength=3)
    assert counts[0] >= 11
    assert counts[1] >= 5
    assert counts[2] >= 4


def test_get_resampler_unknown():
    with pytest.raises(ValueError, match="Unknown resample method"):
        get_resampler("stratified-ish")


def test_sample_log_categorical_frequencies(rng):
    log_w = np.log(np.array([0.2, 0.8]))
    draws = [sample_log_categorical(log_w, rng) for _ in range(5000)]
    assert np.mean(draws) == pytest.approx(0.8, abs=0.03)


def test_ensure_shapes():
    assert ensure_1d(3.0).shape == (1,)
    with pytest.raises(ValueError, match="Expected 1D"):
        ensure_1d(np.zeros((2, 2)))
