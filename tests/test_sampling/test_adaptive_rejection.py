"""Tests for adaptive rejection sampling."""

import numpy as np
import pytest
from scipy import stats

from bayesconduit.diagnostics import debug_context
from bayesconduit.sampling import AdaptiveRejectionSampler, LogDensity


def gaussian_sampler(derivative=False, **kwargs):
    if derivative:
        log_density = LogDensity(lambda x: -0.5 * x * x, lambda x: -x)
    else:
        log_density = LogDensity.from_distribution(stats.norm())
    ars = AdaptiveRejectionSampler(**kwargs)
    ars.initialize(log_density, -np.inf, np.inf, [-1.0, 0.0, 1.0])
    return ars


def beta_sampler(**kwargs):
    ars = AdaptiveRejectionSampler(**kwargs)
    ars.initialize(LogDensity.from_distribution(stats.beta(2, 2)), 0.0, 1.0, [0.2, 0.5, 0.6])
    return ars


class TestEnvelope:
    @pytest.mark.parametrize("derivative", [False, True])
    def test_envelopes_sandwich_log_density(self, derivative):
        ars = gaussian_sampler(derivative)
        for x in [-3.0, 0.4, 2.5]:
            ars.add_point(x)
        grid = np.linspace(-5.0, 5.0, 401)
        log_f = stats.norm().logpdf(grid) if not derivative else -0.5 * grid**2
        assert np.all(ars.lower_envelope(grid) <= log_f + 1e-9)
        assert np.all(ars.upper_envelope(grid) >= log_f - 1e-9)

    def test_lower_envelope_is_infinite_outside_hull(self):
        ars = gaussian_sampler()
        assert ars.lower_envelope(-2.0) == -np.inf
        assert ars.lower_envelope(2.0) == -np.inf
        assert ars.lower_envelope(0.5) == pytest.approx(stats.norm().logpdf(0.0) - 0.25)

    def test_envelopes_touch_at_points(self):
        ars = beta_sampler()
        log_f = stats.beta(2, 2).logpdf(ars.xs)
        np.testing.assert_allclose(ars.lower_envelope(ars.xs), log_f)

    def test_upper_mass_shrinks_toward_normalizer(self):
        ars = gaussian_sampler()
        before = ars.upper_log_mass()
        for x in np.linspace(-3.0, 3.0, 13):
            ars.add_point(x)
        after = ars.upper_log_mass()
        assert after < before
        # exp(log N(0, 1)) integrates to exactly one
        assert after >= -1e-9
        assert after == pytest.approx(0.0, abs=0.05)

    def test_points_stay_sorted_and_unique(self):
        ars = gaussian_sampler()
        ars.add_point(0.5)
        assert not ars.add_point(0.5)
        assert np.all(np.diff(ars.xs) > 0)


class TestSampling:
    @pytest.mark.parametrize("derivative", [False, True])
    def test_gaussian_samples(self, derivative, rng):
        ars = gaussian_sampler(derivative)
        samples = ars.sample_n(rng, 4000)
        assert np.mean(samples) == pytest.approx(0.0, abs=0.06)
        assert np.std(samples) == pytest.approx(1.0, abs=0.05)
        assert stats.kstest(samples, "norm").pvalue > 0.001

    def test_beta_samples(self, rng):
        ars = beta_sampler(max_num_points=10)
        samples = ars.sample_n(rng, 4000)
        assert np.all((samples >= 0.0) & (samples <= 1.0))
        assert np.mean(samples) == pytest.approx(0.5, abs=0.02)
        assert np.var(samples) == pytest.approx(0.05, abs=0.005)
        assert ars.num_points <= 10

    def test_squeeze_avoids_most_evaluations(self, rng):
        ars = gaussian_sampler()
        ars.sample_n(rng, 2000)
        assert ars.num_evaluations < 200

    def test_clone_reproduces_samples(self, rng):
        ars = gaussian_sampler()
        ars.sample_n(rng, 10)
        clone = ars.clone()
        a = ars.sample_n(np.random.default_rng(5), 50)
        b = clone.sample_n(np.random.default_rng(5), 50)
        np.testing.assert_array_equal(a, b)

    def test_debug_mode_checks_envelope(self, rng):
        with debug_context(True):
            samples = gaussian_sampler().sample_n(rng, 200)
        assert len(samples) == 200

    def test_rejections_exhausted(self, rng):
        known = {0.0: -1.0, 1.0: 0.0, 2.0: -1.0}
        ars = AdaptiveRejectionSampler(max_rejections=1)
        ars.initialize(lambda x: known.get(float(x), -np.inf), 0.0, 2.0, [0.0, 1.0, 2.0])
        with pytest.raises(RuntimeError, match="did not converge"):
            for _ in range(200):
                ars.sample(rng)


class TestValidation:
    def test_needs_three_points(self):
        ars = AdaptiveRejectionSampler()
        with pytest.raises(ValueError, match="three"):
            ars.initialize(stats.norm().logpdf, -np.inf, np.inf, [-1.0, 1.0])

    def test_points_inside_support(self):
        ars = AdaptiveRejectionSampler()
        with pytest.raises(ValueError, match="inside the support"):
            ars.initialize(stats.beta(2, 2).logpdf, 0.0, 1.0, [0.2, 0.5, 1.5])

    def test_unbounded_tail_not_integrable(self):
        ars = AdaptiveRejectionSampler()
        with pytest.raises(ValueError, match="not integrable"):
            ars.initialize(stats.norm().logpdf, -np.inf, np.inf, [1.0, 2.0, 3.0])

    def test_add_point_outside_support(self):
        ars = beta_sampler()
        with pytest.raises(ValueError, match="outside the support"):
            ars.add_point(2.0)

    def test_sample_before_initialize(self, rng):
        with pytest.raises(ValueError, match="not initialized"):
            AdaptiveRejectionSampler().sample(rng)

    def test_constructor_limits(self):
        with pytest.raises(ValueError, match="max_num_points"):
            AdaptiveRejectionSampler(max_num_points=2)
        with pytest.raises(ValueError, match="max_rejections"):
            AdaptiveRejectionSampler(max_rejections=0)
