"""Example: Posterior inference with Bayes Conduit samplers.

Estimates the bias of a coin with Metropolis-Hastings, rejection and
importance sampling, draws from a log-concave density with adaptive
rejection sampling, and clusters 1D data with a Dirichlet process mixture.
"""

import numpy as np
from scipy import stats

from bayesconduit import (
    AdaptiveRejectionSampler,
    BayesianParameter,
    ChainConfig,
    DefaultImportanceUpdater,
    DefaultRejectionUpdater,
    DirichletProcessMixtureModel,
    GaussianMeanUpdater,
    ImportanceSampling,
    LogDensity,
    MetropolisHastings,
    MultivariateGaussian,
    RandomWalkUpdater,
    RejectionSampling,
)
from bayesconduit.mixture import cluster_count_distribution


def example_coin_bias(rng):
    print("=" * 60)
    print("Example 1: Posterior of a coin bias")
    print("=" * 60)

    parameter = BayesianParameter(stats.bernoulli, stats.uniform(0.0, 1.0), "bias")
    flips = (rng.random(60) < 0.3).astype(int)
    exact = stats.beta(1 + flips.sum(), 1 + len(flips) - flips.sum())
    print(f"Observed {flips.sum()} heads in {len(flips)} flips")
    print(f"Exact posterior mean:      {exact.mean():.4f}")

    mh = MetropolisHastings(
        RandomWalkUpdater(parameter, step_size=0.1, initial_value=0.5),
        ChainConfig(burn_in_iterations=500, iterations_per_sample=2, max_samples=2000),
        rng=rng,
    )
    print(f"Metropolis-Hastings mean:  {mh.learn(flips).mean:.4f}")

    rejection = RejectionSampling(DefaultRejectionUpdater(parameter), num_samples=1000, rng=rng)
    samples = rejection.learn(flips)
    print(f"Rejection sampling mean:   {samples.mean:.4f} "
          f"(acceptance rate {rejection.acceptance_rate:.3f})")

    importance = ImportanceSampling(DefaultImportanceUpdater(parameter), num_samples=2000, rng=rng)
    weighted = importance.learn(flips)
    print(f"Importance sampling mean:  {weighted.mean:.4f} "
          f"(ESS {weighted.effective_sample_size():.1f})")
    print()


def example_adaptive_rejection(rng):
    print("=" * 60)
    print("Example 2: Adaptive rejection sampling of a Gamma(3, 1)")
    print("=" * 60)

    target = stats.gamma(3.0)
    sampler = AdaptiveRejectionSampler()
    sampler.initialize(LogDensity.from_distribution(target), 0.0, np.inf, [0.5, 2.0, 6.0])
    draws = sampler.sample_n(rng, 2000)
    print(f"Sample mean {np.mean(draws):.3f} (exact {target.mean():.3f})")
    print(f"Density evaluations: {sampler.num_evaluations}, rejections: {sampler.num_rejections}")
    print()


def example_dirichlet_process(rng):
    print("=" * 60)
    print("Example 3: Dirichlet process mixture clustering")
    print("=" * 60)

    data = np.concatenate([rng.normal(c, 1.0, size=40) for c in (-8.0, 0.0, 8.0)])
    dpmm = DirichletProcessMixtureModel(
        GaussianMeanUpdater([[1.0]], MultivariateGaussian([0.0], [[100.0]])),
        config=ChainConfig(burn_in_iterations=20, iterations_per_sample=1, max_samples=20),
        rng=rng,
    )
    samples = dpmm.learn(data)
    counts = cluster_count_distribution(samples)
    for k in sorted(counts):
        print(f"  P(clusters={k}) = {counts[k]:.2f}")
    print(f"Modal cluster count: {max(counts, key=counts.get)}")
    print()


def main():
    rng = np.random.default_rng(7)
    example_coin_bias(rng)
    example_adaptive_rejection(rng)
    example_dirichlet_process(rng)
    print("Monte Carlo demo complete")


if __name__ == "__main__":
    main()
