"""Cluster models for the Dirichlet process mixture."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import numpy as np

from bayesconduit.distributions.conjugate import (
    MultivariateGaussianMeanEstimator,
    NormalInverseWishart,
)
from bayesconduit.distributions.gaussian import MultivariateGaussian
from bayesconduit.filters.kalman import symmetrize


class DirichletProcessMixtureUpdater(Protocol):
    """
    Problem-specific pieces of a Dirichlet process mixture.

    The ``create_*`` methods return objects with a vectorized ``logpdf``
    that accepts the full data array.
    """

    def create_prior_predictive(self, data: np.ndarray) -> Any:
        """Marginal density of an observation under the base measure.

        ``data`` is the full data set, for updaters that derive the base
        measure from it.
        """
        ...

    def create_cluster_predictive(self, values: np.ndarray) -> Any:
        """Posterior predictive density of a new observation joining ``values``."""
        ...

    def create_cluster_posterior(self, values: np.ndarray, rng: np.random.Generator) -> Any:
        """Observation density at cluster parameters drawn from their posterior given ``values``."""
        ...

    def log_marginal_likelihood(self, values: np.ndarray) -> float:
        """log p(values) when all of them form one cluster (parameters integrated out)."""
        ...


class GaussianMeanUpdater:
    """
    Gaussian clusters with a shared, known covariance.

    Each cluster mean has a Gaussian prior, so the prior predictive is
    N(m0, C0 + K).

    Args:
        known_covariance: Within-cluster covariance K, shape (d, d).
        prior: Prior over cluster means. Defaults to N(0, I).
    """

    def __init__(self, known_covariance: Any, prior: Optional[MultivariateGaussian] = None) -> None:
        self.estimator = MultivariateGaussianMeanEstimator(known_covariance, prior)

    def create_prior_predictive(self, data: np.ndarray) -> MultivariateGaussian:
        return self.estimator.predictive(self.estimator.create_initial_belief())

    def create_cluster_predictive(self, values: np.ndarray) -> MultivariateGaussian:
        return self.estimator.predictive(self.estimator.learn(values))

    def create_cluster_posterior(self, values: np.ndarray, rng: np.random.Generator) -> MultivariateGaussian:
        posterior = self.estimator.learn(values)
        return self.estimator.conditional(posterior.sample(rng))

    def log_marginal_likelihood(self, values: np.ndarray) -> float:
        return self.estimator.log_marginal_likelihood(values)


class GaussianMeanCovarianceUpdater:
    """
    Gaussian clusters with unknown mean and covariance (Normal-inverse-Wishart prior).

    The prior predictive is a multivariate Student-t.

    Args:
        dimensionality: Data dimension d; used when ``prior`` is None.
        prior: Base measure. Defaults to NIW(0, kappa=1, dof=d + 2, I).
    """

    def __init__(self, dimensionality: int = 1, prior: Optional[NormalInverseWishart] = None) -> None:
        if prior is None:
            if dimensionality < 1:
                raise ValueError("dimensionality must be at least 1.")
            prior = NormalInverseWishart(np.zeros(dimensionality))
        self.prior = prior

    def create_prior_predictive(self, data: np.ndarray):
        return self.prior.predictive()

    def create_cluster_predictive(self, values: np.ndarray):
        return self.prior.posterior(values).predictive()

    def create_cluster_posterior(self, values: np.ndarray, rng: np.random.Generator) -> MultivariateGaussian:
        mean, covariance = self.prior.posterior(values).sample(rng)
        return MultivariateGaussian(mean, symmetrize(covariance))

    def log_marginal_likelihood(self, values: np.ndarray) -> float:
        return self.prior.log_marginal_likelihood(values)
