"""Conjugate estimators for the parameters of a multivariate Gaussian.

References:
    Murphy, K. P. (2007). Conjugate Bayesian analysis of the Gaussian
    distribution. Technical report, UBC.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np
from scipy import special, stats

from bayesconduit.core.utils import ensure_1d
from bayesconduit.distributions.gaussian import MultivariateGaussian
from bayesconduit.filters.base import RecursiveBayesianEstimator


def as_observation_matrix(observations: Any, dim: int) -> np.ndarray:
    """Stack observations into an array of shape (n, dim).

    For ``dim == 1`` a flat sequence of scalars is accepted.

    Raises:
        ValueError: If the observations do not have ``dim`` components.
    """
    x = np.asarray(observations, dtype=float)
    if x.size == 0:
        return np.empty((0, dim))
    if x.ndim == 0 or (x.ndim == 1 and dim == 1):
        x = x.reshape(-1, 1)
    elif x.ndim == 1 and x.shape[0] == dim:
        x = x.reshape(1, dim)
    if x.ndim != 2 or x.shape[1] != dim:
        raise ValueError(f"Expected observations with {dim} components, got shape {x.shape}")
    return x


def _square(matrix: Any, name: str) -> np.ndarray:
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"{name} must be square, got shape {matrix.shape}")
    return matrix


class MultivariateGaussianMeanEstimator(RecursiveBayesianEstimator):
    """
    Posterior over the mean of a Gaussian whose covariance is known.

    With prior N(m0, C0) and n observations of mean x̄ the posterior is
    N(m, C) with ``C = (C0^-1 + n K^-1)^-1`` and
    ``m = C (C0^-1 m0 + n K^-1 x̄)``, where K is the known covariance.
    The mean is static, so :meth:`predict` leaves the belief unchanged.

    Args:
        known_covariance: Observation covariance K, shape (d, d).
        prior: Prior over the mean. Defaults to N(0, I).
    """

    def __init__(
        self,
        known_covariance: Any,
        prior: Optional[MultivariateGaussian] = None,
    ) -> None:
        self.known_covariance = _square(known_covariance, "known_covariance")
        d = self.known_covariance.shape[0]
        if prior is None:
            prior = MultivariateGaussian(np.zeros(d), np.eye(d))
        if prior.dimensionality != d:
            raise ValueError(
                f"Prior dimension {prior.dimensionality} does not match known covariance {d}"
            )
        self.prior = prior

    @property
    def dimensionality(self) -> int:
        return self.known_covariance.shape[0]

    def create_initial_belief(self) -> MultivariateGaussian:
        return self.prior.clone()

    def predict(self, belief: MultivariateGaussian) -> MultivariateGaussian:
        return belief

    def update(self, belief: MultivariateGaussian, observation: Any) -> MultivariateGaussian:
        return self.update_batch(belief, ensure_1d(observation).reshape(1, -1))

    def update_batch(self, belief: MultivariateGaussian, observations: Any) -> MultivariateGaussian:
        """Fold a batch of observations into ``belief`` in closed form."""
        x = as_observation_matrix(observations, self.dimensionality)
        n = len(x)
        if n == 0:
            return belief

        prior_precision = belief.covariance_inverse
        data_precision = n * np.linalg.inv(self.known_covariance)
        covariance = np.linalg.inv(prior_precision + data_precision)
        covariance = 0.5 * (covariance + covariance.T)
        mean = covariance @ (prior_precision @ belief.mean + data_precision @ x.mean(axis=0))

        belief.covariance = covariance
        belief.mean = mean
        return belief

    def learn(self, observations: Iterable[Any], belief: Optional[MultivariateGaussian] = None):
        if belief is None:
            belief = self.create_initial_belief()
        return self.update_batch(belief, list(observations))

    def log_marginal_likelihood(self, observations: Any) -> float:
        """log p(observations) under the prior, with the mean integrated out.

        Evaluated through p(D) = p(D | m) p(m) / p(m | D) at the posterior mean.
        """
        x = as_observation_matrix(observations, self.dimensionality)
        if len(x) == 0:
            return 0.0
        posterior = self.learn(x)
        m = posterior.mean
        log_likelihood = float(np.sum(np.atleast_1d(self.conditional(m).logpdf(x))))
        return log_likelihood + float(self.prior.logpdf(m)) - float(posterior.logpdf(m))

    def predictive(self, belief: MultivariateGaussian) -> MultivariateGaussian:
        """Distribution of the next observation: N(m, C + K)."""
        return MultivariateGaussian(belief.mean, belief.covariance + self.known_covariance)

    def conditional(self, mean: Any) -> MultivariateGaussian:
        """Distribution of an observation given the mean: N(mean, K)."""
        return MultivariateGaussian(mean, self.known_covariance)


class NormalInverseWishart:
    """
    Normal-inverse-Wishart distribution over a Gaussian's (mean, covariance).

    ``Sigma ~ IW(dof, scale)`` and ``mu | Sigma ~ N(mean, Sigma / kappa)``.

    Args:
        mean: Location of the mean, shape (d,).
        kappa: Number of pseudo-observations behind ``mean``.
        dof: Inverse-Wishart degrees of freedom, must exceed d - 1.
            Defaults to d + 2.
        scale: Inverse-Wishart scale matrix, shape (d, d). Defaults to I.
    """

    def __init__(self, mean: Any, kappa: float = 1.0, dof: Optional[float] = None, scale: Any = None):
        self.mean = ensure_1d(mean).copy()
        d = len(self.mean)
        self.kappa = float(kappa)
        self.dof = float(d + 2 if dof is None else dof)
        self.scale = np.eye(d) if scale is None else _square(scale, "scale").copy()

        if self.kappa <= 0.0:
            raise ValueError("kappa must be positive.")
        if self.dof <= d - 1:
            raise ValueError(f"dof must exceed {d - 1}, got {self.dof}")
        if self.scale.shape != (d, d):
            raise ValueError(f"scale must have shape ({d}, {d}), got {self.scale.shape}")

    @property
    def dimensionality(self) -> int:
        return len(self.mean)

    def expected_covariance(self) -> np.ndarray:
        """E[Sigma], defined for dof > d + 1."""
        d = self.dimensionality
        if self.dof <= d + 1:
            return np.full((d, d), np.inf)
        return self.scale / (self.dof - d - 1)

    @property
    def covariance(self) -> np.ndarray:
        """Marginal covariance of the mean, E[Sigma] / kappa."""
        return self.expected_covariance() / self.kappa

    def sample(
        self, rng: np.random.Generator, n: Optional[int] = None
    ) -> Tuple[np.ndarray, np.ndarray] | List[Tuple[np.ndarray, np.ndarray]]:
        """Draw ``(mu, Sigma)`` pairs."""
        if n is not None:
            return [self.sample(rng) for _ in range(n)]
        sigma = np.atleast_2d(stats.invwishart(df=self.dof, scale=self.scale).rvs(random_state=rng))
        mu = rng.multivariate_normal(self.mean, sigma / self.kappa)
        return mu, sigma

    def posterior(self, observations: Any) -> "NormalInverseWishart":
        """Return the posterior after observing ``observations`` (shape (n, d))."""
        x = as_observation_matrix(observations, self.dimensionality)
        n = len(x)
        if n == 0:
            return self.clone()

        x_bar = x.mean(axis=0)
        centered = x - x_bar
        scatter = centered.T @ centered
        kappa_n = self.kappa + n
        diff = x_bar - self.mean
        scale_n = self.scale + scatter + (self.kappa * n / kappa_n) * np.outer(diff, diff)

        return NormalInverseWishart(
            mean=(self.kappa * self.mean + n * x_bar) / kappa_n,
            kappa=kappa_n,
            dof=self.dof + n,
            scale=0.5 * (scale_n + scale_n.T),
        )

    def log_marginal_likelihood(self, observations: Any) -> float:
        """log p(observations) with the mean and covariance integrated out."""
        x = as_observation_matrix(observations, self.dimensionality)
        n, d = x.shape
        if n == 0:
            return 0.0
        post = self.posterior(x)
        _, log_det_prior = np.linalg.slogdet(self.scale)
        _, log_det_post = np.linalg.slogdet(post.scale)
        return float(
            -0.5 * n * d * np.log(np.pi)
            + special.multigammaln(0.5 * post.dof, d)
            - special.multigammaln(0.5 * self.dof, d)
            + 0.5 * self.dof * log_det_prior
            - 0.5 * post.dof * log_det_post
            + 0.5 * d * (np.log(self.kappa) - np.log(post.kappa))
        )

    def predictive(self):
        """Posterior predictive: a multivariate Student-t (frozen scipy distribution)."""
        d = self.dimensionality
        df = self.dof - d + 1
        shape = self.scale * (self.kappa + 1.0) / (self.kappa * df)
        return stats.multivariate_t(loc=self.mean, shape=shape, df=df)

    def clone(self) -> "NormalInverseWishart":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (
            f"NormalInverseWishart(mean={self.mean!r}, kappa={self.kappa}, "
            f"dof={self.dof}, scale={self.scale!r})"
        )


class MultivariateGaussianMeanCovarianceEstimator(RecursiveBayesianEstimator):
    """Conjugate estimator of both mean and covariance of a Gaussian."""

    def __init__(self, prior: NormalInverseWishart) -> None:
        self.prior = prior

    @property
    def dimensionality(self) -> int:
        return self.prior.dimensionality

    def create_initial_belief(self) -> NormalInverseWishart:
        return self.prior.clone()

    def predict(self, belief: NormalInverseWishart) -> NormalInverseWishart:
        return belief

    def update(self, belief: NormalInverseWishart, observation: Any) -> NormalInverseWishart:
        updated = belief.posterior(ensure_1d(observation).reshape(1, -1))
        belief.__dict__.update(updated.__dict__)
        return belief

    def learn(self, observations: Iterable[Any], belief: Optional[NormalInverseWishart] = None):
        if belief is None:
            belief = self.create_initial_belief()
        observations = list(observations)
        if not observations:
            return belief
        belief.__dict__.update(belief.posterior(observations).__dict__)
        return belief

    def predictive(self, belief: NormalInverseWishart):
        return belief.predictive()

    def conditional(self, mean: Any, covariance: Any) -> MultivariateGaussian:
        return MultivariateGaussian(mean, covariance)
