"""Sampling-importance-resampling (SIR) particle filter.

The belief is an :class:`EmpiricalDistribution` of exactly ``num_particles``
weighted particles. Each observation multiplies the weights by its
likelihood; when the effective sample size drops below
``resample_threshold * num_particles`` the particles are redrawn with
replacement and the weights reset to uniform.

References:
    Doucet, A., & Johansen, A. M. (2009). A tutorial on particle filtering
    and smoothing: fifteen years later. Handbook of nonlinear filtering, 12(656-704), 3.
"""

from __future__ import annotations

import copy
from typing import Any, Optional, Protocol

import numpy as np

from bayesconduit.core.random import resolve_rng
from bayesconduit.core.utils import effective_sample_size, get_resampler, normalize_log_weights
from bayesconduit.diagnostics.core import assert_normalized_weights
from bayesconduit.diagnostics.debug_mode import is_debug_enabled
from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.distributions.parameter import BayesianParameter
from bayesconduit.filters.base import RecursiveBayesianEstimator
from bayesconduit.logging import get_logger

logger = get_logger(__name__)


class ParticleFilterUpdater(Protocol):
    """Problem-specific pieces of a particle filter."""

    def create_initial_particles(
        self, num_particles: int, rng: np.random.Generator
    ) -> EmpiricalDistribution:
        """Return ``num_particles`` particles drawn from the prior."""
        ...

    def update(self, particle: Any, rng: np.random.Generator) -> Any:
        """Propagate one particle through the transition model."""
        ...

    def compute_log_likelihood(self, particle: Any, observation: Any) -> float:
        """Return log p(observation | particle)."""
        ...


class ParameterParticleUpdater:
    """
    Particle updater for a static parameter.

    Particles start as prior draws. Each transition perturbs a particle by
    Gaussian noise with standard deviation ``tweak_scale`` so that resampled
    duplicates diverge again; particles leaving the prior's support are
    given zero likelihood.

    Args:
        parameter: Prior and conditional of the parameter being tracked.
        tweak_scale: Standard deviation of the perturbation. Zero keeps
            particles fixed.
    """

    def __init__(self, parameter: BayesianParameter, tweak_scale: float = 0.01) -> None:
        if tweak_scale < 0.0:
            raise ValueError("tweak_scale must be non-negative.")
        self.parameter = parameter
        self.tweak_scale = float(tweak_scale)

    def create_initial_particles(
        self, num_particles: int, rng: np.random.Generator
    ) -> EmpiricalDistribution:
        values = self.parameter.sample_prior(rng, size=num_particles)
        return EmpiricalDistribution(list(values))

    def update(self, particle: Any, rng: np.random.Generator) -> Any:
        if self.tweak_scale == 0.0:
            return particle
        return particle + self.tweak_scale * rng.standard_normal(np.shape(particle))

    def compute_log_likelihood(self, particle: Any, observation: Any) -> float:
        return self.parameter.log_likelihood(particle, [observation])


class SamplingImportanceResamplingParticleFilter(RecursiveBayesianEstimator):
    """
    Particle filter with likelihood weighting and adaptive resampling.

    Args:
        updater: Supplies initial particles, transitions and likelihoods.
        num_particles: Number of particles N.
        resample_threshold: Resample when ``ESS / N`` falls below this
            fraction. 0 never resamples; 1 resamples whenever weights are
            not uniform.
        resample_method: ``"multinomial"``, ``"systematic"`` or ``"residual"``.
        rng: Random number generator. If None, uses default_rng(0).

    Attributes:
        effective_sample_size: ESS after the most recent update.
        num_resamples: How many updates triggered resampling.
        log_evidence: Accumulated log marginal likelihood estimate.

    Raises:
        ValueError: On invalid arguments.
    """

    def __init__(
        self,
        updater: ParticleFilterUpdater,
        num_particles: int = 100,
        resample_threshold: float = 0.5,
        resample_method: str = "multinomial",
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        if num_particles < 1:
            raise ValueError("num_particles must be at least 1.")
        if not 0.0 <= resample_threshold <= 1.0:
            raise ValueError("resample_threshold must be in [0, 1].")
        self.updater = updater
        self.num_particles = int(num_particles)
        self.resample_threshold = float(resample_threshold)
        self.resample_method = resample_method
        self._resampler = get_resampler(resample_method)
        self.rng = resolve_rng(rng)

        self.effective_sample_size = float(num_particles)
        self.num_resamples = 0
        self.log_evidence = 0.0

    def create_initial_belief(self) -> EmpiricalDistribution:
        """Draw the initial particles and give them uniform weights.

        Raises:
            ValueError: If the updater returns the wrong number of particles.
        """
        particles = self.updater.create_initial_particles(self.num_particles, self.rng)
        if len(particles) != self.num_particles:
            raise ValueError(
                f"Updater returned {len(particles)} particles, expected {self.num_particles}"
            )
        particles.set_weights(np.full(self.num_particles, 1.0 / self.num_particles))
        self.effective_sample_size = float(self.num_particles)
        return particles

    def predict(self, belief: EmpiricalDistribution) -> EmpiricalDistribution:
        belief.values = [self.updater.update(value, self.rng) for value in belief.values]
        return belief

    def update(self, belief: EmpiricalDistribution, observation: Any) -> EmpiricalDistribution:
        """Reweight particles by the likelihood of ``observation``, then maybe resample.

        Raises:
            ValueError: If the particle count has changed or every particle
                has zero likelihood.
        """
        if len(belief) != self.num_particles:
            raise ValueError(f"Expected {self.num_particles} particles, got {len(belief)}")

        log_likelihoods = np.array(
            [self.updater.compute_log_likelihood(value, observation) for value in belief.values],
            dtype=float,
        )
        log_likelihoods[np.isnan(log_likelihoods)] = -np.inf
        with np.errstate(divide="ignore"):
            log_w = np.log(belief.normalized_weights) + log_likelihoods

        try:
            weights, log_z = normalize_log_weights(log_w)
        except ValueError:
            raise ValueError("All particle likelihoods are zero; the filter has degenerated") from None

        self.log_evidence += log_z
        belief.set_weights(weights)
        self.effective_sample_size = effective_sample_size(weights)

        if self.effective_sample_size < self.resample_threshold * self.num_particles:
            self._resample(belief)
        elif self.effective_sample_size < 1.5:
            logger.warning(
                "Particle weights have collapsed (ESS=%.3f of %d)",
                self.effective_sample_size,
                self.num_particles,
            )

        if is_debug_enabled():
            assert_normalized_weights(belief.weights)
        return belief

    def _resample(self, belief: EmpiricalDistribution) -> None:
        indices = self._resampler(belief.weights, self.rng, self.num_particles)
        belief.values = [copy.copy(belief.values[int(i)]) for i in indices]
        belief.set_weights(np.full(self.num_particles, 1.0 / self.num_particles))
        self.num_resamples += 1
        logger.debug(
            "Resampled %d particles (%s, ESS=%.2f)",
            self.num_particles,
            self.resample_method,
            self.effective_sample_size,
        )
