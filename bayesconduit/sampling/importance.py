"""Importance sampling.

Draws come from an importance distribution q and are weighted by
``target(x) / q(x)``; the weighted set approximates the target. Draws
where q has zero density get weight zero. No resampling is performed.
When the raw ratios leave the float range (long data sets make the
likelihood tiny or huge) they are rescaled by their maximum; the raw values
stay available in log space.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import numpy as np

from bayesconduit.core.random import resolve_rng
from bayesconduit.core.utils import logsumexp
from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.distributions.parameter import BayesianParameter
from bayesconduit.logging import get_logger

logger = get_logger(__name__)

_LOG_TINY = float(np.log(np.finfo(float).tiny))


class ImportanceSamplingUpdater(Protocol):
    """Problem-specific pieces of an importance sampler."""

    def make_proposal(self, rng: np.random.Generator) -> Any:
        """Draw from the importance distribution."""
        ...

    def compute_log_likelihood(self, parameter: Any, data: Any) -> float:
        """Return the log target density (up to a constant) at ``parameter``."""
        ...

    def compute_log_importance(self, parameter: Any) -> float:
        """Return the log importance density at ``parameter``."""
        ...


class DefaultImportanceUpdater:
    """Importance updater that proposes from the prior of a :class:`BayesianParameter`.

    The target is the unnormalized posterior, so each weight reduces to the
    likelihood of the data.
    """

    def __init__(self, parameter: BayesianParameter) -> None:
        self.parameter = parameter

    def make_proposal(self, rng: np.random.Generator) -> Any:
        return self.parameter.sample_prior(rng)

    def compute_log_likelihood(self, parameter: Any, data: Any) -> float:
        log_prior = self.parameter.log_prior(parameter)
        if not np.isfinite(log_prior):
            return -np.inf
        return self.parameter.log_likelihood(parameter, data) + log_prior

    def compute_log_importance(self, parameter: Any) -> float:
        return self.parameter.log_prior(parameter)


class ImportanceSampling:
    """
    Weighted sampling from a target through an importance distribution.

    Args:
        updater: Importance distribution and target density.
        num_samples: Number of draws.
        rng: Random number generator. If None, uses default_rng(0).
        normalize: If True, weights are normalized in log space before
            exponentiation. Otherwise they are the raw ratios whenever every
            ratio is representable as a float, and the ratios divided by the
            largest one when some would underflow or overflow.

    Attributes:
        log_weights: Raw log weights of the most recent :meth:`learn` call.
        log_weight_shift: Log of the factor the returned weights were
            divided by (0 for raw weights).
        log_evidence: Log of the mean raw weight, an estimate of the
            target's normalizing constant relative to q.
    """

    def __init__(
        self,
        updater: ImportanceSamplingUpdater,
        num_samples: int = 1000,
        rng: Optional[np.random.Generator] = None,
        normalize: bool = False,
    ) -> None:
        if num_samples < 1:
            raise ValueError("num_samples must be at least 1.")
        self.updater = updater
        self.num_samples = int(num_samples)
        self.rng = resolve_rng(rng)
        self.normalize = normalize
        self.log_weights = np.empty(0)
        self.log_evidence = -np.inf
        self.log_weight_shift = 0.0

    def _weight_shift(self, log_weights: np.ndarray, total: float) -> float:
        if self.normalize:
            return total
        finite = log_weights[np.isfinite(log_weights)]
        largest = float(np.max(finite))
        ceiling = np.log(np.finfo(float).max / (2.0 * len(log_weights)))
        if float(np.min(finite)) >= _LOG_TINY and largest <= ceiling:
            return 0.0
        logger.debug("Raw importance weights out of float range; dividing by exp(%.6g)", largest)
        return largest

    def learn(self, data: Any = None) -> EmpiricalDistribution:
        values = []
        log_weights = np.full(self.num_samples, -np.inf)
        for i in range(self.num_samples):
            value = self.updater.make_proposal(self.rng)
            values.append(value)
            log_q = float(self.updater.compute_log_importance(value))
            if not np.isfinite(log_q):
                continue
            log_p = float(self.updater.compute_log_likelihood(value, data))
            if not np.isnan(log_p):
                log_weights[i] = log_p - log_q

        self.log_weights = log_weights
        total = float(logsumexp(log_weights))
        self.log_evidence = total - np.log(self.num_samples)

        if not np.isfinite(total):
            logger.warning("All %d importance weights are zero", self.num_samples)
            self.log_weight_shift = 0.0
            return EmpiricalDistribution(values, np.zeros(self.num_samples))

        self.log_weight_shift = self._weight_shift(log_weights, total)
        weights = np.exp(log_weights - self.log_weight_shift)
        samples = EmpiricalDistribution(values, weights)
        logger.info(
            "Drew %d importance samples (ESS %.1f)",
            self.num_samples,
            samples.effective_sample_size(),
        )
        return samples
