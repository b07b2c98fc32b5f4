"""Rejection sampling from a posterior.

A proposal x ~ q is accepted with probability
``p(D | x) p(x) / (M q(x))`` where M bounds the ratio of the unnormalized
posterior to q. Accepted draws are exact, independent posterior samples.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import numpy as np
from scipy import optimize

from bayesconduit.core.random import resolve_rng
from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.distributions.parameter import BayesianParameter, log_density
from bayesconduit.logging import get_logger

logger = get_logger(__name__)

# Excess of a log ratio over log M still attributed to optimizer round-off
SCALE_TOLERANCE = 1e-6


class RejectionSamplingUpdater(Protocol):
    """Problem-specific pieces of a rejection sampler."""

    def make_proposal(self, rng: np.random.Generator) -> Any:
        """Draw a candidate from the sampling distribution."""
        ...

    def compute_acceptance_probability(self, parameter: Any, data: Any) -> float:
        """Return the probability in [0, 1] of accepting ``parameter``."""
        ...


class DefaultRejectionUpdater:
    """
    Rejection updater for a scalar :class:`BayesianParameter`.

    Args:
        parameter: Prior and conditional likelihood.
        sampler: Frozen scipy distribution to propose from. Defaults to the
            prior.
        scale: The bound M. When None it is estimated for each new data set
            by maximizing ``log p(D | x) + log p(x) - log q(x)`` over a
            quantile grid of the sampler refined with ``scipy.optimize``.
    """

    GRID_SIZE = 201

    def __init__(
        self,
        parameter: BayesianParameter,
        sampler: Any = None,
        scale: Optional[float] = None,
    ) -> None:
        if scale is not None and scale <= 0.0:
            raise ValueError("scale must be positive.")
        self.parameter = parameter
        self.sampler = sampler if sampler is not None else parameter.prior
        self.scale = scale
        self._log_scale = None if scale is None else float(np.log(scale))
        self._scale_data: Any = None

    def make_proposal(self, rng: np.random.Generator) -> Any:
        return self.sampler.rvs(random_state=rng)

    def log_conjunctive(self, x: Any, data: Any) -> float:
        """log p(D | x) + log p(x)."""
        log_prior = self.parameter.log_prior(x)
        if not np.isfinite(log_prior):
            return -np.inf
        return self.parameter.log_likelihood(x, data) + log_prior

    def _log_ratio(self, x: float, data: Any) -> float:
        log_q = float(np.sum(log_density(self.sampler, x)))
        if not np.isfinite(log_q):
            return -np.inf
        return self.log_conjunctive(x, data) - log_q

    def estimate_log_scale(self, data: Any) -> float:
        """Estimate log M = max_x [log p(D | x) + log p(x) - log q(x)].

        A quantile grid of the sampler locates the best starting point. On a
        bounded support a bounded scalar search covers the whole support;
        otherwise a Nelder-Mead search starts from the best grid point and
        is free to leave the grid, which matters when the data pull the
        posterior into the tails of q.

        Raises:
            ValueError: If the ratio is zero everywhere on the grid.
        """
        grid = self.sampler.ppf(np.linspace(0.0, 1.0, self.GRID_SIZE)[1:-1])
        values = np.array([self._log_ratio(x, data) for x in grid])
        best = int(np.argmax(values))
        best_value = float(values[best])
        if not np.isfinite(best_value):
            raise ValueError("Posterior has no mass under the sampling distribution")

        def objective(x):
            return -self._log_ratio(float(np.ravel(x)[0]), data)

        low, high = self.sampler.support()
        if np.isfinite(low) and np.isfinite(high):
            result = optimize.minimize_scalar(objective, bounds=(low, high), method="bounded")
        else:
            start = float(grid[best])
            width = float(grid[-1] - grid[0]) / 10.0 or 1.0
            result = optimize.minimize(
                objective,
                x0=[start],
                method="Nelder-Mead",
                options={
                    "initial_simplex": [[start], [start + width]],
                    "xatol": 1e-10,
                    "fatol": 1e-12,
                    "maxiter": 2000,
                },
            )
        if np.isfinite(result.fun):
            best_value = max(best_value, float(-result.fun))

        logger.debug("Estimated rejection scale log M = %.6g", best_value)
        return best_value

    def compute_acceptance_probability(self, parameter: Any, data: Any) -> float:
        """Return ``p(D | x) p(x) / (M q(x))``.

        A proposal whose ratio exceeds M raises M to that ratio and logs a
        warning; samples accepted before the raise were drawn under the
        smaller bound.
        """
        if self._log_scale is None or (self.scale is None and data is not self._scale_data):
            self._log_scale = self.estimate_log_scale(data)
            self._scale_data = data
        log_ratio = self._log_ratio(parameter, data)
        if not np.isfinite(log_ratio):
            return 0.0
        if log_ratio > self._log_scale:
            if log_ratio - self._log_scale > SCALE_TOLERANCE:
                logger.warning(
                    "Rejection bound exceeded at %r (log ratio %.6g > log M %.6g); raising M",
                    parameter,
                    log_ratio,
                    self._log_scale,
                )
            self._log_scale = log_ratio
        return float(np.exp(log_ratio - self._log_scale))


class RejectionSampling:
    """
    Draw i.i.d. samples by proposing and accepting.

    Args:
        updater: Proposal distribution and acceptance rule.
        num_samples: Number of accepted samples to collect.
        rng: Random number generator. If None, uses default_rng(0).
        max_proposals_per_sample: Proposals allowed per accepted sample.

    Attributes:
        num_proposals: Proposals made by the most recent :meth:`learn` call.
    """

    def __init__(
        self,
        updater: RejectionSamplingUpdater,
        num_samples: int = 1000,
        rng: Optional[np.random.Generator] = None,
        max_proposals_per_sample: int = 100_000,
    ) -> None:
        if num_samples < 1:
            raise ValueError("num_samples must be at least 1.")
        if max_proposals_per_sample < 1:
            raise ValueError("max_proposals_per_sample must be at least 1.")
        self.updater = updater
        self.num_samples = int(num_samples)
        self.rng = resolve_rng(rng)
        self.max_proposals_per_sample = int(max_proposals_per_sample)
        self.num_proposals = 0

    @property
    def acceptance_rate(self) -> float:
        if self.num_proposals == 0:
            return 0.0
        return self.num_samples / self.num_proposals

    def learn(self, data: Any) -> EmpiricalDistribution:
        """Collect ``num_samples`` accepted draws.

        Raises:
            RuntimeError: If a single sample needs more than
                ``max_proposals_per_sample`` proposals.
        """
        self.num_proposals = 0
        accepted = []
        for _ in range(self.num_samples):
            for _ in range(self.max_proposals_per_sample):
                proposal = self.updater.make_proposal(self.rng)
                self.num_proposals += 1
                probability = self.updater.compute_acceptance_probability(proposal, data)
                if self.rng.random() < probability:
                    accepted.append(proposal)
                    break
            else:
                raise RuntimeError(
                    f"No proposal accepted after {self.max_proposals_per_sample} attempts"
                )

        logger.info(
            "Accepted %d of %d proposals (rate %.4f)",
            self.num_samples,
            self.num_proposals,
            self.acceptance_rate,
        )
        return EmpiricalDistribution(accepted)
