"""Named parameters with a prior and a conditional data distribution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np


def log_density(distribution: Any, x: Any) -> np.ndarray:
    """Evaluate ``logpdf`` (continuous) or ``logpmf`` (discrete) of a scipy distribution."""
    if hasattr(distribution, "logpdf"):
        return distribution.logpdf(x)
    if hasattr(distribution, "logpmf"):
        return distribution.logpmf(x)
    raise ValueError(f"{type(distribution).__name__} provides neither logpdf nor logpmf")


@dataclass(frozen=True)
class BayesianParameter:
    """
    A parameter of a conditional distribution together with its prior.

    Attributes:
        conditional: Maps a parameter value to the (frozen scipy)
            distribution of a single observation, e.g.
            ``lambda p: stats.bernoulli(p)``.
        prior: Frozen scipy distribution over the parameter value.
        name: Human-readable name, used in log messages.

    Example:
        >>> from scipy import stats
        >>> p = BayesianParameter(stats.bernoulli, stats.uniform(0, 1), "p")
        >>> float(p.log_likelihood(0.5, [0, 1]))
        -1.3862943611198906
    """

    conditional: Callable[[Any], Any]
    prior: Any
    name: str = "parameter"

    def conditional_distribution(self, value: Any) -> Any:
        return self.conditional(value)

    def log_prior(self, value: Any) -> float:
        return float(np.sum(log_density(self.prior, value)))

    def log_likelihood(self, value: Any, data: Any) -> float:
        """Sum of observation log densities under ``conditional(value)``.

        Values outside the prior's support return ``-inf`` without building
        the conditional distribution.
        """
        if not np.isfinite(self.log_prior(value)):
            return -np.inf
        total = float(np.sum(log_density(self.conditional(value), data)))
        return -np.inf if np.isnan(total) else total

    def sample_prior(self, rng: np.random.Generator, size: Optional[int] = None) -> Any:
        return self.prior.rvs(size=size, random_state=rng)
