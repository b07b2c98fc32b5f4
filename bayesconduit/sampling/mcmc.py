"""Metropolis-Hastings Markov chain Monte Carlo.

Each iteration proposes theta' from q(theta' | theta) and accepts it with
probability

    min(1, p(D | theta') p(theta') q(theta | theta') / (p(D | theta) p(theta) q(theta' | theta)))

The ratio is evaluated in log space.

References:
    Hastings, W. K. (1970). Monte Carlo sampling methods using Markov chains
    and their applications. Biometrika, 57(1), 97-109.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple

import numpy as np

from bayesconduit.core.random import resolve_rng
from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.distributions.parameter import BayesianParameter
from bayesconduit.logging import get_logger
from bayesconduit.sampling.config import ChainConfig

logger = get_logger(__name__)

LOW_ACCEPTANCE_RATE = 0.01
HIGH_ACCEPTANCE_RATE = 0.99


class MetropolisHastingsUpdater(Protocol):
    """Problem-specific pieces of a Metropolis-Hastings chain."""

    def create_initial_parameter(self, rng: np.random.Generator) -> Any:
        """Return the starting point of the chain."""
        ...

    def make_proposal(self, parameter: Any, rng: np.random.Generator) -> Tuple[Any, float]:
        """
        Propose a move from ``parameter``.

        Returns
        -------
        tuple
            ``(proposal, proposal_ratio)`` with
            ``proposal_ratio = q(parameter | proposal) / q(proposal | parameter)``;
            1 for symmetric proposals.
        """
        ...

    def compute_log_likelihood(self, parameter: Any, data: Any) -> float:
        """Return log p(data | parameter)."""
        ...

    def compute_log_prior(self, parameter: Any) -> float:
        """Return log p(parameter)."""
        ...


@dataclass
class MarkovChainState:
    """Current position of a chain and its bookkeeping counters."""

    parameter: Any
    log_likelihood: float
    log_prior: float
    iteration: int = 0
    num_proposals: int = 0
    num_accepted: int = 0

    @property
    def log_posterior(self) -> float:
        return self.log_likelihood + self.log_prior

    @property
    def acceptance_rate(self) -> float:
        if self.num_proposals == 0:
            return 0.0
        return self.num_accepted / self.num_proposals


class RandomWalkUpdater:
    """
    Gaussian random-walk proposals for a :class:`BayesianParameter`.

    The proposal is symmetric, so the proposal ratio is always 1.

    Args:
        parameter: Supplies the prior and the conditional likelihood.
        step_size: Standard deviation of each proposal step.
        initial_value: Starting point. Defaults to a draw from the prior.
    """

    def __init__(
        self,
        parameter: BayesianParameter,
        step_size: float = 0.1,
        initial_value: Any = None,
    ) -> None:
        if step_size <= 0.0:
            raise ValueError("step_size must be positive.")
        self.parameter = parameter
        self.step_size = float(step_size)
        self.initial_value = initial_value

    def create_initial_parameter(self, rng: np.random.Generator) -> Any:
        if self.initial_value is not None:
            return copy.deepcopy(self.initial_value)
        return self.parameter.sample_prior(rng)

    def make_proposal(self, parameter: Any, rng: np.random.Generator) -> Tuple[Any, float]:
        step = self.step_size * rng.standard_normal(np.shape(parameter))
        return parameter + step, 1.0

    def compute_log_likelihood(self, parameter: Any, data: Any) -> float:
        return self.parameter.log_likelihood(parameter, data)

    def compute_log_prior(self, parameter: Any) -> float:
        return self.parameter.log_prior(parameter)


class MetropolisHastings:
    """
    Metropolis-Hastings sampler over an updater-defined parameter space.

    Args:
        updater: Initial state, proposals, likelihood and prior.
        config: Burn-in, thinning and number of samples.
        rng: Random number generator. If None, uses default_rng(0).

    Attributes:
        state: Chain state after the most recent :meth:`learn` call.

    Examples:
        >>> from scipy import stats
        >>> p = BayesianParameter(stats.bernoulli, stats.uniform(0, 1), "p")
        >>> mh = MetropolisHastings(RandomWalkUpdater(p, 0.2, initial_value=0.5),
        ...                         ChainConfig(100, 2, 500))
        >>> samples = mh.learn([1, 0, 1, 1])
        >>> len(samples)
        500
    """

    def __init__(
        self,
        updater: MetropolisHastingsUpdater,
        config: Optional[ChainConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.updater = updater
        self.config = config if config is not None else ChainConfig()
        self.rng = resolve_rng(rng)
        self.state: Optional[MarkovChainState] = None

    def initialize(self, data: Any) -> MarkovChainState:
        """Start a new chain at the updater's initial parameter.

        Raises:
            ValueError: If the initial parameter has zero posterior density.
        """
        parameter = self.updater.create_initial_parameter(self.rng)
        log_prior = float(self.updater.compute_log_prior(parameter))
        log_likelihood = (
            float(self.updater.compute_log_likelihood(parameter, data))
            if np.isfinite(log_prior)
            else -np.inf
        )
        if not np.isfinite(log_prior + log_likelihood):
            raise ValueError("Initial parameter has zero posterior density")
        self.state = MarkovChainState(parameter, log_likelihood, log_prior)
        return self.state

    def step(self, data: Any) -> bool:
        """Run one iteration. Returns True when the proposal was accepted."""
        state = self.state
        if state is None:
            state = self.initialize(data)

        proposal, proposal_ratio = self.updater.make_proposal(state.parameter, self.rng)
        state.iteration += 1
        state.num_proposals += 1

        log_prior = float(self.updater.compute_log_prior(proposal))
        if not np.isfinite(log_prior) or proposal_ratio <= 0.0:
            return False
        log_likelihood = float(self.updater.compute_log_likelihood(proposal, data))
        if np.isnan(log_likelihood) or log_likelihood == -np.inf:
            return False

        log_ratio = (
            log_likelihood - state.log_likelihood
            + log_prior - state.log_prior
            + np.log(proposal_ratio)
        )
        if log_ratio >= 0.0 or np.log(self.rng.random()) < log_ratio:
            state.parameter = proposal
            state.log_likelihood = log_likelihood
            state.log_prior = log_prior
            state.num_accepted += 1
            return True
        return False

    def learn(self, data: Any) -> EmpiricalDistribution:
        """Run a full chain and return the recorded samples.

        Returns:
            EmpiricalDistribution of ``config.max_samples`` parameters with
            unit weights, in chain order.
        """
        self.initialize(data)
        config = self.config

        for _ in range(config.burn_in_iterations):
            self.step(data)

        trace = []
        for _ in range(config.max_samples):
            for _ in range(config.iterations_per_sample):
                self.step(data)
            trace.append(copy.deepcopy(self.state.parameter))
        samples = EmpiricalDistribution(trace)

        rate = self.state.acceptance_rate
        if rate < LOW_ACCEPTANCE_RATE or rate > HIGH_ACCEPTANCE_RATE:
            logger.warning(
                "Acceptance rate %.4f is outside [%.2f, %.2f]; consider retuning proposals",
                rate,
                LOW_ACCEPTANCE_RATE,
                HIGH_ACCEPTANCE_RATE,
            )
        logger.info(
            "Collected %d samples in %d iterations (acceptance rate %.3f)",
            len(samples),
            self.state.iteration,
            rate,
        )
        return samples
