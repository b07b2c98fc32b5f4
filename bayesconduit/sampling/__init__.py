"""Monte Carlo samplers: Metropolis-Hastings, rejection, importance and adaptive rejection."""

from .config import ChainConfig
from .mcmc import (
    MarkovChainState,
    MetropolisHastings,
    MetropolisHastingsUpdater,
    RandomWalkUpdater,
)
from .rejection import DefaultRejectionUpdater, RejectionSampling, RejectionSamplingUpdater
from .importance import DefaultImportanceUpdater, ImportanceSampling, ImportanceSamplingUpdater
from .adaptive_rejection import AdaptiveRejectionSampler, LogDensity

__all__ = [
    "ChainConfig",
    "MetropolisHastingsUpdater",
    "MarkovChainState",
    "RandomWalkUpdater",
    "MetropolisHastings",
    "RejectionSamplingUpdater",
    "DefaultRejectionUpdater",
    "RejectionSampling",
    "ImportanceSamplingUpdater",
    "DefaultImportanceUpdater",
    "ImportanceSampling",
    "LogDensity",
    "AdaptiveRejectionSampler",
]
