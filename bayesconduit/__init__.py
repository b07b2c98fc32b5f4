"""Bayes Conduit - recursive Bayesian estimation and Monte Carlo sampling on numpy/scipy."""

__version__ = "0.1.0"

# Core abstractions
from .core import Evaluator, FunctionEvaluator, as_evaluator, resolve_rng

# Diagnostics
from .diagnostics import (
    assert_envelope_bounds,
    assert_normalized_weights,
    assert_symmetric_psd,
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

# Distributions and conjugate estimators
from .distributions import (
    BayesianParameter,
    Belief,
    EmpiricalDistribution,
    MultivariateGaussian,
    MultivariateGaussianMeanCovarianceEstimator,
    MultivariateGaussianMeanEstimator,
    NormalInverseWishart,
)

# Recursive filters
from .filters import (
    ExtendedKalmanFilter,
    KalmanFilter,
    LinearDynamicalSystem,
    ParameterParticleUpdater,
    ParticleFilterUpdater,
    RecursiveBayesianEstimator,
    SamplingImportanceResamplingParticleFilter,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Dirichlet process mixtures
from .mixture import (
    DirichletProcessMixtureModel,
    DirichletProcessMixtureUpdater,
    DPMMCluster,
    DPMMSample,
    GaussianMeanCovarianceUpdater,
    GaussianMeanUpdater,
    ParallelDirichletProcessMixtureModel,
    cluster_count_distribution,
)

# Monte Carlo samplers
from .sampling import (
    AdaptiveRejectionSampler,
    ChainConfig,
    DefaultImportanceUpdater,
    DefaultRejectionUpdater,
    ImportanceSampling,
    ImportanceSamplingUpdater,
    LogDensity,
    MarkovChainState,
    MetropolisHastings,
    MetropolisHastingsUpdater,
    RandomWalkUpdater,
    RejectionSampling,
    RejectionSamplingUpdater,
)

__all__ = [
    "__version__",
    # Core
    "Evaluator",
    "FunctionEvaluator",
    "as_evaluator",
    "resolve_rng",
    # Diagnostics
    "assert_symmetric_psd",
    "assert_normalized_weights",
    "assert_envelope_bounds",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
    # Distributions
    "Belief",
    "MultivariateGaussian",
    "EmpiricalDistribution",
    "BayesianParameter",
    "MultivariateGaussianMeanEstimator",
    "NormalInverseWishart",
    "MultivariateGaussianMeanCovarianceEstimator",
    # Filters
    "RecursiveBayesianEstimator",
    "LinearDynamicalSystem",
    "KalmanFilter",
    "ExtendedKalmanFilter",
    "ParticleFilterUpdater",
    "ParameterParticleUpdater",
    "SamplingImportanceResamplingParticleFilter",
    # Sampling
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
    # Mixtures
    "DirichletProcessMixtureUpdater",
    "GaussianMeanUpdater",
    "GaussianMeanCovarianceUpdater",
    "DirichletProcessMixtureModel",
    "ParallelDirichletProcessMixtureModel",
    "DPMMCluster",
    "DPMMSample",
    "cluster_count_distribution",
]
