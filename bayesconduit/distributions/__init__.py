"""Beliefs and distributions used by the estimators."""

from .base import Belief
from .gaussian import MultivariateGaussian
from .empirical import EmpiricalDistribution
from .parameter import BayesianParameter, log_density
from .conjugate import (
    MultivariateGaussianMeanCovarianceEstimator,
    MultivariateGaussianMeanEstimator,
    NormalInverseWishart,
    as_observation_matrix,
)

__all__ = [
    "Belief",
    "MultivariateGaussian",
    "EmpiricalDistribution",
    "BayesianParameter",
    "log_density",
    "MultivariateGaussianMeanEstimator",
    "NormalInverseWishart",
    "MultivariateGaussianMeanCovarianceEstimator",
    "as_observation_matrix",
]
