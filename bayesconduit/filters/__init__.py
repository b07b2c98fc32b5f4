"""Recursive Bayesian filters: Kalman, extended Kalman and particle filters."""

from .base import RecursiveBayesianEstimator
from .kalman import KalmanFilter, LinearDynamicalSystem, symmetrize
from .jacobian import autograd_jacobian, numerical_jacobian
from .extended_kalman import ExtendedKalmanFilter
from .particle import (
    ParameterParticleUpdater,
    ParticleFilterUpdater,
    SamplingImportanceResamplingParticleFilter,
)

__all__ = [
    "RecursiveBayesianEstimator",
    "LinearDynamicalSystem",
    "KalmanFilter",
    "symmetrize",
    "numerical_jacobian",
    "autograd_jacobian",
    "ExtendedKalmanFilter",
    "ParticleFilterUpdater",
    "ParameterParticleUpdater",
    "SamplingImportanceResamplingParticleFilter",
]
