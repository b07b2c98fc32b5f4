"""Dirichlet process mixture models."""

from .updaters import (
    DirichletProcessMixtureUpdater,
    GaussianMeanCovarianceUpdater,
    GaussianMeanUpdater,
)
from .dirichlet_process import (
    DirichletProcessMixtureModel,
    DPMMCluster,
    DPMMSample,
    chinese_restaurant_log_prior,
    cluster_count_distribution,
)
from .parallel import ParallelDirichletProcessMixtureModel

__all__ = [
    "DirichletProcessMixtureUpdater",
    "GaussianMeanUpdater",
    "GaussianMeanCovarianceUpdater",
    "DirichletProcessMixtureModel",
    "ParallelDirichletProcessMixtureModel",
    "DPMMCluster",
    "DPMMSample",
    "chinese_restaurant_log_prior",
    "cluster_count_distribution",
]
