"""Dirichlet process mixture model fitted by collapsed-assignment Gibbs sampling.

Each sweep visits the observations in order. Observation i is removed from
its cluster (an emptied cluster is discarded) and reassigned to existing
cluster k with probability proportional to ``n_k p_k(x_i)``, where p_k is
the posterior predictive given the other members of k, or to a new cluster
with probability proportional to ``alpha p_0(x_i)`` where p_0 is the prior
predictive. After the sweep each cluster's parameters are redrawn
from their posterior and, optionally, the concentration alpha is updated
with the auxiliary-variable scheme of Escobar & West.

References:
    Neal, R. M. (2000). Markov chain sampling methods for Dirichlet process
    mixture models. Journal of Computational and Graphical Statistics, 9(2).
    Escobar, M. D., & West, M. (1995). Bayesian density estimation and
    inference using mixtures. JASA, 90(430), 577-588.
"""

from __future__ import annotations

import bisect
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
from scipy.special import gammaln

from bayesconduit.core.random import resolve_rng, spawn_seeds
from bayesconduit.core.utils import logsumexp, sample_log_categorical
from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.logging import get_logger
from bayesconduit.mixture.updaters import DirichletProcessMixtureUpdater
from bayesconduit.sampling.config import ChainConfig

logger = get_logger(__name__)


@dataclass
class DPMMCluster:
    """Observation indices of one cluster and its current observation density."""

    members: List[int]
    distribution: Any

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass
class DPMMSample:
    """Snapshot of the sampler state after one recorded sweep."""

    alpha: float
    clusters: List[DPMMCluster]
    assignments: np.ndarray
    posterior_log_likelihood: float = field(default=-np.inf)

    @property
    def num_clusters(self) -> int:
        return len(self.clusters)


def chinese_restaurant_log_prior(counts: Iterable[int], alpha: float) -> float:
    """log probability of a partition with the given cluster sizes under CRP(alpha)."""
    counts = np.asarray(list(counts), dtype=float)
    n = np.sum(counts)
    return float(
        len(counts) * np.log(alpha)
        + np.sum(gammaln(counts))
        + gammaln(alpha)
        - gammaln(alpha + n)
    )


def cluster_count_distribution(samples: EmpiricalDistribution) -> Dict[int, float]:
    """Posterior mass of each number of clusters across DPMM samples."""
    counts = EmpiricalDistribution(
        [sample.num_clusters for sample in samples.values], samples.weights
    )
    return {int(k): mass for k, mass in sorted(counts.value_counts().items())}


class DirichletProcessMixtureModel:
    """
    Infinite mixture clustering with a Dirichlet process prior.

    Args:
        updater: Cluster model (prior predictive and posterior draws).
        alpha: Initial concentration parameter.
        num_initial_clusters: Clusters of the random initial assignment.
        reestimate_alpha: Resample alpha after every sweep under a
            Gamma(alpha_shape, alpha_rate) hyper-prior.
        config: Burn-in sweeps, sweeps between samples and number of samples.
        rng: Random number generator. If None, uses default_rng(0).
        alpha_shape: Shape of the Gamma hyper-prior on alpha.
        alpha_rate: Rate of the Gamma hyper-prior on alpha.
        num_split_merge: Split-merge proposals after each Gibbs sweep; 0
            disables them.

    Raises:
        ValueError: On non-positive alpha, hyper-parameters or cluster
            count, or a negative number of split-merge proposals.
    """

    def __init__(
        self,
        updater: DirichletProcessMixtureUpdater,
        alpha: float = 1.0,
        num_initial_clusters: int = 2,
        reestimate_alpha: bool = True,
        config: Optional[ChainConfig] = None,
        rng: Optional[np.random.Generator] = None,
        alpha_shape: float = 1.0,
        alpha_rate: float = 1.0,
        num_split_merge: int = 10,
    ) -> None:
        if alpha <= 0.0:
            raise ValueError("alpha must be positive.")
        if num_initial_clusters < 1:
            raise ValueError("num_initial_clusters must be at least 1.")
        if alpha_shape <= 0.0 or alpha_rate <= 0.0:
            raise ValueError("alpha_shape and alpha_rate must be positive.")
        if num_split_merge < 0:
            raise ValueError("num_split_merge must be non-negative.")
        self.updater = updater
        self.initial_alpha = float(alpha)
        self.num_initial_clusters = int(num_initial_clusters)
        self.reestimate_alpha = reestimate_alpha
        self.config = config if config is not None else ChainConfig(100, 1, 100)
        self.rng = resolve_rng(rng)
        self.alpha_shape = float(alpha_shape)
        self.alpha_rate = float(alpha_rate)
        self.num_split_merge = int(num_split_merge)

        self.alpha = self.initial_alpha
        self.clusters: List[DPMMCluster] = []
        self.assignments = np.empty(0, dtype=int)
        self._data = np.empty(0)
        self._prior_column = np.empty(0)

    # Parallel subclasses override this to spread per-cluster work over threads
    def _map(self, function: Callable[[Any], Any], items: List[Any]) -> List[Any]:
        return [function(item) for item in items]

    def _log_likelihood_column(self, distribution: Any) -> np.ndarray:
        return np.atleast_1d(np.asarray(distribution.logpdf(self._data), dtype=float))

    def _draw_cluster_distributions(self, member_lists: List[List[int]]) -> List[Any]:
        seeds = spawn_seeds(self.rng, len(member_lists))

        def draw(job):
            members, seed = job
            return self.updater.create_cluster_posterior(
                self._data[members], np.random.default_rng(seed)
            )

        return self._map(draw, list(zip(member_lists, seeds)))

    def initialize(self, data: Any) -> None:
        """Randomly assign observations to the initial clusters.

        Raises:
            ValueError: If ``data`` is empty or not 1D/2D.
        """
        data = np.asarray(data, dtype=float)
        if data.ndim not in (1, 2) or len(data) == 0:
            raise ValueError(f"Expected a non-empty 1D or 2D data array, got shape {data.shape}")
        self._data = data
        n = len(data)

        self.alpha = self.initial_alpha
        self._prior_column = self._log_likelihood_column(self.updater.create_prior_predictive(data))

        labels = self.rng.integers(min(self.num_initial_clusters, n), size=n)
        _, self.assignments = np.unique(labels, return_inverse=True)
        self.assignments = self.assignments.astype(int).reshape(-1)
        self._rebuild_clusters()

    def _rebuild_clusters(self) -> None:
        num_clusters = int(self.assignments.max()) + 1
        member_lists = [np.flatnonzero(self.assignments == k).tolist() for k in range(num_clusters)]
        distributions = self._draw_cluster_distributions(member_lists)
        self.clusters = [DPMMCluster(m, d) for m, d in zip(member_lists, distributions)]

    def _predictive_column(self, members: List[int]) -> np.ndarray:
        predictive = self.updater.create_cluster_predictive(self._data[members])
        return self._log_likelihood_column(predictive)

    def _log_predictive(self, members: List[int], index: int) -> float:
        predictive = self.updater.create_cluster_predictive(self._data[members])
        return float(np.atleast_1d(predictive.logpdf(self._data[[index]]))[0])

    def sweep(self) -> None:
        """Reassign every observation, then redraw cluster parameters and alpha.

        Cluster k is scored with the posterior predictive of its members
        other than the observation being moved. Columns of predictive log
        densities over the whole data set are cached per cluster and
        recomputed only for clusters whose membership changed.
        """
        rng = self.rng
        members = [list(c.members) for c in self.clusters]
        columns = self._map(self._predictive_column, members)
        assignments = self.assignments
        log_alpha = np.log(self.alpha)

        for i in range(len(self._data)):
            k = int(assignments[i])
            members[k].remove(i)
            own: Optional[float] = None
            if members[k]:
                own = self._log_predictive(members[k], i)
            else:
                del members[k], columns[k]
                assignments[assignments > k] -= 1

            log_weights = np.empty(len(members) + 1)
            log_weights[:-1] = np.array([column[i] for column in columns])
            if own is not None:
                log_weights[k] = own
            log_weights[:-1] += np.log([len(m) for m in members])
            log_weights[-1] = log_alpha + self._prior_column[i]
            choice = sample_log_categorical(log_weights, rng)

            if choice == len(members):
                members.append([i])
                columns.append(self._predictive_column([i]))
            else:
                bisect.insort(members[choice], i)
                if own is None or choice != k:
                    columns[choice] = self._predictive_column(members[choice])
            if own is not None and choice != k:
                columns[k] = self._predictive_column(members[k])
            assignments[i] = choice

        for _ in range(self.num_split_merge):
            self._split_merge()
        self._rebuild_clusters()
        if self.reestimate_alpha:
            self.alpha = self._sample_alpha(len(self.clusters), len(self._data))

    def _split_merge(self) -> bool:
        """One random-allocation split-merge Metropolis-Hastings proposal.

        Two distinct observations are picked. If they share a cluster, the
        other members are split between them by fair coin flips; otherwise
        their clusters are proposed to merge. Returns True when accepted.

        References:
            Jain, S., & Neal, R. M. (2004). A split-merge Markov chain Monte
            Carlo procedure for the Dirichlet process mixture model. JCGS,
            13(1).
        """
        rng = self.rng
        data = self._data
        assignments = self.assignments
        if len(data) < 2:
            return False
        i, j = (int(v) for v in rng.choice(len(data), size=2, replace=False))
        ci, cj = int(assignments[i]), int(assignments[j])
        marginal = self.updater.log_marginal_likelihood

        if ci == cj:
            members = np.flatnonzero(assignments == ci)
            others = members[(members != i) & (members != j)]
            to_i = rng.random(len(others)) < 0.5
            side_i = np.concatenate([[i], others[to_i]]).astype(int)
            side_j = np.concatenate([[j], others[~to_i]]).astype(int)
            merged = members
            sign = 1.0
        else:
            side_i = np.flatnonzero(assignments == ci)
            side_j = np.flatnonzero(assignments == cj)
            merged = np.concatenate([side_i, side_j])
            sign = -1.0

        # log of p(split) / p(merged) times the split-to-merge proposal ratio
        log_split_odds = (
            np.log(self.alpha)
            + gammaln(len(side_i)) + gammaln(len(side_j)) - gammaln(len(merged))
            + marginal(data[side_i]) + marginal(data[side_j]) - marginal(data[merged])
            + (len(merged) - 2) * np.log(2.0)
        )
        if np.log(rng.random()) >= sign * log_split_odds:
            return False

        if ci == cj:
            assignments[side_j] = int(assignments.max()) + 1
        else:
            assignments[side_j] = ci
            assignments[assignments > cj] -= 1
        logger.debug(
            "Accepted %s (cluster sizes %d and %d)",
            "split" if ci == cj else "merge",
            len(side_i),
            len(side_j),
        )
        return True

    def _sample_alpha(self, num_clusters: int, num_observations: int) -> float:
        """Escobar & West auxiliary-variable update of the concentration."""
        rng = self.rng
        eta = rng.beta(self.alpha + 1.0, num_observations)
        rate = self.alpha_rate - np.log(eta)
        odds = (self.alpha_shape + num_clusters - 1.0) / (num_observations * rate)
        shape = self.alpha_shape + num_clusters
        if rng.random() >= odds / (1.0 + odds):
            shape -= 1.0
        return float(rng.gamma(shape, 1.0 / rate))

    def posterior_log_likelihood(self) -> float:
        """Mixture log-likelihood of the data plus the CRP log prior of the partition."""
        n = len(self._data)
        counts = np.array([c.size for c in self.clusters], dtype=float)
        columns = np.stack(
            self._map(self._log_likelihood_column, [c.distribution for c in self.clusters])
        )
        mixture = logsumexp(columns + np.log(counts / n)[:, None], axis=0)
        return float(np.sum(mixture)) + chinese_restaurant_log_prior(counts, self.alpha)

    def snapshot(self) -> DPMMSample:
        return DPMMSample(
            alpha=self.alpha,
            clusters=copy.deepcopy(self.clusters),
            assignments=self.assignments.copy(),
            posterior_log_likelihood=self.posterior_log_likelihood(),
        )

    def learn(self, data: Any) -> EmpiricalDistribution:
        """Run the sampler and return the recorded :class:`DPMMSample` objects.

        Returns:
            EmpiricalDistribution of ``config.max_samples`` samples with unit
            weights, in sweep order.
        """
        config = self.config
        self.initialize(data)

        for sweep in range(config.burn_in_iterations):
            self.sweep()
            logger.debug("Burn-in sweep %d: %d clusters, alpha=%.4f", sweep, len(self.clusters), self.alpha)

        samples = []
        for _ in range(config.max_samples):
            for _ in range(config.iterations_per_sample):
                self.sweep()
            samples.append(self.snapshot())

        result = EmpiricalDistribution(samples)
        counts = cluster_count_distribution(result)
        logger.info(
            "Collected %d DPMM samples; modal cluster count %d",
            len(samples),
            max(counts, key=counts.get),
        )
        return result
