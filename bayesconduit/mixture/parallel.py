"""Dirichlet process mixture with per-cluster work on a thread pool."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from bayesconduit.distributions.empirical import EmpiricalDistribution
from bayesconduit.mixture.dirichlet_process import DirichletProcessMixtureModel


class ParallelDirichletProcessMixtureModel(DirichletProcessMixtureModel):
    """
    Dirichlet process mixture that evaluates clusters concurrently.

    Per-cluster log-likelihood columns and per-cluster posterior draws run
    on a ``ThreadPoolExecutor``. Observation reassignment stays sequential.
    Each cluster's posterior draw uses a generator seeded from the main
    generator before dispatch, so a given seed yields the same samples as
    :class:`DirichletProcessMixtureModel`.

    Args:
        max_workers: Thread pool size. None lets the executor choose.
        **kwargs: Forwarded to :class:`DirichletProcessMixtureModel`.
    """

    def __init__(self, *args: Any, max_workers: Optional[int] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def _map(self, function: Callable[[Any], Any], items: List[Any]) -> List[Any]:
        if self._executor is None:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(function, items))
        return list(self._executor.map(function, items))

    def learn(self, data: Any) -> EmpiricalDistribution:
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            self._executor = executor
            try:
                return super().learn(data)
            finally:
                self._executor = None
