"""Contract shared by every recursive Bayesian estimator."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional


class RecursiveBayesianEstimator(ABC):
    """
    Base class for estimators that fold observations into a belief one at a time.

    Subclasses implement :meth:`create_initial_belief`, :meth:`predict` and
    :meth:`update`. ``predict`` and ``update`` mutate the belief they are
    given and return it, so callers can chain them. :meth:`learn` runs
    ``predict`` followed by ``update`` for every observation, which makes
    online and batch processing equivalent.
    """

    @abstractmethod
    def create_initial_belief(self) -> Any:
        """Return a fresh prior belief. Each call returns a new object."""

    @abstractmethod
    def predict(self, belief: Any) -> Any:
        """Advance ``belief`` one transition step and return it."""

    @abstractmethod
    def update(self, belief: Any, observation: Any) -> Any:
        """Revise ``belief`` with one observation and return it."""

    def learn(self, observations: Iterable[Any], belief: Optional[Any] = None) -> Any:
        """Process a sequence of observations.

        Args:
            observations: Observations in arrival order.
            belief: Starting belief. Defaults to ``create_initial_belief()``.
                It is updated in place.

        Returns:
            The belief after the last observation.
        """
        if belief is None:
            belief = self.create_initial_belief()
        for observation in observations:
            belief = self.predict(belief)
            belief = self.update(belief, observation)
        return belief

    def clone(self) -> "RecursiveBayesianEstimator":
        return copy.deepcopy(self)
