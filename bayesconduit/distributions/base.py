"""Belief abstraction shared by every estimator."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class Belief(Protocol):
    """
    Protocol for a distribution an estimator keeps and revises.

    Beliefs are mutable value objects owned by the estimator that created
    them. ``clone`` returns a deep copy that shares no state.
    """

    @property
    def mean(self) -> Any:
        """Return the mean of the distribution."""
        ...

    @property
    def covariance(self) -> np.ndarray:
        """Return the covariance matrix, shape (d, d)."""
        ...

    def sample(self, rng: np.random.Generator, n: Optional[int] = None) -> Any:
        """Draw one value (``n`` is None) or ``n`` values."""
        ...

    def clone(self) -> "Belief":
        """Return an independent deep copy."""
        ...
