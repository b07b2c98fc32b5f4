"""Weighted collections of sample values.

An :class:`EmpiricalDistribution` is the belief of the particle filter, the
trace returned by Metropolis-Hastings, the weighted sample set of importance
sampling and the collection of Dirichlet process mixture samples.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from bayesconduit.core.utils import effective_sample_size, multinomial_resample


def _hashable(value: Any) -> Hashable:
    if isinstance(value, np.ndarray):
        return tuple(value.ravel().tolist()) if value.ndim else value.item()
    if isinstance(value, np.generic):
        return value.item()
    return value


class EmpiricalDistribution:
    """
    Ordered list of values, each carrying a non-negative weight.

    Weights are kept as given; :meth:`normalize` rescales them to sum to one.
    Statistics (``mean``, ``covariance``, ``variance``) use the normalized
    weights and require numeric values.

    Args:
        values: Initial values.
        weights: One weight per value. Defaults to all ones.

    Raises:
        ValueError: If the number of weights differs from the number of
            values or any weight is negative or non-finite.

    Examples:
        >>> dist = EmpiricalDistribution([1.0, 3.0], [1.0, 3.0])
        >>> float(dist.mean)
        2.5
    """

    def __init__(
        self,
        values: Optional[Iterable[Any]] = None,
        weights: Optional[Iterable[float]] = None,
    ) -> None:
        self.values: List[Any] = list(values) if values is not None else []
        if weights is None:
            self.weights = np.ones(len(self.values))
        else:
            self.weights = np.asarray(list(weights), dtype=float)
        self._validate()

    def _validate(self) -> None:
        if self.weights.shape != (len(self.values),):
            raise ValueError(
                f"Expected {len(self.values)} weights, got shape {self.weights.shape}"
            )
        if np.any(~np.isfinite(self.weights)) or np.any(self.weights < 0.0):
            raise ValueError("Weights must be finite and non-negative")

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Tuple[Any, float]]:
        return iter(zip(self.values, self.weights.tolist()))

    def add(self, value: Any, weight: float = 1.0) -> None:
        """Append a value with the given weight."""
        if not np.isfinite(weight) or weight < 0.0:
            raise ValueError(f"Weight must be finite and non-negative, got {weight}")
        self.values.append(value)
        self.weights = np.append(self.weights, float(weight))

    def set_weights(self, weights: Iterable[float]) -> None:
        self.weights = np.asarray(list(weights), dtype=float)
        self._validate()

    @property
    def total_weight(self) -> float:
        return float(np.sum(self.weights))

    @property
    def normalized_weights(self) -> np.ndarray:
        """Weights divided by their sum.

        Raises:
            ValueError: If the distribution is empty or all weights are zero.
        """
        total = self.total_weight
        if total <= 0.0:
            raise ValueError("Distribution has no mass: all weights are zero")
        return self.weights / total

    def normalize(self) -> "EmpiricalDistribution":
        """Rescale weights in place to sum to one and return ``self``."""
        self.weights = self.normalized_weights
        return self

    def _as_array(self) -> np.ndarray:
        try:
            return np.asarray(self.values, dtype=float)
        except (TypeError, ValueError):
            raise ValueError("Statistics require numeric values") from None

    @property
    def mean(self) -> np.ndarray | float:
        """Weighted mean; a float for scalar values, shape (d,) for vectors."""
        w = self.normalized_weights
        values = self._as_array()
        mean = np.tensordot(w, values, axes=1)
        return float(mean) if np.ndim(mean) == 0 else mean

    @property
    def covariance(self) -> np.ndarray:
        """Weighted (biased) covariance, shape (d, d); (1, 1) for scalars."""
        w = self.normalized_weights
        values = self._as_array().reshape(len(self.values), -1)
        centered = values - w @ values
        return (w[:, None] * centered).T @ centered

    def variance(self) -> float:
        """Weighted variance of scalar values."""
        covariance = self.covariance
        if covariance.shape != (1, 1):
            raise ValueError("variance() requires scalar values; use covariance")
        return float(covariance[0, 0])

    def effective_sample_size(self) -> float:
        return effective_sample_size(self.weights)

    def sample(self, rng: np.random.Generator, n: Optional[int] = None) -> Any:
        """Draw values with replacement, proportional to weight.

        Returns a single value when ``n`` is None, otherwise a list.
        """
        probabilities = self.normalized_weights
        indices = multinomial_resample(probabilities, rng, 1 if n is None else n)
        if n is None:
            return self.values[int(indices[0])]
        return [self.values[int(i)] for i in indices]

    def value_counts(self) -> Dict[Hashable, float]:
        """Aggregate identical values into a mapping of value to normalized mass.

        Array values are keyed by the tuple of their entries.
        """
        masses: Dict[Hashable, float] = {}
        for value, weight in zip(self.values, self.normalized_weights):
            key = _hashable(value)
            masses[key] = masses.get(key, 0.0) + float(weight)
        return masses

    def max_weight_value(self) -> Any:
        """Return the value carrying the largest weight."""
        if not self.values:
            raise ValueError("Distribution is empty")
        return self.values[int(np.argmax(self.weights))]

    def clone(self) -> "EmpiricalDistribution":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"EmpiricalDistribution(size={len(self)}, total_weight={self.total_weight:.6g})"
