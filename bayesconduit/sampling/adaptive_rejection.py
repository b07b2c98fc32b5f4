"""Adaptive rejection sampling (ARS) for log-concave univariate densities.

A piecewise-linear upper envelope of log f is built from the evaluated
points, so exp(upper) is a piecewise-exponential proposal that can be
sampled exactly. A piecewise-linear lower envelope (the chords between
points) gives a squeeze test that accepts most proposals without touching
f. Every rejected proposal is added as a new point, tightening both
envelopes.

Two upper envelopes are supported:

* tangents at each point, when the log density supplies ``derivative``
  (Gilks & Wild 1992);
* extended secants through neighbouring points otherwise
  (Gilks 1992, the derivative-free variant).

Log-concavity of f is a precondition and is not checked.

References:
    Gilks, W. R., & Wild, P. (1992). Adaptive rejection sampling for Gibbs
    sampling. Applied Statistics, 41(2), 337-348.
    Gilks, W. R. (1992). Derivative-free adaptive rejection sampling for
    Gibbs sampling. Bayesian Statistics 4, 641-649.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

import numpy as np

from bayesconduit.core.utils import logsumexp
from bayesconduit.diagnostics.core import assert_envelope_bounds
from bayesconduit.diagnostics.debug_mode import is_debug_enabled
from bayesconduit.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_NUM_POINTS = 50
DEFAULT_MAX_REJECTIONS = 100

# Below this |slope| * width a segment is treated as flat
_FLAT_TOLERANCE = 1e-10


@dataclass(frozen=True)
class LogDensity:
    """
    Unnormalized log density evaluator with an optional derivative.

    Attributes:
        function: x -> log f(x) (up to an additive constant).
        derivative: Optional x -> d/dx log f(x). When present the sampler
            uses the tangent envelope.
    """

    function: Callable[[float], float]
    derivative: Optional[Callable[[float], float]] = None

    def evaluate(self, x: float) -> float:
        return float(self.function(x))

    @classmethod
    def from_distribution(cls, distribution: Any) -> "LogDensity":
        """Wrap the ``logpdf`` of a frozen scipy distribution."""
        return cls(distribution.logpdf)


def _line(anchor_x: float, anchor_y: float, slope: float, x: np.ndarray) -> np.ndarray:
    return anchor_y + slope * (x - anchor_x)


def _intersection(
    ax: float, ay: float, a_slope: float, bx: float, by: float, b_slope: float,
    left: float, right: float,
) -> float:
    """Abscissa where two lines cross, clipped into [left, right]."""
    if a_slope == b_slope:
        return 0.5 * (left + right)
    z = (by - ay + a_slope * ax - b_slope * bx) / (a_slope - b_slope)
    if not np.isfinite(z):
        return 0.5 * (left + right)
    return float(min(max(z, left), right))


def _log_segment_mass(left: float, right: float, anchor_x: float, anchor_y: float, slope: float) -> float:
    """log of the integral of exp(line) over [left, right].

    Raises:
        ValueError: If the integral diverges.
    """
    if right <= left:
        return -np.inf
    width = right - left
    if slope == 0.0 or (np.isfinite(width) and abs(slope) * width < _FLAT_TOLERANCE):
        if not np.isfinite(width):
            raise ValueError("Upper envelope is not integrable: flat unbounded tail")
        mid = 0.5 * (left + right)
        return float(_line(anchor_x, anchor_y, slope, mid) + np.log(width))
    if slope > 0.0:
        if not np.isfinite(right):
            raise ValueError("Upper envelope is not integrable: increasing right tail")
        return float(
            _line(anchor_x, anchor_y, slope, right) + np.log(-np.expm1(-slope * width)) - np.log(slope)
        )
    if not np.isfinite(left):
        raise ValueError("Upper envelope is not integrable: decreasing left tail")
    return float(
        _line(anchor_x, anchor_y, slope, left) + np.log(-np.expm1(slope * width)) - np.log(-slope)
    )


def _sample_segment(left: float, right: float, slope: float, u: float) -> float:
    """Invert the CDF of exp(slope * x) restricted to [left, right]."""
    width = right - left
    if slope == 0.0 or (np.isfinite(width) and abs(slope) * width < _FLAT_TOLERANCE):
        x = left + u * width
    elif slope > 0.0:
        x = right + np.log(u + (1.0 - u) * np.exp(-slope * width)) / slope
    else:
        x = left + np.log(1.0 - u + u * np.exp(slope * width)) / slope
    return float(min(max(x, left), right))


class AdaptiveRejectionSampler:
    """
    Exact sampler for a log-concave univariate density.

    Args:
        max_num_points: Upper limit on stored points; once reached the
            envelope stops adapting but sampling continues.
        max_rejections: Rejections allowed for a single draw before giving up.

    Examples:
        >>> from scipy import stats
        >>> ars = AdaptiveRejectionSampler()
        >>> ars.initialize(LogDensity.from_distribution(stats.norm()), -np.inf, np.inf,
        ...                [-1.0, 0.0, 1.0])
        >>> x = ars.sample(np.random.default_rng(0))
    """

    def __init__(
        self,
        max_num_points: int = DEFAULT_MAX_NUM_POINTS,
        max_rejections: int = DEFAULT_MAX_REJECTIONS,
    ) -> None:
        if max_num_points < 3:
            raise ValueError("max_num_points must be at least 3.")
        if max_rejections < 1:
            raise ValueError("max_rejections must be at least 1.")
        self.max_num_points = int(max_num_points)
        self.max_rejections = int(max_rejections)

        self.log_function: Any = None
        self.min_support = -np.inf
        self.max_support = np.inf
        self.xs = np.empty(0)
        self.log_values = np.empty(0)
        self.derivatives: Optional[np.ndarray] = None
        self.num_evaluations = 0
        self.num_rejections = 0

        self._seg_left = np.empty(0)
        self._seg_right = np.empty(0)
        self._seg_anchor_x = np.empty(0)
        self._seg_anchor_y = np.empty(0)
        self._seg_slope = np.empty(0)
        self._seg_log_mass = np.empty(0)

    @property
    def num_points(self) -> int:
        return len(self.xs)

    @property
    def uses_tangents(self) -> bool:
        return self.derivatives is not None

    def _evaluate(self, x: float) -> float:
        self.num_evaluations += 1
        return float(self.log_function.evaluate(x))

    def initialize(
        self,
        log_function: Any,
        min_support: float,
        max_support: float,
        points: Iterable[float],
    ) -> None:
        """Evaluate the starting points and build the envelopes.

        Args:
            log_function: Object with ``evaluate(x) -> log f(x)``, and
                optionally ``derivative(x)``. Plain callables are wrapped in
                :class:`LogDensity`.
            min_support: Lower end of the support (may be ``-inf``).
            max_support: Upper end of the support (may be ``inf``).
            points: At least three distinct points inside the support where
                log f is finite. For unbounded supports the outermost
                points should straddle the mode.

        Raises:
            ValueError: On too few points, points outside the support or an
                envelope that cannot be normalized.
        """
        if not hasattr(log_function, "evaluate"):
            log_function = LogDensity(log_function)
        if not min_support < max_support:
            raise ValueError("min_support must be less than max_support.")

        self.log_function = log_function
        self.min_support = float(min_support)
        self.max_support = float(max_support)
        self.num_evaluations = 0
        self.num_rejections = 0

        xs = np.unique(np.asarray(list(points), dtype=float))
        if np.any(xs < self.min_support) or np.any(xs > self.max_support):
            raise ValueError("Initial points must lie inside the support.")

        log_values = np.array([self._evaluate(x) for x in xs])
        finite = np.isfinite(log_values)
        xs, log_values = xs[finite], log_values[finite]
        if len(xs) < 3:
            raise ValueError("At least three distinct points with finite log density are required.")
        if len(xs) > self.max_num_points:
            raise ValueError(f"At most {self.max_num_points} initial points are allowed.")

        self.xs = xs
        self.log_values = log_values
        derivative = getattr(log_function, "derivative", None)
        if derivative is not None:
            self.derivatives = np.array([float(derivative(x)) for x in xs])
        else:
            self.derivatives = None
        self._rebuild()

    def add_point(self, x: float, log_value: Optional[float] = None) -> bool:
        """Insert a point, keeping ``xs`` sorted.

        Returns:
            False when the point was not added (already present, non-finite
            log density, or the point store is full).

        Raises:
            ValueError: If ``x`` is outside the support.
        """
        x = float(x)
        if not self.min_support <= x <= self.max_support:
            raise ValueError(f"Point {x} lies outside the support.")
        if self.num_points >= self.max_num_points:
            return False

        index = int(np.searchsorted(self.xs, x))
        if index < self.num_points and self.xs[index] == x:
            return False

        if log_value is None:
            log_value = self._evaluate(x)
        if not np.isfinite(log_value):
            return False

        self.xs = np.insert(self.xs, index, x)
        self.log_values = np.insert(self.log_values, index, float(log_value))
        if self.derivatives is not None:
            self.derivatives = np.insert(
                self.derivatives, index, float(self.log_function.derivative(x))
            )
        self._rebuild()
        return True

    def _rebuild(self) -> None:
        if self.derivatives is not None:
            segments = self._tangent_segments()
        else:
            segments = self._secant_segments()

        left, right, anchor_x, anchor_y, slope = (np.array(column) for column in zip(*segments))
        self._seg_left = left
        self._seg_right = right
        self._seg_anchor_x = anchor_x
        self._seg_anchor_y = anchor_y
        self._seg_slope = slope
        self._seg_log_mass = np.array(
            [_log_segment_mass(*segment) for segment in segments]
        )

        if is_debug_enabled():
            assert_envelope_bounds(
                self.lower_envelope(self.xs), self.log_values, self.upper_envelope(self.xs)
            )

    def _chord(self, i: int):
        """Line through points i and i + 1 as (anchor_x, anchor_y, slope)."""
        xs, ys = self.xs, self.log_values
        slope = (ys[i + 1] - ys[i]) / (xs[i + 1] - xs[i])
        return xs[i], ys[i], slope

    def _secant_segments(self) -> List[tuple]:
        xs = self.xs
        n = len(xs)
        segments = [
            (self.min_support, xs[0], *self._chord(0)),
            (xs[0], xs[1], *self._chord(1)),
        ]
        for i in range(1, n - 2):
            before = self._chord(i - 1)
            after = self._chord(i + 1)
            z = _intersection(*before, *after, xs[i], xs[i + 1])
            segments.append((xs[i], z, *before))
            segments.append((z, xs[i + 1], *after))
        segments.append((xs[n - 2], xs[n - 1], *self._chord(n - 3)))
        segments.append((xs[n - 1], self.max_support, *self._chord(n - 2)))
        return segments

    def _tangent_segments(self) -> List[tuple]:
        xs, ys, ds = self.xs, self.log_values, self.derivatives
        n = len(xs)
        breaks = [self.min_support]
        for i in range(n - 1):
            breaks.append(
                _intersection(xs[i], ys[i], ds[i], xs[i + 1], ys[i + 1], ds[i + 1], xs[i], xs[i + 1])
            )
        breaks.append(self.max_support)
        return [(breaks[i], breaks[i + 1], xs[i], ys[i], ds[i]) for i in range(n)]

    def upper_envelope(self, x) -> np.ndarray | float:
        """Upper bound on log f at ``x``; ``-inf`` outside the support."""
        x = np.asarray(x, dtype=float)
        index = np.clip(np.searchsorted(self._seg_left, x, side="right") - 1, 0, len(self._seg_left) - 1)
        values = _line(self._seg_anchor_x[index], self._seg_anchor_y[index], self._seg_slope[index], x)
        values = np.where((x < self.min_support) | (x > self.max_support), -np.inf, values)
        return float(values) if values.ndim == 0 else values

    def lower_envelope(self, x) -> np.ndarray | float:
        """Squeeze bound on log f at ``x``: chords inside the hull, ``-inf`` outside."""
        x = np.asarray(x, dtype=float)
        xs, ys = self.xs, self.log_values
        i = np.clip(np.searchsorted(xs, x, side="right") - 1, 0, len(xs) - 2)
        slope = (ys[i + 1] - ys[i]) / (xs[i + 1] - xs[i])
        values = ys[i] + slope * (x - xs[i])
        values = np.where((x < xs[0]) | (x > xs[-1]), -np.inf, values)
        return float(values) if values.ndim == 0 else values

    def upper_log_mass(self) -> float:
        """log of the integral of exp(upper envelope)."""
        return float(logsumexp(self._seg_log_mass))

    def _sample_upper(self, rng: np.random.Generator) -> float:
        probabilities = np.exp(self._seg_log_mass - logsumexp(self._seg_log_mass))
        cumulative = np.cumsum(probabilities)
        k = int(min(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"),
                    len(cumulative) - 1))
        return _sample_segment(self._seg_left[k], self._seg_right[k], self._seg_slope[k], rng.random())

    def sample(self, rng: np.random.Generator) -> float:
        """Draw one exact sample from f.

        Raises:
            RuntimeError: If ``max_rejections`` consecutive proposals are
                rejected.
        """
        if self.log_function is None:
            raise ValueError("Sampler is not initialized; call initialize() first.")

        for _ in range(self.max_rejections):
            x = self._sample_upper(rng)
            u = rng.random()
            upper = self.upper_envelope(x)
            if u <= np.exp(self.lower_envelope(x) - upper):
                return x

            log_fx = self._evaluate(x)
            if u <= np.exp(log_fx - upper):
                self.add_point(x, log_fx)
                return x
            self.num_rejections += 1
            self.add_point(x, log_fx)

        raise RuntimeError(
            f"Adaptive rejection sampling did not converge after {self.max_rejections} rejections"
        )

    def sample_n(self, rng: np.random.Generator, n: int) -> np.ndarray:
        return np.array([self.sample(rng) for _ in range(n)])

    def clone(self) -> "AdaptiveRejectionSampler":
        return copy.deepcopy(self)
