"""Evaluator capability shared by filters, samplers and densities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class Evaluator(Protocol):
    """
    Anything that maps an input to an output.

    Motion and observation models of the extended Kalman filter and the
    log densities fed to the adaptive rejection sampler are evaluators.
    """

    def evaluate(self, input: Any) -> Any:
        """Return the output for ``input``."""
        ...


@dataclass(frozen=True)
class FunctionEvaluator:
    """Adapter turning a plain callable into an :class:`Evaluator`."""

    function: Callable[[Any], Any]

    def evaluate(self, input: Any) -> Any:
        return self.function(input)

    def __call__(self, input: Any) -> Any:
        return self.function(input)


def as_evaluator(obj: Any) -> Evaluator:
    """Return ``obj`` if it already evaluates, else wrap it.

    Args:
        obj: An object with an ``evaluate`` method, or a callable.

    Returns:
        An object satisfying :class:`Evaluator`.

    Raises:
        ValueError: If ``obj`` is neither an evaluator nor callable.
    """
    if isinstance(obj, Evaluator):
        return obj
    if callable(obj):
        return FunctionEvaluator(obj)
    raise ValueError(f"Expected an evaluator or callable, got {type(obj).__name__}")
