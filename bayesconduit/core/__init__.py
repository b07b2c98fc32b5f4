"""Core capabilities shared across Bayes Conduit."""

from .evaluator import Evaluator, FunctionEvaluator, as_evaluator
from .random import DEFAULT_SEED, resolve_rng, spawn_seeds

__all__ = [
    "Evaluator",
    "FunctionEvaluator",
    "as_evaluator",
    "DEFAULT_SEED",
    "resolve_rng",
    "spawn_seeds",
]
