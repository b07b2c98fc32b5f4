"""Random generator helpers."""

from __future__ import annotations

from typing import Optional

import numpy as np

DEFAULT_SEED = 0


def resolve_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    """Return ``rng`` or a fresh generator seeded with ``DEFAULT_SEED``.

    The global numpy random state is never used, so two runs with the same
    arguments produce the same draws.
    """
    return rng if rng is not None else np.random.default_rng(DEFAULT_SEED)


def spawn_seeds(rng: np.random.Generator, count: int) -> np.ndarray:
    """Draw ``count`` integer seeds for child generators."""
    return rng.integers(0, 2**63 - 1, size=count, dtype=np.int64)
