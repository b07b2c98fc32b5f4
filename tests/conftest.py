"""Pytest configuration and shared fixtures for Bayes Conduit tests.

This module provides:
- Deterministic RNG fixtures for numpy and torch
- An autouse fixture that seeds global generators and resets debug mode
"""

import os

import numpy as np
import pytest
import torch

from bayesconduit.diagnostics import set_debug_enabled


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).

    Returns:
        A seeded numpy.random.Generator instance.
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function")
def torch_rng() -> torch.Generator:
    """Provide a deterministic CPU torch RNG for tests."""
    generator = torch.Generator()
    generator.manual_seed(_seed())
    return generator


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Seed global generators and make sure debug mode starts off.

    Library code never touches the global numpy state; seeding it guards
    test helpers that might.
    """
    np.random.seed(_seed())
    torch.manual_seed(_seed())
    set_debug_enabled(False)
    yield
    set_debug_enabled(False)
