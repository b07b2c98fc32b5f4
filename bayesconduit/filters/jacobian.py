"""Jacobians of vector-valued models around an operating point."""

from __future__ import annotations

from typing import Callable

import numpy as np
import torch

from bayesconduit.core.utils import ensure_1d

DEFAULT_DELTA = 1e-6


def numerical_jacobian(
    function: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    delta: float = DEFAULT_DELTA,
) -> np.ndarray:
    """Central finite-difference Jacobian of ``function`` at ``x``.

    Args:
        function: Maps shape (n,) to shape (m,) (scalars are promoted).
        x: Operating point, shape (n,).
        delta: Step size per coordinate.

    Returns:
        Jacobian of shape (m, n).
    """
    x = ensure_1d(x)
    if delta <= 0.0:
        raise ValueError("delta must be positive.")

    columns = []
    for i in range(len(x)):
        step = np.zeros_like(x)
        step[i] = delta
        forward = ensure_1d(function(x + step))
        backward = ensure_1d(function(x - step))
        columns.append((forward - backward) / (2.0 * delta))
    return np.stack(columns, axis=1)


def autograd_jacobian(
    function: Callable[[torch.Tensor], torch.Tensor],
    x: np.ndarray,
) -> np.ndarray:
    """Exact Jacobian of a torch-differentiable ``function`` at ``x``.

    ``function`` receives a float64 tensor of shape (n,) and must build its
    output from torch operations.

    Returns:
        Jacobian as a numpy array of shape (m, n).
    """
    x = ensure_1d(x)
    point = torch.as_tensor(x, dtype=torch.float64)
    jacobian = torch.autograd.functional.jacobian(
        lambda t: torch.atleast_1d(torch.as_tensor(function(t), dtype=torch.float64)),
        point,
    )
    return jacobian.detach().cpu().numpy().reshape(-1, len(x))
