"""Debug mode for Bayes Conduit.

When debug mode is on, estimators check their invariants after every step:
Kalman covariances stay symmetric PSD, particle weights sum to one and the
adaptive rejection envelopes bracket the log density. The initial state
comes from the BAYESCONDUIT_DEBUG environment variable.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

DEBUG_ENV_VAR = "BAYESCONDUIT_DEBUG"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def debug_flag_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Parse the debug flag from ``environ`` (defaults to ``os.environ``)."""
    environ = os.environ if environ is None else environ
    return environ.get(DEBUG_ENV_VAR, "0").strip().lower() in _TRUTHY


_debug_enabled: bool = debug_flag_from_env()


def is_debug_enabled() -> bool:
    """Whether invariant checks run after each estimator step."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def reset_debug_mode() -> bool:
    """Re-read BAYESCONDUIT_DEBUG and return the resulting state."""
    set_debug_enabled(debug_flag_from_env())
    return _debug_enabled


@contextmanager
def debug_context(enabled: bool = True) -> Iterator[None]:
    """
    Temporarily enable or disable debug mode.

    Parameters
    ----------
    enabled:
        Whether invariant checks run inside the block.

    Example
    -------
    >>> with debug_context(True):
    ...     kf.learn(observations)
    """
    global _debug_enabled
    prev = _debug_enabled
    _debug_enabled = bool(enabled)
    try:
        yield
    finally:
        _debug_enabled = prev
