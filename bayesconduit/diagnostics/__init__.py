"""Diagnostics and debugging utilities for Bayes Conduit."""

from .core import (
    assert_envelope_bounds,
    assert_normalized_weights,
    assert_symmetric_psd,
    is_symmetric,
)
from .debug_mode import (
    DEBUG_ENV_VAR,
    debug_context,
    debug_flag_from_env,
    is_debug_enabled,
    reset_debug_mode,
    set_debug_enabled,
)

__all__ = [
    "is_symmetric",
    "assert_symmetric_psd",
    "assert_normalized_weights",
    "assert_envelope_bounds",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "debug_flag_from_env",
    "reset_debug_mode",
    "DEBUG_ENV_VAR",
]
