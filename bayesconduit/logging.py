"""Logging utilities for Bayes Conduit.

Every estimator and sampler obtains its logger from here so that verbosity
can be controlled in one place.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

# Default logging level
_DEFAULT_LEVEL = logging.WARNING

# Module-level logger cache
_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create a logger under the ``bayesconduit`` namespace.

    Loggers are cached so repeated calls never stack handlers. Pass
    ``__name__`` from the calling module.

    Args:
        name: Logger name. If None, returns the package-level logger.

    Returns:
        Configured logger instance.

    Example:
        >>> from bayesconduit.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Resampled %d particles", 100)
    """
    if name is None:
        name = "bayesconduit"

    if name == "bayesconduit" or name.startswith("bayesconduit."):
        logger_name = name
    else:
        logger_name = f"bayesconduit.{name}"

    if logger_name in _loggers:
        return _loggers[logger_name]

    logger = logging.getLogger(logger_name)

    if not logger.handlers:
        logger.setLevel(_DEFAULT_LEVEL)

        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(_DEFAULT_LEVEL)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))

        logger.addHandler(handler)
        logger.propagate = False

    _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the logging level for all Bayes Conduit loggers.

    Args:
        level: Logging level (``logging.DEBUG``, ...) or its name
            (``"DEBUG"``, ``"INFO"``, ...). Unknown names fall back to WARNING.

    Example:
        >>> import logging
        >>> from bayesconduit.logging import set_log_level
        >>> set_log_level(logging.INFO)
    """
    level = _coerce_level(level)

    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    global _DEFAULT_LEVEL
    _DEFAULT_LEVEL = level


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[object] = None,
) -> None:
    """Configure level, format and destination of all Bayes Conduit loggers.

    Existing handlers on cached loggers are replaced. Typically called once
    at application start-up.

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. If None, uses
            ``[LEVEL] name: message``.
        stream: Output stream (default: sys.stderr).
    """
    level = _coerce_level(level)

    if stream is None:
        stream = sys.stderr

    formatter = logging.Formatter(format_string or _DEFAULT_FORMAT)

    for logger in _loggers.values():
        logger.setLevel(level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        handler = logging.StreamHandler(stream)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    global _DEFAULT_LEVEL
    _DEFAULT_LEVEL = level
