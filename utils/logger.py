"""
utils/logger.py
Simple logging wrapper for ProbeGate
"""

import logging
import sys
from typing import Union

ROOT_LOGGER = "probegate"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (``probegate`` or ``probegate.<module>``)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Children propagate to the root "probegate" handler
    if name != ROOT_LOGGER and name.startswith(ROOT_LOGGER + "."):
        get_logger(ROOT_LOGGER, level)
        return logger

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.NOTSET)

    # Format: LEVEL - message
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def set_level(level: Union[int, str]) -> None:
    """Apply a level (``"DEBUG"``, ``logging.WARNING`` ...) to the probegate tree."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level {level!r}")
        level = resolved
    get_logger(ROOT_LOGGER).setLevel(level)


# Default logger instance
log = get_logger(ROOT_LOGGER)


__all__ = ["get_logger", "set_level", "log"]
