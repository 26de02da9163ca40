"""Logging configuration for the training signup service."""

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stream handler on the package logger.

    Args:
        level: Log level name (DEBUG, INFO, ...)

    Returns:
        The configured ``training_signup`` logger
    """
    logger = logging.getLogger("training_signup")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Re-running setup (reload, tests) must not stack handlers.
    if not any(getattr(h, "_training_signup", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        handler._training_signup = True
        logger.addHandler(handler)

    return logger
