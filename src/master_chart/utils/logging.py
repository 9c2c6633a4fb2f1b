"""Logging setup for the CLI: one stream handler on the package logger."""

from __future__ import annotations

import logging
from logging import Logger
from typing import Iterable

# SDK and transport loggers that log every request at INFO; kept at WARNING so their
# lines do not interleave with the progress bar.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    *,
    name: str = "master_chart",
    propagate: bool = False,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> Logger:
    """Attach a stream handler to the ``name`` logger and return it.

    Parameters
    ----------
    level: int | str
        Verbosity, either a ``logging`` constant or its name (``"DEBUG"``).
    name: str
        Package namespace; modules inherit the handler through ``getLogger(__name__)``.
    quiet_loggers: Iterable[str]
        Third-party loggers capped at WARNING unless ``level`` is DEBUG.
    """

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    if not any(isinstance(existing, logging.StreamHandler) for existing in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate

    if level > logging.DEBUG:
        for logger_name in quiet_loggers:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
    return logger


__all__ = ["LOG_FORMAT", "NOISY_LOGGERS", "configure_logging"]
