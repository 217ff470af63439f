"""Process-wide logging setup with per-module level overrides."""

from __future__ import annotations

import logging
import sys
from typing import Iterable, Optional

from roombooking.utils.config import get_settings


_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_INITIALIZED = False


def apply_level_overrides(overrides: Iterable[tuple[str, str]]) -> None:
    """Set levels for named logger subtrees, e.g. quiet ``roombooking.repository``."""
    for name, level in overrides:
        logging.getLogger(name).setLevel(level.upper())


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root handler once, then apply ``ROOMBOOKING_LOG_LEVELS``.

    Domain decisions, storage conflicts and HTTP errors share one stream;
    the overrides let an operator silence a noisy layer without losing the
    others.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = get_settings()
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=_LOG_FORMAT,
        stream=sys.stdout,
    )
    apply_level_overrides(settings.log_level_overrides)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for the requested module."""
    configure_logging()
    return logging.getLogger(name)
