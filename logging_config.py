"""
logging_config.py - Centralized logging configuration.

Every engine module logs through `get_logger(__name__)`; only the entry
points (main.py, api.py) call `setup_logging`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = "ECOTRACK_LOG_LEVEL"


def _level_from_env(default: int) -> int:
    raw = os.getenv(LOG_LEVEL_ENV, "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def setup_logging(level: Optional[int] = None, json_format: bool = False) -> None:
    """Configure root logger with consistent formatting.

    Args:
        level: Logging level. When omitted, ECOTRACK_LOG_LEVEL is consulted
            and INFO is used if it is unset or unknown.
        json_format: If True, emit JSON-like log lines.
    """
    if level is None:
        level = _level_from_env(logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if json_format:
        formatter = logging.Formatter(
            '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
            '"module":"%(name)s","message":"%(message)s"}',
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(name)-12s] %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)
