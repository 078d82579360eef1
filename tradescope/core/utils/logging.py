"""Logging utilities for TradeScope."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_level(level: str) -> int:
    """Parse a logging level name (``debug``, ``INFO``...) into its numeric level."""
    resolved_level = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved_level, int):
        raise ValueError(f"Invalid logging level: {level}")
    return resolved_level


def configure_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging for CLI runs.

    Python warnings (for example numpy runtime warnings raised while evaluating
    ratios on degenerate series) are routed through the ``py.warnings`` logger.

    Args:
        level: Logging level (for example ``INFO`` or ``DEBUG``).
    """
    logging.basicConfig(
        level=parse_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)
