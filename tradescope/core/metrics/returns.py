"""Full-period return series, benchmark returns and annualization."""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

import numpy as np
import pandas as pd

from tradescope.core.metrics.types import ClosedPosition, ReturnKind
from tradescope.core.utils.errors import InputShapeError
from tradescope.core.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ANNUALIZATION_FACTOR = 252

_INTERVAL_PATTERN = re.compile(r"^\s*(\d+)\s*([mhHdDwWM])\s*$")
_UNIT_MINUTES: dict[str, int] = {
    "m": 1,
    "h": 60,
    "H": 60,
    "d": 1_440,
    "D": 1_440,
    "w": 10_080,
    "W": 10_080,
    "M": 43_200,
}

# (upper bound in minutes, periods per year), first match wins.
_ANNUALIZATION_TABLE: tuple[tuple[int, int], ...] = (
    (1, 525_600),
    (5, 105_120),
    (15, 35_040),
    (30, 17_520),
    (60, 8_760),
    (240, 2_190),
    (360, 1_460),
    (720, 730),
    (1_440, 365),
    (10_080, 52),
)
_LONGEST_PERIOD_FACTOR = 12


def parse_interval_minutes(interval: str) -> int:
    """
    Convert a bar interval label to minutes.

    Lower-case ``m`` is minutes and upper-case ``M`` is months (30 days); hour, day
    and week units accept either case.

    Args:
        interval: Label such as ``"1m"``, ``"4H"``, ``"1D"`` or ``"1M"``.

    Returns:
        Interval length in minutes.
    """
    match = _INTERVAL_PATTERN.match(interval or "")
    if match is None:
        raise ValueError(f"Unsupported bar interval label: {interval!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError(f"Bar interval must be positive: {interval!r}")
    return amount * _UNIT_MINUTES[match.group(2)]


def annualization_factor(interval: str, bar_count: int | None = None) -> int:
    """
    Map a bar interval to the number of return periods per year.

    Args:
        interval: Bar interval label.
        bar_count: Number of bars; fewer than two falls back to the daily default.

    Returns:
        Periods per year.
    """
    if bar_count is not None and bar_count < 2:
        logger.warning(
            "Falling back to annualization factor %d: only %d bar(s) available",
            DEFAULT_ANNUALIZATION_FACTOR,
            bar_count,
        )
        return DEFAULT_ANNUALIZATION_FACTOR
    try:
        minutes = parse_interval_minutes(interval)
    except ValueError as exc:
        logger.warning(
            "Falling back to annualization factor %d: %s", DEFAULT_ANNUALIZATION_FACTOR, exc
        )
        return DEFAULT_ANNUALIZATION_FACTOR

    for upper_bound, factor in _ANNUALIZATION_TABLE:
        if minutes <= upper_bound:
            return factor
    return _LONGEST_PERIOD_FACTOR


def _period_returns(prices: np.ndarray, return_kind: ReturnKind) -> np.ndarray:
    """Bar-over-bar returns for ``prices[1:]``; 0 where the previous close is not positive."""
    current = prices[1:]
    previous = prices[:-1]
    valid = previous > 0
    safe_previous = np.where(valid, previous, 1.0)
    if return_kind == "log":
        with np.errstate(divide="ignore", invalid="ignore"):
            raw = np.log(current / safe_previous)
    elif return_kind == "arithmetic":
        raw = (current - safe_previous) / safe_previous
    else:
        raise ValueError(f"Unsupported return kind: {return_kind!r}")
    return np.where(valid & np.isfinite(raw), raw, 0.0)


def build_return_series(
    close: pd.Series,
    positions: Sequence[ClosedPosition],
    return_kind: ReturnKind = "log",
) -> pd.Series:
    """
    Build the mark-to-market strategy return for every bar after the first.

    Entry bars and the bar right after an exit carry 0, bars inside a position carry
    the close-to-close return, and flat bars carry 0.

    Args:
        close: Close prices for the full bar sequence.
        positions: Closed positions with valid bar indices.
        return_kind: ``"log"`` or ``"arithmetic"`` returns.

    Returns:
        Series of length ``len(close) - 1`` indexed by ``close.index[1:]``.
    """
    bar_count = len(close)
    if bar_count < 2:
        return pd.Series([], index=close.index[:0], dtype=float, name="strategy_return")

    in_position = np.zeros(bar_count, dtype=bool)
    is_entry = np.zeros(bar_count, dtype=bool)
    is_exit = np.zeros(bar_count, dtype=bool)
    for position in positions:
        in_position[position.entry_index : position.exit_index + 1] = True
        is_entry[position.entry_index] = True
        is_exit[position.exit_index] = True

    raw = _period_returns(close.to_numpy(dtype=float), return_kind)
    holding = in_position[1:] & ~is_entry[1:] & ~is_exit[:-1]
    return pd.Series(
        np.where(holding, raw, 0.0),
        index=close.index[1:],
        dtype=float,
        name="strategy_return",
    )


def validate_return_series(returns: pd.Series, bar_count: int) -> None:
    """Require one return per bar after the first."""
    expected = max(bar_count - 1, 0)
    if len(returns) != expected:
        raise InputShapeError(
            f"Return series has {len(returns)} points; expected {expected} for {bar_count} bars."
        )


def benchmark_log_returns(benchmark_close: pd.Series | None) -> pd.Series:
    """Log returns of a benchmark close series; empty when fewer than two bars exist."""
    if benchmark_close is None or len(benchmark_close) < 2:
        return pd.Series([], dtype=float, name="benchmark_return")
    raw = _period_returns(benchmark_close.to_numpy(dtype=float), "log")
    return pd.Series(raw, index=benchmark_close.index[1:], dtype=float, name="benchmark_return")


def align_benchmark_returns(benchmark_returns: pd.Series, length: int) -> pd.Series:
    """
    Position-align benchmark returns to a strategy series of ``length`` points.

    Missing trailing points are zero-filled and extra points are dropped.
    """
    values = benchmark_returns.to_numpy(dtype=float)[:length]
    padded = np.zeros(length, dtype=float)
    padded[: len(values)] = values
    return pd.Series(padded, dtype=float, name="benchmark_return")


def annualized_return(total_return: Decimal | float, start: datetime, end: datetime) -> float:
    """
    Compound a total return over the evaluation window to a yearly rate.

    Args:
        total_return: Total return as a decimal fraction.
        start: First bar end time.
        end: Last bar end time.

    Returns:
        ``(1 + total_return) ** (365 / days) - 1``; the total return itself when the
        window spans less than one whole day.
    """
    total = float(total_return)
    if start > end:
        logger.warning("Annualized return window is inverted: %s > %s", start, end)
        return 0.0

    days_between = (pd.Timestamp(end) - pd.Timestamp(start)).days
    if days_between <= 0:
        return total

    base = 1.0 + total
    if base < 0:
        logger.warning("Cannot annualize a total return below -100%%: %s", total)
        return 0.0
    try:
        result = math.pow(base, 365.0 / days_between) - 1.0
    except OverflowError:
        logger.warning(
            "Annualized return overflowed for total return %s over %d days", total, days_between
        )
        return 0.0
    return result
