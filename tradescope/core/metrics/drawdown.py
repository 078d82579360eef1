"""Per-trade excursions and price-path drawdown helpers."""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from tradescope.core.metrics.types import ClosedPosition, TradeExcursion


def _worst_negative(values: pd.Series) -> float:
    """Absolute value of the most negative entry, or 0 when nothing is negative."""
    if values.empty:
        return 0.0
    worst = float(values.min())
    return abs(worst) if worst < 0 else 0.0


def position_excursion(close: pd.Series, position: ClosedPosition) -> TradeExcursion:
    """
    Measure the worst loss and drawdown seen between entry and exit (inclusive).

    Long positions compare each close with the entry price and with the running peak.
    Short positions compare each close with the final exit close (scaled by the entry
    close) and measure rallies off the running trough.

    Args:
        close: Close prices for the full bar sequence.
        position: Closed position whose holding window is examined.

    Returns:
        Absolute max loss and max drawdown fractions.
    """
    window = close.iloc[position.entry_index : position.exit_index + 1].astype(float)
    if window.empty:
        return TradeExcursion(max_loss=0.0, max_drawdown=0.0)

    entry_close = float(window.iloc[0])
    exit_close = float(window.iloc[-1])

    if position.is_long:
        loss_rates = (window - entry_close) / entry_close
        running_peak = window.cummax()
        drawdown_rates = (window - running_peak) / running_peak
    else:
        loss_rates = (window - exit_close) / entry_close
        running_trough = window.cummin()
        drawdown_rates = (running_trough - window) / running_trough

    return TradeExcursion(
        max_loss=_worst_negative(loss_rates),
        max_drawdown=_worst_negative(drawdown_rates),
    )


def analyze_drawdowns(
    close: pd.Series,
    positions: Sequence[ClosedPosition],
) -> list[TradeExcursion]:
    """Return per-trade excursions index-aligned with ``positions``."""
    return [position_excursion(close, position) for position in positions]


def drawdown_path(close: pd.Series) -> pd.Series:
    """
    Peak-to-current drawdown fraction for every bar (0 at a new peak).

    Args:
        close: Close price series.

    Returns:
        Non-negative drawdown fractions aligned to ``close``.
    """
    prices = close.astype(float)
    running_peak = prices.cummax()
    return ((running_peak - prices) / running_peak).fillna(0.0)


def underwater_drawdowns(close: pd.Series) -> pd.Series:
    """
    Drawdown fractions for bars after the first that fail to set a new high.

    Bars that merely match the prior peak are included with a drawdown of 0.
    """
    prices = close.astype(float)
    prior_peak = prices.cummax().shift(1)
    underwater = prices <= prior_peak
    return drawdown_path(prices)[underwater]


def max_drawdown_duration(close: pd.Series) -> int:
    """
    Longest run of consecutive bars spent below the prior peak.

    A run ends when the price recovers to (or above) the peak; a run still open at
    the final bar counts as well.
    """
    prices = close.astype(float).tolist()
    if len(prices) < 2:
        return 0

    longest = 0
    current = 0
    peak = prices[0]
    for price in prices[1:]:
        if price >= peak:
            longest = max(longest, current)
            current = 0
            peak = price
        else:
            current += 1
    return max(longest, current)
