"""Classic risk/return ratios over the full-period strategy return series.

Every formula is a pure function returning a finite float. ``RATIO_REGISTRY`` binds
each :class:`MetricKind` to exactly one of them so reports and the score table can
look metrics up by kind instead of by ad hoc field.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import cached_property
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import NamedTuple

import numpy as np
import pandas as pd

from tradescope.core.metrics.drawdown import (
    drawdown_path,
    max_drawdown_duration,
    underwater_drawdowns,
)
from tradescope.core.metrics.types import MetricKind

UNBOUNDED_RATIO = 999.9999
_EPSILON = 1e-12
_QUANTIZE_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def quantize_metric(value: float | Decimal, places: int = 4) -> Decimal:
    """
    Round a metric half-up to a fixed number of decimal places.

    Non-finite values become ``0`` so reports never carry NaN or infinity.
    """
    if isinstance(value, Decimal):
        number = value
    else:
        as_float = float(value)
        if not math.isfinite(as_float) or as_float == 0.0:
            as_float = 0.0
        number = Decimal(repr(as_float))
    if not number.is_finite():
        number = Decimal("0")
    result = number.quantize(Decimal(1).scaleb(-places), context=_QUANTIZE_CONTEXT)
    # -0.0000 -> 0.0000
    return result if result != 0 else abs(result)


def safe_ratio(numerator: float, denominator: float) -> float:
    """
    Divide with the report fallbacks for a vanishing denominator.

    Returns ``999.9999`` for a positive numerator over a zero denominator and ``0``
    for any other zero-denominator case.
    """
    if abs(denominator) <= _EPSILON:
        return UNBOUNDED_RATIO if numerator > 0 else 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def _as_array(values: pd.Series | np.ndarray | list[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _population_std(values: np.ndarray) -> float:
    if values.size == 0:
        return 0.0
    return float(values.std(ddof=0))


def downside_deviation(returns: pd.Series, target: float = 0.0) -> float:
    """Root mean square of shortfalls below ``target``; returns above it count as 0."""
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    shortfall = np.minimum(values - target, 0.0)
    return float(np.sqrt(np.mean(shortfall**2)))


def sharpe_ratio(returns: pd.Series, risk_free_rate: float, periods_per_year: int) -> float:
    """Annualized Sharpe ratio; 0 when the series has no dispersion."""
    values = _as_array(returns)
    std = _population_std(values)
    if std <= _EPSILON:
        return 0.0
    return (float(values.mean()) - risk_free_rate) / std * math.sqrt(periods_per_year)


def sortino_ratio(returns: pd.Series, risk_free_rate: float, periods_per_year: int) -> float:
    """Annualized Sortino ratio measured against downside deviation below the risk-free rate."""
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    excess = float(values.mean()) - risk_free_rate
    deviation = downside_deviation(returns, risk_free_rate)
    if deviation <= _EPSILON:
        return safe_ratio(excess, 0.0)
    return excess / deviation * math.sqrt(periods_per_year)


def omega_ratio(returns: pd.Series, threshold: float = 0.0) -> float:
    """Probability-weighted gains over losses relative to ``threshold``."""
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    gains = float(np.clip(values - threshold, 0.0, None).sum())
    losses = float(np.clip(threshold - values, 0.0, None).sum())
    return safe_ratio(gains, losses)


def volatility(close: pd.Series, periods_per_year: int) -> float:
    """Annualized standard deviation of close-to-close log returns."""
    prices = _as_array(close)
    if prices.size < 2:
        return 0.0
    previous, current = prices[:-1], prices[1:]
    valid = (previous > 0) & (current > 0)
    if not valid.any():
        return 0.0
    log_returns = np.log(current[valid] / previous[valid])
    return _population_std(log_returns) * math.sqrt(periods_per_year)


class AlphaBeta(NamedTuple):
    """Single-factor regression of strategy returns on benchmark returns."""

    alpha: float
    beta: float


def alpha_beta(returns: pd.Series, benchmark_returns: pd.Series) -> AlphaBeta:
    """
    OLS alpha and beta against a benchmark, truncated to the shorter series.

    Empty inputs give the neutral ``alpha=0, beta=1``; a flat benchmark gives ``beta=0``.
    """
    strategy = _as_array(returns)
    benchmark = _as_array(benchmark_returns)
    length = min(strategy.size, benchmark.size)
    if length == 0:
        return AlphaBeta(alpha=0.0, beta=1.0)

    strategy = strategy[:length]
    benchmark = benchmark[:length]
    strategy_mean = float(strategy.mean())
    benchmark_mean = float(benchmark.mean())
    covariance = float(np.mean((strategy - strategy_mean) * (benchmark - benchmark_mean)))
    benchmark_variance = float(np.mean((benchmark - benchmark_mean) ** 2))

    beta = covariance / benchmark_variance if benchmark_variance > 0 else 0.0
    return AlphaBeta(alpha=strategy_mean - beta * benchmark_mean, beta=beta)


def treynor_ratio(returns: pd.Series, risk_free_rate: float, beta: float) -> float:
    """Excess mean return per unit of benchmark beta."""
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    return safe_ratio(float(values.mean()) - risk_free_rate, beta)


def ulcer_index(close: pd.Series) -> float:
    """Root mean square of per-bar percentage drawdowns from the running peak."""
    if len(close) == 0:
        return 0.0
    drawdown_pct = drawdown_path(close) * 100.0
    return float(np.sqrt(np.mean(drawdown_pct.to_numpy(dtype=float) ** 2)))


def _standardized_moment(returns: pd.Series, order: int) -> float | None:
    values = _as_array(returns)
    if values.size < 4:
        return None
    deviations = values - values.mean()
    variance = float(np.mean(deviations**2))
    if variance <= 0:
        return None
    return float(np.mean(deviations**order)) / variance ** (order / 2)


def skewness(returns: pd.Series) -> float:
    """Third standardized moment; 0 with fewer than four points or no variance."""
    moment = _standardized_moment(returns, 3)
    return 0.0 if moment is None else moment


def kurtosis(returns: pd.Series) -> float:
    """Excess kurtosis (fourth standardized moment minus 3)."""
    moment = _standardized_moment(returns, 4)
    return 0.0 if moment is None else moment - 3.0


class TailRisk(NamedTuple):
    """Historical lower-tail loss estimates, reported as positive losses."""

    var_95: float
    var_99: float
    cvar: float


def tail_risk(returns: pd.Series) -> TailRisk:
    """
    Historical VaR at 95%/99% and the CVaR of the 95% tail.

    The cutoff for a level ``p`` is the ``ceil(n * (1 - p))``-th smallest return.
    """
    ordered = np.sort(_as_array(returns))
    count = ordered.size
    if count == 0:
        return TailRisk(var_95=0.0, var_99=0.0, cvar=0.0)

    def cutoff(tail: float) -> int:
        return min(max(math.ceil(count * tail) - 1, 0), count - 1)

    index_95 = cutoff(0.05)
    index_99 = cutoff(0.01)
    return TailRisk(
        var_95=-float(ordered[index_95]),
        var_99=-float(ordered[index_99]),
        cvar=-float(ordered[: index_95 + 1].mean()),
    )


def tracking_error(returns: pd.Series, benchmark_returns: pd.Series) -> float:
    """Population standard deviation of strategy-minus-benchmark returns."""
    strategy = _as_array(returns)
    benchmark = _as_array(benchmark_returns)
    if strategy.size != benchmark.size:
        return 0.0
    return _population_std(strategy - benchmark)


def information_ratio(
    returns: pd.Series,
    benchmark_returns: pd.Series,
    tracking_error_value: float,
) -> float:
    """Mean active return divided by tracking error; 0 when tracking error is 0."""
    strategy = _as_array(returns)
    benchmark = _as_array(benchmark_returns)
    if tracking_error_value == 0 or strategy.size == 0 or strategy.size != benchmark.size:
        return 0.0
    return float(np.mean(strategy - benchmark)) / tracking_error_value


def calmar_ratio(annualized_return_value: float, max_drawdown: float) -> float:
    """Annualized return over the absolute maximum drawdown."""
    return safe_ratio(annualized_return_value, abs(max_drawdown))


def sterling_ratio(annualized_return_value: float, close: pd.Series) -> float:
    """
    Annualized return over the average underwater drawdown of the price path.

    The denominator is rounded to 4 places first, so a negligible average drawdown
    takes the zero-denominator fallback.
    """
    if len(close) < 2:
        return 0.0
    drawdowns = underwater_drawdowns(close)
    average = float(drawdowns.mean()) if not drawdowns.empty else 0.0
    return safe_ratio(annualized_return_value, float(quantize_metric(average)))


def burke_ratio(annualized_return_value: float, close: pd.Series) -> float:
    """Annualized return over the rounded root mean square underwater drawdown."""
    if len(close) < 2:
        return 0.0
    drawdowns = underwater_drawdowns(close).to_numpy(dtype=float)
    root_mean_square = float(np.sqrt(np.mean(drawdowns**2))) if drawdowns.size else 0.0
    return safe_ratio(annualized_return_value, float(quantize_metric(root_mean_square)))


def modified_sharpe_ratio(sharpe: float, skew: float, excess_kurtosis: float) -> float:
    """
    Cornish-Fisher style Sharpe adjustment.

    ``sharpe * (1 + skew / 6 * sharpe - (kurtosis - 3) / 24 * sharpe ** 2)`` applied
    to the excess kurtosis as reported, so the 3 is subtracted a second time.
    """
    modifier = 1.0 + (skew / 6.0) * sharpe - ((excess_kurtosis - 3.0) / 24.0) * sharpe**2
    return sharpe * modifier


class CaptureRatios(NamedTuple):
    """Share of benchmark up/down moves captured by the strategy."""

    uptrend: float
    downtrend: float


def capture_ratios(returns: pd.Series, benchmark_returns: pd.Series) -> CaptureRatios:
    """Strategy return sums over benchmark return sums, split by benchmark direction."""
    strategy = _as_array(returns)
    benchmark = _as_array(benchmark_returns)
    if strategy.size != benchmark.size:
        return CaptureRatios(uptrend=0.0, downtrend=0.0)

    up = benchmark > 0
    down = benchmark < 0
    up_benchmark = float(benchmark[up].sum())
    down_benchmark = float(benchmark[down].sum())
    uptrend = (
        float(strategy[up].sum()) / up_benchmark if up.any() and up_benchmark != 0 else 0.0
    )
    downtrend = (
        float(strategy[down].sum()) / down_benchmark
        if down.any() and down_benchmark != 0
        else 0.0
    )
    return CaptureRatios(uptrend=uptrend, downtrend=downtrend)


def pain_index(close: pd.Series) -> float:
    """Sum of underwater drawdowns divided by the number of bars."""
    if len(close) < 2:
        return 0.0
    return float(underwater_drawdowns(close).sum()) / len(close)


def risk_adjusted_return(
    total_return: float,
    volatility_value: float,
    max_drawdown: float,
    downside_deviation_value: float,
) -> float:
    """Total return shrunk by a blended risk factor of volatility, drawdown and downside."""
    risk_factor = (
        0.4 * abs(volatility_value) + 0.4 * abs(max_drawdown) + 0.2 * abs(downside_deviation_value)
    )
    return total_return / (1.0 + risk_factor)


@dataclass(frozen=True)
class RatioInputs:
    """Everything the ratio registry needs for one report."""

    returns: pd.Series
    benchmark_returns: pd.Series
    raw_benchmark_returns: pd.Series
    close: pd.Series
    risk_free_rate: float
    periods_per_year: int
    total_return: float
    annualized_return: float
    max_drawdown: float

    @cached_property
    def regression(self) -> AlphaBeta:
        """Alpha and beta against the raw benchmark returns, computed once."""
        return alpha_beta(self.returns, self.raw_benchmark_returns)

    @cached_property
    def tail(self) -> TailRisk:
        return tail_risk(self.returns)

    @cached_property
    def captures(self) -> CaptureRatios:
        return capture_ratios(self.returns, self.benchmark_returns)


RatioFn = Callable[[RatioInputs, Mapping[MetricKind, Decimal]], float]


def _computed(values: Mapping[MetricKind, Decimal], kind: MetricKind) -> float:
    return float(values[kind])


# Insertion order is evaluation order; later entries may read earlier results.
RATIO_REGISTRY: dict[MetricKind, RatioFn] = {
    MetricKind.SHARPE_RATIO: lambda inputs, _: sharpe_ratio(
        inputs.returns, inputs.risk_free_rate, inputs.periods_per_year
    ),
    MetricKind.SORTINO_RATIO: lambda inputs, _: sortino_ratio(
        inputs.returns, inputs.risk_free_rate, inputs.periods_per_year
    ),
    MetricKind.OMEGA_RATIO: lambda inputs, _: omega_ratio(inputs.returns, inputs.risk_free_rate),
    MetricKind.VOLATILITY: lambda inputs, _: volatility(inputs.close, inputs.periods_per_year),
    MetricKind.ALPHA: lambda inputs, _: inputs.regression.alpha,
    MetricKind.BETA: lambda inputs, _: inputs.regression.beta,
    MetricKind.TREYNOR_RATIO: lambda inputs, done: treynor_ratio(
        inputs.returns, inputs.risk_free_rate, _computed(done, MetricKind.BETA)
    ),
    MetricKind.ULCER_INDEX: lambda inputs, _: ulcer_index(inputs.close),
    MetricKind.SKEWNESS: lambda inputs, _: skewness(inputs.returns),
    MetricKind.KURTOSIS: lambda inputs, _: kurtosis(inputs.returns),
    MetricKind.VAR_95: lambda inputs, _: inputs.tail.var_95,
    MetricKind.VAR_99: lambda inputs, _: inputs.tail.var_99,
    MetricKind.CVAR: lambda inputs, _: inputs.tail.cvar,
    MetricKind.DOWNSIDE_DEVIATION: lambda inputs, _: downside_deviation(
        inputs.returns, inputs.risk_free_rate
    ),
    MetricKind.TRACKING_ERROR: lambda inputs, _: tracking_error(
        inputs.returns, inputs.benchmark_returns
    ),
    MetricKind.INFORMATION_RATIO: lambda inputs, done: information_ratio(
        inputs.returns, inputs.benchmark_returns, _computed(done, MetricKind.TRACKING_ERROR)
    ),
    MetricKind.CALMAR_RATIO: lambda inputs, _: calmar_ratio(
        inputs.annualized_return, inputs.max_drawdown
    ),
    MetricKind.STERLING_RATIO: lambda inputs, _: sterling_ratio(
        inputs.annualized_return, inputs.close
    ),
    MetricKind.BURKE_RATIO: lambda inputs, _: burke_ratio(inputs.annualized_return, inputs.close),
    MetricKind.MODIFIED_SHARPE_RATIO: lambda inputs, done: modified_sharpe_ratio(
        _computed(done, MetricKind.SHARPE_RATIO),
        _computed(done, MetricKind.SKEWNESS),
        _computed(done, MetricKind.KURTOSIS),
    ),
    MetricKind.UPTREND_CAPTURE: lambda inputs, _: inputs.captures.uptrend,
    MetricKind.DOWNTREND_CAPTURE: lambda inputs, _: inputs.captures.downtrend,
    MetricKind.MAX_DRAWDOWN_DURATION: lambda inputs, _: float(max_drawdown_duration(inputs.close)),
    MetricKind.PAIN_INDEX: lambda inputs, _: pain_index(inputs.close),
    MetricKind.RISK_ADJUSTED_RETURN: lambda inputs, done: risk_adjusted_return(
        inputs.total_return,
        _computed(done, MetricKind.VOLATILITY),
        inputs.max_drawdown,
        _computed(done, MetricKind.DOWNSIDE_DEVIATION),
    ),
}


def compute_ratios(inputs: RatioInputs) -> dict[MetricKind, Decimal]:
    """
    Evaluate every registered ratio, quantized to 4 decimal places.

    Args:
        inputs: Return series, prices and scalar context for one report.

    Returns:
        Mapping of metric kind to its quantized value, in registry order.
    """
    computed: dict[MetricKind, Decimal] = {}
    for kind, ratio_fn in RATIO_REGISTRY.items():
        computed[kind] = quantize_metric(ratio_fn(inputs, computed))
    return computed
