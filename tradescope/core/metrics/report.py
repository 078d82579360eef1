"""Assemble the full metrics report for one backtest invocation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import pandas as pd

from tradescope.core.metrics.drawdown import analyze_drawdowns
from tradescope.core.metrics.ratios import RatioInputs, compute_ratios, quantize_metric
from tradescope.core.metrics.returns import (
    align_benchmark_returns,
    annualization_factor,
    annualized_return,
    benchmark_log_returns,
    build_return_series,
    validate_return_series,
)
from tradescope.core.metrics.scoring import composite_score
from tradescope.core.metrics.trades import (
    TradeStatistics,
    attach_excursions,
    realize_trades,
    summarize_trades,
    to_decimal,
    validate_positions,
)
from tradescope.core.metrics.types import (
    ClosedPosition,
    MetricKind,
    MetricsReport,
    ReturnKind,
    TradeRecord,
)
from tradescope.core.utils.errors import DegenerateInputError, InputShapeError
from tradescope.core.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_MESSAGE_PREFIX = "Failed to calculate backtest metrics: "


@dataclass(frozen=True)
class ReportSettings:
    """Scalar configuration for one report."""

    initial_amount: Decimal
    fee_ratio: Decimal = Decimal("0.001")
    risk_free_rate: float = 0.0
    interval: str = "1D"
    return_kind: ReturnKind = "log"
    strategy_name: str = ""
    parameter_description: str = ""


def _require_tradable(close: pd.Series, positions: Sequence[ClosedPosition]) -> None:
    """Raise ``DegenerateInputError`` when there is nothing to evaluate."""
    if close.empty:
        raise DegenerateInputError("Price series contains no bars.")
    if not positions:
        raise DegenerateInputError("Strategy produced no closed trades.")


def _normalize_close(close: pd.Series) -> pd.Series:
    """Return close prices as floats, requiring strictly increasing bar times."""
    index = close.index
    if not (index.is_monotonic_increasing and index.is_unique):
        raise InputShapeError("Bar timestamps must be strictly increasing.")
    return close.astype(float)


def _zero_report(settings: ReportSettings, factor: int | None) -> MetricsReport:
    """Successful report for a backtest that never traded."""
    zeros: dict[MetricKind, Decimal] = {
        kind: quantize_metric(0.0) for kind in MetricKind if kind is not MetricKind.COMPOSITE_SCORE
    }
    zeros[MetricKind.COMPOSITE_SCORE] = composite_score(zeros, number_of_trades=0)
    initial_amount = to_decimal(settings.initial_amount)
    return MetricsReport(
        success=True,
        strategy_name=settings.strategy_name,
        parameter_description=settings.parameter_description,
        initial_amount=initial_amount,
        final_amount=initial_amount,
        total_profit=Decimal("0"),
        total_fee=Decimal("0"),
        annualization_factor=factor,
        metrics=zeros,
    )


def _failed_report(settings: ReportSettings, exc: Exception) -> MetricsReport:
    """Report carrying only the failure message, with no partial metrics."""
    return MetricsReport(
        success=False,
        strategy_name=settings.strategy_name,
        parameter_description=settings.parameter_description,
        initial_amount=to_decimal(settings.initial_amount),
        error_message=f"{ERROR_MESSAGE_PREFIX}{exc}",
    )


def _trade_metrics(stats: TradeStatistics, annualized: float) -> dict[MetricKind, Decimal]:
    return {
        MetricKind.TOTAL_RETURN: stats.total_return,
        MetricKind.ANNUALIZED_RETURN: quantize_metric(annualized),
        MetricKind.WIN_RATE: stats.win_rate,
        MetricKind.AVERAGE_PROFIT: stats.average_profit,
        MetricKind.PROFIT_FACTOR: stats.profit_factor,
        MetricKind.MAXIMUM_LOSS: stats.maximum_loss,
        MetricKind.MAX_DRAWDOWN: stats.max_drawdown,
    }


def calculate_report(
    close: pd.Series,
    positions: Sequence[ClosedPosition],
    settings: ReportSettings,
    benchmark_close: pd.Series | None = None,
) -> MetricsReport:
    """
    Evaluate a closed trade list against its price history and a benchmark.

    Pipeline: trade realization, per-trade excursions, trade statistics, full-period
    return series, ratio library, composite score.

    Args:
        close: Close prices indexed by bar end time.
        positions: Closed positions referencing ``close`` by bar index.
        settings: Capital, fee, risk-free rate, interval and labelling settings.
        benchmark_close: Optional benchmark close prices for relative ratios.

    Returns:
        Immutable report. Never raises: a backtest without trades yields a successful
        zero-value report and any computation failure yields ``success=False``.
    """
    factor: int | None = None
    try:
        factor = annualization_factor(settings.interval, bar_count=len(close))
        _require_tradable(close, positions)
        close = _normalize_close(close)

        ordered = sorted(positions, key=lambda position: position.entry_index)
        validate_positions(ordered, len(close))

        records = realize_trades(ordered, settings.initial_amount, settings.fee_ratio)
        records = attach_excursions(records, analyze_drawdowns(close, ordered))
        stats = summarize_trades(records, settings.initial_amount)

        annualized = annualized_return(
            stats.total_return, close.index[0].to_pydatetime(), close.index[-1].to_pydatetime()
        )
        logger.info("Detected annualization factor %d for interval %s", factor, settings.interval)

        returns = build_return_series(close, ordered, settings.return_kind)
        validate_return_series(returns, len(close))
        raw_benchmark = benchmark_log_returns(benchmark_close)

        metrics = _trade_metrics(stats, annualized)
        metrics.update(
            compute_ratios(
                RatioInputs(
                    returns=returns,
                    benchmark_returns=align_benchmark_returns(raw_benchmark, len(returns)),
                    raw_benchmark_returns=raw_benchmark,
                    close=close,
                    risk_free_rate=settings.risk_free_rate,
                    periods_per_year=factor,
                    total_return=float(stats.total_return),
                    annualized_return=annualized,
                    max_drawdown=float(stats.max_drawdown),
                )
            )
        )
        metrics[MetricKind.COMPOSITE_SCORE] = composite_score(metrics, stats.trade_count)
    except DegenerateInputError as exc:
        logger.info("Returning zero-value report: %s", exc)
        return _zero_report(settings, factor)
    except Exception as exc:
        logger.exception("Backtest metric calculation failed: %s", exc)
        return _failed_report(settings, exc)

    return MetricsReport(
        success=True,
        strategy_name=settings.strategy_name,
        parameter_description=settings.parameter_description,
        initial_amount=to_decimal(settings.initial_amount),
        final_amount=stats.final_amount,
        total_profit=stats.total_profit,
        total_fee=stats.total_fee,
        number_of_trades=stats.trade_count,
        profitable_trades=stats.profitable_trades,
        unprofitable_trades=stats.unprofitable_trades,
        annualization_factor=factor,
        metrics=metrics,
        trades=tuple(records),
    )


def _trade_to_dict(record: TradeRecord) -> dict[str, Any]:
    return {
        "sequence_no": record.sequence_no,
        "side": record.side,
        "entry_time": record.entry_time.isoformat(),
        "exit_time": record.exit_time.isoformat(),
        "entry_price": float(record.entry_price),
        "exit_price": float(record.exit_price),
        "entry_amount": float(record.entry_amount),
        "exit_amount": float(record.exit_amount),
        "profit": float(record.profit),
        "profit_pct": float(record.profit_pct),
        "fee": float(record.fee),
        "max_loss": float(record.max_loss),
        "max_drawdown": float(record.max_drawdown),
    }


def _optional_float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


def report_to_dict(report: MetricsReport) -> dict[str, Any]:
    """
    Serialize a report to a JSON-ready payload.

    Args:
        report: Metrics report.

    Returns:
        Payload with floats for decimals, metric names as keys and ISO timestamps.
    """
    return {
        "success": report.success,
        "error_message": report.error_message,
        "strategy_name": report.strategy_name,
        "parameter_description": report.parameter_description,
        "initial_amount": float(report.initial_amount),
        "final_amount": _optional_float(report.final_amount),
        "total_profit": _optional_float(report.total_profit),
        "total_fee": _optional_float(report.total_fee),
        "number_of_trades": report.number_of_trades,
        "profitable_trades": report.profitable_trades,
        "unprofitable_trades": report.unprofitable_trades,
        "annualization_factor": report.annualization_factor,
        "metrics": {kind.value: float(value) for kind, value in report.metrics.items()},
        "trades": [_trade_to_dict(record) for record in report.trades],
    }
