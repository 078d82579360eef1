"""Backtest metric pipeline exports."""

from tradescope.core.metrics.report import ReportSettings, calculate_report, report_to_dict
from tradescope.core.metrics.returns import annualization_factor, build_return_series
from tradescope.core.metrics.scoring import composite_score
from tradescope.core.metrics.types import ClosedPosition, MetricKind, MetricsReport, TradeRecord

__all__ = [
    "ClosedPosition",
    "MetricKind",
    "MetricsReport",
    "ReportSettings",
    "TradeRecord",
    "annualization_factor",
    "build_return_series",
    "calculate_report",
    "composite_score",
    "report_to_dict",
]
