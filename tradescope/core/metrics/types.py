"""Value objects shared by the metric pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Literal

ReturnKind = Literal["log", "arithmetic"]
TradeSide = Literal["BUY", "SELL"]


class MetricKind(str, Enum):
    """Every metric published in a report, keyed by its payload name."""

    TOTAL_RETURN = "total_return"
    ANNUALIZED_RETURN = "annualized_return"
    WIN_RATE = "win_rate"
    AVERAGE_PROFIT = "average_profit"
    PROFIT_FACTOR = "profit_factor"
    MAXIMUM_LOSS = "maximum_loss"
    MAX_DRAWDOWN = "max_drawdown"
    SHARPE_RATIO = "sharpe_ratio"
    SORTINO_RATIO = "sortino_ratio"
    OMEGA_RATIO = "omega_ratio"
    VOLATILITY = "volatility"
    ALPHA = "alpha"
    BETA = "beta"
    TREYNOR_RATIO = "treynor_ratio"
    ULCER_INDEX = "ulcer_index"
    SKEWNESS = "skewness"
    KURTOSIS = "kurtosis"
    VAR_95 = "var_95"
    VAR_99 = "var_99"
    CVAR = "cvar"
    DOWNSIDE_DEVIATION = "downside_deviation"
    TRACKING_ERROR = "tracking_error"
    INFORMATION_RATIO = "information_ratio"
    CALMAR_RATIO = "calmar_ratio"
    STERLING_RATIO = "sterling_ratio"
    BURKE_RATIO = "burke_ratio"
    MODIFIED_SHARPE_RATIO = "modified_sharpe_ratio"
    UPTREND_CAPTURE = "uptrend_capture"
    DOWNTREND_CAPTURE = "downtrend_capture"
    MAX_DRAWDOWN_DURATION = "max_drawdown_duration"
    PAIN_INDEX = "pain_index"
    RISK_ADJUSTED_RETURN = "risk_adjusted_return"
    COMPOSITE_SCORE = "composite_score"


@dataclass(frozen=True)
class ClosedPosition:
    """One closed entry-to-exit holding produced by a strategy run."""

    entry_index: int
    entry_time: datetime
    entry_price: float
    exit_index: int
    exit_time: datetime
    exit_price: float
    is_long: bool = True

    @property
    def side(self) -> TradeSide:
        """Order side that opened the position."""
        return "BUY" if self.is_long else "SELL"


@dataclass(frozen=True)
class TradeRecord:
    """Realized trade with fee and capital bookkeeping."""

    sequence_no: int
    side: TradeSide
    entry_time: datetime
    exit_time: datetime
    entry_price: Decimal
    exit_price: Decimal
    entry_amount: Decimal
    exit_amount: Decimal
    profit: Decimal
    profit_pct: Decimal
    fee: Decimal
    max_loss: Decimal = Decimal("0")
    max_drawdown: Decimal = Decimal("0")


@dataclass(frozen=True)
class TradeExcursion:
    """Worst adverse moves observed while a position was open (absolute values)."""

    max_loss: float
    max_drawdown: float


@dataclass(frozen=True)
class MetricsReport:
    """Immutable performance/risk report for one backtest invocation."""

    success: bool
    strategy_name: str
    parameter_description: str
    initial_amount: Decimal
    final_amount: Decimal | None = None
    total_profit: Decimal | None = None
    total_fee: Decimal | None = None
    number_of_trades: int = 0
    profitable_trades: int = 0
    unprofitable_trades: int = 0
    annualization_factor: int | None = None
    metrics: Mapping[MetricKind, Decimal] = field(default_factory=dict)
    trades: tuple[TradeRecord, ...] = ()
    error_message: str | None = None

    def __post_init__(self) -> None:
        """Freeze the metric mapping so the report stays a value object."""
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def metric(self, kind: MetricKind) -> Decimal:
        """
        Look up one metric value.

        Args:
            kind: Metric kind.

        Returns:
            Quantized metric value, ``0`` when the report carries no metrics.
        """
        return self.metrics.get(kind, Decimal("0"))

    @property
    def composite_score(self) -> Decimal:
        """Composite 0-10 score."""
        return self.metric(MetricKind.COMPOSITE_SCORE)
