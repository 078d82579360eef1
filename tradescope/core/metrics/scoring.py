"""Weighted 0-10 composite score built from a declarative sub-score table."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from tradescope.core.metrics.ratios import quantize_metric
from tradescope.core.metrics.types import MetricKind

MAX_SCORE = 10.0
TRADE_COUNT = "number_of_trades"

ScoreCurve = Callable[[float], float]


def rising(zero_at: float, full_at: float) -> ScoreCurve:
    """Score 0 at or below ``zero_at``, linear up to 10 at ``full_at`` and beyond."""

    def curve(value: float) -> float:
        if value >= full_at:
            return MAX_SCORE
        if value > zero_at:
            return (value - zero_at) / (full_at - zero_at) * MAX_SCORE
        return 0.0

    return curve


def falling(full_at: float, zero_at: float, absolute: bool = False) -> ScoreCurve:
    """Score 10 at or below ``full_at``, linear down to 0 at ``zero_at``, 0 beyond."""

    def curve(value: float) -> float:
        if absolute:
            value = abs(value)
        if value <= full_at:
            return MAX_SCORE
        if value <= zero_at:
            return (1.0 - (value - full_at) / (zero_at - full_at)) * MAX_SCORE
        return 0.0

    return curve


def band(low_zero: float, low_full: float, high_full: float, high_zero: float) -> ScoreCurve:
    """Full score inside ``[low_full, high_full]`` with linear shoulders down to 0."""

    def curve(value: float) -> float:
        if low_full <= value <= high_full:
            return MAX_SCORE
        if high_full < value <= high_zero:
            return (1.0 - (value - high_full) / (high_zero - high_full)) * MAX_SCORE
        if low_zero <= value < low_full:
            return (value - low_zero) / (low_full - low_zero) * MAX_SCORE
        return 0.0

    return curve


@dataclass(frozen=True)
class ScoreComponent:
    """One metric's contribution to a sub-score."""

    source: str
    weight: float
    curve: ScoreCurve


@dataclass(frozen=True)
class SubScore:
    """Weighted group of components scored on 0-10."""

    name: str
    weight: float
    components: tuple[ScoreComponent, ...]

    def evaluate(self, values: Mapping[str, float]) -> float:
        """Weighted sum of component curves; missing inputs score as 0-valued metrics."""
        return sum(
            component.weight * component.curve(float(values.get(component.source, 0.0)))
            for component in self.components
        )


SCORE_TABLE: tuple[SubScore, ...] = (
    SubScore(
        name="return",
        weight=0.35,
        components=(
            ScoreComponent(MetricKind.ANNUALIZED_RETURN.value, 0.4, rising(0.0, 0.20)),
            ScoreComponent(MetricKind.TOTAL_RETURN.value, 0.3, rising(0.0, 0.50)),
            ScoreComponent(MetricKind.PROFIT_FACTOR.value, 0.3, rising(1.0, 2.0)),
        ),
    ),
    SubScore(
        name="risk",
        weight=0.35,
        components=(
            ScoreComponent(MetricKind.SHARPE_RATIO.value, 0.30, rising(0.0, 2.0)),
            ScoreComponent(MetricKind.MAX_DRAWDOWN.value, 0.25, falling(0.05, 0.30, absolute=True)),
            ScoreComponent(MetricKind.SORTINO_RATIO.value, 0.20, rising(0.0, 1.5)),
            ScoreComponent(MetricKind.VAR_95.value, 0.15, falling(0.02, 0.10)),
            ScoreComponent(MetricKind.CALMAR_RATIO.value, 0.10, rising(0.0, 1.0)),
        ),
    ),
    SubScore(
        name="trade_quality",
        weight=0.20,
        components=(
            ScoreComponent(MetricKind.WIN_RATE.value, 0.4, rising(0.30, 0.65)),
            ScoreComponent(TRADE_COUNT, 0.3, band(5, 10, 100, 200)),
            ScoreComponent(MetricKind.AVERAGE_PROFIT.value, 0.3, rising(0.0, 0.02)),
        ),
    ),
    SubScore(
        name="stability",
        weight=0.10,
        components=(
            ScoreComponent(MetricKind.SKEWNESS.value, 0.4, falling(0.0, 0.5, absolute=True)),
            ScoreComponent(MetricKind.KURTOSIS.value, 0.3, falling(0.0, 2.0, absolute=True)),
            ScoreComponent(MetricKind.PAIN_INDEX.value, 0.3, falling(0.01, 0.05)),
        ),
    ),
)


def _score_inputs(
    metrics: Mapping[MetricKind, Decimal | float],
    number_of_trades: int,
) -> dict[str, float]:
    values = {MetricKind(kind).value: float(value) for kind, value in metrics.items()}
    values[TRADE_COUNT] = float(number_of_trades)
    return values


def sub_scores(
    metrics: Mapping[MetricKind, Decimal | float],
    number_of_trades: int,
) -> dict[str, float]:
    """
    Evaluate each sub-score on its own 0-10 scale.

    Args:
        metrics: Report metrics keyed by kind.
        number_of_trades: Closed trade count.

    Returns:
        Mapping of sub-score name to its unweighted value.
    """
    values = _score_inputs(metrics, number_of_trades)
    return {sub_score.name: sub_score.evaluate(values) for sub_score in SCORE_TABLE}


def composite_score(
    metrics: Mapping[MetricKind, Decimal | float],
    number_of_trades: int,
) -> Decimal:
    """
    Blend the sub-scores into one composite clamped to ``[0, 10]``.

    Args:
        metrics: Report metrics keyed by kind.
        number_of_trades: Closed trade count.

    Returns:
        Composite score rounded half-up to 2 decimal places.
    """
    scores = sub_scores(metrics, number_of_trades)
    total = sum(sub_score.weight * scores[sub_score.name] for sub_score in SCORE_TABLE)
    return quantize_metric(min(MAX_SCORE, max(0.0, total)), places=2)
