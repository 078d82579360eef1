"""Unit tests for the composite score."""

from __future__ import annotations

import unittest
from decimal import Decimal

from tradescope.core.metrics.scoring import (
    SCORE_TABLE,
    band,
    composite_score,
    falling,
    rising,
    sub_scores,
)
from tradescope.core.metrics.types import MetricKind

_SCORED_KINDS = [kind for kind in MetricKind if kind is not MetricKind.COMPOSITE_SCORE]


def _metrics(**overrides: float) -> dict[MetricKind, float]:
    values = {kind: 0.0 for kind in _SCORED_KINDS}
    for name, value in overrides.items():
        values[MetricKind(name)] = value
    return values


class TestScoreCurves(unittest.TestCase):
    """Validate piecewise-linear curve shapes."""

    def test_rising(self) -> None:
        curve = rising(1.0, 2.0)
        self.assertEqual(curve(0.5), 0.0)
        self.assertAlmostEqual(curve(1.5), 5.0, places=12)
        self.assertEqual(curve(3.0), 10.0)

    def test_falling_absolute(self) -> None:
        curve = falling(0.05, 0.30, absolute=True)
        self.assertEqual(curve(-0.01), 10.0)
        self.assertAlmostEqual(curve(-0.175), 5.0, places=12)
        self.assertEqual(curve(0.5), 0.0)

    def test_trade_count_band(self) -> None:
        curve = band(5, 10, 100, 200)
        self.assertEqual(curve(50), 10.0)
        self.assertAlmostEqual(curve(7.5), 5.0, places=12)
        self.assertAlmostEqual(curve(150), 5.0, places=12)
        self.assertEqual(curve(250), 0.0)
        self.assertEqual(curve(0), 0.0)


class TestCompositeScore(unittest.TestCase):
    """Validate weighting, clamping and rounding."""

    def test_weights_sum_to_one(self) -> None:
        self.assertAlmostEqual(sum(sub.weight for sub in SCORE_TABLE), 1.0, places=12)
        for sub in SCORE_TABLE:
            with self.subTest(sub_score=sub.name):
                self.assertAlmostEqual(
                    sum(component.weight for component in sub.components), 1.0, places=12
                )

    def test_all_zero_metrics(self) -> None:
        self.assertEqual(composite_score(_metrics(), number_of_trades=0), Decimal("2.40"))
        scores = sub_scores(_metrics(), number_of_trades=0)
        self.assertEqual(set(scores), {"return", "risk", "trade_quality", "stability"})
        self.assertAlmostEqual(scores["risk"], 4.0, places=12)
        self.assertAlmostEqual(scores["stability"], 10.0, places=12)

    def test_ideal_metrics_reach_maximum(self) -> None:
        metrics = _metrics(
            annualized_return=0.5,
            total_return=1.0,
            profit_factor=3.0,
            sharpe_ratio=3.0,
            max_drawdown=0.01,
            sortino_ratio=2.0,
            var_95=0.01,
            calmar_ratio=2.0,
            win_rate=0.7,
            average_profit=0.05,
        )
        self.assertEqual(composite_score(metrics, number_of_trades=50), Decimal("10"))

    def test_score_bounds_for_adversarial_inputs(self) -> None:
        extremes = [float("nan"), float("inf"), float("-inf"), -1e300, 1e300, -5.0, 0.0]
        for extreme in extremes:
            metrics = {kind: extreme for kind in _SCORED_KINDS}
            for trades in (-10, 0, 7, 10**9):
                with self.subTest(value=extreme, trades=trades):
                    score = composite_score(metrics, number_of_trades=trades)
                    self.assertGreaterEqual(score, Decimal("0"))
                    self.assertLessEqual(score, Decimal("10"))
                    self.assertEqual(score.as_tuple().exponent, -2)

    def test_accepts_decimal_metrics(self) -> None:
        metrics = {kind: Decimal("0") for kind in _SCORED_KINDS}
        self.assertEqual(composite_score(metrics, number_of_trades=0), Decimal("2.40"))


if __name__ == "__main__":
    unittest.main()
