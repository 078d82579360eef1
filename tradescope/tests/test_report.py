"""Integration tests for report assembly."""

from __future__ import annotations

import dataclasses
import json
import unittest
from decimal import Decimal

import pandas as pd

from tradescope.core.metrics.report import (
    ERROR_MESSAGE_PREFIX,
    ReportSettings,
    calculate_report,
    report_to_dict,
)
from tradescope.core.metrics.types import MetricKind
from tradescope.tests.helpers import make_close, make_position

_SETTINGS = ReportSettings(
    initial_amount=Decimal("10000"),
    fee_ratio=Decimal("0.001"),
    risk_free_rate=0.0,
    interval="1D",
    strategy_name="trend_a",
    parameter_description="lookback=3",
)


class TestZeroTradeReport(unittest.TestCase):
    """A backtest without trades is a valid zero-value result."""

    def test_flat_prices_without_positions(self) -> None:
        close = make_close([100.0] * 10)
        report = calculate_report(close, [], _SETTINGS)

        self.assertTrue(report.success)
        self.assertIsNone(report.error_message)
        self.assertEqual(report.number_of_trades, 0)
        self.assertEqual(report.final_amount, Decimal("10000"))
        self.assertEqual(report.total_profit, Decimal("0"))
        self.assertEqual(report.metric(MetricKind.TOTAL_RETURN), Decimal("0"))
        self.assertEqual(report.composite_score, Decimal("2.40"))
        self.assertEqual(set(report.metrics), set(MetricKind))
        self.assertEqual(report.trades, ())

    def test_empty_bar_sequence(self) -> None:
        close = make_close([])
        report = calculate_report(close, [], _SETTINGS)
        self.assertTrue(report.success)
        self.assertEqual(report.annualization_factor, 252)


class TestSuccessfulReport(unittest.TestCase):
    """Validate the full pipeline on a small trade list."""

    def test_single_long_trade(self) -> None:
        close = make_close([100.0, 103.0, 101.0, 106.0, 110.0, 108.0])
        positions = [make_position(close, 0, 4)]
        with self.assertLogs("tradescope.core.metrics.report", level="INFO") as captured:
            report = calculate_report(close, positions, _SETTINGS)

        self.assertTrue(report.success)
        self.assertTrue(
            any("annualization factor 365" in line for line in captured.output),
            msg=captured.output,
        )
        self.assertEqual(report.strategy_name, "trend_a")
        self.assertEqual(report.parameter_description, "lookback=3")
        self.assertEqual(report.number_of_trades, 1)
        self.assertEqual(report.profitable_trades, 1)
        self.assertEqual(report.unprofitable_trades, 0)
        self.assertEqual(report.total_profit, Decimal("978.011"))
        self.assertEqual(report.final_amount, Decimal("10978.011"))
        self.assertEqual(report.metric(MetricKind.TOTAL_RETURN), Decimal("0.0978"))
        self.assertEqual(report.metric(MetricKind.WIN_RATE), Decimal("1"))
        self.assertEqual(report.metric(MetricKind.MAX_DRAWDOWN), Decimal("0.0194"))
        self.assertEqual(report.trades[0].max_loss, Decimal("0"))
        self.assertEqual(set(report.metrics), set(MetricKind))
        self.assertGreaterEqual(report.composite_score, Decimal("0"))
        self.assertLessEqual(report.composite_score, Decimal("10"))

    def test_unsorted_positions_are_realized_in_entry_order(self) -> None:
        close = make_close([100.0, 110.0, 100.0, 95.0, 97.0])
        positions = [make_position(close, 2, 3), make_position(close, 0, 1)]
        report = calculate_report(close, positions, _SETTINGS)

        self.assertTrue(report.success)
        self.assertEqual([trade.sequence_no for trade in report.trades], [1, 2])
        self.assertLess(report.trades[0].entry_time, report.trades[1].entry_time)
        self.assertEqual(report.trades[1].entry_amount, report.trades[0].exit_amount)

    def test_missing_benchmark_is_neutral(self) -> None:
        close = make_close([100.0 + index for index in range(51)])
        report = calculate_report(close, [make_position(close, 0, 50)], _SETTINGS)

        self.assertEqual(report.metric(MetricKind.ALPHA), Decimal("0"))
        self.assertEqual(report.metric(MetricKind.BETA), Decimal("1"))
        self.assertEqual(report.metric(MetricKind.UPTREND_CAPTURE), Decimal("0"))
        self.assertEqual(report.metric(MetricKind.DOWNTREND_CAPTURE), Decimal("0"))

    def test_benchmark_tracks_strategy(self) -> None:
        close = make_close([100.0, 102.0, 99.0, 104.0, 103.0, 108.0])
        report = calculate_report(
            close, [make_position(close, 0, 5)], _SETTINGS, benchmark_close=close
        )
        self.assertTrue(report.success)
        self.assertGreater(report.metric(MetricKind.BETA), Decimal("0"))

    def test_report_is_immutable(self) -> None:
        close = make_close([100.0, 101.0, 102.0])
        report = calculate_report(close, [make_position(close, 0, 2)], _SETTINGS)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            report.success = False  # type: ignore[misc]
        with self.assertRaises(TypeError):
            report.metrics[MetricKind.SHARPE_RATIO] = Decimal("9")  # type: ignore[index]


class TestFailedReport(unittest.TestCase):
    """Computation failures become unsuccessful reports."""

    def test_out_of_range_position(self) -> None:
        close = make_close([100.0, 101.0, 102.0])
        longer = make_close([100.0, 101.0, 102.0, 103.0, 104.0])
        with self.assertLogs("tradescope.core.metrics.report", level="ERROR"):
            report = calculate_report(close, [make_position(longer, 0, 4)], _SETTINGS)

        self.assertFalse(report.success)
        self.assertTrue(report.error_message.startswith(ERROR_MESSAGE_PREFIX))
        self.assertEqual(dict(report.metrics), {})
        self.assertEqual(report.trades, ())
        self.assertIsNone(report.final_amount)
        self.assertIsNone(report.total_profit)

    def test_unordered_bars(self) -> None:
        close = make_close([100.0, 101.0, 102.0]).iloc[::-1]
        with self.assertLogs("tradescope.core.metrics.report", level="ERROR"):
            report = calculate_report(close, [make_position(close, 0, 2)], _SETTINGS)
        self.assertFalse(report.success)
        self.assertIn("strictly increasing", report.error_message)


class TestReportToDict(unittest.TestCase):
    """Validate the JSON-ready payload."""

    def test_payload_is_json_serializable(self) -> None:
        close = make_close([100.0, 105.0, 110.0])
        report = calculate_report(close, [make_position(close, 0, 2)], _SETTINGS)
        payload = report_to_dict(report)

        encoded = json.loads(json.dumps(payload))
        self.assertTrue(encoded["success"])
        self.assertEqual(encoded["number_of_trades"], 1)
        self.assertIn("composite_score", encoded["metrics"])
        self.assertEqual(len(encoded["trades"]), 1)
        self.assertEqual(encoded["trades"][0]["side"], "BUY")
        self.assertEqual(
            pd.Timestamp(encoded["trades"][0]["entry_time"]), close.index[0]
        )


if __name__ == "__main__":
    unittest.main()
