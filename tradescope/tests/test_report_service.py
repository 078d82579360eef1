"""Integration tests for report and batch services."""

from __future__ import annotations

import json
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from tradescope.core.config import load_config
from tradescope.core.metrics.types import MetricKind, MetricsReport
from tradescope.core.services.report_service import run_batch, run_report, summarize_batch
from tradescope.core.utils.errors import DataValidationError
from tradescope.tests.helpers import (
    make_close,
    write_bars_csv,
    write_positions_csv,
    write_report_config,
)


def _report(name: str, total_return: str, trades: int, success: bool = True) -> MetricsReport:
    metrics = (
        {
            MetricKind.TOTAL_RETURN: Decimal(total_return),
            MetricKind.ANNUALIZED_RETURN: Decimal(total_return) * 2,
        }
        if success
        else {}
    )
    return MetricsReport(
        success=success,
        strategy_name=name,
        parameter_description="",
        initial_amount=Decimal("10000"),
        number_of_trades=trades,
        metrics=metrics,
    )


class TestRunReport(unittest.TestCase):
    """Validate artifacts written for one report run."""

    def test_report_and_manifest_artifacts(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            close = make_close([100.0, 102.0, 101.0, 105.0, 107.0, 104.0, 110.0])
            bars_path = write_bars_csv(root / "bars.csv", close)
            positions_path = write_positions_csv(
                root / "positions.csv", [(0, 3, "long"), (4, 6, "short")]
            )
            config_path = write_report_config(root, "trend_a", bars_path, positions_path)

            outcome = run_report(load_config(config_path), config_path=config_path, run_id="r1")

            self.assertTrue(outcome.report.success)
            self.assertEqual(outcome.report.number_of_trades, 2)
            self.assertEqual(outcome.report_path, root / "artifacts" / "r1" / "report.json")
            report_payload = json.loads(outcome.report_path.read_text(encoding="utf-8"))
            self.assertEqual(report_payload["strategy_name"], "trend_a")
            self.assertEqual(len(report_payload["trades"]), 2)

            manifest = json.loads(outcome.manifest_path.read_text(encoding="utf-8"))
            self.assertEqual(manifest["status"], "success")
            self.assertEqual(manifest["context"]["bar_range"]["count"], 7)
            self.assertIn(str(outcome.report_path), manifest["result"]["artifact_paths"])

    def test_input_error_writes_failure_manifest(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            close = make_close([100.0, 101.0, 102.0])
            bars_path = write_bars_csv(root / "bars.csv", close)
            positions_path = write_positions_csv(root / "positions.csv", [(0, 5, "long")])
            config_path = write_report_config(root, "trend_a", bars_path, positions_path)

            with self.assertRaises(DataValidationError):
                run_report(load_config(config_path), run_id="bad")

            manifest_path = root / "artifacts" / "bad" / "run_manifest.json"
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            self.assertEqual(manifest["status"], "failed")
            self.assertEqual(manifest["failure"]["exception_type"], "DataValidationError")


class TestBatch(unittest.TestCase):
    """Validate concurrent evaluation and batch summaries."""

    def test_run_batch_keeps_config_order(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            close = make_close([100.0, 98.0, 103.0, 108.0, 104.0, 111.0, 115.0, 109.0])
            bars_path = write_bars_csv(root / "bars.csv", close)
            benchmark_path = write_bars_csv(root / "benchmark.csv", close * 0.5)
            configs = []
            for name, rows in (
                ("alpha_long", [(0, 3, "long"), (4, 6, "long")]),
                ("beta_short", [(3, 4, "short")]),
                ("gamma_flat", []),
            ):
                positions_path = write_positions_csv(root / f"{name}.csv", rows)
                config_path = write_report_config(
                    root,
                    name,
                    bars_path,
                    positions_path,
                    benchmark_path=benchmark_path,
                    filename=f"{name}.yaml",
                )
                configs.append(load_config(config_path))

            outcomes = run_batch(configs, max_workers=3)

            self.assertEqual(
                [outcome.report.strategy_name for outcome in outcomes],
                ["alpha_long", "beta_short", "gamma_flat"],
            )
            self.assertTrue(all(outcome.report.success for outcome in outcomes))
            self.assertEqual(outcomes[2].report.number_of_trades, 0)
            self.assertEqual(len({outcome.run_id for outcome in outcomes}), 3)
            for outcome in outcomes:
                self.assertTrue(outcome.report_path.exists())

    def test_summarize_batch(self) -> None:
        summary = summarize_batch(
            [
                _report("a", "0.1000", 1),
                _report("b", "0.3000", 2),
                _report("c", "0", 0, success=False),
            ]
        )
        self.assertEqual(summary.report_count, 2)
        self.assertEqual(summary.failed_count, 1)
        self.assertEqual(summary.average_total_return, Decimal("0.2000"))
        self.assertEqual(summary.average_annualized_return, Decimal("0.4000"))
        self.assertEqual(summary.average_trade_count, 1)
        self.assertEqual(summary.best_strategy_name, "b")
        self.assertEqual(summary.best_total_return, Decimal("0.3000"))

    def test_summarize_batch_without_successes(self) -> None:
        summary = summarize_batch([_report("c", "0", 0, success=False)])
        self.assertEqual(summary.report_count, 0)
        self.assertEqual(summary.failed_count, 1)
        self.assertIsNone(summary.best_strategy_name)


if __name__ == "__main__":
    unittest.main()
