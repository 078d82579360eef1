"""Programmatic report workflows shared by the CLI and batch evaluation."""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pandas as pd

from tradescope.core.config import AppConfig, dump_config_to_yaml
from tradescope.core.data.loaders import load_closed_positions, load_price_bars
from tradescope.core.metrics.ratios import quantize_metric
from tradescope.core.metrics.report import ReportSettings, calculate_report, report_to_dict
from tradescope.core.metrics.types import MetricKind, MetricsReport
from tradescope.core.utils.errors import ArtifactError, ComputationError
from tradescope.core.utils.logging import get_logger
from tradescope.core.utils.manifest import RunManifestWriter

ProgressCallback = Callable[[str], None]
_LOGGER_NAME = "tradescope.core.services.report_service"
_RUN_ID_SANITIZE_PATTERN = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True)
class ReportOutcome:
    """Result payload for one evaluated strategy invocation."""

    run_id: str
    report: MetricsReport
    report_path: Path
    manifest_path: Path


@dataclass(frozen=True)
class BatchSummary:
    """Aggregate view over the successful reports of a batch."""

    report_count: int
    failed_count: int
    average_total_return: Decimal
    average_annualized_return: Decimal
    average_trade_count: int
    best_strategy_name: str | None
    best_total_return: Decimal | None


def _emit_progress(callback: ProgressCallback | None, message: str) -> None:
    """Emit optional progress messages."""
    if callback is not None:
        callback(message)


def next_run_id(strategy_name: str) -> str:
    """Build a unique, filename-safe run id for a strategy."""
    slug = _RUN_ID_SANITIZE_PATTERN.sub("_", strategy_name.strip()).strip("_") or "report"
    timestamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S")
    return f"{slug}_{timestamp}_{uuid.uuid4().hex[:6]}"


def settings_from_config(app_config: AppConfig) -> ReportSettings:
    """Map validated config onto report settings."""
    report_config = app_config.report
    return ReportSettings(
        initial_amount=report_config.initial_amount,
        fee_ratio=report_config.fee_ratio,
        risk_free_rate=report_config.risk_free_rate,
        interval=app_config.data.interval,
        return_kind=report_config.return_kind,
        strategy_name=report_config.strategy_name,
        parameter_description=report_config.parameter_description,
    )


def _format_bar_time(close: pd.Series, position: int) -> str | None:
    if close.empty:
        return None
    return close.index[position].isoformat()


def _write_artifact(path: Path, text: str) -> Path:
    """Write one text artifact, creating its directory."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ArtifactError(f"Failed to write artifact {path}: {exc}") from exc
    return path


def _write_report(report: MetricsReport, output_dir: Path, filename: str) -> Path:
    """Persist a report payload as JSON."""
    payload = json.dumps(report_to_dict(report), indent=2, sort_keys=True) + "\n"
    return _write_artifact(output_dir / filename, payload)


def run_report(
    app_config: AppConfig,
    config_path: Path | None = None,
    run_id: str | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ReportOutcome:
    """
    Load inputs, calculate the metrics report and persist its artifacts.

    A report that comes back with ``success=False`` is still written, and the run
    manifest records it as a failed computation.

    Args:
        app_config: Validated application config.
        config_path: Source YAML path recorded in the manifest.
        run_id: Optional run id; generated from the strategy name when omitted.
        progress_callback: Optional callback for status messages.

    Returns:
        Outcome carrying the report and its artifact paths.
    """
    logger = get_logger(_LOGGER_NAME)
    settings = settings_from_config(app_config)
    resolved_run_id = run_id or next_run_id(settings.strategy_name)
    output_dir = app_config.output.artifacts_dir / resolved_run_id
    manifest_writer = RunManifestWriter(
        output_dir=output_dir, command="run", run_id=resolved_run_id
    )
    manifest_writer.set_inputs(
        config_path=config_path,
        bars_path=app_config.data.bars_path,
        positions_path=app_config.data.positions_path,
        benchmark_path=app_config.data.benchmark_path,
    )
    manifest_writer.set_context(strategy_name=settings.strategy_name, interval=settings.interval)

    try:
        _emit_progress(progress_callback, f"Loading bars from {app_config.data.bars_path}")
        close = load_price_bars(app_config.data.bars_path)
        positions = load_closed_positions(app_config.data.positions_path, close)
        benchmark_close = (
            load_price_bars(app_config.data.benchmark_path)
            if app_config.data.benchmark_path is not None
            else None
        )
        manifest_writer.set_context(
            strategy_name=settings.strategy_name,
            interval=settings.interval,
            first_bar=_format_bar_time(close, 0),
            last_bar=_format_bar_time(close, -1),
            bar_count=len(close),
        )
        logger.info(
            "Evaluating %s: %d bars, %d closed positions",
            settings.strategy_name,
            len(close),
            len(positions),
        )

        report = calculate_report(close, positions, settings, benchmark_close=benchmark_close)
        report_path = _write_report(report, output_dir, app_config.output.report_filename)
        config_snapshot = _write_artifact(
            output_dir / "config.yaml", dump_config_to_yaml(app_config)
        )
        artifact_paths = [str(report_path), str(config_snapshot)]

        if report.success:
            manifest_writer.mark_success(
                metrics={kind.value: float(value) for kind, value in report.metrics.items()},
                artifact_paths=artifact_paths,
                extra={"number_of_trades": report.number_of_trades},
            )
        else:
            manifest_writer.mark_failure(ComputationError(report.error_message))
        manifest_path = manifest_writer.write()
        _emit_progress(progress_callback, f"{settings.strategy_name}: report={report_path}")
        return ReportOutcome(
            run_id=resolved_run_id,
            report=report,
            report_path=report_path,
            manifest_path=manifest_path,
        )
    except Exception as exc:
        try:
            manifest_writer.mark_failure(exc)
            manifest_writer.write()
        except Exception as manifest_exc:
            logger.error("Failed to write failure manifest for run_report: %s", manifest_exc)
        raise


def run_batch(
    app_configs: Sequence[AppConfig],
    max_workers: int = 2,
    progress_callback: ProgressCallback | None = None,
) -> list[ReportOutcome]:
    """
    Evaluate independent strategy invocations concurrently.

    Each invocation runs the single-threaded pipeline on its own worker. Input errors
    propagate from the first failing invocation in config order.

    Args:
        app_configs: One validated config per strategy invocation.
        max_workers: Maximum worker threads.
        progress_callback: Optional callback for status messages.

    Returns:
        Outcomes in the same order as ``app_configs``.
    """
    safe_workers = max(1, int(max_workers))
    with ThreadPoolExecutor(
        max_workers=safe_workers, thread_name_prefix="tradescope-report"
    ) as pool:
        futures = [
            pool.submit(run_report, app_config, None, None, progress_callback)
            for app_config in app_configs
        ]
        return [future.result() for future in futures]


def summarize_batch(reports: Sequence[MetricsReport]) -> BatchSummary:
    """
    Aggregate successful reports of a batch.

    Args:
        reports: Reports from one batch, failed ones included.

    Returns:
        Averages over successful reports; failed reports are only counted.
    """
    succeeded = [report for report in reports if report.success]
    failed_count = len(reports) - len(succeeded)
    if not succeeded:
        return BatchSummary(
            report_count=0,
            failed_count=failed_count,
            average_total_return=quantize_metric(0.0),
            average_annualized_return=quantize_metric(0.0),
            average_trade_count=0,
            best_strategy_name=None,
            best_total_return=None,
        )

    count = len(succeeded)
    total_returns = [report.metric(MetricKind.TOTAL_RETURN) for report in succeeded]
    annualized_returns = [report.metric(MetricKind.ANNUALIZED_RETURN) for report in succeeded]
    best = max(succeeded, key=lambda report: report.metric(MetricKind.TOTAL_RETURN))
    return BatchSummary(
        report_count=count,
        failed_count=failed_count,
        average_total_return=quantize_metric(sum(total_returns, Decimal("0")) / count),
        average_annualized_return=quantize_metric(sum(annualized_returns, Decimal("0")) / count),
        average_trade_count=sum(report.number_of_trades for report in succeeded) // count,
        best_strategy_name=best.strategy_name,
        best_total_return=best.metric(MetricKind.TOTAL_RETURN),
    )
