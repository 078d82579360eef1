"""TradeScope command-line interface."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import typer

from tradescope.core.config import load_config
from tradescope.core.metrics.returns import annualization_factor
from tradescope.core.metrics.types import MetricKind, MetricsReport
from tradescope.core.services.report_service import (
    ReportOutcome,
    run_batch,
    run_report,
    summarize_batch,
)
from tradescope.core.utils.errors import ComputationError, ConfigLoadError, exit_code_for_exception
from tradescope.core.utils.logging import configure_logging, get_logger

app = typer.Typer(help="TradeScope CLI", no_args_is_help=True)

RUN_CONFIG_OPTION = typer.Option(
    ...,
    "--config",
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Path to YAML configuration file.",
)
BATCH_CONFIG_OPTION = typer.Option(
    ...,
    "--config",
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="YAML configuration file; repeat once per strategy.",
)
WORKERS_OPTION = typer.Option(2, "--workers", min=1, help="Maximum concurrent reports.")
LOG_LEVEL_OPTION = typer.Option("INFO", "--log-level", help="Logging level.")
INTERVAL_OPTION = typer.Option(..., "--interval", help="Bar interval label, e.g. 5m, 4H, 1D.")

SUMMARY_METRICS: tuple[MetricKind, ...] = (
    MetricKind.TOTAL_RETURN,
    MetricKind.ANNUALIZED_RETURN,
    MetricKind.WIN_RATE,
    MetricKind.PROFIT_FACTOR,
    MetricKind.MAX_DRAWDOWN,
    MetricKind.SHARPE_RATIO,
    MetricKind.SORTINO_RATIO,
    MetricKind.CALMAR_RATIO,
    MetricKind.VOLATILITY,
    MetricKind.COMPOSITE_SCORE,
)


@app.callback()
def callback() -> None:
    """TradeScope CLI commands."""


def _format_decimal(value: Decimal | None) -> str:
    return "None" if value is None else f"{value}"


def _print_metrics(report: MetricsReport) -> None:
    """Print headline metrics in deterministic order."""
    for kind in SUMMARY_METRICS:
        if kind in report.metrics:
            typer.echo(f"{kind.value}={report.metrics[kind]}")


def _handle_cli_exception(logger_name: str, context: str, exc: Exception) -> None:
    """Log diagnostics and exit with the typed code of ``exc``."""
    logger = get_logger(logger_name)
    logger.exception("%s failed: %s", context, exc)
    raise typer.Exit(code=exit_code_for_exception(exc)) from None


def _print_outcome(outcome: ReportOutcome) -> None:
    report = outcome.report
    typer.echo(f"strategy={report.strategy_name}")
    typer.echo(f"number_of_trades={report.number_of_trades}")
    typer.echo(f"final_amount={_format_decimal(report.final_amount)}")
    typer.echo(f"annualization_factor={report.annualization_factor}")
    _print_metrics(report)
    typer.echo(f"report={outcome.report_path}")
    typer.echo(f"manifest={outcome.manifest_path}")


@app.command("run")
def run(
    config: Path = RUN_CONFIG_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Calculate the metrics report for one strategy run."""
    logger_name = __name__

    try:
        configure_logging(log_level)
        app_config = load_config(config)
        outcome = run_report(app_config, config_path=config)
        if not outcome.report.success:
            typer.echo(f"manifest={outcome.manifest_path}")
            raise ComputationError(outcome.report.error_message or "Metric calculation failed.")
    except Exception as exc:
        _handle_cli_exception(logger_name=logger_name, context="Run command", exc=exc)

    _print_outcome(outcome)


@app.command("batch")
def batch(
    config: list[Path] = BATCH_CONFIG_OPTION,
    workers: int = WORKERS_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Calculate reports for several strategies and print a batch summary."""
    logger_name = __name__

    try:
        configure_logging(log_level)
        if not config:
            raise ConfigLoadError("At least one --config must be provided.")
        app_configs = [load_config(path) for path in config]
        outcomes = run_batch(app_configs, max_workers=workers)
    except Exception as exc:
        _handle_cli_exception(logger_name=logger_name, context="Batch command", exc=exc)

    for outcome in outcomes:
        report = outcome.report
        total_return = report.metric(MetricKind.TOTAL_RETURN)
        typer.echo(
            f"{report.strategy_name} | success={str(report.success).lower()} | "
            f"total_return={total_return} | composite_score={report.composite_score} | "
            f"report={outcome.report_path}"
        )

    summary = summarize_batch([outcome.report for outcome in outcomes])
    typer.echo(f"batch_reports={summary.report_count}")
    typer.echo(f"batch_failed={summary.failed_count}")
    typer.echo(f"average_total_return={summary.average_total_return}")
    typer.echo(f"average_annualized_return={summary.average_annualized_return}")
    typer.echo(f"average_trade_count={summary.average_trade_count}")
    typer.echo(f"best_strategy={summary.best_strategy_name or '-'}")
    typer.echo(f"best_total_return={_format_decimal(summary.best_total_return)}")


@app.command("factor")
def factor(interval: str = INTERVAL_OPTION) -> None:
    """Print the annualization factor used for a bar interval."""
    configure_logging("WARNING")
    typer.echo(f"interval={interval}")
    typer.echo(f"annualization_factor={annualization_factor(interval)}")


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
