"""Service-layer workflows for CLI and batch orchestration."""

from tradescope.core.services.report_service import (
    BatchSummary,
    ReportOutcome,
    run_batch,
    run_report,
    settings_from_config,
    summarize_batch,
)

__all__ = [
    "BatchSummary",
    "ReportOutcome",
    "run_batch",
    "run_report",
    "settings_from_config",
    "summarize_batch",
]
