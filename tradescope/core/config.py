"""Configuration models and YAML loading."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from tradescope.core.metrics.returns import parse_interval_minutes
from tradescope.core.utils.errors import ConfigLoadError


class DataConfig(BaseModel):
    """Input files for one report."""

    bars_path: Path
    positions_path: Path
    benchmark_path: Path | None = None
    interval: str = "1D"

    @model_validator(mode="after")
    def validate_interval(self) -> DataConfig:
        """Ensure the bar interval label is parseable."""
        self.interval = self.interval.strip()
        try:
            parse_interval_minutes(self.interval)
        except ValueError as exc:
            raise ValueError(f"data.interval is invalid: {exc}") from exc
        return self


class ReportConfig(BaseModel):
    """Capital, fee and labelling settings."""

    strategy_name: str = Field(min_length=1)
    parameter_description: str = ""
    initial_amount: Decimal = Decimal("10000")
    fee_ratio: Decimal = Decimal("0.001")
    risk_free_rate: float = 0.0
    return_kind: Literal["log", "arithmetic"] = "log"

    @model_validator(mode="after")
    def validate_report(self) -> ReportConfig:
        """Validate capital and fee bounds."""
        if not self.strategy_name.strip():
            raise ValueError("report.strategy_name must be non-empty.")
        if self.initial_amount <= 0:
            raise ValueError("report.initial_amount must be > 0.")
        if not Decimal("0") <= self.fee_ratio < Decimal("1"):
            raise ValueError("report.fee_ratio must be in [0, 1).")
        return self


class OutputConfig(BaseModel):
    """Output and artifact settings."""

    artifacts_dir: Path = Path("artifacts")
    report_filename: str = "report.json"

    @model_validator(mode="after")
    def validate_output(self) -> OutputConfig:
        """Ensure output filenames are valid."""
        if not self.report_filename.strip():
            raise ValueError("output.report_filename must be non-empty.")
        return self


class AppConfig(BaseModel):
    """Top-level application configuration."""

    data: DataConfig
    report: ReportConfig
    output: OutputConfig = Field(default_factory=OutputConfig)


def _resolve_config_path(path: Path) -> Path:
    """Resolve and validate a config file path."""
    resolved_path = path.expanduser().resolve()
    if not resolved_path.exists():
        raise ConfigLoadError(f"Config file not found: {resolved_path}")
    if not resolved_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {resolved_path}")
    return resolved_path


def _resolve_path(path: Path, base_dir: Path) -> Path:
    expanded = path.expanduser()
    return expanded.resolve() if expanded.is_absolute() else (base_dir / expanded).resolve()


def load_config(path: Path) -> AppConfig:
    """
    Load and validate application config from YAML.

    Relative paths are resolved from the YAML file parent directory.

    Args:
        path: YAML config file path.

    Returns:
        Validated application config.
    """
    config_path = _resolve_config_path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw_config: Any = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigLoadError(f"Failed to read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in config file {config_path}: {exc}") from exc

    if not isinstance(raw_config, dict):
        raise ConfigLoadError("YAML root must be a mapping/object.")

    return _build_config(raw_config, config_path.parent)


def _build_config(raw_config: dict[str, Any], base_dir: Path) -> AppConfig:
    """Build and path-resolve config from raw data."""
    try:
        config = AppConfig.model_validate(raw_config)
    except Exception as exc:
        raise ConfigLoadError(f"Config validation failed: {exc}") from exc

    data = config.data
    benchmark_path = data.benchmark_path
    updated_data = data.model_copy(
        update={
            "bars_path": _resolve_path(data.bars_path, base_dir),
            "positions_path": _resolve_path(data.positions_path, base_dir),
            "benchmark_path": (
                None if benchmark_path is None else _resolve_path(benchmark_path, base_dir)
            ),
        }
    )
    updated_output = config.output.model_copy(
        update={"artifacts_dir": _resolve_path(config.output.artifacts_dir, base_dir)}
    )
    return config.model_copy(update={"data": updated_data, "output": updated_output})


def dump_config_to_yaml(config: AppConfig) -> str:
    """
    Serialize config to canonical YAML for reproducibility.

    Args:
        config: App config.

    Returns:
        YAML string.
    """
    payload = config.model_dump(mode="json")
    return yaml.safe_dump(payload, sort_keys=True, default_flow_style=False)
