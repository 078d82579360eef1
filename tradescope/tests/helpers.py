"""Test helpers for deterministic report cases."""

from __future__ import annotations

import textwrap
from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from tradescope.core.metrics.types import ClosedPosition


def make_close(
    close_values: Sequence[float],
    freq: str = "D",
    start: str = "2024-01-01",
) -> pd.Series:
    """Build a UTC-indexed close series from close values."""
    index = pd.date_range(start, periods=len(close_values), freq=freq, tz="UTC", name="end_time")
    return pd.Series(list(close_values), index=index, dtype=float, name="close")


def make_position(
    close: pd.Series,
    entry_index: int,
    exit_index: int,
    is_long: bool = True,
    entry_price: float | None = None,
    exit_price: float | None = None,
) -> ClosedPosition:
    """Create a closed position priced at the bar closes unless prices are given."""
    return ClosedPosition(
        entry_index=entry_index,
        entry_time=close.index[entry_index].to_pydatetime(),
        entry_price=float(close.iloc[entry_index]) if entry_price is None else entry_price,
        exit_index=exit_index,
        exit_time=close.index[exit_index].to_pydatetime(),
        exit_price=float(close.iloc[exit_index]) if exit_price is None else exit_price,
        is_long=is_long,
    )


def write_bars_csv(path: Path, close: pd.Series) -> Path:
    """Write a close series as an ``end_time,close`` CSV."""
    frame = pd.DataFrame(
        {
            "end_time": [timestamp.isoformat() for timestamp in close.index],
            "close": close.to_numpy(dtype=float),
        }
    )
    frame.to_csv(path, index=False)
    return path


def write_positions_csv(path: Path, rows: Sequence[tuple[int, int, str]]) -> Path:
    """Write ``entry_index,exit_index,side`` rows as a position CSV."""
    lines = ["entry_index,exit_index,side"]
    lines.extend(f"{entry},{exit_},{side}" for entry, exit_, side in rows)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_report_config(
    root: Path,
    strategy_name: str,
    bars_path: Path,
    positions_path: Path,
    benchmark_path: Path | None = None,
    interval: str = "1D",
    filename: str = "config.yaml",
) -> Path:
    """Write a complete YAML config for one report run under ``root``."""
    benchmark_line = f"  benchmark_path: {benchmark_path}\n" if benchmark_path is not None else ""
    config_path = root / filename
    config_path.write_text(
        textwrap.dedent(f"""
            data:
              bars_path: {bars_path}
              positions_path: {positions_path}
              interval: {interval}
            """).strip()
        + "\n"
        + benchmark_line
        + textwrap.dedent(f"""
            report:
              strategy_name: {strategy_name}
              parameter_description: "lookback=3"
              initial_amount: "10000"
              fee_ratio: "0.001"
              risk_free_rate: 0.0
            output:
              artifacts_dir: {root / "artifacts"}
              report_filename: report.json
            """).strip()
        + "\n",
        encoding="utf-8",
    )
    return config_path
