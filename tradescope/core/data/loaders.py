"""CSV loaders for price bars and closed positions."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from tradescope.core.metrics.types import ClosedPosition
from tradescope.core.utils.errors import DataValidationError

TIME_COLUMNS: tuple[str, str] = ("end_time", "date")
POSITION_COLUMNS: tuple[str, str, str] = ("entry_index", "exit_index", "side")
_LONG_SIDES = frozenset({"long", "buy"})
_SHORT_SIDES = frozenset({"short", "sell"})


def _read_csv(path: Path, label: str) -> pd.DataFrame:
    """Read a CSV file, wrapping I/O and parse failures."""
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        raise DataValidationError(f"{label} file not found: {resolved}")
    try:
        return pd.read_csv(resolved)
    except (OSError, ValueError) as exc:
        raise DataValidationError(f"Failed to read {label} file {resolved}: {exc}") from exc


def normalize_close_series(frame: pd.DataFrame) -> pd.Series:
    """
    Normalize a bar frame to a UTC-indexed float close series.

    Rows with unparseable timestamps or closes are dropped, the index is sorted and
    duplicate timestamps keep their last row.

    Args:
        frame: Frame with an ``end_time`` or ``date`` column (or a ``DatetimeIndex``)
            and a ``close`` column.

    Returns:
        Close prices named ``close`` with a strictly increasing UTC index.
    """
    normalized = frame.copy()
    time_column = next((column for column in TIME_COLUMNS if column in normalized.columns), None)
    if time_column is not None:
        normalized[time_column] = pd.to_datetime(
            normalized[time_column], utc=True, errors="coerce"
        )
        normalized = normalized.set_index(time_column)
    elif isinstance(normalized.index, pd.DatetimeIndex):
        normalized.index = pd.to_datetime(normalized.index, utc=True, errors="coerce")
    else:
        raise DataValidationError(
            "Price bars must have a DatetimeIndex or an 'end_time'/'date' column."
        )
    if "close" not in normalized.columns:
        raise DataValidationError("Price bars must have a 'close' column.")

    normalized = normalized.loc[~normalized.index.isna()]
    close = pd.to_numeric(normalized["close"], errors="coerce").dropna().astype(float)
    close = close.sort_index(kind="stable")
    close = close.loc[~close.index.duplicated(keep="last")]
    close.index.name = "end_time"
    close.name = "close"
    return close


def load_price_bars(path: Path) -> pd.Series:
    """
    Load close prices from a bar CSV.

    Args:
        path: CSV file path.

    Returns:
        UTC-indexed close series.
    """
    close = normalize_close_series(_read_csv(path, "Price bar"))
    if close.empty:
        raise DataValidationError(f"Price bar file {path} contains no valid bars.")
    if (close <= 0).any():
        raise DataValidationError(f"Price bar file {path} contains non-positive closes.")
    return close


def _parse_side(raw_side: object, row_number: int) -> bool:
    side = str(raw_side).strip().lower()
    if side in _LONG_SIDES:
        return True
    if side in _SHORT_SIDES:
        return False
    raise DataValidationError(f"Position row {row_number} has unknown side {raw_side!r}.")


def _optional_price(row: pd.Series, column: str, fallback: float) -> float:
    value = row.get(column)
    if value is None or pd.isna(value):
        return fallback
    return float(value)


def positions_from_frame(frame: pd.DataFrame, close: pd.Series) -> list[ClosedPosition]:
    """
    Build closed positions from a position frame referencing ``close`` by bar index.

    Args:
        frame: Rows with ``entry_index``, ``exit_index``, ``side`` and optional
            ``entry_price``/``exit_price`` columns.
        close: Bar close series the indices point into.

    Returns:
        Positions ordered by entry index. Missing prices default to the bar closes.
    """
    missing = [column for column in POSITION_COLUMNS if column not in frame.columns]
    if missing:
        raise DataValidationError(f"Position file is missing columns: {', '.join(missing)}")

    bar_count = len(close)
    positions: list[ClosedPosition] = []
    for row_number, (_, row) in enumerate(frame.iterrows(), start=1):
        try:
            entry_index = int(row["entry_index"])
            exit_index = int(row["exit_index"])
        except (TypeError, ValueError) as exc:
            raise DataValidationError(f"Position row {row_number} has invalid indices.") from exc
        if not 0 <= entry_index <= exit_index < bar_count:
            raise DataValidationError(
                f"Position row {row_number} indices ({entry_index}, {exit_index}) do not fit "
                f"{bar_count} bars."
            )
        positions.append(
            ClosedPosition(
                entry_index=entry_index,
                entry_time=close.index[entry_index].to_pydatetime(),
                entry_price=_optional_price(row, "entry_price", float(close.iloc[entry_index])),
                exit_index=exit_index,
                exit_time=close.index[exit_index].to_pydatetime(),
                exit_price=_optional_price(row, "exit_price", float(close.iloc[exit_index])),
                is_long=_parse_side(row["side"], row_number),
            )
        )
    return sorted(positions, key=lambda position: position.entry_index)


def load_closed_positions(path: Path, close: pd.Series) -> list[ClosedPosition]:
    """
    Load closed positions from CSV.

    Args:
        path: CSV file path.
        close: Bar close series the position indices reference.

    Returns:
        Closed positions ordered by entry index.
    """
    return positions_from_frame(_read_csv(path, "Position"), close)
