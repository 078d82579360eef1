"""Input loading for price bars and closed positions."""

from tradescope.core.data.loaders import (
    load_closed_positions,
    load_price_bars,
    normalize_close_series,
    positions_from_frame,
)

__all__ = [
    "load_closed_positions",
    "load_price_bars",
    "normalize_close_series",
    "positions_from_frame",
]
