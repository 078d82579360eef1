"""Trade realization with fee bookkeeping and per-trade statistics."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

from tradescope.core.metrics.types import ClosedPosition, TradeExcursion, TradeRecord
from tradescope.core.utils.errors import InputShapeError

FOUR_PLACES = Decimal("0.0001")
UNBOUNDED_RATIO = Decimal("999.9999")
_ZERO = Decimal("0")


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """Convert a price or ratio to ``Decimal`` through its shortest repr."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    return (numerator / denominator).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


def validate_positions(positions: Sequence[ClosedPosition], bar_count: int) -> None:
    """
    Ensure every position references bars that exist.

    Args:
        positions: Closed positions.
        bar_count: Number of bars in the evaluated price series.
    """
    for position in positions:
        if not 0 <= position.entry_index < bar_count:
            raise InputShapeError(
                f"Position entry_index {position.entry_index} is outside [0, {bar_count})."
            )
        if not 0 <= position.exit_index < bar_count:
            raise InputShapeError(
                f"Position exit_index {position.exit_index} is outside [0, {bar_count})."
            )
        if position.exit_index < position.entry_index:
            raise InputShapeError(
                f"Position exits at bar {position.exit_index} before entering at bar "
                f"{position.entry_index}."
            )
        if position.entry_price <= 0:
            raise InputShapeError(f"Position entry price must be positive: {position.entry_price}")


def profit_percentage(position: ClosedPosition) -> Decimal:
    """
    Return the side-aware price move of a position, rounded half-up to 4 places.

    Long: ``(exit - entry) / entry``. Short: ``(entry - exit) / entry``.
    """
    entry_price = to_decimal(position.entry_price)
    exit_price = to_decimal(position.exit_price)
    move = exit_price - entry_price if position.is_long else entry_price - exit_price
    return _ratio(move, entry_price)


def realize_trades(
    positions: Sequence[ClosedPosition],
    initial_amount: Decimal,
    fee_ratio: Decimal,
) -> list[TradeRecord]:
    """
    Convert closed positions into trade records with full-capital reinvestment.

    Entry and exit fees are both charged as ``fee_ratio`` of the traded amount, and
    the net exit amount of each trade funds the next one.

    Args:
        positions: Closed positions ordered by entry.
        initial_amount: Starting capital.
        fee_ratio: Fee charged per side as a fraction (``0.001`` is 10 bps).

    Returns:
        Trade records in entry order, numbered from 1.
    """
    records: list[TradeRecord] = []
    capital = to_decimal(initial_amount)
    fee_ratio = to_decimal(fee_ratio)

    for sequence_no, position in enumerate(positions, start=1):
        entry_fee = capital * fee_ratio
        deployed = capital - entry_fee
        profit_pct = profit_percentage(position)

        exit_gross = deployed * (1 + profit_pct)
        exit_fee = exit_gross * fee_ratio
        exit_net = exit_gross - exit_fee

        records.append(
            TradeRecord(
                sequence_no=sequence_no,
                side=position.side,
                entry_time=position.entry_time,
                exit_time=position.exit_time,
                entry_price=to_decimal(position.entry_price),
                exit_price=to_decimal(position.exit_price),
                entry_amount=capital,
                exit_amount=exit_net,
                profit=exit_net - capital,
                profit_pct=profit_pct,
                fee=entry_fee + exit_fee,
            )
        )
        capital = exit_net

    return records


def attach_excursions(
    records: Sequence[TradeRecord],
    excursions: Sequence[TradeExcursion],
) -> list[TradeRecord]:
    """Return copies of ``records`` carrying their per-trade loss/drawdown excursions."""
    if len(records) != len(excursions):
        raise InputShapeError(
            f"Got {len(excursions)} drawdown excursions for {len(records)} trades."
        )
    return [
        replace(
            record,
            max_loss=to_decimal(excursion.max_loss).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP),
            max_drawdown=to_decimal(excursion.max_drawdown).quantize(
                FOUR_PLACES, rounding=ROUND_HALF_UP
            ),
        )
        for record, excursion in zip(records, excursions, strict=True)
    ]


@dataclass(frozen=True)
class TradeStatistics:
    """Aggregates over the realized trade list."""

    trade_count: int
    profitable_trades: int
    total_profit: Decimal
    total_fee: Decimal
    final_amount: Decimal
    gross_profit: Decimal
    gross_loss: Decimal
    profit_factor: Decimal
    win_rate: Decimal
    total_return: Decimal
    average_profit: Decimal
    maximum_loss: Decimal
    max_drawdown: Decimal

    @property
    def unprofitable_trades(self) -> int:
        """Trades that closed flat or at a loss."""
        return self.trade_count - self.profitable_trades


def summarize_trades(records: Sequence[TradeRecord], initial_amount: Decimal) -> TradeStatistics:
    """
    Aggregate trade records into counts, profit factor, win rate and returns.

    Args:
        records: Realized trade records.
        initial_amount: Starting capital.

    Returns:
        Trade statistics.
    """
    initial_amount = to_decimal(initial_amount)
    trade_count = len(records)
    profitable = [record for record in records if record.profit > 0]
    total_profit = sum((record.profit for record in records), _ZERO)
    gross_profit = sum((record.profit for record in profitable), _ZERO)
    gross_loss = sum((abs(record.profit) for record in records if record.profit <= 0), _ZERO)

    if gross_loss > 0:
        profit_factor = _ratio(gross_profit, gross_loss)
    elif gross_profit > 0:
        profit_factor = UNBOUNDED_RATIO
    else:
        profit_factor = Decimal("1")

    win_rate = _ratio(Decimal(len(profitable)), Decimal(trade_count)) if trade_count else _ZERO
    total_return = _ratio(total_profit, initial_amount) if initial_amount > 0 else _ZERO
    average_profit = _ratio(total_return, Decimal(trade_count)) if trade_count else _ZERO

    return TradeStatistics(
        trade_count=trade_count,
        profitable_trades=len(profitable),
        total_profit=total_profit,
        total_fee=sum((record.fee for record in records), _ZERO),
        final_amount=initial_amount + total_profit,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=profit_factor,
        win_rate=win_rate,
        total_return=total_return,
        average_profit=average_profit,
        maximum_loss=max((record.max_loss for record in records), default=_ZERO),
        max_drawdown=max((record.max_drawdown for record in records), default=_ZERO),
    )
