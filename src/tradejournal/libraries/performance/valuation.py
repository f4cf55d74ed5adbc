"""Valuation calculations for journal trades.

Pure functions over validated lots: average prices, quantities, position
size, FIFO realized P&L and related percentages. All functions are
stateless; same inputs always give the same outputs.

Usage:
    >>> from tradejournal.libraries.performance import valuation
    >>> result = valuation.calculate_valuation(entries, exits, Direction.BUY)
    >>> result.realized_pl
    Decimal('400')
"""

from decimal import Decimal
from typing import Sequence

from tradejournal.libraries.performance.models import Valuation
from tradejournal.services.lots.lot_matcher import LotAllocation, SupportsPrice, match_fifo
from tradejournal.services.lots.models import Direction, EntryLot, ExitLot


def calculate_average_price(lots: Sequence[SupportsPrice]) -> Decimal:
    """
    Quantity-weighted mean price of a set of lots.

    Returns:
        Average price, or 0 when there is no quantity
    """
    total_qty = sum(lot.quantity for lot in lots)
    if total_qty == 0:
        return Decimal("0")
    total_value = sum((lot.price * lot.quantity for lot in lots), start=Decimal("0"))
    return total_value / total_qty


def calculate_position_size(entries: Sequence[EntryLot]) -> Decimal:
    """Sum of entry price * quantity (not avg_entry * qty, which drifts on rounding)."""
    return sum((lot.value for lot in entries), start=Decimal("0"))


def calculate_realised_amount(exits: Sequence[ExitLot]) -> Decimal:
    """Sum of exit price * quantity."""
    return sum((lot.value for lot in exits), start=Decimal("0"))


def calculate_realized_pl_fifo(
    entries: Sequence[SupportsPrice],
    exits: Sequence[SupportsPrice],
    direction: Direction,
) -> Decimal:
    """
    Realized P&L with exits matched to entries first-in-first-out.

    Exit quantity beyond the total entered quantity is left out.

    Args:
        entries: Entry lots in FIFO order
        exits: Exit lots in slot order
        direction: Buy or Sell

    Returns:
        Realized P&L (0 when there are no exits)

    Example:
        >>> # Buy 10@100 + 10@110, exit 15@130
        >>> calculate_realized_pl_fifo(entries, exits, Direction.BUY)
        Decimal('400')
    """
    if not exits:
        return Decimal("0")

    return _sum_matched_pl(match_fifo(entries, exits), direction)


def _sum_matched_pl(allocation: LotAllocation, direction: Direction) -> Decimal:
    total = Decimal("0")
    for entry, exit_lot, quantity in allocation.iter_matches():
        total += quantity * direction.signed(entry.price, exit_lot.price)
    return total


def calculate_unrealized_pl(avg_entry: Decimal, cmp: Decimal, open_qty: int, direction: Direction) -> Decimal:
    """
    Mark-to-market P&L of the open quantity.

    Returns:
        Unrealized P&L, 0 when any input is missing
    """
    if open_qty <= 0 or avg_entry <= 0 or cmp <= 0:
        return Decimal("0")
    return direction.signed(avg_entry, cmp) * open_qty


def calculate_allocation_pct(position_size: Decimal, portfolio_size: Decimal) -> Decimal:
    """Position size as a percentage of portfolio size (0 for a non-positive portfolio)."""
    if portfolio_size <= 0:
        return Decimal("0")
    return position_size / portfolio_size * Decimal("100")


def calculate_sl_pct(sl: Decimal, entry: Decimal) -> Decimal:
    """Distance between entry and stop-loss as a percentage of entry."""
    if entry <= 0 or sl <= 0:
        return Decimal("0")
    return abs((entry - sl) / entry * Decimal("100"))


def calculate_stock_move_pct(avg_entry: Decimal, cmp: Decimal, direction: Direction) -> Decimal:
    """
    Move from average entry to CMP in percent, positive when favourable.

    Returns:
        Signed move, 0 unless both CMP and average entry are positive
    """
    if cmp <= 0 or avg_entry <= 0:
        return Decimal("0")
    return direction.signed(avg_entry, cmp) / avg_entry * Decimal("100")


def calculate_valuation(
    entries: Sequence[EntryLot],
    exits: Sequence[ExitLot],
    direction: Direction,
) -> Valuation:
    """
    Compute every quantity/price aggregate of a trade in one pass.

    Args:
        entries: Valid entry lots in FIFO order
        exits: Valid exit lots in slot order
        direction: Buy or Sell

    Returns:
        Valuation breakdown
    """
    total_qty = sum(lot.quantity for lot in entries)
    exited_qty = sum(lot.quantity for lot in exits)
    allocation = match_fifo(entries, exits)

    return Valuation(
        avg_entry=calculate_average_price(entries),
        avg_exit_price=calculate_average_price(exits),
        total_qty=total_qty,
        exited_qty=exited_qty,
        open_qty=max(0, total_qty - exited_qty),
        position_size=calculate_position_size(entries),
        realised_amount=calculate_realised_amount(exits),
        realized_pl=_sum_matched_pl(allocation, direction),
        unmatched_exit_qty=allocation.unmatched_exit_quantity,
    )
