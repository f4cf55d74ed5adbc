"""Holding period calculations for journal trades.

Entry lots are matched to exits FIFO. Each matched portion is held from its
entry date to the exit date; each unmatched portion from its entry date to
``as_of``. Every portion counts at least one day.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from tradejournal.libraries.performance.models import HoldingPeriodSummary, LotHoldingPeriod
from tradejournal.services.lots.lot_matcher import match_fifo
from tradejournal.services.lots.models import EntryLot, ExitLot, PositionStatus


def days_between(start: date, end: date) -> int:
    """Whole days from start to end, at least 1."""
    return max(1, (end - start).days)


def _weighted_days(lots: Sequence[LotHoldingPeriod]) -> int:
    total_qty = sum(lot.quantity for lot in lots)
    if total_qty == 0:
        return 0
    mean = Decimal(sum(lot.days * lot.quantity for lot in lots)) / total_qty
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_lot_holding_periods(
    entries: Sequence[EntryLot],
    exits: Sequence[ExitLot],
    as_of: date,
) -> tuple[LotHoldingPeriod, ...]:
    """
    Day counts for every matched and open portion of every entry lot.

    Args:
        entries: Valid entry lots in FIFO order
        exits: Valid exit lots in slot order
        as_of: Date open portions are measured to

    Returns:
        Portions in FIFO order: matched fills of an entry, then its open rest
    """
    allocation = match_fifo(entries, exits)

    periods: list[LotHoldingPeriod] = []
    for entry_allocation in allocation.entries:
        lot = entry_allocation.entry_lot
        for fill in entry_allocation.fills:
            periods.append(
                LotHoldingPeriod(
                    label=lot.label,
                    quantity=fill.quantity,
                    days=days_between(lot.fill_date, fill.exit_lot.fill_date),
                    exited=True,
                    exit_date=fill.exit_lot.fill_date,
                )
            )
        if entry_allocation.open_quantity > 0:
            periods.append(
                LotHoldingPeriod(
                    label=lot.label,
                    quantity=entry_allocation.open_quantity,
                    days=days_between(lot.fill_date, as_of),
                    exited=False,
                )
            )

    return tuple(periods)


def calculate_holding_period(
    entries: Sequence[EntryLot],
    exits: Sequence[ExitLot],
    status: PositionStatus,
    as_of: date,
) -> HoldingPeriodSummary:
    """
    Holding period breakdown and the display value for a position status.

    Display value:
    - Open: weighted mean of open portions
    - Partial: weighted mean of open portions, or of exited ones if nothing is open
    - Closed: weighted mean of exited portions

    Args:
        entries: Valid entry lots in FIFO order
        exits: Valid exit lots in slot order
        status: Position status
        as_of: Date open portions are measured to

    Returns:
        HoldingPeriodSummary
    """
    lots = calculate_lot_holding_periods(entries, exits, as_of)
    open_days = _weighted_days([lot for lot in lots if not lot.exited])
    exited_days = _weighted_days([lot for lot in lots if lot.exited])

    if status == PositionStatus.OPEN:
        display = open_days
    elif status == PositionStatus.PARTIAL:
        has_open = any(not lot.exited for lot in lots)
        display = open_days if has_open else exited_days
    else:
        display = exited_days

    return HoldingPeriodSummary(lots=lots, display_days=display, open_days=open_days, exited_days=exited_days)
