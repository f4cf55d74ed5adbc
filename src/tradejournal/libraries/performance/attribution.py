"""Period attribution of realized P&L.

Accrual basis books a trade's whole realized P&L in its trade month. Cash
basis books each exit's share of it in the month of that exit. Per-exit
P&L comes from the same FIFO matching as the trade's realized P&L, so the
exits of a trade always add up to its ``pl_rs``.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from tradejournal.libraries.performance.models import ExitAttribution
from tradejournal.libraries.performance.portfolio_impact import month_key
from tradejournal.services.lots.gathering import gather_lots
from tradejournal.services.lots.lot_matcher import match_fifo
from tradejournal.services.lots.models import AccountingBasis, Trade


def attribute_exits(trade: Trade) -> list[ExitAttribution]:
    """
    Realized P&L of each exit lot of a trade.

    Args:
        trade: Trade with raw slots

    Returns:
        One attribution per valid exit lot, in slot order
    """
    lots = gather_lots(trade)
    allocation = match_fifo(lots.entries, lots.exits)

    pl_by_slot: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
    for entry, exit_lot, quantity in allocation.iter_matches():
        pl_by_slot[exit_lot.slot] += quantity * trade.direction.signed(entry.price, exit_lot.price)

    return [
        ExitAttribution(
            trade_id=trade.trade_id,
            slot=exit_lot.slot,
            exit_date=exit_lot.fill_date,
            quantity=exit_lot.quantity,
            price=exit_lot.price,
            pl=pl_by_slot[exit_lot.slot],
        )
        for exit_lot in lots.exits
    ]


def group_pl_by_month(trades: Iterable[Trade], basis: AccountingBasis) -> dict[tuple[str, int], Decimal]:
    """
    Realized P&L per (month abbreviation, year) under an accounting basis.

    Args:
        trades: Recomputed trades
        basis: Cash (by exit month) or Accrual (by trade month)

    Returns:
        Mapping of month key to realized P&L, in first-seen order
    """
    totals: dict[tuple[str, int], Decimal] = {}
    for trade in trades:
        if basis == AccountingBasis.ACCRUAL:
            key = month_key(trade.trade_date)
            totals[key] = totals.get(key, Decimal("0")) + trade.derived.pl_rs
            continue

        for attribution in attribute_exits(trade):
            key = month_key(attribution.exit_date)
            totals[key] = totals.get(key, Decimal("0")) + attribution.pl
    return totals
