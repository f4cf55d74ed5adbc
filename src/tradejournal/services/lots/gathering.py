"""Turn a trade's raw slots into validated, ordered lots.

First step of every recompute. Slots that are absent, or carry a
non-positive price or quantity, are dropped. Missing dates default to the
trade date and are reported as low-confidence inputs.
"""

from dataclasses import dataclass

from tradejournal.services.lots.models import (
    DiagnosticKind,
    EntryLabel,
    EntryLot,
    ExitLot,
    Trade,
    TradeDiagnostic,
)


@dataclass(frozen=True)
class GatheredLots:
    """Valid lots of one trade plus the diagnostics found while gathering."""

    entries: tuple[EntryLot, ...]
    exits: tuple[ExitLot, ...]
    diagnostics: tuple[TradeDiagnostic, ...] = ()

    @property
    def total_entry_quantity(self) -> int:
        return sum(lot.quantity for lot in self.entries)

    @property
    def total_exit_quantity(self) -> int:
        return sum(lot.quantity for lot in self.exits)


def gather_lots(trade: Trade) -> GatheredLots:
    """
    Collect the fillable entry and exit lots of a trade.

    Args:
        trade: Trade with raw slots

    Returns:
        GatheredLots with entries in FIFO order and exits in slot order
    """
    diagnostics: list[TradeDiagnostic] = []

    entries: list[EntryLot] = []
    for label, slot in trade.entry_slots:
        if slot is None or not slot.is_fillable:
            continue

        if label == EntryLabel.INITIAL:
            fill_date, inferred = trade.trade_date, False
        elif slot.fill_date is None:
            fill_date, inferred = trade.trade_date, True
            diagnostics.append(
                TradeDiagnostic(
                    kind=DiagnosticKind.MISSING_DATE,
                    message=f"{label.value} entry has no date, using trade date {trade.trade_date.isoformat()}",
                    quantity=slot.quantity,
                )
            )
        else:
            fill_date, inferred = slot.fill_date, False

        entries.append(
            EntryLot(
                label=label,
                price=slot.price,
                quantity=slot.quantity,
                fill_date=fill_date,
                date_inferred=inferred,
            )
        )

    exits: list[ExitLot] = []
    for slot_no, slot in trade.exit_slots:
        if slot is None or not slot.is_fillable:
            continue

        inferred = slot.fill_date is None
        if inferred:
            diagnostics.append(
                TradeDiagnostic(
                    kind=DiagnosticKind.MISSING_DATE,
                    message=f"Exit {slot_no} has no date, using trade date {trade.trade_date.isoformat()}",
                    quantity=slot.quantity,
                )
            )

        exits.append(
            ExitLot(
                slot=slot_no,
                price=slot.price,
                quantity=slot.quantity,
                fill_date=slot.fill_date or trade.trade_date,
                date_inferred=inferred,
            )
        )

    return GatheredLots(entries=tuple(entries), exits=tuple(exits), diagnostics=tuple(diagnostics))
