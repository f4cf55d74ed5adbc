"""Lot model and FIFO matching for journal trades.

Key components:
- Models: Trade, LotSlot, EntryLot, ExitLot, DerivedFields and the enums
- gather_lots: Raw slots -> validated, ordered lots
- match_fifo: Generic FIFO allocation of exits against entries
"""

from tradejournal.services.lots.gathering import GatheredLots, gather_lots
from tradejournal.services.lots.lot_matcher import EntryAllocation, LotAllocation, MatchedFill, match_fifo
from tradejournal.services.lots.models import (
    AccountingBasis,
    DerivedFields,
    DiagnosticKind,
    Direction,
    EntryLabel,
    EntryLot,
    ExitLot,
    LotSlot,
    PositionStatus,
    Trade,
    TradeDiagnostic,
)

__all__ = [
    # Models
    "AccountingBasis",
    "DerivedFields",
    "DiagnosticKind",
    "Direction",
    "EntryLabel",
    "EntryLot",
    "ExitLot",
    "LotSlot",
    "PositionStatus",
    "Trade",
    "TradeDiagnostic",
    # Gathering
    "GatheredLots",
    "gather_lots",
    # Matching
    "EntryAllocation",
    "LotAllocation",
    "MatchedFill",
    "match_fifo",
]
