"""FIFO lot matcher for journal trades.

Allocates exit quantity against entry quantity in slot order
(initial, pyramid 1, pyramid 2 against exit 1, exit 2, exit 3):
- Oldest entry lot is consumed first
- An exit lot larger than the remaining entry need is split across entries
- Exit quantity left once every entry is exhausted is reported, not raised

The matcher is generic over the lot payload. Realized P&L matches on price,
holding periods on dates, reward:risk on price and quantity, all through
the same `match_fifo` call.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Generic, Iterator, Protocol, Sequence, TypeVar


class SupportsQuantity(Protocol):
    """Any lot payload with a share quantity."""

    @property
    def quantity(self) -> int: ...


class SupportsPrice(Protocol):
    """Lot payload with a quantity and a price."""

    @property
    def quantity(self) -> int: ...

    @property
    def price(self) -> Decimal: ...


EntryT = TypeVar("EntryT", bound=SupportsQuantity)
ExitT = TypeVar("ExitT", bound=SupportsQuantity)


@dataclass(frozen=True)
class MatchedFill(Generic[ExitT]):
    """Portion of one exit lot attributed to an entry (or left unmatched)."""

    exit_lot: ExitT
    quantity: int


@dataclass(frozen=True)
class EntryAllocation(Generic[EntryT, ExitT]):
    """
    Exit fills attributed to a single entry lot.

    Attributes:
        entry_lot: The entry lot payload
        fills: Exit portions consumed by this entry, in match order
    """

    entry_lot: EntryT
    fills: tuple[MatchedFill[ExitT], ...]

    @property
    def matched_quantity(self) -> int:
        """Quantity of this entry closed by exits."""
        return sum(fill.quantity for fill in self.fills)

    @property
    def open_quantity(self) -> int:
        """Quantity of this entry still held."""
        return self.entry_lot.quantity - self.matched_quantity

    def average_exit_price(self) -> Decimal:
        """
        Value-weighted average price of the exits matched to this entry.

        Requires exit payloads carrying ``price``.

        Returns:
            Weighted price, or 0 when nothing was matched
        """
        matched = self.matched_quantity
        if matched == 0:
            return Decimal("0")
        value = sum(
            (fill.exit_lot.price * fill.quantity for fill in self.fills),  # type: ignore[attr-defined]
            start=Decimal("0"),
        )
        return value / matched


@dataclass(frozen=True)
class LotAllocation(Generic[EntryT, ExitT]):
    """
    Result of one FIFO matching pass.

    Attributes:
        entries: One allocation per entry lot, in entry order
        unmatched_exits: Exit quantity left after all entries were exhausted
    """

    entries: tuple[EntryAllocation[EntryT, ExitT], ...]
    unmatched_exits: tuple[MatchedFill[ExitT], ...] = ()

    @property
    def matched_quantity(self) -> int:
        """Total quantity matched across all entries."""
        return sum(a.matched_quantity for a in self.entries)

    @property
    def open_quantity(self) -> int:
        """Total entry quantity still open."""
        return sum(a.open_quantity for a in self.entries)

    @property
    def unmatched_exit_quantity(self) -> int:
        """Exit quantity with no entry to match against (over-exit)."""
        return sum(fill.quantity for fill in self.unmatched_exits)

    @property
    def is_over_exit(self) -> bool:
        """More quantity was exited than entered."""
        return self.unmatched_exit_quantity > 0

    def iter_matches(self) -> Iterator[tuple[EntryT, ExitT, int]]:
        """
        Yield every (entry lot, exit lot, quantity) match in FIFO order.

        Example:
            >>> for entry, exit_lot, qty in allocation.iter_matches():
            ...     pnl += qty * (exit_lot.price - entry.price)
        """
        for allocation in self.entries:
            for fill in allocation.fills:
                yield allocation.entry_lot, fill.exit_lot, fill.quantity


def match_fifo(entries: Sequence[EntryT], exits: Sequence[ExitT]) -> LotAllocation[EntryT, ExitT]:
    """
    Match exit quantity against entry quantity, oldest entry first.

    Single forward pass with an index cursor over the exit sequence; neither
    input is modified, so the same exits can be matched again for another
    purpose within one recompute.

    Args:
        entries: Entry lots in FIFO order
        exits: Exit lots in slot order

    Returns:
        LotAllocation with per-entry fills and any unmatched exit remainder

    Raises:
        ValueError: If any lot has a non-positive quantity

    Example:
        >>> # Entries [10@100, 10@110], exit [15@130]
        >>> allocation = match_fifo(entries, exits)
        >>> [a.matched_quantity for a in allocation.entries]
        [10, 5]
        >>> allocation.open_quantity
        5
    """
    for lot in (*entries, *exits):
        if lot.quantity <= 0:
            raise ValueError(f"Lot quantity must be positive, got {lot.quantity}")

    exit_index = 0
    exit_remaining = exits[0].quantity if exits else 0

    allocations: list[EntryAllocation[EntryT, ExitT]] = []
    for entry in entries:
        need = entry.quantity
        fills: list[MatchedFill[ExitT]] = []

        while need > 0 and exit_index < len(exits):
            take = min(need, exit_remaining)
            fills.append(MatchedFill(exit_lot=exits[exit_index], quantity=take))
            need -= take
            exit_remaining -= take

            if exit_remaining == 0:
                # Exit fully consumed - advance cursor
                exit_index += 1
                exit_remaining = exits[exit_index].quantity if exit_index < len(exits) else 0

        allocations.append(EntryAllocation(entry_lot=entry, fills=tuple(fills)))

    unmatched: list[MatchedFill[ExitT]] = []
    if exit_index < len(exits):
        # Remainder of the partially consumed exit, then every untouched exit
        unmatched.append(MatchedFill(exit_lot=exits[exit_index], quantity=exit_remaining))
        unmatched.extend(MatchedFill(exit_lot=lot, quantity=lot.quantity) for lot in exits[exit_index + 1 :])

    return LotAllocation(entries=tuple(allocations), unmatched_exits=tuple(unmatched))
