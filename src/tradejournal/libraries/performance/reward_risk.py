"""Reward:risk calculations for journal trades.

Each entry lot carries its own risk (distance to its stop) and its own
reward (realized, unrealized, or a blend for partially closed positions).
An entry whose stop sits exactly at its price is risk-free: its R:R is
Infinity and it is left out of the traditional weighted average.

Usage:
    >>> summary = calculate_reward_risk(
    ...     entries, exits,
    ...     direction=Direction.BUY,
    ...     status=PositionStatus.PARTIAL,
    ...     sl=Decimal("95"), tsl=Decimal("0"),
    ...     cmp=Decimal("125"), avg_exit_price=Decimal("130"),
    ... )
    >>> summary.traditional_weighted_rr
"""

from decimal import Decimal
from typing import Sequence

from tradejournal.libraries.performance.models import INFINITY, EntryRewardRisk, RewardRiskSummary
from tradejournal.services.lots.lot_matcher import EntryAllocation, match_fifo
from tradejournal.services.lots.models import Direction, EntryLabel, EntryLot, ExitLot, PositionStatus


def stop_for_entry(label: EntryLabel, sl: Decimal, tsl: Decimal) -> Decimal:
    """Initial entry uses SL; pyramids use TSL when set, otherwise SL."""
    if label == EntryLabel.INITIAL:
        return sl
    return tsl if tsl > 0 else sl


def _entry_reward(
    allocation: EntryAllocation[EntryLot, ExitLot],
    direction: Direction,
    status: PositionStatus,
    cmp: Decimal,
    avg_exit_price: Decimal,
) -> Decimal:
    price = allocation.entry_lot.price

    if status == PositionStatus.OPEN:
        return direction.signed(price, cmp)
    if status == PositionStatus.CLOSED:
        return direction.signed(price, avg_exit_price)

    # Partial: blend this entry's own realized and unrealized reward
    exited = allocation.matched_quantity
    still_open = allocation.open_quantity
    realized = direction.signed(price, allocation.average_exit_price()) if exited else Decimal("0")
    unrealized = direction.signed(price, cmp) if still_open else Decimal("0")
    return (realized * exited + unrealized * still_open) / allocation.entry_lot.quantity


def calculate_entry_reward_risk(
    entries: Sequence[EntryLot],
    exits: Sequence[ExitLot],
    *,
    direction: Direction,
    status: PositionStatus,
    sl: Decimal,
    tsl: Decimal,
    cmp: Decimal,
    avg_exit_price: Decimal,
) -> tuple[EntryRewardRisk, ...]:
    """
    Per-entry reward:risk breakdown.

    Args:
        entries: Valid entry lots in FIFO order
        exits: Valid exit lots in slot order
        direction: Buy or Sell
        status: Position status selecting the reward basis
        sl: Stop-loss (initial entry)
        tsl: Trailing stop-loss (pyramids, 0 = not set)
        cmp: Current market price
        avg_exit_price: Trade-wide average exit price

    Returns:
        One EntryRewardRisk per entry, in FIFO order
    """
    allocation = match_fifo(entries, exits)

    breakdown: list[EntryRewardRisk] = []
    for entry_allocation in allocation.entries:
        lot = entry_allocation.entry_lot
        stop = stop_for_entry(lot.label, sl, tsl)
        raw_risk = lot.price - stop if direction == Direction.BUY else stop - lot.price
        risk = abs(raw_risk)
        reward = _entry_reward(entry_allocation, direction, status, cmp, avg_exit_price)
        is_risk_free = risk == 0

        breakdown.append(
            EntryRewardRisk(
                label=lot.label,
                price=lot.price,
                quantity=lot.quantity,
                stop=stop,
                raw_risk=raw_risk,
                risk=risk,
                reward=reward,
                reward_risk=INFINITY if is_risk_free else abs(reward / risk),
                is_risk_free=is_risk_free,
                exited_qty=entry_allocation.matched_quantity,
                open_qty=entry_allocation.open_quantity,
            )
        )

    return tuple(breakdown)


def summarize_reward_risk(breakdown: Sequence[EntryRewardRisk]) -> RewardRiskSummary:
    """
    Aggregate a per-entry breakdown into position-level R:R figures.

    Traditional weighted R:R averages finite ratios only. Effective R:R
    divides the total reward of every entry by the risk of the risk-bearing
    entries, and is Infinity when no risk remains.

    Returns:
        RewardRiskSummary (all zero when there are no entries)
    """
    if not breakdown:
        return RewardRiskSummary()

    risky = [e for e in breakdown if not e.is_risk_free]
    risky_qty = sum(e.quantity for e in risky)

    traditional = Decimal("0")
    if risky_qty > 0:
        traditional = sum((e.reward_risk * e.quantity for e in risky), start=Decimal("0")) / risky_qty

    total_risk = sum((e.risk * e.quantity for e in risky), start=Decimal("0"))
    total_reward = sum((e.reward * e.quantity for e in breakdown), start=Decimal("0"))
    effective = abs(total_reward / total_risk) if total_risk > 0 else INFINITY

    return RewardRiskSummary(
        entries=tuple(breakdown),
        traditional_weighted_rr=traditional,
        effective_rr=effective,
        has_risk_free_components=any(e.is_risk_free for e in breakdown),
        total_risk_amount=total_risk,
        total_reward_amount=total_reward,
    )


def calculate_reward_risk(
    entries: Sequence[EntryLot],
    exits: Sequence[ExitLot],
    *,
    direction: Direction,
    status: PositionStatus,
    sl: Decimal,
    tsl: Decimal,
    cmp: Decimal,
    avg_exit_price: Decimal,
) -> RewardRiskSummary:
    """Per-entry breakdown plus both position-level aggregates."""
    breakdown = calculate_entry_reward_risk(
        entries,
        exits,
        direction=direction,
        status=status,
        sl=sl,
        tsl=tsl,
        cmp=cmp,
        avg_exit_price=avg_exit_price,
    )
    return summarize_reward_risk(breakdown)
