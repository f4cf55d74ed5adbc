"""Breakdown models returned by the trade calculators.

Pydantic models for the intermediate results tooltips and reports need,
not just the aggregate numbers written onto a trade.
"""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tradejournal.services.lots.models import EntryLabel

INFINITY = Decimal("Infinity")


class Valuation(BaseModel):
    """
    Quantity and price aggregates of one trade.

    Attributes:
        avg_entry: Quantity-weighted average entry price
        avg_exit_price: Quantity-weighted average exit price
        total_qty: Total entered quantity
        exited_qty: Total exited quantity
        open_qty: Entered minus exited, floored at 0
        position_size: Sum of entry price * quantity
        realised_amount: Sum of exit price * quantity
        realized_pl: FIFO realized P&L over matched quantity
        unmatched_exit_qty: Exit quantity beyond what was entered
    """

    avg_entry: Decimal = Decimal("0")
    avg_exit_price: Decimal = Decimal("0")
    total_qty: int = 0
    exited_qty: int = 0
    open_qty: int = 0
    position_size: Decimal = Decimal("0")
    realised_amount: Decimal = Decimal("0")
    realized_pl: Decimal = Decimal("0")
    unmatched_exit_qty: int = 0

    model_config = ConfigDict(frozen=True)


class EntryRewardRisk(BaseModel):
    """
    Reward:risk detail for a single entry lot.

    Attributes:
        label: Entry slot
        price: Entry price
        quantity: Entry quantity
        stop: Stop level used (SL for the initial entry, TSL or SL for pyramids)
        raw_risk: Entry minus stop, signed per direction
        risk: Absolute risk per share
        reward: Reward per share (realized, unrealized or blended)
        reward_risk: |reward / risk|, Infinity when risk-free
        is_risk_free: Stop sits exactly at the entry price
        exited_qty: Quantity of this entry matched by exits
        open_qty: Quantity of this entry still held
    """

    label: EntryLabel
    price: Decimal
    quantity: int
    stop: Decimal
    raw_risk: Decimal
    risk: Decimal
    reward: Decimal
    reward_risk: Decimal = Field(allow_inf_nan=True)
    is_risk_free: bool
    exited_qty: int = 0
    open_qty: int = 0

    model_config = ConfigDict(frozen=True)


class RewardRiskSummary(BaseModel):
    """
    Reward:risk of a whole position.

    Both aggregates are kept: the traditional figure ignores risk-free
    entries, the effective figure weighs total reward against the risk that
    remains.

    Attributes:
        entries: Per-entry breakdown
        traditional_weighted_rr: Sum(R:R * qty) / Sum(qty) over risk-bearing entries
        effective_rr: |Sum(reward * qty)| / Sum(risk * qty), Infinity without risk
        has_risk_free_components: Any entry is risk-free
        total_risk_amount: Sum(risk * qty) over risk-bearing entries
        total_reward_amount: Sum(reward * qty) over all entries
    """

    entries: tuple[EntryRewardRisk, ...] = ()
    traditional_weighted_rr: Decimal = Decimal("0")
    effective_rr: Decimal = Field(default=Decimal("0"), allow_inf_nan=True)
    has_risk_free_components: bool = False
    total_risk_amount: Decimal = Decimal("0")
    total_reward_amount: Decimal = Decimal("0")

    @property
    def total_qty(self) -> int:
        return sum(e.quantity for e in self.entries)

    model_config = ConfigDict(frozen=True)


class LotHoldingPeriod(BaseModel):
    """Days held for one matched or still-open portion of an entry lot."""

    label: EntryLabel
    quantity: int
    days: int
    exited: bool
    exit_date: date | None = None

    model_config = ConfigDict(frozen=True)


class HoldingPeriodSummary(BaseModel):
    """
    Holding period breakdown of a trade.

    Attributes:
        lots: Per-portion breakdown in FIFO order
        display_days: Value shown for the trade, chosen by position status
        open_days: Weighted mean days of open portions (0 if none)
        exited_days: Weighted mean days of exited portions (0 if none)
    """

    lots: tuple[LotHoldingPeriod, ...] = ()
    display_days: int = 0
    open_days: int = 0
    exited_days: int = 0

    model_config = ConfigDict(frozen=True)


class ExitAttribution(BaseModel):
    """P&L of a single exit, attributed to the month it happened in (cash basis)."""

    trade_id: str
    slot: int
    exit_date: date
    quantity: int
    price: Decimal
    pl: Decimal

    model_config = ConfigDict(frozen=True)


class TradeIssue(BaseModel):
    """User-facing data-quality issue for a trade."""

    level: Literal["error", "warning"]
    message: str

    model_config = ConfigDict(frozen=True)
