"""Data models for trade lot accounting.

Defines the raw inputs of a journal trade and the validated lots the
calculators work on:
- LotSlot: Raw, possibly empty entry/exit slot as typed by the user or importer
- EntryLot / ExitLot: Validated lots (price > 0, quantity > 0, dated)
- DerivedFields: Every value the recalculation cascade derives
- Trade: Aggregate owning up to three entry and three exit slots
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Direction(str, Enum):
    """Trade direction. Sets the sign of every price difference."""

    BUY = "Buy"
    SELL = "Sell"

    def signed(self, from_price: Decimal, to_price: Decimal) -> Decimal:
        """Price move from `from_price` to `to_price`, positive when favourable."""
        if self is Direction.BUY:
            return to_price - from_price
        return from_price - to_price


class PositionStatus(str, Enum):
    """Lifecycle state of a position."""

    OPEN = "Open"
    CLOSED = "Closed"
    PARTIAL = "Partial"


class AccountingBasis(str, Enum):
    """Which date attributes P&L to a portfolio period."""

    CASH = "cash"
    ACCRUAL = "accrual"


class EntryLabel(str, Enum):
    """Slot an entry lot came from, in FIFO order."""

    INITIAL = "Initial"
    PYRAMID_1 = "Pyramid1"
    PYRAMID_2 = "Pyramid2"


class DiagnosticKind(str, Enum):
    """Non-fatal data-quality conditions found while recomputing."""

    OVER_EXIT = "over_exit"
    MISSING_DATE = "missing_date"


class TradeDiagnostic(BaseModel):
    """Data-quality note attached to a recomputed trade."""

    kind: DiagnosticKind
    message: str
    quantity: int = 0

    model_config = ConfigDict(frozen=True)


class LotSlot(BaseModel):
    """
    Raw entry or exit slot.

    A slot holds whatever the user typed. It may carry a zero price or
    quantity, in which case it is kept on the trade but excluded from every
    calculation. An absent lot is represented by ``None`` on the trade, not
    by a zeroed slot.

    Attributes:
        price: Price per share
        quantity: Number of shares
        fill_date: Fill date (None when the user left it blank)
    """

    price: Decimal = Decimal("0")
    quantity: int = 0
    fill_date: date | None = None

    @property
    def is_fillable(self) -> bool:
        """Slot describes a real fill."""
        return self.price > 0 and self.quantity > 0

    model_config = ConfigDict(frozen=True)


class EntryLot(BaseModel):
    """
    Validated entry lot.

    Attributes:
        label: Slot the lot came from
        price: Entry price per share
        quantity: Shares bought (or sold short)
        fill_date: Entry date
        date_inferred: True when the date was defaulted to the trade date

    Example:
        >>> lot = EntryLot(
        ...     label=EntryLabel.INITIAL,
        ...     price=Decimal("100"),
        ...     quantity=10,
        ...     fill_date=date(2024, 1, 15),
        ... )
    """

    label: EntryLabel
    price: Decimal
    quantity: int
    fill_date: date
    date_inferred: bool = False

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        """Validate price is positive."""
        if v <= 0:
            raise ValueError(f"Entry price must be positive, got {v}")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        """Validate quantity is positive."""
        if v <= 0:
            raise ValueError(f"Entry quantity must be positive, got {v}")
        return v

    @property
    def value(self) -> Decimal:
        """Cost of the lot (price * quantity)."""
        return self.price * self.quantity

    model_config = ConfigDict(frozen=True)


class ExitLot(BaseModel):
    """
    Validated exit lot.

    Attributes:
        slot: Exit slot number (1, 2 or 3)
        price: Exit price per share
        quantity: Shares exited
        fill_date: Exit date
        date_inferred: True when the date was defaulted to the trade date
    """

    slot: int = Field(ge=1, le=3)
    price: Decimal
    quantity: int
    fill_date: date
    date_inferred: bool = False

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        """Validate price is positive."""
        if v <= 0:
            raise ValueError(f"Exit price must be positive, got {v}")
        return v

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v: int) -> int:
        """Validate quantity is positive."""
        if v <= 0:
            raise ValueError(f"Exit quantity must be positive, got {v}")
        return v

    @property
    def value(self) -> Decimal:
        """Proceeds of the lot (price * quantity)."""
        return self.price * self.quantity

    model_config = ConfigDict(frozen=True)


class DerivedFields(BaseModel):
    """
    Everything the recalculation cascade derives for a trade.

    Never edited directly; a new instance replaces the old one on every
    recompute. Percentages are expressed as percent (5 means 5%).

    Attributes:
        avg_entry: Quantity-weighted average entry price
        avg_exit_price: Quantity-weighted average exit price
        total_qty: Sum of entry quantities
        open_qty: Quantity still held (floored at 0)
        exited_qty: Sum of exit quantities
        position_size: Sum of entry price * quantity
        allocation_pct: Position size as % of the entry month's portfolio
        sl_pct: Distance from initial entry to stop-loss in %
        stock_move_pct: Move from average entry to CMP in %, signed per direction
        reward_risk: Traditional weighted R:R (risk-free entries excluded)
        effective_reward_risk: Position-level R:R (Infinity when risk-free)
        has_risk_free_components: Any entry has zero risk
        holding_days: Display holding period in days
        realised_amount: Sum of exit price * quantity
        pl_rs: Realized P&L under FIFO matching
        unrealized_pl: Mark-to-CMP P&L of the open quantity
        pf_impact: Realized P&L as % of the basis-selected portfolio size
        open_heat: % of portfolio lost if the stop is hit on the open quantity
        diagnostics: Non-fatal data-quality findings
    """

    avg_entry: Decimal = Decimal("0")
    avg_exit_price: Decimal = Decimal("0")
    total_qty: int = 0
    open_qty: int = 0
    exited_qty: int = 0
    position_size: Decimal = Decimal("0")
    allocation_pct: Decimal = Decimal("0")
    sl_pct: Decimal = Decimal("0")
    stock_move_pct: Decimal = Decimal("0")
    reward_risk: Decimal = Decimal("0")
    effective_reward_risk: Decimal = Field(default=Decimal("0"), allow_inf_nan=True)
    has_risk_free_components: bool = False
    holding_days: int = 0
    realised_amount: Decimal = Decimal("0")
    pl_rs: Decimal = Decimal("0")
    unrealized_pl: Decimal = Decimal("0")
    pf_impact: Decimal = Decimal("0")
    open_heat: Decimal = Decimal("0")
    diagnostics: tuple[TradeDiagnostic, ...] = ()

    @property
    def has_over_exit(self) -> bool:
        """Exit quantity exceeded entry quantity."""
        return any(d.kind == DiagnosticKind.OVER_EXIT for d in self.diagnostics)

    model_config = ConfigDict(frozen=True)


class Trade(BaseModel):
    """
    Journal trade: raw inputs plus the derived fields.

    Entry slots are ordered initial, pyramid 1, pyramid 2; exit slots are
    ordered exit 1..3. The initial entry is dated by ``trade_date``; its slot date
    is ignored.

    Attributes:
        trade_id: Unique identifier
        trade_no: User-facing trade number
        name: Ticker / instrument name
        trade_date: Trade (initial entry) date
        direction: Buy (long) or Sell (short)
        sl: Stop-loss for the initial entry
        tsl: Trailing stop-loss for pyramids (0 = not set)
        cmp: Current market price (0 = unknown)
        initial, pyramid1, pyramid2: Entry slots
        exit1, exit2, exit3: Exit slots
        position_status: Current status (derived unless user-overridden)
        setup: Free-form setup label
        notes: Free-form notes
        derived: Values maintained by the recalculation cascade

    Example:
        >>> trade = Trade(
        ...     name="INFY",
        ...     trade_date=date(2024, 1, 15),
        ...     sl=Decimal("95"),
        ...     initial=LotSlot(price=Decimal("100"), quantity=10),
        ...     exit1=LotSlot(price=Decimal("120"), quantity=10, fill_date=date(2024, 2, 1)),
        ... )
    """

    trade_id: str = Field(default_factory=lambda: str(uuid4()))
    trade_no: str = ""
    name: str = ""
    trade_date: date
    direction: Direction = Direction.BUY

    sl: Decimal = Decimal("0")
    tsl: Decimal = Decimal("0")
    cmp: Decimal = Decimal("0")

    initial: LotSlot | None = None
    pyramid1: LotSlot | None = None
    pyramid2: LotSlot | None = None

    exit1: LotSlot | None = None
    exit2: LotSlot | None = None
    exit3: LotSlot | None = None

    position_status: PositionStatus = PositionStatus.OPEN

    setup: str = ""
    notes: str = ""

    derived: DerivedFields = Field(default_factory=DerivedFields)

    @field_validator("cmp", "sl", "tsl")
    @classmethod
    def validate_non_negative(cls, v: Decimal) -> Decimal:
        """Validate price levels are not negative."""
        if v < 0:
            raise ValueError(f"Price level cannot be negative, got {v}")
        return v

    @property
    def entry_slots(self) -> tuple[tuple[EntryLabel, LotSlot | None], ...]:
        """Entry slots in FIFO order."""
        return (
            (EntryLabel.INITIAL, self.initial),
            (EntryLabel.PYRAMID_1, self.pyramid1),
            (EntryLabel.PYRAMID_2, self.pyramid2),
        )

    @property
    def exit_slots(self) -> tuple[tuple[int, LotSlot | None], ...]:
        """Exit slots in slot order."""
        return ((1, self.exit1), (2, self.exit2), (3, self.exit3))

    model_config = ConfigDict(frozen=True)
