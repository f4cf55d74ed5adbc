"""Data models for the recalculation cascade.

- TradeField: Closed set of editable trade fields
- FieldEdit: One typed edit of one field
- RecalcContext: Everything a recompute needs beyond the trade itself
- BatchProgress: Progress report of a chunked bulk recompute
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from tradejournal.libraries.performance.portfolio_impact import PortfolioSizeResolver
from tradejournal.services.lots.models import AccountingBasis
from tradejournal.system.config import SystemConfig, get_system_config


class TradeField(str, Enum):
    """Editable fields of a journal trade."""

    ENTRY = "entry"
    SL = "sl"
    TSL = "tsl"
    INITIAL_QTY = "initialQty"
    PYRAMID1_PRICE = "pyramid1Price"
    PYRAMID1_QTY = "pyramid1Qty"
    PYRAMID1_DATE = "pyramid1Date"
    PYRAMID2_PRICE = "pyramid2Price"
    PYRAMID2_QTY = "pyramid2Qty"
    PYRAMID2_DATE = "pyramid2Date"
    EXIT1_PRICE = "exit1Price"
    EXIT1_QTY = "exit1Qty"
    EXIT1_DATE = "exit1Date"
    EXIT2_PRICE = "exit2Price"
    EXIT2_QTY = "exit2Qty"
    EXIT2_DATE = "exit2Date"
    EXIT3_PRICE = "exit3Price"
    EXIT3_QTY = "exit3Qty"
    EXIT3_DATE = "exit3Date"
    CMP = "cmp"
    BUY_SELL = "buySell"
    POSITION_STATUS = "positionStatus"
    DATE = "date"
    NAME = "name"
    SETUP = "setup"
    NOTES = "notes"

    @property
    def triggers_cascade(self) -> bool:
        """Editing this field changes at least one derived value."""
        return self not in ANNOTATION_FIELDS


# Fields that never feed a calculation
ANNOTATION_FIELDS = frozenset({TradeField.NAME, TradeField.SETUP, TradeField.NOTES})


@dataclass(frozen=True)
class FieldEdit:
    """
    Single edit of a trade field.

    Attributes:
        field: Field being edited
        value: New value (Decimal/str/float for prices, int for quantities,
            date or None for dates, Direction/PositionStatus or their string
            values for the enums, str for annotations)
    """

    field: TradeField
    value: Any


@dataclass(frozen=True)
class RecalcContext:
    """
    Inputs to a recompute that do not live on the trade.

    Attributes:
        portfolio_size: Resolver of portfolio size by (month abbreviation, year)
        accounting_basis: Cash or Accrual
        user_overridden_fields: Fields the user set by hand; never auto-derived
        as_of: Date open lots are held until (defaults to today)
        cmp: Fresh market price; replaces the trade's CMP when given (must not be negative)

    Raises:
        ValueError: If cmp is negative

    Example:
        >>> context = RecalcContext(
        ...     portfolio_size=lambda month, year: Decimal("100000"),
        ...     accounting_basis=AccountingBasis.CASH,
        ... )
    """

    portfolio_size: PortfolioSizeResolver
    accounting_basis: AccountingBasis = AccountingBasis.ACCRUAL
    user_overridden_fields: frozenset[TradeField] = frozenset()
    as_of: date = field(default_factory=date.today)
    cmp: Decimal | None = None

    def __post_init__(self) -> None:
        if self.cmp is not None and self.cmp < 0:
            raise ValueError(f"cmp cannot be negative, got {self.cmp}")

    def is_overridden(self, trade_field: TradeField) -> bool:
        return trade_field in self.user_overridden_fields

    def with_overrides(self, fields: frozenset[TradeField]) -> "RecalcContext":
        """Copy of this context with a different override set."""
        return replace(self, user_overridden_fields=frozenset(fields))

    @classmethod
    def from_system_config(
        cls,
        portfolio_size: PortfolioSizeResolver,
        config: SystemConfig | None = None,
        **kwargs: Any,
    ) -> "RecalcContext":
        """Build a context using the configured accounting basis."""
        config = config or get_system_config()
        return cls(
            portfolio_size=portfolio_size,
            accounting_basis=AccountingBasis(config.engine.accounting_basis),
            **kwargs,
        )


@dataclass(frozen=True)
class BatchProgress:
    """Progress of a chunked recompute."""

    processed: int
    total: int

    @property
    def percentage(self) -> int:
        """Whole percent processed (100 for an empty batch)."""
        if self.total == 0:
            return 100
        return round(self.processed * 100 / self.total)

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total
