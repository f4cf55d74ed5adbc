"""Portfolio impact calculations for journal trades.

Expresses trade P&L and risk as a percentage of the portfolio size for the
relevant month. Portfolio sizes come from an external resolver keyed by
month abbreviation and year; the accounting basis decides which month.

Edge cases:
- Non-positive portfolio size -> 0% (never Infinity or NaN)
- Missing or non-finite portfolio size -> treated as 0
- Cash basis without exit dates -> falls back to the trade date
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Protocol, Sequence

from tradejournal.services.lots.models import AccountingBasis, Direction, PositionStatus, Trade

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class PortfolioSizeResolver(Protocol):
    """Portfolio size lookup supplied by the portfolio-tracking collaborator (None when unknown)."""

    def __call__(self, month: str, year: int) -> Decimal | None: ...


def month_key(day: date) -> tuple[str, int]:
    """(month abbreviation, year) used to look up portfolio size."""
    return MONTH_ABBREVIATIONS[day.month - 1], day.year


def portfolio_size_on(resolver: PortfolioSizeResolver, day: date) -> Decimal:
    """
    Portfolio size for the month containing `day`.

    Returns:
        The resolved size, or 0 when the resolver has no finite number for
        that month (None, NaN, Infinity or an unparseable value)
    """
    month, year = month_key(day)
    size = resolver(month, year)
    if size is None:
        return Decimal("0")
    try:
        value = Decimal(str(size))
    except InvalidOperation:
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def resolve_reference_date(trade: Trade, basis: AccountingBasis) -> date:
    """
    Date that attributes a trade's P&L to a portfolio period.

    Accrual uses the trade date. Cash uses the latest exit date among the
    exit slots that carry one, falling back to the trade date.
    """
    if basis == AccountingBasis.ACCRUAL:
        return trade.trade_date

    exit_dates = [slot.fill_date for _, slot in trade.exit_slots if slot is not None and slot.fill_date is not None]
    return max(exit_dates) if exit_dates else trade.trade_date


def calculate_pf_impact(pl: Decimal, portfolio_size: Decimal) -> Decimal:
    """P&L as a percentage of portfolio size (0 for a non-positive portfolio)."""
    if portfolio_size <= 0:
        return Decimal("0")
    return pl / portfolio_size * Decimal("100")


def calculate_trade_pf_impact(
    trade: Trade,
    pl: Decimal,
    basis: AccountingBasis,
    resolver: PortfolioSizeResolver,
) -> Decimal:
    """
    Portfolio impact of a trade's P&L under an accounting basis.

    Args:
        trade: Trade supplying the trade and exit dates
        pl: P&L amount (realized P&L in the cascade)
        basis: Cash or Accrual
        resolver: Portfolio size lookup

    Returns:
        Impact in percent
    """
    reference = resolve_reference_date(trade, basis)
    return calculate_pf_impact(pl, portfolio_size_on(resolver, reference))


def heat_stop(sl: Decimal, tsl: Decimal) -> Decimal:
    """Stop used for open heat: TSL when set, otherwise SL."""
    return tsl if tsl > 0 else sl


def calculate_open_heat_pct(
    *,
    direction: Direction,
    avg_entry: Decimal,
    stop: Decimal,
    open_qty: int,
    portfolio_size: Decimal,
) -> Decimal:
    """
    Percentage of portfolio lost if the stop is hit on the open quantity.

    A stop on the wrong side of the entry (at or above it for a Buy, at or
    below it for a Sell) carries no heat.

    Returns:
        Heat in percent, 0 when any input is missing
    """
    if avg_entry <= 0 or stop <= 0 or open_qty <= 0 or portfolio_size <= 0:
        return Decimal("0")

    risk_per_share = direction.signed(stop, avg_entry)
    if risk_per_share <= 0:
        return Decimal("0")
    return risk_per_share * open_qty / portfolio_size * Decimal("100")


def calculate_trade_open_heat(trade: Trade, resolver: PortfolioSizeResolver) -> Decimal:
    """Open heat of a recomputed trade, against the portfolio size of its trade month."""
    return calculate_open_heat_pct(
        direction=trade.direction,
        avg_entry=trade.derived.avg_entry,
        stop=heat_stop(trade.sl, trade.tsl),
        open_qty=trade.derived.open_qty,
        portfolio_size=portfolio_size_on(resolver, trade.trade_date),
    )


def calculate_total_open_heat(trades: Iterable[Trade]) -> Decimal:
    """Sum of the open heat of every open or partially closed trade."""
    return sum(
        (t.derived.open_heat for t in trades if t.position_status in (PositionStatus.OPEN, PositionStatus.PARTIAL)),
        start=Decimal("0"),
    )


def calculate_cumulative_impact(trades: Sequence[Trade]) -> list[Decimal]:
    """
    Running sum of portfolio impact.

    Trades must already be in chronological order; this function does not
    sort them.

    Example:
        >>> calculate_cumulative_impact(trades)  # impacts 1.5, -0.5, 2
        [Decimal('1.5'), Decimal('1.0'), Decimal('3.0')]
    """
    running = Decimal("0")
    cumulative: list[Decimal] = []
    for trade in trades:
        running += trade.derived.pf_impact
        cumulative.append(running)
    return cumulative
