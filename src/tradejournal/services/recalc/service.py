"""
Recalculation cascade for journal trades.

Recomputes every derived field of a trade from its raw inputs in a fixed
dependency order:

1. Gather valid lots (missing dates default to the trade date)
2. Valuation: averages, quantities, position size, FIFO realized P&L
3. Reward:risk per entry and both aggregates
4. Holding period for the position status
5. Portfolio impact, allocation and open heat
6. Position status (unless the user set it by hand)
7. Stock move against CMP

Steps 3 and 4 already use the status step 6 commits, so recomputing a
recomputed trade changes nothing. All functions are pure: they return new
trades and never modify their arguments.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

import structlog

from tradejournal.libraries.performance.holding_period import calculate_holding_period
from tradejournal.libraries.performance.portfolio_impact import (
    calculate_open_heat_pct,
    calculate_trade_pf_impact,
    heat_stop,
    portfolio_size_on,
)
from tradejournal.libraries.performance.reward_risk import calculate_reward_risk
from tradejournal.libraries.performance.valuation import (
    calculate_allocation_pct,
    calculate_sl_pct,
    calculate_stock_move_pct,
    calculate_unrealized_pl,
    calculate_valuation,
)
from tradejournal.services.lots.gathering import gather_lots
from tradejournal.services.lots.models import (
    DerivedFields,
    DiagnosticKind,
    Direction,
    LotSlot,
    PositionStatus,
    Trade,
    TradeDiagnostic,
)
from tradejournal.services.recalc.models import FieldEdit, RecalcContext, TradeField

logger = structlog.get_logger()


def derive_position_status(exited_qty: int, total_qty: int) -> PositionStatus:
    """
    Position status implied by quantities.

    Returns:
        OPEN when nothing was exited, CLOSED when everything was, else PARTIAL
    """
    if exited_qty <= 0:
        return PositionStatus.OPEN
    if exited_qty >= total_qty:
        return PositionStatus.CLOSED
    return PositionStatus.PARTIAL


def recompute(trade: Trade, context: RecalcContext) -> Trade:
    """
    Recompute all derived fields of a trade.

    Args:
        trade: Trade with raw inputs (its current derived fields are ignored)
        context: Portfolio lookup, accounting basis, overrides, as-of date, CMP

    Returns:
        New trade with fresh derived fields and committed position status
    """
    cmp = context.cmp if context.cmp is not None else trade.cmp

    lots = gather_lots(trade)
    valuation = calculate_valuation(lots.entries, lots.exits, trade.direction)

    if context.is_overridden(TradeField.POSITION_STATUS):
        status = trade.position_status
    else:
        status = derive_position_status(valuation.exited_qty, valuation.total_qty)

    reward_risk = calculate_reward_risk(
        lots.entries,
        lots.exits,
        direction=trade.direction,
        status=status,
        sl=trade.sl,
        tsl=trade.tsl,
        cmp=cmp,
        avg_exit_price=valuation.avg_exit_price,
    )
    holding = calculate_holding_period(lots.entries, lots.exits, status, context.as_of)

    entry_portfolio = portfolio_size_on(context.portfolio_size, trade.trade_date)
    pf_impact = calculate_trade_pf_impact(
        trade, valuation.realized_pl, context.accounting_basis, context.portfolio_size
    )
    open_heat = calculate_open_heat_pct(
        direction=trade.direction,
        avg_entry=valuation.avg_entry,
        stop=heat_stop(trade.sl, trade.tsl),
        open_qty=valuation.open_qty,
        portfolio_size=entry_portfolio,
    )

    diagnostics = list(lots.diagnostics)
    if valuation.unmatched_exit_qty > 0:
        diagnostics.append(
            TradeDiagnostic(
                kind=DiagnosticKind.OVER_EXIT,
                message=(
                    f"Exit quantity ({valuation.exited_qty}) exceeds entered quantity "
                    f"({valuation.total_qty}) by {valuation.unmatched_exit_qty}"
                ),
                quantity=valuation.unmatched_exit_qty,
            )
        )
        logger.warning(
            "recalc.over_exit",
            trade_id=trade.trade_id,
            exited_qty=valuation.exited_qty,
            total_qty=valuation.total_qty,
            excess_qty=valuation.unmatched_exit_qty,
        )

    derived = DerivedFields(
        avg_entry=valuation.avg_entry,
        avg_exit_price=valuation.avg_exit_price,
        total_qty=valuation.total_qty,
        open_qty=valuation.open_qty,
        exited_qty=valuation.exited_qty,
        position_size=valuation.position_size,
        allocation_pct=calculate_allocation_pct(valuation.position_size, entry_portfolio),
        sl_pct=calculate_sl_pct(trade.sl, trade.initial.price if trade.initial else Decimal("0")),
        stock_move_pct=calculate_stock_move_pct(valuation.avg_entry, cmp, trade.direction),
        reward_risk=reward_risk.traditional_weighted_rr,
        effective_reward_risk=reward_risk.effective_rr,
        has_risk_free_components=reward_risk.has_risk_free_components,
        holding_days=holding.display_days,
        realised_amount=valuation.realised_amount,
        pl_rs=valuation.realized_pl,
        unrealized_pl=calculate_unrealized_pl(valuation.avg_entry, cmp, valuation.open_qty, trade.direction),
        pf_impact=pf_impact,
        open_heat=open_heat,
        diagnostics=tuple(diagnostics),
    )

    logger.debug(
        "recalc.trade_recomputed",
        trade_id=trade.trade_id,
        status=status.value,
        pl_rs=str(derived.pl_rs),
        open_qty=derived.open_qty,
    )

    return trade.model_copy(update={"cmp": cmp, "position_status": status, "derived": derived})


def recompute_many(
    trades: Iterable[Trade],
    context: RecalcContext,
    overrides: Mapping[str, frozenset[TradeField]] | None = None,
) -> list[Trade]:
    """
    Recompute trades in order in one pass.

    Args:
        trades: Trades to recompute
        context: Shared context
        overrides: Per-trade override sets keyed by trade id; trades not in
            the mapping use the context's own override set

    Returns:
        Recomputed trades in input order
    """
    overrides = overrides or {}
    return [recompute(trade, context_for_trade(trade, context, overrides)) for trade in trades]


def context_for_trade(
    trade: Trade,
    context: RecalcContext,
    overrides: Mapping[str, frozenset[TradeField]],
) -> RecalcContext:
    """Context carrying the override set recorded for one trade."""
    fields = overrides.get(trade.trade_id)
    if fields is None:
        return context
    return context.with_overrides(fields)


# ---------------------------------------------------------------------------
# Field edits
# ---------------------------------------------------------------------------


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _to_quantity(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        quantity = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Quantity must be a whole number, got {value!r}") from None
    if not quantity.is_finite() or quantity != quantity.to_integral_value():
        raise ValueError(f"Quantity must be a whole number, got {value!r}")
    return int(quantity)


def _to_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _to_optional_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    return _to_date(value)


_SLOT_FIELDS: dict[TradeField, tuple[str, str]] = {
    TradeField.ENTRY: ("initial", "price"),
    TradeField.INITIAL_QTY: ("initial", "quantity"),
    TradeField.PYRAMID1_PRICE: ("pyramid1", "price"),
    TradeField.PYRAMID1_QTY: ("pyramid1", "quantity"),
    TradeField.PYRAMID1_DATE: ("pyramid1", "fill_date"),
    TradeField.PYRAMID2_PRICE: ("pyramid2", "price"),
    TradeField.PYRAMID2_QTY: ("pyramid2", "quantity"),
    TradeField.PYRAMID2_DATE: ("pyramid2", "fill_date"),
    TradeField.EXIT1_PRICE: ("exit1", "price"),
    TradeField.EXIT1_QTY: ("exit1", "quantity"),
    TradeField.EXIT1_DATE: ("exit1", "fill_date"),
    TradeField.EXIT2_PRICE: ("exit2", "price"),
    TradeField.EXIT2_QTY: ("exit2", "quantity"),
    TradeField.EXIT2_DATE: ("exit2", "fill_date"),
    TradeField.EXIT3_PRICE: ("exit3", "price"),
    TradeField.EXIT3_QTY: ("exit3", "quantity"),
    TradeField.EXIT3_DATE: ("exit3", "fill_date"),
}

_SCALAR_FIELDS: dict[TradeField, tuple[str, Callable[[Any], Any]]] = {
    TradeField.SL: ("sl", _to_decimal),
    TradeField.TSL: ("tsl", _to_decimal),
    TradeField.CMP: ("cmp", _to_decimal),
    TradeField.BUY_SELL: ("direction", Direction),
    TradeField.POSITION_STATUS: ("position_status", PositionStatus),
    TradeField.DATE: ("trade_date", _to_date),
    TradeField.NAME: ("name", str),
    TradeField.SETUP: ("setup", str),
    TradeField.NOTES: ("notes", str),
}


_SLOT_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "price": _to_decimal,
    "quantity": _to_quantity,
    "fill_date": _to_optional_date,
}


def apply_field_value(trade: Trade, edit: FieldEdit) -> Trade:
    """
    Write one raw field value onto a trade without recomputing.

    Args:
        trade: Trade to copy
        edit: Field and its new value

    Returns:
        Trade copy with the raw field replaced

    Raises:
        ValueError: If the value cannot be converted for the field
    """
    if edit.field in _SLOT_FIELDS:
        slot_name, attribute = _SLOT_FIELDS[edit.field]
        slot = getattr(trade, slot_name) or LotSlot()
        updated = LotSlot.model_validate(
            {**slot.model_dump(), attribute: _SLOT_CONVERTERS[attribute](edit.value)}
        )
        return trade.model_copy(update={slot_name: updated})

    if edit.field in _SCALAR_FIELDS:
        attribute, convert = _SCALAR_FIELDS[edit.field]
        return Trade.model_validate({**trade.model_dump(), attribute: convert(edit.value)})

    raise ValueError(f"Unsupported trade field: {edit.field!r}")


def apply_edit(trade: Trade, edit: FieldEdit, context: RecalcContext) -> Trade:
    """
    Apply a field edit and run the cascade it requires.

    Annotation edits (name, setup, notes) only replace the field. Every other
    edit recomputes the whole trade. Editing the position status by hand
    pins it: the recompute runs with POSITION_STATUS added to the overrides,
    on a derived context (the caller's context is left untouched).

    Args:
        trade: Trade being edited
        edit: Field edit
        context: Recalculation context

    Returns:
        Edited trade
    """
    edited = apply_field_value(trade, edit)
    if not edit.field.triggers_cascade:
        return edited

    if edit.field == TradeField.POSITION_STATUS:
        context = context.with_overrides(context.user_overridden_fields | {TradeField.POSITION_STATUS})

    return recompute(edited, context)
