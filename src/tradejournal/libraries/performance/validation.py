"""User-facing data-quality checks for journal trades."""

from tradejournal.libraries.performance.models import TradeIssue
from tradejournal.services.lots.models import PositionStatus, Trade


def validate_trade(trade: Trade) -> list[TradeIssue]:
    """
    Check a recomputed trade for inconsistent inputs.

    Errors:
    - Exit quantity greater than entered quantity

    Warnings:
    - Pyramid or exit slot with a quantity but no price
    - Open quantity while no exit quantity was entered at all
    - Status still Open although everything (or part) was exited

    Args:
        trade: Trade whose derived fields are current

    Returns:
        Issues in check order (empty when the trade is clean)
    """
    issues: list[TradeIssue] = []

    bought = sum(slot.quantity for _, slot in trade.entry_slots if slot is not None)
    exited = sum(slot.quantity for _, slot in trade.exit_slots if slot is not None)

    if exited > 0 and exited > bought:
        issues.append(
            TradeIssue(
                level="error",
                message=(
                    f"Exit quantity ({exited}) cannot be greater than bought quantity ({bought}). "
                    "Please check your pyramid and exit quantities."
                ),
            )
        )

    for name, slot in (("Pyramid 1", trade.pyramid1), ("Pyramid 2", trade.pyramid2)):
        if slot is not None and slot.quantity > 0 and slot.price <= 0:
            issues.append(TradeIssue(level="warning", message=f"{name} has quantity but no price specified"))

    for slot_no, slot in trade.exit_slots:
        if slot is not None and slot.quantity > 0 and slot.price <= 0:
            issues.append(TradeIssue(level="warning", message=f"Exit {slot_no} has quantity but no price specified"))

    open_qty = trade.derived.open_qty
    if open_qty > 0 and exited == 0:
        issues.append(
            TradeIssue(level="warning", message=f"Trade has open quantity ({open_qty}) but no exit details entered")
        )

    if trade.position_status == PositionStatus.OPEN and exited > 0:
        if open_qty == 0:
            issues.append(
                TradeIssue(level="warning", message='All quantity exited but status still marked as "Open"')
            )
        else:
            issues.append(
                TradeIssue(level="warning", message='Trade has partial exits but status not marked as "Partial"')
            )

    return issues
