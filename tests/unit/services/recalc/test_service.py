"""Unit tests for the recalculation cascade."""

from datetime import date
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from tradejournal.services.lots.models import (
    AccountingBasis,
    DiagnosticKind,
    Direction,
    LotSlot,
    PositionStatus,
    Trade,
)
from tradejournal.services.recalc.models import RecalcContext, TradeField
from tradejournal.services.recalc.service import derive_position_status, recompute, recompute_many


@pytest.fixture
def context(flat_portfolio, as_of) -> RecalcContext:
    return RecalcContext(portfolio_size=flat_portfolio, as_of=as_of)


@pytest.fixture
def pyramided_trade(trade_date) -> Trade:
    """Buy 100 x 10, pyramid 110 x 10, exit 130 x 15, CMP 125."""
    return Trade(
        trade_id="T-1",
        trade_date=trade_date,
        sl=Decimal("95"),
        cmp=Decimal("125"),
        initial=LotSlot(price=Decimal("100"), quantity=10),
        pyramid1=LotSlot(price=Decimal("110"), quantity=10, fill_date=date(2024, 2, 1)),
        exit1=LotSlot(price=Decimal("130"), quantity=15, fill_date=date(2024, 3, 1)),
    )


class TestDerivePositionStatus:
    @pytest.mark.parametrize(
        ("exited", "total", "expected"),
        [
            (0, 10, PositionStatus.OPEN),
            (0, 0, PositionStatus.OPEN),
            (5, 10, PositionStatus.PARTIAL),
            (10, 10, PositionStatus.CLOSED),
            (15, 10, PositionStatus.CLOSED),
        ],
    )
    def test_status_from_quantities(self, exited: int, total: int, expected: PositionStatus) -> None:
        assert derive_position_status(exited, total) == expected


class TestRecompute:
    def test_fills_every_derived_field(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        result = recompute(pyramided_trade, context).derived

        assert result.avg_entry == Decimal("105")
        assert result.avg_exit_price == Decimal("130")
        assert (result.total_qty, result.exited_qty, result.open_qty) == (20, 15, 5)
        assert result.position_size == Decimal("2100")
        assert result.allocation_pct == Decimal("2.1")
        assert result.sl_pct == Decimal("5")
        assert result.realised_amount == Decimal("1950")
        assert result.pl_rs == Decimal("400")
        assert result.unrealized_pl == Decimal("100")
        assert result.pf_impact == Decimal("0.4")
        assert result.open_heat == Decimal("0.05")
        assert result.effective_reward_risk == Decimal("2.375")
        assert result.holding_days == 59
        assert result.diagnostics == ()

    def test_commits_derived_status(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        assert recompute(pyramided_trade, context).position_status == PositionStatus.PARTIAL

    def test_stock_move_uses_average_entry(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        """(125 - 105) / 105."""
        move = recompute(pyramided_trade, context).derived.stock_move_pct

        assert move.quantize(Decimal("0.01")) == Decimal("19.05")

    def test_does_not_modify_input(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        before = pyramided_trade.model_copy(deep=True)

        recompute(pyramided_trade, context)

        assert pyramided_trade == before

    def test_context_cmp_replaces_trade_cmp(self, pyramided_trade: Trade, flat_portfolio, as_of) -> None:
        context = RecalcContext(portfolio_size=flat_portfolio, as_of=as_of, cmp=Decimal("135"))

        result = recompute(pyramided_trade, context)

        assert result.cmp == Decimal("135")
        assert result.derived.unrealized_pl == Decimal("150")

    def test_previous_derived_values_are_ignored(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        stale = pyramided_trade.model_copy(
            update={"derived": pyramided_trade.derived.model_copy(update={"pl_rs": Decimal("-999")})}
        )

        assert recompute(stale, context).derived.pl_rs == Decimal("400")

    def test_trade_without_lots(self, trade_date, context: RecalcContext) -> None:
        result = recompute(Trade(trade_date=trade_date), context)

        assert result.position_status == PositionStatus.OPEN
        assert result.derived.total_qty == 0
        assert result.derived.effective_reward_risk == Decimal("0")
        assert result.derived.holding_days == 0

    def test_short_trade(self, trade_date, context: RecalcContext) -> None:
        trade = Trade(
            trade_date=trade_date,
            direction=Direction.SELL,
            sl=Decimal("210"),
            initial=LotSlot(price=Decimal("200"), quantity=5),
            exit1=LotSlot(price=Decimal("180"), quantity=5, fill_date=date(2024, 2, 1)),
        )

        result = recompute(trade, context)

        assert result.derived.pl_rs == Decimal("100")
        assert result.position_status == PositionStatus.CLOSED


class TestStatusOverride:
    def test_pinned_status_is_kept(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        pinned = pyramided_trade.model_copy(update={"position_status": PositionStatus.CLOSED})
        overridden = context.with_overrides(frozenset({TradeField.POSITION_STATUS}))

        result = recompute(pinned, overridden)

        assert result.position_status == PositionStatus.CLOSED

    def test_pinned_status_drives_reward_and_holding(self, pyramided_trade: Trade, context: RecalcContext) -> None:
        """Closed status measures reward against the average exit, not CMP."""
        pinned = pyramided_trade.model_copy(update={"position_status": PositionStatus.CLOSED})
        overridden = context.with_overrides(frozenset({TradeField.POSITION_STATUS}))

        result = recompute(pinned, overridden)

        # Rewards 30 and 20 against risks 5 and 15
        assert result.derived.effective_reward_risk == Decimal("2.5")
        assert result.derived.holding_days == 40


class TestDiagnostics:
    def test_over_exit_is_reported_not_raised(self, trade_date, context: RecalcContext) -> None:
        trade = Trade(
            trade_id="T-over",
            trade_date=trade_date,
            initial=LotSlot(price=Decimal("100"), quantity=10),
            exit1=LotSlot(price=Decimal("120"), quantity=15, fill_date=date(2024, 2, 1)),
        )

        with capture_logs() as logs:
            result = recompute(trade, context)

        assert result.derived.has_over_exit
        over_exit = [d for d in result.derived.diagnostics if d.kind == DiagnosticKind.OVER_EXIT]
        assert over_exit[0].quantity == 5
        assert result.derived.open_qty == 0
        assert result.derived.pl_rs == Decimal("200")
        assert result.position_status == PositionStatus.CLOSED
        assert any(
            log["event"] == "recalc.over_exit" and log["trade_id"] == "T-over" and log["excess_qty"] == 5
            for log in logs
        )

    def test_missing_dates_are_reported(self, trade_date, context: RecalcContext) -> None:
        trade = Trade(
            trade_date=trade_date,
            initial=LotSlot(price=Decimal("100"), quantity=10),
            exit1=LotSlot(price=Decimal("120"), quantity=10),
        )

        result = recompute(trade, context)

        assert [d.kind for d in result.derived.diagnostics] == [DiagnosticKind.MISSING_DATE]
        assert result.derived.holding_days == 1


class TestAccountingBasis:
    def test_cash_and_accrual_impact_differ(self, trade_date, monthly_portfolio, as_of) -> None:
        trade = Trade(
            trade_date=trade_date,
            initial=LotSlot(price=Decimal("100"), quantity=10),
            exit1=LotSlot(price=Decimal("120"), quantity=10, fill_date=date(2024, 3, 10)),
        )

        accrual = recompute(trade, RecalcContext(portfolio_size=monthly_portfolio, as_of=as_of))
        cash = recompute(
            trade,
            RecalcContext(portfolio_size=monthly_portfolio, accounting_basis=AccountingBasis.CASH, as_of=as_of),
        )

        assert accrual.derived.pf_impact == Decimal("0.2")
        assert cash.derived.pf_impact == Decimal("0.1")
        # Allocation always uses the entry month
        assert accrual.derived.allocation_pct == cash.derived.allocation_pct == Decimal("1")


class TestRecomputeMany:
    def test_keeps_order_and_applies_per_trade_overrides(self, pyramided_trade: Trade, context) -> None:
        other = pyramided_trade.model_copy(update={"trade_id": "T-2", "position_status": PositionStatus.OPEN})

        results = recompute_many(
            [pyramided_trade, other],
            context,
            overrides={"T-2": frozenset({TradeField.POSITION_STATUS})},
        )

        assert [t.trade_id for t in results] == ["T-1", "T-2"]
        assert results[0].position_status == PositionStatus.PARTIAL
        assert results[1].position_status == PositionStatus.OPEN

    def test_logs_each_recompute_at_debug(self, pyramided_trade: Trade, context) -> None:
        with capture_logs() as logs:
            recompute_many([pyramided_trade], context)

        assert [log["event"] for log in logs] == ["recalc.trade_recomputed"]
        assert logs[0]["log_level"] == "debug"
