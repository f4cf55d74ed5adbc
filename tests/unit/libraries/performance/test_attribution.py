"""Unit tests for period attribution of realized P&L."""

from datetime import date
from decimal import Decimal

from tradejournal.libraries.performance.attribution import attribute_exits, group_pl_by_month
from tradejournal.services.lots.models import AccountingBasis, DerivedFields, Direction, LotSlot, Trade


def split_exit_trade() -> Trade:
    """100 x 10 + 110 x 10, exits 130 x 15 in Feb and 90 x 5 in Mar."""
    return Trade(
        trade_id="T-1",
        trade_date=date(2024, 1, 15),
        initial=LotSlot(price=Decimal("100"), quantity=10),
        pyramid1=LotSlot(price=Decimal("110"), quantity=10, fill_date=date(2024, 1, 20)),
        exit1=LotSlot(price=Decimal("130"), quantity=15, fill_date=date(2024, 2, 10)),
        exit2=LotSlot(price=Decimal("90"), quantity=5, fill_date=date(2024, 3, 5)),
        derived=DerivedFields(pl_rs=Decimal("300")),
    )


class TestAttributeExits:
    def test_pl_per_exit_follows_fifo(self) -> None:
        attributions = attribute_exits(split_exit_trade())

        assert [(a.slot, a.quantity, a.pl) for a in attributions] == [
            (1, 15, Decimal("400")),
            (2, 5, Decimal("-100")),
        ]
        assert attributions[0].trade_id == "T-1"
        assert attributions[1].exit_date == date(2024, 3, 5)

    def test_exits_sum_to_realized_pl(self) -> None:
        trade = split_exit_trade()

        assert sum(a.pl for a in attribute_exits(trade)) == trade.derived.pl_rs

    def test_short_trade(self) -> None:
        trade = Trade(
            trade_date=date(2024, 1, 15),
            direction=Direction.SELL,
            initial=LotSlot(price=Decimal("200"), quantity=5),
            exit1=LotSlot(price=Decimal("180"), quantity=5, fill_date=date(2024, 1, 30)),
        )

        assert attribute_exits(trade)[0].pl == Decimal("100")

    def test_no_exits(self) -> None:
        trade = Trade(trade_date=date(2024, 1, 15), initial=LotSlot(price=Decimal("100"), quantity=10))

        assert attribute_exits(trade) == []


class TestGroupPLByMonth:
    def test_accrual_books_everything_in_trade_month(self) -> None:
        totals = group_pl_by_month([split_exit_trade()], AccountingBasis.ACCRUAL)

        assert totals == {("Jan", 2024): Decimal("300")}

    def test_cash_books_each_exit_in_its_month(self) -> None:
        totals = group_pl_by_month([split_exit_trade()], AccountingBasis.CASH)

        assert totals == {("Feb", 2024): Decimal("400"), ("Mar", 2024): Decimal("-100")}

    def test_both_bases_agree_on_total(self) -> None:
        trades = [split_exit_trade()]

        accrual = sum(group_pl_by_month(trades, AccountingBasis.ACCRUAL).values())
        cash = sum(group_pl_by_month(trades, AccountingBasis.CASH).values())

        assert accrual == cash
