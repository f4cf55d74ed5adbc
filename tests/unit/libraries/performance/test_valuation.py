"""Unit tests for valuation calculators."""

from datetime import date
from decimal import Decimal

import pytest

from tradejournal.libraries.performance.valuation import (
    calculate_allocation_pct,
    calculate_average_price,
    calculate_position_size,
    calculate_realised_amount,
    calculate_realized_pl_fifo,
    calculate_sl_pct,
    calculate_stock_move_pct,
    calculate_unrealized_pl,
    calculate_valuation,
)
from tradejournal.services.lots.models import Direction, EntryLabel, EntryLot, ExitLot


def entry(price: str, quantity: int, label: EntryLabel = EntryLabel.INITIAL) -> EntryLot:
    return EntryLot(label=label, price=Decimal(price), quantity=quantity, fill_date=date(2024, 1, 15))


def exit_(price: str, quantity: int, slot: int = 1) -> ExitLot:
    return ExitLot(slot=slot, price=Decimal(price), quantity=quantity, fill_date=date(2024, 2, 15))


@pytest.fixture
def pyramided_entries() -> list[EntryLot]:
    """100 x 10 then 110 x 10."""
    return [entry("100", 10), entry("110", 10, EntryLabel.PYRAMID_1)]


class TestAveragePrice:
    def test_quantity_weighted(self, pyramided_entries: list[EntryLot]) -> None:
        assert calculate_average_price(pyramided_entries) == Decimal("105")

    def test_unequal_quantities(self) -> None:
        assert calculate_average_price([entry("100", 30), entry("200", 10)]) == Decimal("125")

    def test_no_lots_is_zero(self) -> None:
        assert calculate_average_price([]) == Decimal("0")


class TestAmounts:
    def test_position_size_sums_entry_values(self, pyramided_entries: list[EntryLot]) -> None:
        assert calculate_position_size(pyramided_entries) == Decimal("2100")

    def test_realised_amount_sums_exit_values(self) -> None:
        assert calculate_realised_amount([exit_("120", 5), exit_("130", 5, 2)]) == Decimal("1250")


class TestRealizedPL:
    def test_buy_single_lot(self) -> None:
        assert calculate_realized_pl_fifo([entry("100", 10)], [exit_("120", 10)], Direction.BUY) == Decimal("200")

    def test_buy_fifo_across_pyramid(self, pyramided_entries: list[EntryLot]) -> None:
        """15 exited at 130: 10 from 100 and 5 from 110."""
        pl = calculate_realized_pl_fifo(pyramided_entries, [exit_("130", 15)], Direction.BUY)

        assert pl == Decimal("400")

    def test_sell_profits_when_price_falls(self) -> None:
        assert calculate_realized_pl_fifo([entry("200", 5)], [exit_("180", 5)], Direction.SELL) == Decimal("100")

    def test_buy_loss(self) -> None:
        assert calculate_realized_pl_fifo([entry("100", 10)], [exit_("90", 10)], Direction.BUY) == Decimal("-100")

    def test_over_exit_ignores_unmatched_quantity(self) -> None:
        assert calculate_realized_pl_fifo([entry("100", 10)], [exit_("120", 15)], Direction.BUY) == Decimal("200")

    def test_no_exits_is_zero(self) -> None:
        assert calculate_realized_pl_fifo([entry("100", 10)], [], Direction.BUY) == Decimal("0")


class TestUnrealizedPL:
    def test_buy_marks_open_quantity_to_cmp(self) -> None:
        assert calculate_unrealized_pl(Decimal("105"), Decimal("125"), 5, Direction.BUY) == Decimal("100")

    def test_sell_marks_open_quantity_to_cmp(self) -> None:
        assert calculate_unrealized_pl(Decimal("200"), Decimal("210"), 5, Direction.SELL) == Decimal("-50")

    @pytest.mark.parametrize(
        ("avg_entry", "cmp", "open_qty"),
        [("0", "125", 5), ("105", "0", 5), ("105", "125", 0)],
    )
    def test_missing_input_is_zero(self, avg_entry: str, cmp: str, open_qty: int) -> None:
        assert calculate_unrealized_pl(Decimal(avg_entry), Decimal(cmp), open_qty, Direction.BUY) == Decimal("0")


class TestPercentages:
    def test_allocation_pct(self) -> None:
        assert calculate_allocation_pct(Decimal("2100"), Decimal("100000")) == Decimal("2.1")

    def test_allocation_pct_zero_portfolio(self) -> None:
        assert calculate_allocation_pct(Decimal("2100"), Decimal("0")) == Decimal("0")

    def test_sl_pct(self) -> None:
        assert calculate_sl_pct(Decimal("95"), Decimal("100")) == Decimal("5")

    def test_sl_pct_short_stop_above_entry_is_positive(self) -> None:
        assert calculate_sl_pct(Decimal("210"), Decimal("200")) == Decimal("5")

    def test_sl_pct_without_stop_is_zero(self) -> None:
        assert calculate_sl_pct(Decimal("0"), Decimal("100")) == Decimal("0")

    def test_stock_move_buy(self) -> None:
        assert calculate_stock_move_pct(Decimal("100"), Decimal("110"), Direction.BUY) == Decimal("10")

    def test_stock_move_sell_is_positive_when_price_falls(self) -> None:
        assert calculate_stock_move_pct(Decimal("200"), Decimal("180"), Direction.SELL) == Decimal("10")

    def test_stock_move_without_cmp_is_zero(self) -> None:
        assert calculate_stock_move_pct(Decimal("100"), Decimal("0"), Direction.BUY) == Decimal("0")


class TestCalculateValuation:
    def test_partial_exit_after_pyramid(self, pyramided_entries: list[EntryLot]) -> None:
        valuation = calculate_valuation(pyramided_entries, [exit_("130", 15)], Direction.BUY)

        assert valuation.avg_entry == Decimal("105")
        assert valuation.avg_exit_price == Decimal("130")
        assert valuation.total_qty == 20
        assert valuation.exited_qty == 15
        assert valuation.open_qty == 5
        assert valuation.position_size == Decimal("2100")
        assert valuation.realised_amount == Decimal("1950")
        assert valuation.realized_pl == Decimal("400")
        assert valuation.unmatched_exit_qty == 0

    def test_over_exit_floors_open_quantity(self) -> None:
        valuation = calculate_valuation([entry("100", 10)], [exit_("120", 15)], Direction.BUY)

        assert valuation.open_qty == 0
        assert valuation.exited_qty == 15
        assert valuation.unmatched_exit_qty == 5

    def test_no_lots(self) -> None:
        valuation = calculate_valuation([], [], Direction.BUY)

        assert valuation.total_qty == 0
        assert valuation.avg_entry == Decimal("0")
        assert valuation.realized_pl == Decimal("0")
