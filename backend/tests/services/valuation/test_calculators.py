# backend/tests/services/valuation/test_calculators.py
"""
Tests for the pure valuation calculators.

No database, no provider: holdings and quotes are built in memory.
"""

from decimal import Decimal

import pytest

from portfolio_ledger.services.constants import PRICE_UNAVAILABLE_ALL
from portfolio_ledger.services.market_data.base import Quote
from portfolio_ledger.services.records import HoldingRecord
from portfolio_ledger.services.valuation import (
    HoldingValuationCalculator,
    PriceStatus,
    SectorAllocationCalculator,
    SummaryCalculator,
    percent_of,
)


def holding(
        symbol: str,
        quantity: str,
        average_cost: str,
        target: str | None = None,
        sector: str | None = None,
) -> HoldingRecord:
    quantity = Decimal(quantity)
    average = Decimal(average_cost)
    return HoldingRecord(
        id=1,
        portfolio_id=1,
        symbol=symbol,
        quantity=quantity,
        average_cost_basis=average,
        total_cost_basis=quantity * average,
        target_allocation_percent=Decimal(target) if target is not None else None,
        sector=sector,
        first_purchase_date=None,
        last_transaction_date=None,
    )


def quote(symbol: str, price: str, change: str = "0", change_percent: str = "0") -> Quote:
    return Quote(
        symbol=symbol,
        price=Decimal(price),
        change=Decimal(change),
        change_percent=Decimal(change_percent),
        previous_close=Decimal(price) - Decimal(change),
    )


class TestPercentOf:

    def test_rounds_to_four_places(self):
        assert percent_of(Decimal("1"), Decimal("3")) == Decimal("33.3333")

    @pytest.mark.parametrize("whole", [Decimal("0"), Decimal("-5")])
    def test_non_positive_whole(self, whole):
        assert percent_of(Decimal("1"), whole) == Decimal("0")


class TestHoldingValuationCalculator:

    def test_weights_and_gains(self):
        valuation = HoldingValuationCalculator().calculate(
            1,
            [holding("AAPL", "10", "150", target="50"), holding("MSFT", "5", "200")],
            {"AAPL": quote("AAPL", "180", "2", "1.1236"), "MSFT": quote("MSFT", "240")},
        )

        aapl, msft = valuation.holdings
        assert valuation.total_market_value == Decimal("3000")
        assert valuation.total_cost_basis == Decimal("2500")
        assert aapl.market_value == Decimal("1800")
        assert aapl.weight_percent == Decimal("60.0000")
        assert aapl.drift_percent == Decimal("10.0000")
        assert aapl.unrealized_gain_loss == Decimal("300")
        assert aapl.unrealized_gain_loss_percent == Decimal("20.0000")
        assert aapl.day_change == Decimal("20")
        assert msft.drift_percent is None
        assert valuation.total_day_change == Decimal("20")
        assert valuation.unavailable_count == 0

    def test_every_quote_missing_still_values_every_holding(self):
        """A failed quote request yields one unavailable record per holding."""
        valuation = HoldingValuationCalculator().calculate(
            1,
            [holding("AAPL", "10", "150", target="40"), holding("MSFT", "5", "200")],
            {},
            quotes_failed=True,
        )

        assert len(valuation.holdings) == 2
        for h in valuation.holdings:
            assert h.price_status == PriceStatus.UNAVAILABLE
            assert h.current_price == Decimal("0")
            assert h.market_value == Decimal("0")
            assert h.unrealized_gain_loss is None
            assert h.unavailable_reason == PRICE_UNAVAILABLE_ALL
        assert valuation.holdings[0].drift_percent == Decimal("-40")
        assert valuation.unavailable_count == 2
        assert valuation.quotes_failed

    def test_single_missing_symbol(self):
        valuation = HoldingValuationCalculator().calculate(
            1,
            [holding("AAPL", "10", "150"), holding("GONE", "1", "10")],
            {"AAPL": quote("AAPL", "100")},
        )

        aapl, gone = valuation.holdings
        assert aapl.weight_percent == Decimal("100.0000")
        assert gone.price_status == PriceStatus.UNAVAILABLE
        assert gone.unavailable_reason == "No market data for GONE"

    def test_zero_price_counts_as_missing(self):
        valuation = HoldingValuationCalculator().calculate(1, [holding("AAPL", "1", "1")], {"AAPL": quote("AAPL", "0")})
        assert not valuation.holdings[0].has_price


class TestSummaryCalculator:

    def test_summary_with_benchmark(self):
        valuation = HoldingValuationCalculator().calculate(
            1,
            [holding("AAPL", "10", "100")],
            {"AAPL": quote("AAPL", "110", "10", "10")},
        )
        summary = SummaryCalculator().calculate(
            valuation,
            cash_balance=Decimal("900"),
            net_deposits=Decimal("2000"),
            benchmark_symbol="SPY",
            benchmark_quote=quote("SPY", "500", "5", "1.0"),
        )

        assert summary.total_equity == Decimal("2000")
        assert summary.day_change == Decimal("100")
        # 100 / (2000 - 100)
        assert summary.day_change_percent == Decimal("5.2632")
        assert summary.total_return == Decimal("0")
        assert summary.total_return_percent == Decimal("0")
        assert summary.unrealized_gain_loss == Decimal("100")
        assert summary.benchmark_change_percent == Decimal("1.0")
        assert summary.daily_alpha == Decimal("4.2632")

    def test_no_benchmark_quote_means_no_alpha(self):
        valuation = HoldingValuationCalculator().calculate(1, [], {})
        summary = SummaryCalculator().calculate(valuation, Decimal("100"), Decimal("0"), "SPY", None)

        assert summary.daily_alpha is None
        assert summary.benchmark_change_percent is None
        assert summary.total_return_percent == Decimal("0")
        assert summary.day_change_percent == Decimal("0")


class TestSectorAllocationCalculator:

    def test_groups_by_sector(self):
        valuation = HoldingValuationCalculator().calculate(
            1,
            [
                holding("AAPL", "10", "100", sector="Technology"),
                holding("MSFT", "10", "100", sector="Technology"),
                holding("XOM", "10", "100", sector="Energy"),
                holding("ZZZ", "10", "100"),
            ],
            {
                "AAPL": quote("AAPL", "100", change_percent="2"),
                "MSFT": quote("MSFT", "300", change_percent="-1"),
                "XOM": quote("XOM", "100"),
                "ZZZ": quote("ZZZ", "100"),
            },
        )
        allocations = SectorAllocationCalculator().calculate(valuation)

        assert [a.sector for a in allocations] == ["Technology", "Energy", "Other"]
        tech = allocations[0]
        assert tech.market_value == Decimal("4000")
        assert tech.weight_percent == Decimal("66.6667")
        assert tech.holdings_count == 2
        # (2 × 1000 + -1 × 3000) / 4000
        assert tech.day_change_percent == Decimal("-0.2500")
        assert tech.symbols == ("AAPL", "MSFT")
