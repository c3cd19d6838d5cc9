# backend/tests/services/test_rebalance.py
"""Tests for the rebalancing advisor and service."""

from decimal import Decimal

import pytest

from portfolio_ledger.services.exceptions import ValidationError
from portfolio_ledger.services.rebalance import RebalanceAction, RebalanceService
from portfolio_ledger.services.valuation import ValuationService
from tests.conftest import create_holding


@pytest.fixture
def service(mock_provider) -> RebalanceService:
    return RebalanceService(ValuationService(provider=mock_provider))


@pytest.fixture
def lopsided(db, mock_provider, sample_portfolio):
    """Targets 50/50, actual 93.75/6.25."""
    create_holding(db, sample_portfolio, "AAPL", "15", "100", target_allocation_percent="50")
    create_holding(db, sample_portfolio, "MSFT", "1", "100", target_allocation_percent="50")
    mock_provider.add_quote("AAPL", "100")
    mock_provider.add_quote("MSFT", "100")
    return sample_portfolio


class TestRebalanceService:

    def test_overweight_and_underweight(self, db, service, lopsided):
        suggestions = service.get_suggestions(db, lopsided.id, Decimal("2"))

        assert len(suggestions) == 2
        by_symbol = {s.symbol: s for s in suggestions}
        sell = by_symbol["AAPL"]
        assert sell.action == RebalanceAction.SELL
        assert sell.current_weight == Decimal("93.7500")
        assert sell.drift_percent == Decimal("43.7500")
        assert sell.suggested_trade_value == Decimal("700")
        assert sell.suggested_shares == Decimal("7")
        buy = by_symbol["MSFT"]
        assert buy.action == RebalanceAction.BUY
        assert buy.suggested_trade_value == Decimal("700")
        assert buy.suggested_shares == Decimal("7")

    def test_sorted_by_absolute_drift(self, db, service, mock_provider, sample_portfolio):
        create_holding(db, sample_portfolio, "AAPL", "70", "100", target_allocation_percent="40")
        create_holding(db, sample_portfolio, "MSFT", "20", "100", target_allocation_percent="35")
        create_holding(db, sample_portfolio, "XOM", "10", "100", target_allocation_percent="25")
        for symbol in ("AAPL", "MSFT", "XOM"):
            mock_provider.add_quote(symbol, "100")

        suggestions = service.get_suggestions(db, sample_portfolio.id)

        # drifts: +30, -15, -15
        assert suggestions[0].symbol == "AAPL"
        assert [abs(s.drift_percent) for s in suggestions] == [Decimal("30"), Decimal("15"), Decimal("15")]

    def test_within_threshold_is_skipped(self, db, service, mock_provider, sample_portfolio):
        create_holding(db, sample_portfolio, "AAPL", "51", "100", target_allocation_percent="50")
        create_holding(db, sample_portfolio, "MSFT", "49", "100", target_allocation_percent="50")
        mock_provider.add_quote("AAPL", "100")
        mock_provider.add_quote("MSFT", "100")

        assert service.get_suggestions(db, sample_portfolio.id, Decimal("2")) == []

    def test_holdings_without_target_are_ignored(self, db, service, mock_provider, sample_portfolio):
        create_holding(db, sample_portfolio, "AAPL", "90", "100")
        create_holding(db, sample_portfolio, "MSFT", "10", "100")
        mock_provider.add_quote("AAPL", "100")
        mock_provider.add_quote("MSFT", "100")

        assert service.get_suggestions(db, sample_portfolio.id) == []

    def test_unpriced_holding_suggests_value_without_shares(self, db, service, mock_provider, sample_portfolio):
        create_holding(db, sample_portfolio, "AAPL", "10", "100", target_allocation_percent="50")
        create_holding(db, sample_portfolio, "GONE", "10", "100", target_allocation_percent="50")
        mock_provider.add_quote("AAPL", "100")

        suggestions = service.get_suggestions(db, sample_portfolio.id)
        gone = next(s for s in suggestions if s.symbol == "GONE")

        assert gone.action == RebalanceAction.BUY
        assert gone.suggested_trade_value == Decimal("500")
        assert gone.suggested_shares == Decimal("0")

    def test_negative_threshold_rejected(self, db, service, lopsided):
        with pytest.raises(ValidationError) as exc_info:
            service.get_suggestions(db, lopsided.id, Decimal("-1"))

        assert exc_info.value.field == "threshold"
