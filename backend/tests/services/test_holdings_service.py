# backend/tests/services/test_holdings_service.py
"""
Tests for HoldingsService: listing, single lookup, target allocation.
"""

from decimal import Decimal

import pytest

from portfolio_ledger.services.exceptions import (
    HoldingNotFoundError,
    INVALID_VALUE,
    PortfolioNotFoundError,
    ValidationError,
)
from portfolio_ledger.services.holdings import HoldingsService
from tests.conftest import create_holding


@pytest.fixture
def service() -> HoldingsService:
    return HoldingsService()


class TestListHoldings:

    def test_ordered_by_symbol(self, db, service, sample_portfolio):
        create_holding(db, sample_portfolio, symbol="MSFT")
        create_holding(db, sample_portfolio, symbol="AAPL")

        assert [h.symbol for h in service.list_holdings(db, sample_portfolio.id)] == ["AAPL", "MSFT"]

    def test_unknown_portfolio(self, db, service):
        with pytest.raises(PortfolioNotFoundError):
            service.list_holdings(db, 42)


class TestGetHolding:

    def test_lookup_is_case_insensitive(self, db, service, sample_portfolio):
        create_holding(db, sample_portfolio, symbol="AAPL", quantity="7")
        assert service.get_holding(db, sample_portfolio.id, "aapl").quantity == Decimal("7")

    def test_missing_holding(self, db, service, sample_portfolio):
        with pytest.raises(HoldingNotFoundError) as exc_info:
            service.get_holding(db, sample_portfolio.id, "nvda")
        assert exc_info.value.symbol == "NVDA"


class TestTargetAllocation:

    def test_set_and_clear(self, db, service, sample_portfolio):
        create_holding(db, sample_portfolio, symbol="AAPL")

        updated = service.update_target_allocation(db, sample_portfolio.id, "AAPL", Decimal("25.5"))
        assert updated.target_allocation_percent == Decimal("25.5")

        cleared = service.update_target_allocation(db, sample_portfolio.id, "AAPL", None)
        assert cleared.target_allocation_percent is None

    @pytest.mark.parametrize("target", [Decimal("-0.01"), Decimal("100.01")])
    def test_out_of_range_rejected(self, db, service, sample_portfolio, target):
        create_holding(db, sample_portfolio, symbol="AAPL")
        with pytest.raises(ValidationError) as exc_info:
            service.update_target_allocation(db, sample_portfolio.id, "AAPL", target)
        assert exc_info.value.code == INVALID_VALUE

    def test_missing_holding(self, db, service, sample_portfolio):
        with pytest.raises(HoldingNotFoundError):
            service.update_target_allocation(db, sample_portfolio.id, "AAPL", Decimal("10"))
