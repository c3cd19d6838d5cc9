# backend/tests/services/imports/test_holdings_import.py
"""Tests for HoldingsImportService (cache upserts without ledger entries)."""

from decimal import Decimal

import pytest

from portfolio_ledger.services.exceptions import (
    InsufficientSharesError,
    PortfolioNotFoundError,
    ProviderUnavailableError,
)
from portfolio_ledger.services.imports import HoldingsImportService
from portfolio_ledger.services.ledger import queries
from tests.conftest import create_holding, sell


@pytest.fixture
def service(mock_provider) -> HoldingsImportService:
    return HoldingsImportService(mock_provider)


class TestImportHoldings:

    def test_new_and_updated_rows(self, db, service, mock_provider, sample_portfolio):
        create_holding(db, sample_portfolio, "MSFT", "1", "100", sector="Technology")
        mock_provider.add_profile("AAPL", "Technology")

        result = service.import_holdings(
            db,
            sample_portfolio.id,
            [
                {"symbol": "aapl", "quantity": "10", "average_cost_basis": "150.5"},
                {"symbol": "MSFT", "quantity": "3", "average_cost_basis": "300"},
            ],
        )

        assert result.success
        assert (result.imported, result.updated, result.failed) == (1, 1, 0)
        aapl = queries.get_holding(db, sample_portfolio.id, "AAPL")
        assert aapl.total_cost_basis == Decimal("1505")
        assert aapl.sector == "Technology"
        msft = queries.get_holding(db, sample_portfolio.id, "MSFT")
        assert msft.quantity == Decimal("3")
        assert msft.total_cost_basis == Decimal("900")
        assert mock_provider.profile_call_count == 1

    def test_no_ledger_entries_written(self, db, service, sample_portfolio):
        service.import_holdings(db, sample_portfolio.id, [{"symbol": "AAPL", "quantity": "1", "average_cost_basis": "1"}])

        assert queries.list_transactions(db, sample_portfolio.id) == []
        assert queries.get_cash_balance(db, sample_portfolio.id) == Decimal("0")

    def test_partial_failure_keeps_valid_rows(self, db, service, sample_portfolio):
        result = service.import_holdings(
            db,
            sample_portfolio.id,
            [
                {"symbol": "bad symbol!", "quantity": "1", "average_cost_basis": "1"},
                {"symbol": "AAPL", "quantity": "0", "average_cost_basis": "1"},
                {"symbol": "XOM", "quantity": "2", "average_cost_basis": "-1"},
                {"symbol": "KO", "quantity": "5", "average_cost_basis": "60"},
            ],
        )

        assert not result.success
        assert (result.imported, result.failed) == (1, 3)
        assert [(e.row, e.field) for e in result.errors] == [
            (1, "symbol"), (2, "quantity"), (3, "average_cost_basis"),
        ]
        assert [h.symbol for h in queries.list_holdings(db, sample_portfolio.id)] == ["KO"]

    def test_sector_lookup_failure_leaves_sector_empty(self, db, service, mock_provider, sample_portfolio):
        mock_provider.add_error("AAPL", ProviderUnavailableError(provider="mock", reason="down"))

        result = service.import_holdings(
            db, sample_portfolio.id, [{"symbol": "AAPL", "quantity": "1", "average_cost_basis": "1"}]
        )

        assert result.success
        assert queries.get_holding(db, sample_portfolio.id, "AAPL").sector is None

    def test_unknown_portfolio(self, db, service):
        with pytest.raises(PortfolioNotFoundError):
            service.import_holdings(db, 999, [])


class TestImportedHoldingsAndTheLedger:
    """Imported rows have no BUY history, so a ledger replay does not see them."""

    def test_partial_sell_of_imported_holding_removes_the_row(self, db, service, processor, sample_portfolio):
        service.import_holdings(db, sample_portfolio.id, [{"symbol": "AAPL", "quantity": "100", "average_cost_basis": "150"}])

        record = sell(processor, sample_portfolio.id, "AAPL", "1", "170")

        assert record.total_amount == Decimal("170")
        assert queries.get_holding(db, sample_portfolio.id, "AAPL") is None
        assert queries.get_cash_balance(db, sample_portfolio.id) == Decimal("170")

    def test_sell_beyond_imported_quantity_is_rejected(self, db, service, processor, sample_portfolio):
        service.import_holdings(db, sample_portfolio.id, [{"symbol": "AAPL", "quantity": "5", "average_cost_basis": "150"}])

        with pytest.raises(InsufficientSharesError):
            sell(processor, sample_portfolio.id, "AAPL", "6", "170")

        assert queries.get_holding(db, sample_portfolio.id, "AAPL").quantity == Decimal("5")
