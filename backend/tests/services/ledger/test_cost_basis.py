# backend/tests/services/ledger/test_cost_basis.py
"""
Tests for the weighted-average cost basis replay and the holdings recomputer.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from portfolio_ledger.models import Holding, Transaction, TransactionType
from portfolio_ledger.services.ledger import CostBasisCalculator, HoldingsRecomputer
from portfolio_ledger.services.records import TransactionRecord
from tests.conftest import create_holding


def tx(
        transaction_type: TransactionType,
        quantity: str,
        price: str,
        day: date,
        symbol: str = "AAPL",
        tx_id: int = 1,
) -> TransactionRecord:
    quantity = Decimal(quantity)
    price = Decimal(price)
    sign = -1 if transaction_type == TransactionType.BUY else 1
    return TransactionRecord(
        id=tx_id,
        portfolio_id=1,
        symbol=symbol,
        transaction_type=transaction_type,
        quantity=quantity,
        price_per_share=price,
        fees=Decimal("0"),
        total_amount=sign * quantity * price,
        transaction_date=day,
        notes=None,
        prediction_id=None,
        created_at=None,
    )


def add_ledger_row(db, portfolio, transaction_type, quantity, price, day, symbol="AAPL"):
    quantity = Decimal(quantity)
    price = Decimal(price)
    sign = -1 if transaction_type == TransactionType.BUY else 1
    db.add(Transaction(
        portfolio_id=portfolio.id,
        symbol=symbol,
        transaction_type=transaction_type,
        quantity=quantity,
        price_per_share=price,
        fees=Decimal("0"),
        total_amount=sign * quantity * price,
        transaction_date=day,
    ))
    db.commit()


# =============================================================================
# PURE REPLAY
# =============================================================================

class TestCostBasisCalculator:

    def test_weighted_average_of_two_buys(self):
        """10 @ 150 then 10 @ 200 averages to 175."""
        snapshot = CostBasisCalculator.replay("AAPL", [
            tx(TransactionType.BUY, "10", "150", date(2024, 1, 2)),
            tx(TransactionType.BUY, "10", "200", date(2024, 2, 1), tx_id=2),
        ])

        assert snapshot.net_quantity == Decimal("20")
        assert snapshot.average_cost_basis == Decimal("175")
        assert snapshot.total_cost_basis == Decimal("3500")
        assert snapshot.first_purchase_date == date(2024, 1, 2)
        assert snapshot.last_transaction_date == date(2024, 2, 1)

    def test_sells_do_not_shrink_the_cost_pool(self):
        """The average stays at the all-time BUY average after a partial sell."""
        snapshot = CostBasisCalculator.replay("AAPL", [
            tx(TransactionType.BUY, "10", "100", date(2024, 1, 2)),
            tx(TransactionType.SELL, "5", "150", date(2024, 1, 10), tx_id=2),
            tx(TransactionType.BUY, "5", "130", date(2024, 1, 20), tx_id=3),
        ])

        assert snapshot.net_quantity == Decimal("10")
        assert snapshot.average_cost_basis == Decimal("110")
        assert snapshot.total_cost_basis == Decimal("1100")
        assert snapshot.last_transaction_date == date(2024, 1, 20)

    def test_fully_sold_position_is_closed(self):
        snapshot = CostBasisCalculator.replay("AAPL", [
            tx(TransactionType.BUY, "10", "150", date(2024, 1, 2)),
            tx(TransactionType.SELL, "10", "175", date(2024, 1, 5), tx_id=2),
        ])
        assert snapshot.net_quantity == Decimal("0")
        assert not snapshot.is_open

    def test_no_buys_yields_zero_average(self):
        snapshot = CostBasisCalculator.replay("AAPL", [])
        assert snapshot.average_cost_basis == Decimal("0")
        assert snapshot.first_purchase_date is None

    def test_input_order_does_not_matter(self):
        rows = [
            tx(TransactionType.BUY, "3", "10", date(2024, 3, 1)),
            tx(TransactionType.BUY, "1", "30", date(2024, 1, 1), tx_id=2),
        ]
        assert CostBasisCalculator.replay("X", rows) == CostBasisCalculator.replay("X", list(reversed(rows)))


# =============================================================================
# CACHE WRITES
# =============================================================================

class TestHoldingsRecomputer:

    def test_recompute_creates_row_with_sector(self, db, sample_portfolio, mock_provider):
        mock_provider.add_profile("AAPL", sector="Technology")
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "10", "150", date(2024, 1, 2))

        record = HoldingsRecomputer(mock_provider).recompute(db, sample_portfolio.id, "aapl")
        db.commit()

        assert record.symbol == "AAPL"
        assert record.quantity == Decimal("10")
        assert record.average_cost_basis == Decimal("150")
        assert record.sector == "Technology"

    def test_recompute_is_idempotent(self, db, sample_portfolio, mock_provider):
        """Running twice with no new transactions yields an identical row."""
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "10", "150", date(2024, 1, 2))
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "5", "120", date(2024, 1, 9))
        recomputer = HoldingsRecomputer(mock_provider)

        first = recomputer.recompute(db, sample_portfolio.id, "AAPL")
        second = recomputer.recompute(db, sample_portfolio.id, "AAPL")

        assert first == second

    def test_closed_position_deletes_row(self, db, sample_portfolio, mock_provider):
        """A position that nets to zero has no cache row, never a zero row."""
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "10", "150", date(2024, 1, 2))
        recomputer = HoldingsRecomputer(mock_provider)
        recomputer.recompute(db, sample_portfolio.id, "AAPL")

        add_ledger_row(db, sample_portfolio, TransactionType.SELL, "10", "175", date(2024, 1, 5))
        assert recomputer.recompute(db, sample_portfolio.id, "AAPL") is None

        rows = db.scalars(select(Holding).where(Holding.portfolio_id == sample_portfolio.id)).all()
        assert rows == []

    def test_sector_lookup_failure_leaves_sector_empty(self, db, sample_portfolio, mock_provider):
        mock_provider.add_error("AAPL", RuntimeError("boom"))
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "1", "150", date(2024, 1, 2))

        record = HoldingsRecomputer(mock_provider).recompute(db, sample_portfolio.id, "AAPL")
        assert record is not None
        assert record.sector is None

    def test_known_sector_is_kept(self, db, sample_portfolio, mock_provider):
        create_holding(db, sample_portfolio, symbol="AAPL", sector="Technology")
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "1", "150", date(2024, 1, 2))

        record = HoldingsRecomputer(mock_provider).recompute(db, sample_portfolio.id, "AAPL")

        assert record.sector == "Technology"
        assert mock_provider.profile_call_count == 0

    def test_rebuild_all_drops_rows_without_ledger_history(self, db, sample_portfolio, mock_provider):
        create_holding(db, sample_portfolio, symbol="MSFT", quantity="3", average_cost_basis="300")
        add_ledger_row(db, sample_portfolio, TransactionType.BUY, "2", "100", date(2024, 1, 2), symbol="NVDA")

        rebuilt = HoldingsRecomputer(mock_provider).rebuild_all(db, sample_portfolio.id)

        assert [h.symbol for h in rebuilt] == ["NVDA"]
