# backend/tests/services/test_records.py
"""
Tests for the typed row decoders.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from portfolio_ledger.models import TransactionType
from portfolio_ledger.services.exceptions import DataIntegrityError
from portfolio_ledger.services.records import (
    HoldingRecord,
    PerformanceRecord,
    TransactionRecord,
    to_date,
    to_decimal,
)


def transaction_row(**overrides) -> dict:
    row = {
        "id": 1,
        "portfolio_id": 1,
        "symbol": "AAPL",
        "transaction_type": "BUY",
        "quantity": "10",
        "price_per_share": 150.0,
        "fees": None,
        "total_amount": Decimal("-1500"),
        "transaction_date": "2024-01-15",
        "notes": None,
        "prediction_id": None,
        "created_at": None,
    }
    row.update(overrides)
    return row


class TestScalarConverters:

    @pytest.mark.parametrize("value,expected", [
        (Decimal("1.5"), Decimal("1.5")),
        (3, Decimal("3")),
        (0.1, Decimal("0.1")),
        (" 42.50 ", Decimal("42.50")),
    ])
    def test_to_decimal_accepts_numeric_values(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", float("nan"), "Infinity", object()])
    def test_to_decimal_rejects_everything_else(self, value):
        with pytest.raises(DataIntegrityError):
            to_decimal(value, "amount", "t")

    def test_to_date(self):
        assert to_date(datetime(2024, 1, 15, 12, 0)) == date(2024, 1, 15)
        assert to_date("2024-01-15 00:00:00") == date(2024, 1, 15)
        with pytest.raises(DataIntegrityError):
            to_date("15/01/2024")


class TestTransactionRecord:

    def test_decodes_loose_row(self):
        record = TransactionRecord.from_row(transaction_row())

        assert record.transaction_type == TransactionType.BUY
        assert record.quantity == Decimal("10")
        assert record.price_per_share == Decimal("150.0")
        assert record.fees == Decimal("0")
        assert record.transaction_date == date(2024, 1, 15)

    def test_accepts_enum_member(self):
        record = TransactionRecord.from_row(transaction_row(transaction_type=TransactionType.SELL))
        assert record.transaction_type == TransactionType.SELL

    def test_unknown_type_fails_fast(self):
        with pytest.raises(DataIntegrityError) as exc_info:
            TransactionRecord.from_row(transaction_row(transaction_type="TRANSFER"))
        assert exc_info.value.column == "transaction_type"

    def test_null_amount_fails_fast(self):
        with pytest.raises(DataIntegrityError) as exc_info:
            TransactionRecord.from_row(transaction_row(total_amount=None))
        assert exc_info.value.table == "portfolio_transactions"

    def test_missing_column_fails_fast(self):
        row = transaction_row()
        del row["id"]
        with pytest.raises(DataIntegrityError):
            TransactionRecord.from_row(row)


class TestHoldingRecord:

    def test_non_positive_quantity_is_corrupt(self):
        row = {
            "id": 1, "portfolio_id": 1, "symbol": "AAPL", "quantity": 0,
            "average_cost_basis": 1, "total_cost_basis": 0,
        }
        with pytest.raises(DataIntegrityError):
            HoldingRecord.from_row(row)


class TestPerformanceRecord:

    def test_optional_columns(self):
        record = PerformanceRecord.from_row({
            "id": 1, "portfolio_id": 1, "date": date(2024, 1, 2),
            "total_equity": "100", "cash_balance": "100", "holdings_value": "0",
            "daily_return_percent": None, "total_return_percent": None,
            "net_deposits": "100", "benchmark_primary_close": None, "benchmark_secondary_close": "400.5",
        })
        assert record.daily_return_percent is None
        assert record.benchmark_secondary_close == Decimal("400.5")
