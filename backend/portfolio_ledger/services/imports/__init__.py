# backend/portfolio_ledger/services/imports/__init__.py
"""
Bulk import of transactions (JSON rows or CSV files) and holdings snapshots.
"""

from portfolio_ledger.services.imports.csv_parser import CSVParseResult, DateFormat, TransactionCSVParser
from portfolio_ledger.services.imports.holdings_import import HoldingsImportService
from portfolio_ledger.services.imports.transactions_import import TransactionImportService
from portfolio_ledger.services.imports.types import ImportResult, ImportRowError

__all__ = [
    "CSVParseResult",
    "DateFormat",
    "TransactionCSVParser",
    "HoldingsImportService",
    "TransactionImportService",
    "ImportResult",
    "ImportRowError",
]
