# backend/portfolio_ledger/services/ledger/__init__.py
"""
Ledger package: the transaction log and the holdings cache derived from it.

    ledger/
    ├── validation.py   # NewTransaction, validate_transaction, sign rules
    ├── queries.py      # Cash balance, net deposits, decoded reads
    ├── cost_basis.py   # Full-history replay into the holdings cache
    ├── processor.py    # TransactionProcessor (the only ledger writer)
    └── service.py      # LedgerService (history, cash, net deposits)

Data Flow:
    NewTransaction → validate → lock portfolio → check cash/shares
                   → insert → HoldingsRecomputer → commit
"""

from portfolio_ledger.services.ledger.cost_basis import (
    CostBasisCalculator,
    HoldingsRecomputer,
    PositionSnapshot,
)
from portfolio_ledger.services.ledger.processor import TransactionProcessor
from portfolio_ledger.services.ledger.service import LedgerService
from portfolio_ledger.services.ledger.validation import (
    NewTransaction,
    ValidatedTransaction,
    signed_amount,
    validate_transaction,
)

__all__ = [
    "CostBasisCalculator",
    "HoldingsRecomputer",
    "PositionSnapshot",
    "TransactionProcessor",
    "LedgerService",
    "NewTransaction",
    "ValidatedTransaction",
    "signed_amount",
    "validate_transaction",
]
