# backend/portfolio_ledger/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions (or a UnitOfWork) as parameters
- Are constructed once by the service container, never as module globals

Architecture:
    services/
    ├── exceptions.py          # Domain exceptions
    ├── constants.py           # Precision, limits, valuation labels
    ├── records.py             # Typed row decoders
    ├── circuit_breaker.py     # Circuit breaker for the market data provider
    ├── portfolio_service.py   # Portfolio CRUD
    ├── holdings.py            # Holdings reads and target allocation
    ├── rebalance.py           # Rebalancing advisor
    ├── performance.py         # Daily snapshots and history
    ├── ledger/                # Transaction processor and cost basis
    ├── valuation/             # Live valuation, summary, sectors
    ├── market_data/           # Provider interface and Yahoo Finance
    └── imports/               # Bulk transaction and holdings imports
"""

from portfolio_ledger.services.holdings import HoldingsService
from portfolio_ledger.services.imports import HoldingsImportService, TransactionImportService
from portfolio_ledger.services.ledger import LedgerService, TransactionProcessor
from portfolio_ledger.services.performance import PerformanceRecorder
from portfolio_ledger.services.portfolio_service import PortfolioService
from portfolio_ledger.services.rebalance import RebalanceAdvisor, RebalanceService
from portfolio_ledger.services.valuation import ValuationService

__all__ = [
    "HoldingsService",
    "HoldingsImportService",
    "TransactionImportService",
    "LedgerService",
    "TransactionProcessor",
    "PerformanceRecorder",
    "PortfolioService",
    "RebalanceAdvisor",
    "RebalanceService",
    "ValuationService",
]
