# backend/portfolio_ledger/routers/__init__.py
"""
API routers for the Portfolio Ledger service.

Each router handles a specific domain:
- portfolios: Portfolio management for an owner
- transactions: Ledger entries, cash balance and bulk/CSV import
- holdings: Holdings cache, target allocations, holdings import
- analytics: Summary, sector allocation, rebalancing, performance
"""

from portfolio_ledger.routers.analytics import router as analytics_router
from portfolio_ledger.routers.holdings import router as holdings_router
from portfolio_ledger.routers.portfolios import router as portfolios_router
from portfolio_ledger.routers.transactions import router as transactions_router

__all__ = [
    "portfolios_router",
    "transactions_router",
    "holdings_router",
    "analytics_router",
]
