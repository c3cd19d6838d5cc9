# backend/portfolio_ledger/middleware/__init__.py
from portfolio_ledger.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
