# backend/portfolio_ledger/services/valuation/__init__.py
"""
Valuation package: live prices applied to the holdings cache.

    valuation/
    ├── types.py        # HoldingValuation, PortfolioValuation, PortfolioSummary
    ├── calculators.py  # Pure math: weights, drift, returns, sectors
    └── service.py      # ValuationService (fetches quotes, degrades on failure)
"""

from portfolio_ledger.services.valuation.calculators import (
    HoldingValuationCalculator,
    SectorAllocationCalculator,
    SummaryCalculator,
    percent_of,
)
from portfolio_ledger.services.valuation.service import ValuationService
from portfolio_ledger.services.valuation.types import (
    HoldingValuation,
    PortfolioSummary,
    PortfolioValuation,
    PriceStatus,
    SectorAllocation,
)

__all__ = [
    "HoldingValuationCalculator",
    "SectorAllocationCalculator",
    "SummaryCalculator",
    "percent_of",
    "ValuationService",
    "HoldingValuation",
    "PortfolioSummary",
    "PortfolioValuation",
    "PriceStatus",
    "SectorAllocation",
]
