# backend/portfolio_ledger/services/market_data/__init__.py
"""
Market data package.

    market_data/
    ├── base.py    # MarketDataProvider ABC, Quote / CompanyProfile / PriceBar
    └── yahoo.py   # yfinance implementation
"""

from portfolio_ledger.services.market_data.base import (
    CompanyProfile,
    MarketDataProvider,
    PriceBar,
    Quote,
)
from portfolio_ledger.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    "MarketDataProvider",
    "Quote",
    "CompanyProfile",
    "PriceBar",
    "YahooFinanceProvider",
]
