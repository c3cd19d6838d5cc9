# backend/portfolio_ledger/schemas/analytics.py
"""
Pydantic schemas for portfolio-level analytics: summary, sector
allocation, rebalancing and performance history.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from portfolio_ledger.services.rebalance import RebalanceAction


class PortfolioSummaryResponse(BaseModel):
    """
    benchmark_change_percent and daily_alpha are null when the benchmark
    quote could not be fetched.
    """

    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    cash_balance: Decimal
    holdings_value: Decimal
    total_equity: Decimal
    total_cost_basis: Decimal
    day_change: Decimal
    day_change_percent: Decimal
    net_deposits: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    unrealized_gain_loss: Decimal
    holdings_count: int
    unavailable_count: int
    benchmark_symbol: str
    benchmark_change_percent: Decimal | None
    daily_alpha: Decimal | None


class SectorAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sector: str
    market_value: Decimal
    weight_percent: Decimal
    holdings_count: int
    day_change_percent: Decimal
    symbols: list[str]


class RebalanceSuggestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    current_weight: Decimal
    target_weight: Decimal
    drift_percent: Decimal
    action: RebalanceAction
    suggested_trade_value: Decimal
    suggested_shares: Decimal


class PerformanceSnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    date: date
    total_equity: Decimal
    cash_balance: Decimal
    holdings_value: Decimal
    daily_return_percent: Decimal | None
    total_return_percent: Decimal | None
    net_deposits: Decimal
    benchmark_primary_close: Decimal | None
    benchmark_secondary_close: Decimal | None


class PerformancePointResponse(BaseModel):
    """Returns are percent changes since the first point in the range."""

    model_config = ConfigDict(from_attributes=True)

    date: date
    portfolio_value: Decimal
    portfolio_return_percent: Decimal | None
    benchmark_primary_return_percent: Decimal | None
    benchmark_secondary_return_percent: Decimal | None
