# backend/portfolio_ledger/services/valuation/types.py
"""
Internal data types for the Valuation Engine.

These dataclasses are NOT Pydantic schemas; those live in
portfolio_ledger/schemas/ for API serialization.

Design Principles:
- Immutable (frozen=True), never persisted
- Decimal for ALL financial values
- Percentages in percent units (12.5 means 12.5%)
- None means "absent" (no target, no benchmark), never a disguised zero

Type Hierarchy:
    HoldingValuation    - One holding joined with its live quote
    PortfolioValuation  - All holdings plus totals and quote status
    PortfolioSummary    - Equity, cash, returns, daily alpha
    SectorAllocation    - Holdings grouped by sector
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from portfolio_ledger.services.records import HoldingRecord


class PriceStatus(str, Enum):
    LIVE = "live"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class HoldingValuation:
    """
    A holding priced with its live quote.

    When price_status is UNAVAILABLE: current_price and market_value are
    0, day change is 0, unrealized gain/loss is None (unknown; the
    stand-in market value of 0 minus cost basis would read as a full
    loss), and unavailable_reason says whether the whole quote request
    failed or only this symbol had no data.

    Attributes:
        weight_percent: Share of the summed holdings market value
        drift_percent: weight - target, None when no target is set
    """

    holding: HoldingRecord
    current_price: Decimal
    market_value: Decimal
    weight_percent: Decimal
    drift_percent: Decimal | None
    day_change: Decimal
    day_change_percent: Decimal
    unrealized_gain_loss: Decimal | None
    unrealized_gain_loss_percent: Decimal | None
    previous_close: Decimal | None
    company_name: str | None
    price_status: PriceStatus
    unavailable_reason: str | None = None

    @property
    def symbol(self) -> str:
        return self.holding.symbol

    @property
    def quantity(self) -> Decimal:
        return self.holding.quantity

    @property
    def target_allocation_percent(self) -> Decimal | None:
        return self.holding.target_allocation_percent

    @property
    def has_price(self) -> bool:
        return self.price_status == PriceStatus.LIVE


@dataclass(frozen=True)
class PortfolioValuation:
    """
    Valuation of every holding in a portfolio.

    Attributes:
        quotes_failed: True when the batched quote request failed as a
            whole, i.e. every price in this result is unavailable
    """

    portfolio_id: int
    holdings: list[HoldingValuation] = field(default_factory=list)
    total_market_value: Decimal = Decimal("0")
    total_cost_basis: Decimal = Decimal("0")
    total_day_change: Decimal = Decimal("0")
    quotes_failed: bool = False

    @property
    def unavailable_count(self) -> int:
        return sum(1 for h in self.holdings if not h.has_price)


@dataclass(frozen=True)
class PortfolioSummary:
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
    benchmark_change_percent: Decimal | None = None
    daily_alpha: Decimal | None = None


@dataclass(frozen=True)
class SectorAllocation:
    sector: str
    market_value: Decimal
    weight_percent: Decimal
    holdings_count: int
    day_change_percent: Decimal
    symbols: tuple[str, ...] = ()
