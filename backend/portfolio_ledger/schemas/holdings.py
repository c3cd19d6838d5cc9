# backend/portfolio_ledger/schemas/holdings.py
"""
Pydantic schemas for the holdings cache and its valuation.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from portfolio_ledger.services.valuation import PriceStatus


class HoldingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    quantity: Decimal
    average_cost_basis: Decimal
    total_cost_basis: Decimal
    target_allocation_percent: Decimal | None
    sector: str | None
    first_purchase_date: date | None
    last_transaction_date: date | None


class HoldingValuationResponse(BaseModel):
    """
    A holding with its live price.

    When price_status is "unavailable", prices are 0, unrealized gain/loss
    is null (unknown, not a loss of the whole cost basis) and
    unavailable_reason explains why.
    """

    model_config = ConfigDict(from_attributes=True)

    holding: HoldingResponse
    current_price: Decimal
    market_value: Decimal
    weight_percent: Decimal
    drift_percent: Decimal | None
    day_change: Decimal
    day_change_percent: Decimal
    unrealized_gain_loss: Decimal | None = Field(
        description="market_value - total_cost_basis; null when the price is unavailable",
    )
    unrealized_gain_loss_percent: Decimal | None = Field(
        description="Gain as a percent of total_cost_basis (0 when cost is 0); null when the price is unavailable",
    )
    previous_close: Decimal | None
    company_name: str | None
    price_status: PriceStatus
    unavailable_reason: str | None


class PortfolioValuationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    portfolio_id: int
    holdings: list[HoldingValuationResponse]
    total_market_value: Decimal
    total_cost_basis: Decimal
    total_day_change: Decimal
    quotes_failed: bool
    unavailable_count: int


class TargetAllocationUpdate(BaseModel):
    target_allocation_percent: Decimal | None = Field(
        ...,
        description="Target weight in percent (0-100); null clears it",
        examples=["25.00", None],
    )


class HoldingImportRow(BaseModel):
    symbol: str
    quantity: Decimal
    average_cost_basis: Decimal


class HoldingsImportRequest(BaseModel):
    holdings: list[HoldingImportRow]
