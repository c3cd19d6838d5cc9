# backend/portfolio_ledger/schemas/transactions.py
"""
Pydantic schemas for ledger entries and imports.

Request schemas check types only. Business rules (required fields per
type, positive amounts, symbol length) are enforced by
validate_transaction() and reported as 400 with a field and code.

IMPORTANT: All financial values use Decimal. Never use float for money!
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from portfolio_ledger.models import TransactionType


class TransactionCreate(BaseModel):
    transaction_type: str = Field(..., examples=["BUY", "DEPOSIT"])
    transaction_date: date = Field(..., examples=["2024-01-15"])
    symbol: str | None = Field(default=None, examples=["AAPL"])
    quantity: Decimal | None = Field(default=None, examples=["10"])
    price_per_share: Decimal | None = Field(default=None, examples=["150.00"])
    total_amount: Decimal | None = Field(
        default=None,
        description="Gross amount; for BUY/SELL defaults to quantity × price",
        examples=["10000"],
    )
    fees: Decimal | None = Field(default=None, examples=["5"])
    notes: str | None = None
    prediction_id: int | None = None


class TransactionResponse(BaseModel):
    """A committed ledger entry; total_amount is the signed cash delta."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    portfolio_id: int
    symbol: str | None
    transaction_type: TransactionType
    quantity: Decimal | None
    price_per_share: Decimal | None
    fees: Decimal
    total_amount: Decimal
    transaction_date: date
    notes: str | None
    prediction_id: int | None
    created_at: datetime | None


class CashBalanceResponse(BaseModel):
    portfolio_id: int
    cash_balance: Decimal


# =============================================================================
# IMPORTS
# =============================================================================

class TransactionImportRequest(BaseModel):
    """
    Rows use TransactionCreate field names. They are validated one by one
    so every bad row is reported, not just the first.
    """

    transactions: list[dict[str, Any]]


class ImportRowErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    field: str
    value: str
    message: str


class ImportResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    imported: int
    updated: int
    failed: int
    errors: list[ImportRowErrorResponse]
