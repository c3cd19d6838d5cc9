# backend/portfolio_ledger/schemas/portfolios.py
"""
Pydantic schemas for portfolio CRUD.

Name trimming and currency normalization happen in PortfolioService, so
the same rules apply to API and library callers.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PortfolioCreate(BaseModel):
    name: str = Field(..., max_length=255, examples=["Retirement"])
    description: str | None = Field(default=None, max_length=2000)
    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO 4217 code, defaults to the service currency",
        examples=["USD"],
    )
    is_default: bool = False


class PortfolioUpdate(BaseModel):
    """All fields optional; only the fields sent are changed."""

    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_default: bool | None = None


class PortfolioResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    description: str | None
    currency: str
    is_default: bool
    created_at: datetime | None
    updated_at: datetime | None
