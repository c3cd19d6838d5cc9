# backend/portfolio_ledger/schemas/errors.py
"""
Error response bodies, produced by the exception handlers in main.py.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Uniform body of every non-2xx response."""

    error: str = Field(..., description="Exception name, e.g. 'InsufficientFundsError'")
    message: str = Field(..., description="Human-readable message")
    details: dict | None = Field(default=None, description="Field, code or amounts, when relevant")


class ValidationErrorDetail(BaseModel):
    """Body of 422 responses (request failed schema validation)."""

    error: str = Field(default="RequestValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(..., description="One entry per invalid field")
