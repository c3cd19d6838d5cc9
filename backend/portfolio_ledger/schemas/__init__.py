# backend/portfolio_ledger/schemas/__init__.py
"""
Pydantic request/response schemas for the HTTP layer.

Internal services work with frozen dataclasses; these schemas read them
with from_attributes=True and serialize Decimal values without loss.
"""
