# backend/portfolio_ledger/utils/__init__.py
"""
Cross-cutting utilities: logging setup and request correlation context.
"""

from portfolio_ledger.utils.context import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from portfolio_ledger.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
