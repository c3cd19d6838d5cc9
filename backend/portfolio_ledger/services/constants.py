# backend/portfolio_ledger/services/constants.py
"""
Centralized constants for the ledger services.

Usage:
    from portfolio_ledger.services.constants import QUANTITY_PRECISION, MAX_SYMBOL_LENGTH
"""

from decimal import Decimal


# =============================================================================
# DECIMAL PRECISION
# =============================================================================

# Storage precision of quantities, prices and amounts (Numeric(18, 8))
QUANTITY_PRECISION: Decimal = Decimal("0.00000001")

# Display precision for money and percentages in computed results
MONEY_PRECISION: Decimal = Decimal("0.01")
PERCENT_PRECISION: Decimal = Decimal("0.0001")

ZERO: Decimal = Decimal("0")
HUNDRED: Decimal = Decimal("100")


# =============================================================================
# INPUT LIMITS
# =============================================================================

MAX_PORTFOLIO_NAME_LENGTH: int = 255
MAX_SYMBOL_LENGTH: int = 10
MAX_NOTES_LENGTH: int = 500

# Ticker alphabet accepted by imports (BRK.B, RDS-A, ...)
SYMBOL_PATTERN: str = r"^[A-Z0-9.\-]{1,10}$"


# =============================================================================
# VALUATION
# =============================================================================

UNKNOWN_SECTOR: str = "Other"

PRICE_UNAVAILABLE_ALL: str = "Market data temporarily unavailable"
PRICE_UNAVAILABLE_SYMBOL: str = "No market data for {symbol}"
