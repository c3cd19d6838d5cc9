# backend/portfolio_ledger/services/market_data/base.py
"""
Abstract interface for market data providers.

The ledger consumes four things from the outside world: live quotes (one
batched call per valuation), a company profile for the sector label,
single benchmark quotes, and historical closes. All of them are
best-effort: callers catch failures and degrade the result.

Design Principles:
- Services depend on this abstraction, never on yfinance directly
- Retry logic implemented once in the base class
- Mock implementations for testing subclass this ABC
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from portfolio_ledger.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """
    Latest price snapshot for one symbol.

    Attributes:
        symbol: Upper-case ticker
        price: Last traded price (0 or less means "no usable price")
        change: Absolute change versus previous close
        change_percent: Percent change versus previous close (1.5 = 1.5%)
        previous_close: Prior session close, if known
        name: Display name of the security, if known
    """

    symbol: str
    price: Decimal
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    previous_close: Decimal | None = None
    name: str | None = None


@dataclass(frozen=True)
class CompanyProfile:
    symbol: str
    name: str | None = None
    sector: str | None = None
    industry: str | None = None


@dataclass(frozen=True)
class PriceBar:
    """Single daily close."""

    date: date
    close: Decimal

    def __post_init__(self) -> None:
        if self.close <= 0:
            raise ValueError(f"close price must be positive, got {self.close}")


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Retry Behavior:
        `_execute_with_retry` retries ProviderUnavailableError and
        RateLimitError with exponential backoff. Subclasses tune it with:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT / RETRY_MAX_WAIT: Backoff bounds in seconds
        - RETRY_MULTIPLIER: Exponential multiplier

    TickerNotFoundError is permanent and never retried.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and errors (e.g. "yahoo")."""

    @abstractmethod
    def get_quote(self, symbol: str) -> Quote:
        """
        Fetch the latest quote for one symbol.

        Raises:
            TickerNotFoundError: Unknown symbol
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """

    @abstractmethod
    def get_multiple_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        """
        Fetch quotes for many symbols in one request.

        Symbols the provider has no data for are simply absent from the
        result. A failure of the request as a whole raises.
        """

    @abstractmethod
    def get_company_profile(self, symbol: str) -> CompanyProfile:
        """Fetch descriptive data (sector, industry) for one symbol."""

    @abstractmethod
    def get_historical_data(self, symbol: str, start_date: date, end_date: date) -> list[PriceBar]:
        """Fetch daily closes between start_date and end_date (inclusive)."""

    def is_available(self) -> bool:
        return True

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
