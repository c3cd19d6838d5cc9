# backend/portfolio_ledger/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   ├── PortfolioNotFoundError
    │   └── HoldingNotFoundError
    ├── InsufficientFundsError
    ├── StateConflictError
    │   └── InsufficientSharesError
    ├── DataIntegrityError
    └── MarketDataError
        ├── ProviderUnavailableError
        ├── TickerNotFoundError
        └── RateLimitError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests

Propagation policy:
    Validation, not-found and state errors abort the unit of work before
    any write. MarketDataError subclasses are caught where market data is
    consumed and turned into degraded results; they never escape a read
    operation and never abort a ledger write that passed its checks.
"""

from decimal import Decimal


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

# Machine-readable validation codes
REQUIRED = "REQUIRED"
INVALID_ENUM = "INVALID_ENUM"
INVALID_VALUE = "INVALID_VALUE"
TOO_LONG = "TOO_LONG"
NOT_FOUND = "NOT_FOUND"
INSUFFICIENT_SHARES = "INSUFFICIENT_SHARES"


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    Attributes:
        field: The field that failed validation (optional)
        code: Machine-readable violation code (REQUIRED, INVALID_ENUM, ...)
    """

    def __init__(
            self,
            message: str,
            field: str | None = None,
            code: str = INVALID_VALUE,
    ) -> None:
        self.field = field
        self.code = code
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Portfolio", "Holding")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PortfolioNotFoundError(NotFoundError):
    """
    Raised when a portfolio cannot be found (or is not visible to the caller).

    Attributes:
        portfolio_id: ID of the portfolio that was not found
    """

    def __init__(self, portfolio_id: int) -> None:
        self.portfolio_id = portfolio_id
        super().__init__(
            f"Portfolio {portfolio_id} not found",
            resource_type="Portfolio",
            resource_id=portfolio_id,
        )


class HoldingNotFoundError(NotFoundError):
    """Raised when a portfolio has no open position in the given symbol."""

    def __init__(self, portfolio_id: int, symbol: str) -> None:
        self.portfolio_id = portfolio_id
        self.symbol = symbol
        self.code = NOT_FOUND
        super().__init__(
            f"Holding {symbol} not found in portfolio {portfolio_id}",
            resource_type="Holding",
            resource_id=symbol,
        )


# =============================================================================
# LEDGER STATE ERRORS
# =============================================================================


class InsufficientFundsError(ServiceError):
    """
    Raised when a BUY needs more cash than the portfolio holds.

    Attributes:
        required: Cash the BUY would consume (gross + fees)
        available: Current cash balance
    """

    def __init__(self, required: Decimal, available: Decimal) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds: required {required}, available {available}"
        )


class StateConflictError(ServiceError):
    """
    Raised when a request is well-formed but conflicts with ledger state.

    Attributes:
        field: The request field in conflict (optional)
        code: Machine-readable conflict code
    """

    def __init__(self, message: str, field: str | None = None, code: str = "CONFLICT") -> None:
        self.field = field
        self.code = code
        super().__init__(message)


class InsufficientSharesError(StateConflictError):
    """Raised when a SELL exceeds the quantity currently held."""

    def __init__(self, symbol: str, requested: Decimal, held: Decimal) -> None:
        self.symbol = symbol
        self.requested = requested
        self.held = held
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, held {held}",
            field="quantity",
            code=INSUFFICIENT_SHARES,
        )


class DataIntegrityError(ServiceError):
    """
    Raised by the row decoders when stored data does not have the expected shape.

    Attributes:
        table: Table the row came from
        column: Offending column
    """

    def __init__(self, message: str, table: str | None = None, column: str | None = None) -> None:
        self.table = table
        self.column = column
        super().__init__(message)


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable
    (timeouts, 5xx responses, maintenance). Retryable.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class TickerNotFoundError(MarketDataError):
    """
    Raised when the provider does not know the symbol. NOT retryable.
    """

    def __init__(self, ticker: str, provider: str) -> None:
        message = f"Ticker '{ticker}' not found by {provider}"
        super().__init__(message, provider=provider)
        self.ticker = ticker


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from portfolio_ledger.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "REQUIRED",
    "INVALID_ENUM",
    "INVALID_VALUE",
    "TOO_LONG",
    "NOT_FOUND",
    "INSUFFICIENT_SHARES",
    # Not Found
    "NotFoundError",
    "PortfolioNotFoundError",
    "HoldingNotFoundError",
    # Ledger state
    "InsufficientFundsError",
    "StateConflictError",
    "InsufficientSharesError",
    "DataIntegrityError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
