# backend/portfolio_ledger/main.py
"""
FastAPI application factory.

create_app():
- Configures application-wide logging
- Builds the service container and stores it on app.state
- Registers middleware and global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run with:
    uvicorn portfolio_ledger.main:create_app --factory
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from portfolio_ledger.config import Settings
from portfolio_ledger.database import check_database_health
from portfolio_ledger.dependencies import build_container
from portfolio_ledger.middleware import CorrelationIdMiddleware
from portfolio_ledger.routers import (
    analytics_router,
    holdings_router,
    portfolios_router,
    transactions_router,
)
from portfolio_ledger.schemas.errors import ErrorDetail, ValidationErrorDetail
from portfolio_ledger.services.exceptions import (
    CircuitBreakerOpen,
    DataIntegrityError,
    InsufficientFundsError,
    MarketDataError,
    NotFoundError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    StateConflictError,
    TickerNotFoundError,
    ValidationError,
)
from portfolio_ledger.services.market_data import MarketDataProvider
from portfolio_ledger.utils import setup_logging

logger = logging.getLogger(__name__)


def create_app(
        settings: Settings | None = None,
        provider: MarketDataProvider | None = None,
        engine: Engine | None = None,
) -> FastAPI:
    """
    Build a fully wired application.

    Args:
        settings: Defaults to Settings() read from the environment
        provider: Market data provider; Yahoo Finance when omitted
        engine: Existing engine to reuse
    """
    settings = settings or Settings()
    setup_logging(level=settings.log_level, log_format=settings.log_format)

    app = FastAPI(
        title=settings.app_name,
        description="Portfolio ledger with cost-basis holdings and live valuation",
        version="0.1.0",
    )
    app.state.container = build_container(settings, provider=provider, engine=engine)

    app.add_middleware(CorrelationIdMiddleware)
    _register_exception_handlers(app)

    app.include_router(portfolios_router)  # /portfolios/*
    app.include_router(transactions_router)  # /portfolios/{id}/transactions, /cash
    app.include_router(holdings_router)  # /portfolios/{id}/holdings/*
    app.include_router(analytics_router)  # /portfolios/{id}/summary, /allocation, ...

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])

    logger.info(f"{settings.app_name} started (environment={settings.environment})")
    return app


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; they are mapped here.
# Handlers are looked up by the exception's MRO, so the ServiceError
# handler only sees what no narrower handler claims.
# =============================================================================

async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field, "code": exc.code},
        ).model_dump(),
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle portfolio/holding not found errors (404)."""
    logger.warning(f"Not found: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
        ).model_dump(),
    )


async def insufficient_funds_handler(request: Request, exc: InsufficientFundsError) -> JSONResponse:
    """Handle a BUY the cash balance cannot cover (409)."""
    logger.warning(f"Insufficient funds: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error="InsufficientFundsError",
            message=str(exc),
            details={"required": str(exc.required), "available": str(exc.available)},
        ).model_dump(),
    )


async def state_conflict_handler(request: Request, exc: StateConflictError) -> JSONResponse:
    """Handle requests that conflict with ledger state (409)."""
    logger.warning(f"State conflict: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={"field": exc.field, "code": exc.code},
        ).model_dump(),
    )


async def data_integrity_handler(request: Request, exc: DataIntegrityError) -> JSONResponse:
    """Handle malformed stored rows (500)."""
    logger.error(f"Data integrity error in {exc.table}.{exc.column}: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="DataIntegrityError",
            message=str(exc),
            details={"table": exc.table, "column": exc.column},
        ).model_dump(),
    )


async def ticker_not_found_handler(request: Request, exc: TickerNotFoundError) -> JSONResponse:
    """Handle ticker not found on market data provider (404)."""
    logger.warning(f"Ticker not found on provider: {exc.ticker}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="TickerNotFoundError",
            message=str(exc),
            details={"ticker": exc.ticker},
        ).model_dump(),
    )


async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Handle provider rate limit exceeded (429)."""
    logger.warning(f"Rate limit exceeded: {exc}")
    return JSONResponse(
        status_code=429,
        content=ErrorDetail(
            error="RateLimitError",
            message=str(exc),
            details={"retry_after": exc.retry_after} if exc.retry_after else None,
        ).model_dump(),
    )


async def provider_unavailable_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle market data provider failures (503)."""
    logger.error(f"Market data error: {exc}")
    error = "ProviderUnavailableError" if isinstance(exc, ProviderUnavailableError) else "MarketDataError"
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error=error,
            message=str(exc),
            details={"provider": exc.provider} if exc.provider else None,
        ).model_dump(),
    )


async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpen) -> JSONResponse:
    """Handle circuit breaker open (503 with Retry-After)."""
    logger.warning(f"Circuit breaker open: {exc.breaker_name}")
    retry_after = int(exc.time_remaining) + 1  # Round up
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="CircuitBreakerOpen",
            message=f"Service temporarily unavailable. The {exc.breaker_name} circuit breaker is open.",
            details={
                "breaker_name": exc.breaker_name,
                "retry_after": retry_after,
            },
        ).model_dump(),
        headers={"Retry-After": str(retry_after)},
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors with consistent format.

    Converts the default 422 validation error to our ValidationErrorDetail format.
    """
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="RequestValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InsufficientFundsError, insufficient_funds_handler)
    app.add_exception_handler(StateConflictError, state_conflict_handler)
    app.add_exception_handler(DataIntegrityError, data_integrity_handler)
    app.add_exception_handler(TickerNotFoundError, ticker_not_found_handler)
    app.add_exception_handler(RateLimitError, rate_limit_handler)
    app.add_exception_handler(MarketDataError, provider_unavailable_handler)
    app.add_exception_handler(CircuitBreakerOpen, circuit_breaker_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

def health_check(request: Request):
    """
    Health of the database (critical) and the market data provider.

    **Response Status Codes:**
    - 200: Healthy, or degraded because the provider's breaker is open
    - 503: Database unreachable
    """
    container = request.app.state.container
    checks = {}
    overall_status = "healthy"

    database = check_database_health(container.engine)
    checks["database"] = {**database, "critical": True}
    if database["status"] != "healthy":
        overall_status = "unhealthy"

    provider = container.provider
    market_data = {
        "status": "healthy" if provider.is_available() else "unhealthy",
        "critical": False,
        "provider": provider.name,
    }
    breaker = getattr(provider, "circuit_breaker", None)
    if breaker is not None:
        stats = breaker.stats
        market_data.update({
            "circuit_breaker_state": breaker.state.value,
            "failed_calls": stats.failed_calls,
            "rejected_calls": stats.rejected_calls,
        })
    checks["market_data"] = market_data
    if market_data["status"] != "healthy" and overall_status == "healthy":
        overall_status = "degraded"

    response_data = {"status": overall_status, "checks": checks}
    if overall_status == "unhealthy":
        return JSONResponse(status_code=503, content=response_data)
    return response_data


def liveness_check():
    """Returns 200 while the process is alive; checks no dependencies."""
    return {"status": "alive"}
