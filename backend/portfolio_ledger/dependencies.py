# backend/portfolio_ledger/dependencies.py
"""
Service container and FastAPI dependencies.

Every service is constructed once, explicitly, by build_container() and
stored on app.state.container. Routers fetch services through the small
getter functions below, so tests can swap the whole container (or a
single getter via app.dependency_overrides) without touching globals.

Wiring order:
    provider → recomputer → processor
    provider → valuation → rebalance, performance
    processor → transaction import

Usage in routers:
    @router.get("/{portfolio_id}/cash")
    def get_cash(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: LedgerService = Depends(get_ledger_service),
    ):
        ...
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from portfolio_ledger.config import Settings
from portfolio_ledger.database import create_db_engine, create_session_factory
from portfolio_ledger.services.circuit_breaker import CircuitBreaker
from portfolio_ledger.services.exceptions import TickerNotFoundError
from portfolio_ledger.services.holdings import HoldingsService
from portfolio_ledger.services.imports import (
    HoldingsImportService,
    TransactionCSVParser,
    TransactionImportService,
)
from portfolio_ledger.services.ledger import HoldingsRecomputer, LedgerService, TransactionProcessor
from portfolio_ledger.services.market_data import MarketDataProvider, YahooFinanceProvider
from portfolio_ledger.services.performance import PerformanceRecorder
from portfolio_ledger.services.portfolio_service import PortfolioService
from portfolio_ledger.services.rebalance import RebalanceService
from portfolio_ledger.services.valuation import ValuationService

logger = logging.getLogger(__name__)


# =============================================================================
# CONTAINER
# =============================================================================

@dataclass
class ServiceContainer:
    """Everything a request handler may need, built once per process."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    provider: MarketDataProvider
    portfolio_service: PortfolioService
    ledger_service: LedgerService
    holdings_service: HoldingsService
    processor: TransactionProcessor
    valuation_service: ValuationService
    rebalance_service: RebalanceService
    performance_recorder: PerformanceRecorder
    transaction_import_service: TransactionImportService
    holdings_import_service: HoldingsImportService
    csv_parser: TransactionCSVParser


def build_default_provider(settings: Settings) -> MarketDataProvider:
    breaker = CircuitBreaker(
        name="yahoo-finance",
        failure_threshold=settings.circuit_breaker_threshold,
        recovery_timeout=settings.circuit_breaker_recovery_seconds,
        excluded_exceptions=(TickerNotFoundError,),
    )
    return YahooFinanceProvider(timeout=settings.market_data_timeout, circuit_breaker=breaker)


def build_container(
        settings: Settings,
        provider: MarketDataProvider | None = None,
        engine: Engine | None = None,
) -> ServiceContainer:
    """
    Wire every service from settings.

    Args:
        settings: Application settings
        provider: Market data provider; Yahoo Finance when omitted
        engine: Existing engine to reuse (tests share one in-memory database)
    """
    engine = engine or create_db_engine(settings)
    session_factory = create_session_factory(engine)
    provider = provider or build_default_provider(settings)

    processor = TransactionProcessor(session_factory, HoldingsRecomputer(provider))
    valuation_service = ValuationService(provider, reference_benchmark=settings.reference_benchmark)

    container = ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        provider=provider,
        portfolio_service=PortfolioService(default_currency=settings.default_currency),
        ledger_service=LedgerService(),
        holdings_service=HoldingsService(),
        processor=processor,
        valuation_service=valuation_service,
        rebalance_service=RebalanceService(
            valuation_service,
            default_threshold=settings.rebalance_threshold_percent,
        ),
        performance_recorder=PerformanceRecorder(
            session_factory,
            valuation_service,
            provider,
            benchmark_primary=settings.benchmark_primary,
            benchmark_secondary=settings.benchmark_secondary,
        ),
        transaction_import_service=TransactionImportService(
            session_factory,
            processor,
            max_rows=settings.max_import_rows,
        ),
        holdings_import_service=HoldingsImportService(provider),
        csv_parser=TransactionCSVParser(),
    )
    logger.info(f"Service container built (provider={provider.name}, database={engine.dialect.name})")
    return container


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_db(container: ServiceContainer = Depends(get_container)) -> Iterator[Session]:
    """One session per request, always closed."""
    db = container.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_owner_id(x_owner_id: int = Header(..., alias="X-Owner-Id", ge=1)) -> int:
    """Owner id resolved by the authentication layer in front of this service."""
    return x_owner_id


def get_portfolio_service(container: ServiceContainer = Depends(get_container)) -> PortfolioService:
    return container.portfolio_service


def get_ledger_service(container: ServiceContainer = Depends(get_container)) -> LedgerService:
    return container.ledger_service


def get_holdings_service(container: ServiceContainer = Depends(get_container)) -> HoldingsService:
    return container.holdings_service


def get_processor(container: ServiceContainer = Depends(get_container)) -> TransactionProcessor:
    return container.processor


def get_valuation_service(container: ServiceContainer = Depends(get_container)) -> ValuationService:
    return container.valuation_service


def get_rebalance_service(container: ServiceContainer = Depends(get_container)) -> RebalanceService:
    return container.rebalance_service


def get_performance_recorder(container: ServiceContainer = Depends(get_container)) -> PerformanceRecorder:
    return container.performance_recorder


def get_transaction_import_service(
        container: ServiceContainer = Depends(get_container),
) -> TransactionImportService:
    return container.transaction_import_service


def get_holdings_import_service(container: ServiceContainer = Depends(get_container)) -> HoldingsImportService:
    return container.holdings_import_service


def get_csv_parser(container: ServiceContainer = Depends(get_container)) -> TransactionCSVParser:
    return container.csv_parser
