# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database engine, session factory and session (in-memory SQLite)
- Mock market data provider
- Wired services sharing the test engine
- Sample data factories
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_ledger.config import Settings
from portfolio_ledger.database import create_session_factory
from portfolio_ledger.main import create_app
from portfolio_ledger.models import Base, DailyPerformance, Holding, Portfolio
from portfolio_ledger.services.exceptions import ProviderUnavailableError, TickerNotFoundError
from portfolio_ledger.services.ledger import HoldingsRecomputer, NewTransaction, TransactionProcessor
from portfolio_ledger.services.market_data.base import (
    CompanyProfile,
    MarketDataProvider,
    PriceBar,
    Quote,
)
from portfolio_ledger.services.records import TransactionRecord


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker[Session]:
    """The factory services use to open their own units of work."""
    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """
    Mock implementation of MarketDataProvider for testing.

    Allows configuring quotes, sectors and closes per symbol and
    simulating a provider outage.
    """

    def __init__(self):
        self._quotes: dict[str, Quote] = {}
        self._profiles: dict[str, CompanyProfile] = {}
        self._history: dict[str, list[PriceBar]] = {}
        self._errors: dict[str, Exception] = {}
        self._batch_error: Exception | None = None
        self._call_count: dict[str, int] = {"single": 0, "batch": 0, "profile": 0}
        self._available = True

    @property
    def name(self) -> str:
        return "mock"

    def add_quote(
            self,
            symbol: str,
            price: str | Decimal,
            change: str | Decimal = "0",
            change_percent: str | Decimal = "0",
            name: str | None = None,
    ) -> None:
        """Configure a quote for a symbol."""
        price = Decimal(str(price))
        change = Decimal(str(change))
        self._quotes[symbol.upper()] = Quote(
            symbol=symbol.upper(),
            price=price,
            change=change,
            change_percent=Decimal(str(change_percent)),
            previous_close=price - change,
            name=name,
        )

    def add_profile(self, symbol: str, sector: str | None, name: str | None = None) -> None:
        self._profiles[symbol.upper()] = CompanyProfile(symbol=symbol.upper(), name=name, sector=sector)

    def add_error(self, symbol: str, error: Exception) -> None:
        """Configure an error for single-symbol calls (quote, profile)."""
        self._errors[symbol.upper()] = error

    def fail_batch(self, error: Exception | None = None) -> None:
        """Make get_multiple_quotes raise, as during an outage."""
        self._batch_error = error or ProviderUnavailableError(provider=self.name, reason="simulated outage")

    def set_available(self, available: bool) -> None:
        self._available = available

    @property
    def single_call_count(self) -> int:
        return self._call_count["single"]

    @property
    def batch_call_count(self) -> int:
        return self._call_count["batch"]

    @property
    def profile_call_count(self) -> int:
        return self._call_count["profile"]

    def get_quote(self, symbol: str) -> Quote:
        self._call_count["single"] += 1
        symbol = symbol.upper()
        if symbol in self._errors:
            raise self._errors[symbol]
        if symbol in self._quotes:
            return self._quotes[symbol]
        raise TickerNotFoundError(ticker=symbol, provider=self.name)

    def get_multiple_quotes(self, symbols: list[str]) -> dict[str, Quote]:
        self._call_count["batch"] += 1
        if self._batch_error is not None:
            raise self._batch_error
        return {s.upper(): self._quotes[s.upper()] for s in symbols if s.upper() in self._quotes}

    def get_company_profile(self, symbol: str) -> CompanyProfile:
        self._call_count["profile"] += 1
        symbol = symbol.upper()
        if symbol in self._errors:
            raise self._errors[symbol]
        if symbol in self._profiles:
            return self._profiles[symbol]
        raise TickerNotFoundError(ticker=symbol, provider=self.name)

    def get_historical_data(self, symbol: str, start_date: date, end_date: date) -> list[PriceBar]:
        bars = self._history.get(symbol.upper(), [])
        return [b for b in bars if start_date <= b.date <= end_date]

    def is_available(self) -> bool:
        return self._available


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Create a fresh mock provider for each test."""
    return MockMarketDataProvider()


@pytest.fixture
def processor(session_factory, mock_provider) -> TransactionProcessor:
    return TransactionProcessor(session_factory, HoldingsRecomputer(mock_provider))


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def create_portfolio(
        db: Session,
        owner_id: int = 1,
        name: str = "Test Portfolio",
        currency: str = "USD",
        is_default: bool = False,
) -> Portfolio:
    """Factory function for creating Portfolio entities in the database."""
    portfolio = Portfolio(
        owner_id=owner_id,
        name=name,
        currency=currency,
        is_default=is_default,
    )
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio


def create_holding(
        db: Session,
        portfolio: Portfolio,
        symbol: str = "AAPL",
        quantity: str = "10",
        average_cost_basis: str = "100",
        target_allocation_percent: str | None = None,
        sector: str | None = None,
) -> Holding:
    """Write a holdings cache row directly, bypassing the ledger."""
    quantity = Decimal(quantity)
    average = Decimal(average_cost_basis)
    holding = Holding(
        portfolio_id=portfolio.id,
        symbol=symbol,
        quantity=quantity,
        average_cost_basis=average,
        total_cost_basis=quantity * average,
        target_allocation_percent=Decimal(target_allocation_percent) if target_allocation_percent else None,
        sector=sector,
    )
    db.add(holding)
    db.commit()
    db.refresh(holding)
    return holding


def create_snapshot(
        db: Session,
        portfolio: Portfolio,
        day: date,
        total_equity: str,
        benchmark_primary_close: str | None = None,
        benchmark_secondary_close: str | None = None,
) -> DailyPerformance:
    snapshot = DailyPerformance(
        portfolio_id=portfolio.id,
        date=day,
        total_equity=Decimal(total_equity),
        cash_balance=Decimal(total_equity),
        holdings_value=Decimal("0"),
        net_deposits=Decimal(total_equity),
        benchmark_primary_close=Decimal(benchmark_primary_close) if benchmark_primary_close else None,
        benchmark_secondary_close=Decimal(benchmark_secondary_close) if benchmark_secondary_close else None,
    )
    db.add(snapshot)
    db.commit()
    return snapshot


def deposit(processor: TransactionProcessor, portfolio_id: int, amount: str, day: date = date(2024, 1, 2)) -> TransactionRecord:
    return processor.add_transaction(
        portfolio_id,
        NewTransaction(transaction_type="DEPOSIT", transaction_date=day, total_amount=amount),
    )


def buy(
        processor: TransactionProcessor,
        portfolio_id: int,
        symbol: str,
        quantity: str,
        price: str,
        fees: str = "0",
        day: date = date(2024, 1, 3),
) -> TransactionRecord:
    return processor.add_transaction(
        portfolio_id,
        NewTransaction(
            transaction_type="BUY",
            transaction_date=day,
            symbol=symbol,
            quantity=quantity,
            price_per_share=price,
            fees=fees,
        ),
    )


def sell(
        processor: TransactionProcessor,
        portfolio_id: int,
        symbol: str,
        quantity: str,
        price: str,
        fees: str = "0",
        day: date = date(2024, 1, 4),
) -> TransactionRecord:
    return processor.add_transaction(
        portfolio_id,
        NewTransaction(
            transaction_type="SELL",
            transaction_date=day,
            symbol=symbol,
            quantity=quantity,
            price_per_share=price,
            fees=fees,
        ),
    )


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def client(db_engine, mock_provider) -> Iterator[TestClient]:
    """
    TestClient for a fully wired app sharing the test engine and provider.

    create_app() installs its own root log handler; the previous handlers
    are restored afterwards.
    """
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level

    app = create_app(settings=Settings(environment="test"), provider=mock_provider, engine=db_engine)
    with TestClient(app) as c:
        yield c

    root.handlers[:] = handlers
    root.setLevel(level)


def owner_headers(owner_id: int = 1) -> dict[str, str]:
    return {"X-Owner-Id": str(owner_id)}


# =============================================================================
# FIXTURE EXPORTS (for convenience imports in tests)
# =============================================================================

@pytest.fixture
def sample_portfolio(db: Session) -> Portfolio:
    """Provide a sample Portfolio for tests."""
    return create_portfolio(db)
