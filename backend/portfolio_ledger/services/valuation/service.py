# backend/portfolio_ledger/services/valuation/service.py
"""
Valuation Service - live valuation of the holdings cache.

Single entry point for:
- valuate(): every holding priced with one batched quote request
- get_summary(): equity, cash, day change, returns, daily alpha
- get_sector_allocation(): holdings grouped by sector

Design Principles:
- Dependency Injection: the MarketDataProvider is passed to the constructor
- Graceful Degradation: a failed quote request never fails a read; holdings
  are returned with price_status UNAVAILABLE instead
- No HTTP Knowledge: raises domain exceptions, not HTTPException

Usage:
    service = ValuationService(provider=YahooFinanceProvider())
    valuation = service.valuate(db, portfolio_id=1)
    summary = service.get_summary(db, portfolio_id=1)
"""

import logging

from sqlalchemy.orm import Session

from portfolio_ledger.services.constants import PRICE_UNAVAILABLE_ALL
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.market_data.base import MarketDataProvider, Quote
from portfolio_ledger.services.valuation.calculators import (
    HoldingValuationCalculator,
    SectorAllocationCalculator,
    SummaryCalculator,
)
from portfolio_ledger.services.valuation.types import (
    PortfolioSummary,
    PortfolioValuation,
    SectorAllocation,
)

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Prices the holdings cache with live quotes.

    Args:
        provider: Market data source for quotes
        reference_benchmark: Symbol whose daily change is used for alpha
    """

    def __init__(self, provider: MarketDataProvider, reference_benchmark: str = "SPY") -> None:
        self._provider = provider
        self._reference_benchmark = reference_benchmark.upper()
        self._holdings_calc = HoldingValuationCalculator()
        self._summary_calc = SummaryCalculator()
        self._sector_calc = SectorAllocationCalculator()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def valuate(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> PortfolioValuation:
        """
        Value every open holding of a portfolio.

        Raises:
            PortfolioNotFoundError: Unknown portfolio (or not owned by owner_id)
        """
        queries.require_portfolio(db, portfolio_id, owner_id)
        holdings = queries.list_holdings(db, portfolio_id)
        if not holdings:
            return PortfolioValuation(portfolio_id=portfolio_id)

        quotes, failure = self._fetch_quotes([h.symbol for h in holdings])
        valuation = self._holdings_calc.calculate(
            portfolio_id,
            holdings,
            quotes,
            quotes_failed=failure is not None,
        )

        if valuation.unavailable_count:
            logger.warning(
                f"Portfolio {portfolio_id}: {valuation.unavailable_count}/{len(holdings)} "
                f"holdings without a price"
            )
        return valuation

    def get_summary(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> PortfolioSummary:
        valuation = self.valuate(db, portfolio_id, owner_id)
        cash_balance = queries.get_cash_balance(db, portfolio_id)
        net_deposits = queries.get_net_deposits(db, portfolio_id)

        return self._summary_calc.calculate(
            valuation,
            cash_balance=cash_balance,
            net_deposits=net_deposits,
            benchmark_symbol=self._reference_benchmark,
            benchmark_quote=self._fetch_benchmark_quote(),
        )

    def get_sector_allocation(
            self,
            db: Session,
            portfolio_id: int,
            owner_id: int | None = None,
    ) -> list[SectorAllocation]:
        return self._sector_calc.calculate(self.valuate(db, portfolio_id, owner_id))

    # =========================================================================
    # MARKET DATA
    # =========================================================================

    def _fetch_quotes(self, symbols: list[str]) -> tuple[dict[str, Quote], str | None]:
        """One batched request; any failure degrades every holding."""
        try:
            return self._provider.get_multiple_quotes(symbols), None
        except Exception as e:
            logger.warning(f"Quote request for {len(symbols)} symbols failed: {e}")
            return {}, PRICE_UNAVAILABLE_ALL

    def _fetch_benchmark_quote(self) -> Quote | None:
        try:
            return self._provider.get_quote(self._reference_benchmark)
        except Exception as e:
            logger.warning(f"Benchmark quote for {self._reference_benchmark} failed: {e}")
            return None
