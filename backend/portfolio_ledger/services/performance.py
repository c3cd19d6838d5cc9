# backend/portfolio_ledger/services/performance.py
"""
Performance Recorder - daily equity snapshots and benchmark-relative history.

record_snapshot() is meant to be triggered by an external scheduler at
market close. It is idempotent per calendar day: recording twice on the
same date overwrites the earlier row.

Snapshot math:
    total equity     = cash balance + holdings market value
    daily return %   = (equity - prior equity) / prior equity × 100
                       (None without a prior snapshot or if prior equity <= 0)
    net deposits     = DEPOSIT + DIVIDEND - WITHDRAW, read fresh from the ledger
    total return %   = (equity - net deposits) / net deposits × 100
                       (None when net deposits <= 0)

History is normalized to the FIRST row of the requested range, so the
caller picks the baseline with the date filter.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from portfolio_ledger.database import UnitOfWork
from portfolio_ledger.models import DailyPerformance
from portfolio_ledger.services.constants import HUNDRED, PERCENT_PRECISION, ZERO
from portfolio_ledger.services.exceptions import ValidationError
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.market_data.base import MarketDataProvider
from portfolio_ledger.services.records import PerformanceRecord, columns_of, to_optional_decimal
from portfolio_ledger.services.valuation import ValuationService

logger = logging.getLogger(__name__)

# Storage precision of the percent columns (Numeric(12, 6))
RETURN_PRECISION = Decimal("0.000001")


@dataclass(frozen=True)
class PerformancePoint:
    """One day of history, returns relative to the first day in range."""

    date: date
    portfolio_value: Decimal
    portfolio_return_percent: Decimal | None
    benchmark_primary_return_percent: Decimal | None
    benchmark_secondary_return_percent: Decimal | None


def _return_since(base: Decimal | None, value: Decimal | None) -> Decimal | None:
    if base is None or value is None or base <= ZERO:
        return None
    return ((value - base) / base * HUNDRED).quantize(PERCENT_PRECISION)


class PerformanceRecorder:
    """
    Records and reads daily performance snapshots.

    Args:
        session_factory: Each snapshot runs in its own unit of work
        valuation_service: Prices the holdings
        provider: Source of benchmark closes
        benchmark_primary / benchmark_secondary: Symbols stored per snapshot
    """

    def __init__(
            self,
            session_factory: sessionmaker[Session],
            valuation_service: ValuationService,
            provider: MarketDataProvider,
            benchmark_primary: str = "SPY",
            benchmark_secondary: str = "QQQ",
    ) -> None:
        self._session_factory = session_factory
        self._valuation_service = valuation_service
        self._provider = provider
        self._benchmark_primary = benchmark_primary
        self._benchmark_secondary = benchmark_secondary

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def record_snapshot(
            self,
            portfolio_id: int,
            as_of: date | None = None,
            owner_id: int | None = None,
    ) -> PerformanceRecord:
        """
        Write (or overwrite) the snapshot for as_of, default today.

        Raises:
            PortfolioNotFoundError: Unknown portfolio
        """
        as_of = as_of or date.today()

        with UnitOfWork.owned(self._session_factory) as uow:
            session = uow.session
            valuation = self._valuation_service.valuate(session, portfolio_id, owner_id)
            cash_balance = queries.get_cash_balance(session, portfolio_id)
            net_deposits = queries.get_net_deposits(session, portfolio_id)

            holdings_value = valuation.total_market_value
            total_equity = cash_balance + holdings_value

            prior_equity = to_optional_decimal(session.scalar(
                select(DailyPerformance.total_equity)
                .where(DailyPerformance.portfolio_id == portfolio_id, DailyPerformance.date < as_of)
                .order_by(DailyPerformance.date.desc())
                .limit(1)
            ), "total_equity", "portfolio_daily_performance")
            daily_return = None
            if prior_equity is not None and prior_equity > ZERO:
                daily_return = ((total_equity - prior_equity) / prior_equity * HUNDRED).quantize(RETURN_PRECISION)

            total_return = None
            if net_deposits > ZERO:
                total_return = ((total_equity - net_deposits) / net_deposits * HUNDRED).quantize(RETURN_PRECISION)

            snapshot = session.scalars(
                select(DailyPerformance).where(
                    DailyPerformance.portfolio_id == portfolio_id,
                    DailyPerformance.date == as_of,
                )
            ).first()
            if snapshot is None:
                snapshot = DailyPerformance(portfolio_id=portfolio_id, date=as_of)
                session.add(snapshot)

            snapshot.total_equity = total_equity
            snapshot.cash_balance = cash_balance
            snapshot.holdings_value = holdings_value
            snapshot.daily_return_percent = daily_return
            snapshot.total_return_percent = total_return
            snapshot.net_deposits = net_deposits
            snapshot.benchmark_primary_close = self._benchmark_close(self._benchmark_primary)
            snapshot.benchmark_secondary_close = self._benchmark_close(self._benchmark_secondary)
            uow.flush()

            record = PerformanceRecord.from_row(columns_of(snapshot))

        logger.info(
            f"Recorded performance for portfolio {portfolio_id} on {as_of}: "
            f"equity={total_equity}, daily_return={daily_return}"
        )
        return record

    # =========================================================================
    # HISTORY
    # =========================================================================

    def get_history(
            self,
            db: Session,
            portfolio_id: int,
            start_date: date | None = None,
            end_date: date | None = None,
            owner_id: int | None = None,
    ) -> list[PerformancePoint]:
        queries.require_portfolio(db, portfolio_id, owner_id)
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must be on or before end_date", field="start_date")

        stmt = select(*DailyPerformance.__table__.c).where(DailyPerformance.portfolio_id == portfolio_id)
        if start_date is not None:
            stmt = stmt.where(DailyPerformance.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(DailyPerformance.date <= end_date)
        stmt = stmt.order_by(DailyPerformance.date)

        rows = [PerformanceRecord.from_row(r) for r in db.execute(stmt).mappings()]
        if not rows:
            return []

        base = rows[0]
        return [
            PerformancePoint(
                date=row.date,
                portfolio_value=row.total_equity,
                portfolio_return_percent=_return_since(base.total_equity, row.total_equity),
                benchmark_primary_return_percent=_return_since(
                    base.benchmark_primary_close, row.benchmark_primary_close
                ),
                benchmark_secondary_return_percent=_return_since(
                    base.benchmark_secondary_close, row.benchmark_secondary_close
                ),
            )
            for row in rows
        ]

    def _benchmark_close(self, symbol: str) -> Decimal | None:
        try:
            return self._provider.get_quote(symbol).price
        except Exception as e:
            logger.warning(f"Benchmark close for {symbol} unavailable: {e}")
            return None
