# backend/portfolio_ledger/services/ledger/cost_basis.py
"""
Weighted-average cost basis, rebuilt from the full ledger history.

The holdings cache is a materialized view. Every BUY/SELL triggers a
replay of ALL position transactions for that (portfolio, symbol) pair;
there are no running totals to drift. Re-running the replay with no new
transactions produces the same row, which makes it the repair path for a
suspected stale cache as well.

Averaging rule:
    average cost = sum(quantity x price over BUYs) / sum(BUY quantity)

Sells reduce the quantity but do NOT shrink the cost pool, so the
average is unaffected by interleaved sells. Fees are excluded from cost.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_ledger.models import Holding, POSITION_TYPES, Transaction, TransactionType
from portfolio_ledger.services.constants import QUANTITY_PRECISION, ZERO
from portfolio_ledger.services.ledger.queries import list_position_transactions
from portfolio_ledger.services.market_data.base import MarketDataProvider
from portfolio_ledger.services.records import HoldingRecord, TransactionRecord, columns_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionSnapshot:
    """Aggregates of every BUY/SELL for one symbol."""

    symbol: str
    total_bought: Decimal
    total_sold: Decimal
    total_cost: Decimal
    first_purchase_date: date | None
    last_transaction_date: date | None

    @property
    def net_quantity(self) -> Decimal:
        return self.total_bought - self.total_sold

    @property
    def is_open(self) -> bool:
        return self.net_quantity > ZERO

    @property
    def average_cost_basis(self) -> Decimal:
        if self.total_bought <= ZERO:
            return ZERO
        return (self.total_cost / self.total_bought).quantize(QUANTITY_PRECISION)

    @property
    def total_cost_basis(self) -> Decimal:
        return (self.net_quantity * self.average_cost_basis).quantize(QUANTITY_PRECISION)


class CostBasisCalculator:
    """
    Pure replay of position transactions into a PositionSnapshot.

    Order of the input does not matter: only sums, the earliest BUY date
    and the latest transaction date are kept.
    """

    @staticmethod
    def replay(symbol: str, transactions: Iterable[TransactionRecord]) -> PositionSnapshot:
        total_bought = ZERO
        total_sold = ZERO
        total_cost = ZERO
        first_buy: date | None = None
        last_seen: date | None = None

        for tx in transactions:
            if tx.transaction_type not in POSITION_TYPES:
                continue
            quantity = tx.quantity or ZERO

            if tx.transaction_type == TransactionType.BUY:
                total_bought += quantity
                total_cost += quantity * (tx.price_per_share or ZERO)
                if first_buy is None or tx.transaction_date < first_buy:
                    first_buy = tx.transaction_date
            else:
                total_sold += quantity

            if last_seen is None or tx.transaction_date > last_seen:
                last_seen = tx.transaction_date

        return PositionSnapshot(
            symbol=symbol,
            total_bought=total_bought,
            total_sold=total_sold,
            total_cost=total_cost,
            first_purchase_date=first_buy,
            last_transaction_date=last_seen,
        )


class HoldingsRecomputer:
    """
    Writes the replay result into the holdings cache.

    Runs inside the caller's session and only flushes, so it commits or
    rolls back together with the ledger insert that triggered it.
    """

    def __init__(self, provider: MarketDataProvider | None = None) -> None:
        self._provider = provider
        self._calculator = CostBasisCalculator()

    def recompute(self, session: Session, portfolio_id: int, symbol: str) -> HoldingRecord | None:
        """
        Rebuild one holding row from the ledger.

        Returns:
            The updated holding, or None when the position is closed
            (the row is deleted, never left at zero quantity)
        """
        symbol = symbol.strip().upper()
        transactions = list_position_transactions(session, portfolio_id, symbol)
        snapshot = self._calculator.replay(symbol, transactions)

        holding = session.scalars(
            select(Holding).where(
                Holding.portfolio_id == portfolio_id,
                Holding.symbol == symbol,
            )
        ).first()

        if not snapshot.is_open:
            if holding is not None:
                session.delete(holding)
                session.flush()
                logger.info(f"Closed position {symbol} in portfolio {portfolio_id}")
            return None

        if holding is None:
            holding = Holding(portfolio_id=portfolio_id, symbol=symbol)
            session.add(holding)

        holding.quantity = snapshot.net_quantity
        holding.average_cost_basis = snapshot.average_cost_basis
        holding.total_cost_basis = snapshot.total_cost_basis
        holding.first_purchase_date = snapshot.first_purchase_date
        holding.last_transaction_date = snapshot.last_transaction_date

        # A known sector is never replaced by an unknown one
        if holding.sector is None:
            holding.sector = self._lookup_sector(symbol)

        session.flush()
        logger.debug(
            f"Recomputed {symbol} in portfolio {portfolio_id}: "
            f"qty={snapshot.net_quantity}, avg={snapshot.average_cost_basis}"
        )
        return HoldingRecord.from_row(columns_of(holding))

    def rebuild_all(self, session: Session, portfolio_id: int) -> list[HoldingRecord]:
        """Replay every symbol that has ledger entries or a cache row."""
        ledger_symbols = session.scalars(
            select(Transaction.symbol)
            .where(
                Transaction.portfolio_id == portfolio_id,
                Transaction.transaction_type.in_((TransactionType.BUY, TransactionType.SELL)),
            )
            .distinct()
        ).all()
        cached_symbols = session.scalars(
            select(Holding.symbol).where(Holding.portfolio_id == portfolio_id)
        ).all()

        rebuilt = []
        for symbol in sorted({s for s in (*ledger_symbols, *cached_symbols) if s}):
            record = self.recompute(session, portfolio_id, symbol)
            if record is not None:
                rebuilt.append(record)
        return rebuilt

    def _lookup_sector(self, symbol: str) -> str | None:
        return lookup_sector(self._provider, symbol)


def lookup_sector(provider: MarketDataProvider | None, symbol: str) -> str | None:
    """Best-effort sector from the company profile; None on any failure."""
    if provider is None:
        return None
    try:
        return provider.get_company_profile(symbol).sector
    except Exception as e:
        logger.warning(f"Sector lookup failed for {symbol}: {e}")
        return None
