# backend/portfolio_ledger/services/ledger/queries.py
"""
Read-side ledger queries shared by the ledger, valuation and performance services.

All functions take a Session and return decoded values (Decimal, records),
never ORM entities.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio_ledger.models import (
    EXTERNAL_FLOW_TYPES,
    Holding,
    Portfolio,
    Transaction,
    TransactionType,
)
from portfolio_ledger.services.constants import ZERO
from portfolio_ledger.services.exceptions import PortfolioNotFoundError
from portfolio_ledger.services.records import (
    HoldingRecord,
    PortfolioRecord,
    TransactionRecord,
    to_decimal,
)


def require_portfolio(db: Session, portfolio_id: int, owner_id: int | None = None) -> PortfolioRecord:
    """
    Load a portfolio or raise PortfolioNotFoundError.

    When owner_id is given, a portfolio owned by someone else is reported
    as not found.
    """
    stmt = select(*Portfolio.__table__.c).where(Portfolio.id == portfolio_id)
    row = db.execute(stmt).mappings().first()
    if row is None or (owner_id is not None and row["owner_id"] != owner_id):
        raise PortfolioNotFoundError(portfolio_id)
    return PortfolioRecord.from_row(row)


def get_cash_balance(db: Session, portfolio_id: int) -> Decimal:
    """COALESCE(SUM(total_amount), 0) over every committed ledger entry."""
    stmt = select(func.coalesce(func.sum(Transaction.total_amount), 0)).where(
        Transaction.portfolio_id == portfolio_id
    )
    return to_decimal(db.scalar(stmt), "cash_balance", "portfolio_transactions")


def get_net_deposits(db: Session, portfolio_id: int) -> Decimal:
    """
    Deposits plus dividends minus withdrawals, summed fresh from the ledger.

    WITHDRAW rows are already stored negative, so a plain sum nets them.
    """
    stmt = select(func.coalesce(func.sum(Transaction.total_amount), 0)).where(
        Transaction.portfolio_id == portfolio_id,
        Transaction.transaction_type.in_(sorted(EXTERNAL_FLOW_TYPES)),
    )
    return to_decimal(db.scalar(stmt), "net_deposits", "portfolio_transactions")


def get_held_quantity(db: Session, portfolio_id: int, symbol: str) -> Decimal:
    """Quantity in the holdings cache, 0 when there is no open position."""
    stmt = select(Holding.quantity).where(
        Holding.portfolio_id == portfolio_id,
        Holding.symbol == symbol,
    )
    value = db.scalar(stmt)
    return ZERO if value is None else to_decimal(value, "quantity", "portfolio_holdings")


def list_transactions(
        db: Session,
        portfolio_id: int,
        transaction_type: TransactionType | None = None,
        symbol: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int | None = None,
) -> list[TransactionRecord]:
    """Ledger entries newest first, optionally filtered."""
    stmt = select(*Transaction.__table__.c).where(Transaction.portfolio_id == portfolio_id)

    if transaction_type is not None:
        stmt = stmt.where(Transaction.transaction_type == transaction_type)
    if symbol:
        stmt = stmt.where(Transaction.symbol == symbol.strip().upper())
    if start_date is not None:
        stmt = stmt.where(Transaction.transaction_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Transaction.transaction_date <= end_date)

    stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    return [TransactionRecord.from_row(row) for row in db.execute(stmt).mappings()]


def list_position_transactions(db: Session, portfolio_id: int, symbol: str) -> list[TransactionRecord]:
    """Every BUY/SELL for one symbol, oldest first."""
    stmt = (
        select(*Transaction.__table__.c)
        .where(
            Transaction.portfolio_id == portfolio_id,
            Transaction.symbol == symbol,
            Transaction.transaction_type.in_((TransactionType.BUY, TransactionType.SELL)),
        )
        .order_by(Transaction.transaction_date, Transaction.id)
    )
    return [TransactionRecord.from_row(row) for row in db.execute(stmt).mappings()]


def list_holdings(db: Session, portfolio_id: int) -> list[HoldingRecord]:
    stmt = (
        select(*Holding.__table__.c)
        .where(Holding.portfolio_id == portfolio_id)
        .order_by(Holding.symbol)
    )
    return [HoldingRecord.from_row(row) for row in db.execute(stmt).mappings()]


def get_holding(db: Session, portfolio_id: int, symbol: str) -> HoldingRecord | None:
    stmt = select(*Holding.__table__.c).where(
        Holding.portfolio_id == portfolio_id,
        Holding.symbol == symbol.strip().upper(),
    )
    row = db.execute(stmt).mappings().first()
    return None if row is None else HoldingRecord.from_row(row)
