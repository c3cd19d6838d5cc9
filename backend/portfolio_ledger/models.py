# backend/portfolio_ledger/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    DIVIDEND = "DIVIDEND"


# Types that move shares and therefore touch the holdings cache
POSITION_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL})

# Types that count as external money in or out of the portfolio
EXTERNAL_FLOW_TYPES = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.DIVIDEND,
    TransactionType.WITHDRAW,
})


class Portfolio(Base):
    """
    A named container of ledger entries owned by one user.

    Owner identity comes from the (external) authentication layer, so
    owner_id is a plain integer rather than a foreign key.
    """
    __tablename__ = "portfolios"
    __table_args__ = (
        Index("ix_portfolios_owner_default", "owner_id", "is_default"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )
    holdings: Mapped[list["Holding"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )
    performance: Mapped[list["DailyPerformance"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )


class Transaction(Base):
    """
    One immutable ledger entry.

    total_amount is the signed cash delta derived from the type:
    BUY and WITHDRAW are negative, SELL, DEPOSIT and DIVIDEND positive.
    The cash balance of a portfolio is SUM(total_amount).
    """
    __tablename__ = "portfolio_transactions"
    __table_args__ = (
        Index("ix_ptx_portfolio_symbol", "portfolio_id", "symbol"),
        Index("ix_ptx_portfolio_date", "portfolio_id", "transaction_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str | None] = mapped_column(String(20), nullable=True)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType, name="portfolio_transaction_type"))
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    price_per_share: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    fees: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    transaction_date: Mapped[date] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    prediction_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="transactions")


class Holding(Base):
    """
    Derived position row, rebuilt from the ledger after every BUY/SELL.

    A row exists only while quantity > 0.
    """
    __tablename__ = "portfolio_holdings"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "symbol", name="uq_holding_portfolio_symbol"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    symbol: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    average_cost_basis: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    total_cost_basis: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    target_allocation_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    sector: Mapped[str | None] = mapped_column(String(100), nullable=True)
    first_purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="holdings")


class DailyPerformance(Base):
    """One equity snapshot per portfolio per calendar day."""
    __tablename__ = "portfolio_daily_performance"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "date", name="uq_performance_portfolio_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    date: Mapped[date] = mapped_column(Date)
    total_equity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    cash_balance: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    holdings_value: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    daily_return_percent: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)
    total_return_percent: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)
    net_deposits: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    benchmark_primary_close: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    benchmark_secondary_close: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="performance")
