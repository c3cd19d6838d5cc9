# backend/portfolio_ledger/services/ledger/service.py
"""
Read-side ledger service: transaction history, cash and net deposits.

Writes go through TransactionProcessor.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from portfolio_ledger.models import TransactionType
from portfolio_ledger.services.exceptions import ValidationError
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.records import TransactionRecord


class LedgerService:

    def list_transactions(
            self,
            db: Session,
            portfolio_id: int,
            transaction_type: TransactionType | None = None,
            symbol: str | None = None,
            start_date: date | None = None,
            end_date: date | None = None,
            limit: int | None = None,
            owner_id: int | None = None,
    ) -> list[TransactionRecord]:
        """List ledger entries newest first, filtered by type, symbol and date range."""
        queries.require_portfolio(db, portfolio_id, owner_id)
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must be on or before end_date", field="start_date")
        return queries.list_transactions(
            db,
            portfolio_id,
            transaction_type=transaction_type,
            symbol=symbol,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

    def get_cash_balance(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> Decimal:
        queries.require_portfolio(db, portfolio_id, owner_id)
        return queries.get_cash_balance(db, portfolio_id)

    def get_net_deposits(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> Decimal:
        queries.require_portfolio(db, portfolio_id, owner_id)
        return queries.get_net_deposits(db, portfolio_id)
