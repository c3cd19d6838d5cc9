# backend/portfolio_ledger/services/holdings.py
"""
Holdings cache reads and target allocation.

Quantity and cost basis are derived state owned by TransactionProcessor.
The only field written here is target_allocation_percent, which is user
configuration rather than derived state.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_ledger.models import Holding
from portfolio_ledger.services.constants import HUNDRED, ZERO
from portfolio_ledger.services.exceptions import (
    INVALID_VALUE,
    HoldingNotFoundError,
    ValidationError,
)
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.records import HoldingRecord, columns_of

logger = logging.getLogger(__name__)


class HoldingsService:

    def list_holdings(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> list[HoldingRecord]:
        """Open positions ordered by symbol."""
        queries.require_portfolio(db, portfolio_id, owner_id)
        return queries.list_holdings(db, portfolio_id)

    def get_holding(
            self,
            db: Session,
            portfolio_id: int,
            symbol: str,
            owner_id: int | None = None,
    ) -> HoldingRecord:
        queries.require_portfolio(db, portfolio_id, owner_id)
        holding = queries.get_holding(db, portfolio_id, symbol)
        if holding is None:
            raise HoldingNotFoundError(portfolio_id, symbol.strip().upper())
        return holding

    def update_target_allocation(
            self,
            db: Session,
            portfolio_id: int,
            symbol: str,
            target_percent: Decimal | None,
            owner_id: int | None = None,
    ) -> HoldingRecord:
        """
        Set or clear (None) the target weight of a holding, in percent.

        Raises:
            ValidationError: target outside 0..100
            HoldingNotFoundError: no open position in symbol
        """
        queries.require_portfolio(db, portfolio_id, owner_id)
        if target_percent is not None and not (ZERO <= target_percent <= HUNDRED):
            raise ValidationError(
                "Target allocation must be between 0 and 100",
                field="target_allocation_percent",
                code=INVALID_VALUE,
            )

        symbol = symbol.strip().upper()
        holding = db.scalars(
            select(Holding).where(Holding.portfolio_id == portfolio_id, Holding.symbol == symbol)
        ).first()
        if holding is None:
            raise HoldingNotFoundError(portfolio_id, symbol)

        holding.target_allocation_percent = target_percent
        db.commit()
        logger.info(f"Target allocation for {symbol} in portfolio {portfolio_id} set to {target_percent}")
        return HoldingRecord.from_row(columns_of(holding))
