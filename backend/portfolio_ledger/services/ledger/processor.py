# backend/portfolio_ledger/services/ledger/processor.py
"""
Transaction Processor: the only writer of the ledger and holdings cache.

Flow for one transaction (all inside one unit of work):

    1. validate_transaction()            pure, raises ValidationError
    2. lock the portfolio row            SELECT ... FOR UPDATE
    3. BUY: cash >= gross + fees         else InsufficientFundsError
       SELL: held >= quantity            else InsufficientSharesError
    4. insert the ledger row, flush
    5. BUY/SELL: replay cost basis       HoldingsRecomputer
    6. commit (owned shape only)

A failure at any step rolls back everything, so the ledger never holds a
transaction whose cache update failed.

Call shapes:
    add_transaction(portfolio_id, request)
        Owns its unit of work: begins, commits, rolls back.
    add_transaction_in(uow, portfolio_id, request)
        Joins the caller's unit of work and only flushes. Used by bulk
        imports so many rows share one all-or-nothing commit.
"""

import logging

from sqlalchemy.orm import Session, sessionmaker

from portfolio_ledger.database import UnitOfWork
from portfolio_ledger.models import POSITION_TYPES, Transaction, TransactionType
from portfolio_ledger.services.exceptions import (
    InsufficientFundsError,
    InsufficientSharesError,
    PortfolioNotFoundError,
)
from portfolio_ledger.services.ledger.cost_basis import HoldingsRecomputer
from portfolio_ledger.services.ledger.queries import get_cash_balance, get_held_quantity
from portfolio_ledger.services.ledger.validation import (
    NewTransaction,
    ValidatedTransaction,
    validate_transaction,
)
from portfolio_ledger.services.records import HoldingRecord, TransactionRecord, columns_of

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Validates and commits ledger entries against cash and share invariants.

    Args:
        session_factory: Used by the owned call shape to open a unit of work
        recomputer: Rebuilds the holdings cache after BUY/SELL
    """

    def __init__(self, session_factory: sessionmaker[Session], recomputer: HoldingsRecomputer) -> None:
        self._session_factory = session_factory
        self._recomputer = recomputer

    # =========================================================================
    # OWNED UNIT OF WORK
    # =========================================================================

    def add_transaction(
            self,
            portfolio_id: int,
            request: NewTransaction,
            skip_validation: bool = False,
    ) -> TransactionRecord:
        """Record one transaction in its own unit of work."""
        with UnitOfWork.owned(self._session_factory) as uow:
            record = self.add_transaction_in(uow, portfolio_id, request, skip_validation=skip_validation)

        logger.info(
            f"Committed {record.transaction_type.value} #{record.id} "
            f"in portfolio {portfolio_id}: {record.symbol or '-'} {record.total_amount}"
        )
        return record

    def recompute_holding(self, portfolio_id: int, symbol: str) -> HoldingRecord | None:
        """Replay one symbol from the ledger (repair path)."""
        with UnitOfWork.owned(self._session_factory) as uow:
            if uow.lock_portfolio(portfolio_id) is None:
                raise PortfolioNotFoundError(portfolio_id)
            return self._recomputer.recompute(uow.session, portfolio_id, symbol)

    def rebuild_holdings(self, portfolio_id: int) -> list[HoldingRecord]:
        """Replay every symbol of a portfolio from the ledger."""
        with UnitOfWork.owned(self._session_factory) as uow:
            if uow.lock_portfolio(portfolio_id) is None:
                raise PortfolioNotFoundError(portfolio_id)
            holdings = self._recomputer.rebuild_all(uow.session, portfolio_id)

        logger.info(f"Rebuilt {len(holdings)} holdings for portfolio {portfolio_id}")
        return holdings

    # =========================================================================
    # CALLER-SUPPLIED UNIT OF WORK
    # =========================================================================

    def add_transaction_in(
            self,
            uow: UnitOfWork,
            portfolio_id: int,
            request: NewTransaction,
            skip_validation: bool = False,
    ) -> TransactionRecord:
        """
        Record one transaction inside the caller's unit of work.

        skip_validation bypasses the cash and share checks only; input
        validation always runs.

        Raises:
            ValidationError: Malformed request
            PortfolioNotFoundError: Unknown portfolio
            InsufficientFundsError: BUY exceeds the cash balance
            InsufficientSharesError: SELL exceeds the held quantity
        """
        validated = validate_transaction(request)
        session = uow.session

        if uow.lock_portfolio(portfolio_id) is None:
            raise PortfolioNotFoundError(portfolio_id)

        if not skip_validation:
            self._check_invariants(session, portfolio_id, validated)

        transaction = Transaction(
            portfolio_id=portfolio_id,
            symbol=validated.symbol,
            transaction_type=validated.transaction_type,
            quantity=validated.quantity,
            price_per_share=validated.price_per_share,
            fees=validated.fees,
            total_amount=validated.total_amount,
            transaction_date=validated.transaction_date,
            notes=validated.notes,
            prediction_id=validated.prediction_id,
        )
        session.add(transaction)
        uow.flush()

        if validated.transaction_type in POSITION_TYPES:
            self._recomputer.recompute(session, portfolio_id, validated.symbol)

        return TransactionRecord.from_row(columns_of(transaction))

    def _check_invariants(self, session: Session, portfolio_id: int, validated: ValidatedTransaction) -> None:
        if validated.transaction_type == TransactionType.BUY:
            available = get_cash_balance(session, portfolio_id)
            required = validated.required_cash
            if available < required:
                logger.warning(
                    f"Rejected BUY {validated.symbol} in portfolio {portfolio_id}: "
                    f"required {required}, available {available}"
                )
                raise InsufficientFundsError(required=required, available=available)

        elif validated.transaction_type == TransactionType.SELL:
            held = get_held_quantity(session, portfolio_id, validated.symbol)
            if held < validated.quantity:
                logger.warning(
                    f"Rejected SELL {validated.symbol} in portfolio {portfolio_id}: "
                    f"requested {validated.quantity}, held {held}"
                )
                raise InsufficientSharesError(
                    symbol=validated.symbol,
                    requested=validated.quantity,
                    held=held,
                )
