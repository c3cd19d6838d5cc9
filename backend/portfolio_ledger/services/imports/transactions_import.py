# backend/portfolio_ledger/services/imports/transactions_import.py
"""
Bulk transaction import.

Two phases:

1. Validate every row. Any invalid row rejects the whole batch and
   nothing is written; every row error is reported, not just the first.
2. Sort rows by transaction date (stable, so same-day rows keep their
   submitted order) and write them through ONE caller-owned unit of work
   with the cash and share checks skipped. An import reproduces history
   that already happened at a broker, so intermediate balances may dip
   below zero. A failure on any row rolls back every row.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from portfolio_ledger.database import UnitOfWork
from portfolio_ledger.models import POSITION_TYPES
from portfolio_ledger.services.constants import MAX_NOTES_LENGTH, ZERO
from portfolio_ledger.services.exceptions import ServiceError, ValidationError
from portfolio_ledger.services.imports.types import ImportResult, ImportRowError
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.ledger.processor import TransactionProcessor
from portfolio_ledger.services.ledger.validation import (
    NewTransaction,
    ValidatedTransaction,
    optional_decimal,
    validate_transaction,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 10000


class TransactionImportService:
    """
    Args:
        session_factory: Opens the single unit of work of a batch
        processor: Writes each row with add_transaction_in
        max_rows: Largest accepted batch
    """

    def __init__(
            self,
            session_factory: sessionmaker[Session],
            processor: TransactionProcessor,
            max_rows: int = DEFAULT_MAX_ROWS,
    ) -> None:
        self._session_factory = session_factory
        self._processor = processor
        self._max_rows = max_rows

    def import_transactions(
            self,
            db: Session,
            portfolio_id: int,
            rows: Sequence[Mapping[str, Any]],
            owner_id: int | None = None,
            row_numbers: Sequence[int] | None = None,
    ) -> ImportResult:
        """
        Validate then commit a batch of transactions, all or nothing.

        row_numbers overrides the reported row of each entry (file lines
        for CSV uploads); by default rows are numbered from 1.

        Raises:
            PortfolioNotFoundError: Unknown portfolio
        """
        queries.require_portfolio(db, portfolio_id, owner_id)

        if not rows:
            return ImportResult.rejected([ImportRowError.of(0, "transactions", "", "No transactions provided")])
        if len(rows) > self._max_rows:
            return ImportResult.rejected(
                [ImportRowError.of(
                    0, "transactions", len(rows), f"Too many transactions. Maximum is {self._max_rows}"
                )],
                failed=len(rows),
            )

        requests: list[tuple[int, NewTransaction, ValidatedTransaction]] = []
        errors: list[ImportRowError] = []
        numbers = list(row_numbers) if row_numbers is not None else range(1, len(rows) + 1)
        for row_number, row in zip(numbers, rows):
            try:
                request = self._to_request(row)
                requests.append((row_number, request, validate_transaction(request)))
            except ValidationError as e:
                value = row.get(e.field or "") if isinstance(row, Mapping) else None
                errors.append(ImportRowError.of(row_number, e.field, value, e.message))

        if errors:
            logger.warning(f"Rejected import into portfolio {portfolio_id}: {len(errors)} invalid rows")
            return ImportResult.rejected(errors)

        requests.sort(key=lambda item: item[2].transaction_date)
        return self._commit(portfolio_id, requests)

    def _commit(
            self,
            portfolio_id: int,
            requests: list[tuple[int, NewTransaction, ValidatedTransaction]],
    ) -> ImportResult:
        current_row = 0
        try:
            with UnitOfWork.owned(self._session_factory) as uow:
                for current_row, request, _ in requests:
                    self._processor.add_transaction_in(uow, portfolio_id, request, skip_validation=True)
        except ServiceError as e:
            logger.warning(f"Import into portfolio {portfolio_id} rolled back at row {current_row}: {e}")
            return ImportResult.rejected(
                [ImportRowError.of(current_row, getattr(e, "field", None), "", e.message)],
                failed=len(requests),
            )

        logger.info(f"Imported {len(requests)} transactions into portfolio {portfolio_id}")
        return ImportResult(success=True, imported=len(requests))

    @staticmethod
    def _to_request(row: Mapping[str, Any]) -> NewTransaction:
        """Import-specific checks on top of validate_transaction()."""
        if not isinstance(row, Mapping):
            raise ValidationError("Transaction must be an object")

        total_amount = optional_decimal(row.get("total_amount"), "total_amount")
        if total_amount is None:
            raise ValidationError("Total amount is required", field="total_amount")
        if total_amount < ZERO:
            raise ValidationError("Total amount must be a non-negative number", field="total_amount")

        transaction_type = str(row.get("transaction_type") or "").strip().upper()
        # A zero amount on a trade means "derive it from quantity × price"
        if total_amount == ZERO and transaction_type in {t.value for t in POSITION_TYPES}:
            total_amount = None

        notes = row.get("notes")
        if notes is not None:
            notes = str(notes)[:MAX_NOTES_LENGTH]

        return NewTransaction(
            transaction_type=row.get("transaction_type"),
            transaction_date=row.get("transaction_date"),
            total_amount=total_amount,
            symbol=row.get("symbol"),
            quantity=row.get("quantity"),
            price_per_share=row.get("price_per_share"),
            fees=row.get("fees"),
            notes=notes,
        )
