# backend/portfolio_ledger/routers/transactions.py
"""
Ledger endpoints: record transactions, list history, cash balance and
bulk imports.

- POST /portfolios/{id}/transactions              - Record one transaction
- GET  /portfolios/{id}/transactions              - History with filters
- POST /portfolios/{id}/transactions/import       - JSON bulk import
- POST /portfolios/{id}/transactions/import/csv   - CSV file import
- GET  /portfolios/{id}/cash                      - Cash balance

Bulk imports are all-or-nothing: a rejected batch answers 400 with every
row error in the body and writes nothing.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portfolio_ledger.dependencies import (
    get_csv_parser,
    get_db,
    get_ledger_service,
    get_owner_id,
    get_processor,
    get_transaction_import_service,
)
from portfolio_ledger.models import TransactionType
from portfolio_ledger.schemas.transactions import (
    CashBalanceResponse,
    ImportResultResponse,
    TransactionCreate,
    TransactionImportRequest,
    TransactionResponse,
)
from portfolio_ledger.services.imports import (
    DateFormat,
    ImportResult,
    TransactionCSVParser,
    TransactionImportService,
)
from portfolio_ledger.services.ledger import LedgerService, NewTransaction, TransactionProcessor
from portfolio_ledger.services.ledger.queries import require_portfolio
from portfolio_ledger.services.records import TransactionRecord

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/portfolios",
    tags=["Transactions"],
)


def _import_response(result: ImportResult) -> JSONResponse:
    body = ImportResultResponse.model_validate(result).model_dump(mode="json")
    code = status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content=body)


@router.post(
    "/{portfolio_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
)
def create_transaction(
        portfolio_id: int,
        payload: TransactionCreate,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        processor: TransactionProcessor = Depends(get_processor),
) -> TransactionRecord:
    """
    Record a DEPOSIT, WITHDRAW, BUY, SELL or DIVIDEND.

    - **BUY**: rejected with 409 when gross + fees exceeds the cash balance
    - **SELL**: rejected with 409 when quantity exceeds the held shares
    - **BUY/SELL**: symbol, quantity and price_per_share required
    """
    require_portfolio(db, portfolio_id, owner_id)
    request = NewTransaction(**payload.model_dump())
    return processor.add_transaction(portfolio_id, request)


@router.get(
    "/{portfolio_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List transactions",
)
def list_transactions(
        portfolio_id: int,
        transaction_type: TransactionType | None = Query(default=None),
        symbol: str | None = Query(default=None, max_length=20),
        start_date: date | None = Query(default=None),
        end_date: date | None = Query(default=None),
        limit: int | None = Query(default=None, ge=1, le=10000),
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: LedgerService = Depends(get_ledger_service),
) -> list[TransactionRecord]:
    """Newest first."""
    return service.list_transactions(
        db,
        portfolio_id,
        transaction_type=transaction_type,
        symbol=symbol,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        owner_id=owner_id,
    )


@router.post(
    "/{portfolio_id}/transactions/import",
    response_model=ImportResultResponse,
    summary="Bulk import transactions",
)
def import_transactions(
        portfolio_id: int,
        payload: TransactionImportRequest,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: TransactionImportService = Depends(get_transaction_import_service),
) -> JSONResponse:
    result = service.import_transactions(db, portfolio_id, payload.transactions, owner_id=owner_id)
    return _import_response(result)


@router.post(
    "/{portfolio_id}/transactions/import/csv",
    response_model=ImportResultResponse,
    summary="Import transactions from a CSV file",
)
def import_transactions_csv(
        portfolio_id: int,
        file: UploadFile = File(..., description="CSV with date, type, symbol, quantity, price, amount, fees"),
        date_format: DateFormat = Query(default=DateFormat.ISO, description="ISO, US (M/D/YYYY) or EU (D/M/YYYY)"),
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        parser: TransactionCSVParser = Depends(get_csv_parser),
        service: TransactionImportService = Depends(get_transaction_import_service),
) -> JSONResponse:
    """Parse the file, then import it as one all-or-nothing batch."""
    require_portfolio(db, portfolio_id, owner_id)
    parsed = parser.parse(file.file, file.filename or "upload.csv", date_format)
    if parsed.has_errors:
        return _import_response(ImportResult.rejected(parsed.errors))

    result = service.import_transactions(
        db,
        portfolio_id,
        parsed.rows,
        owner_id=owner_id,
        row_numbers=parsed.row_numbers,
    )
    return _import_response(result)


@router.get(
    "/{portfolio_id}/cash",
    response_model=CashBalanceResponse,
    summary="Cash balance",
)
def get_cash_balance(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: LedgerService = Depends(get_ledger_service),
) -> CashBalanceResponse:
    """Sum of every committed transaction amount."""
    return CashBalanceResponse(
        portfolio_id=portfolio_id,
        cash_balance=service.get_cash_balance(db, portfolio_id, owner_id),
    )
