# backend/portfolio_ledger/routers/holdings.py
"""
Holdings endpoints.

Holdings are a cache derived from the ledger; the only field a client
may set directly is the target allocation. A plain listing never calls
the market data provider, enriched=true prices every holding and
degrades per holding when quotes are missing.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portfolio_ledger.dependencies import (
    get_db,
    get_holdings_import_service,
    get_holdings_service,
    get_owner_id,
    get_valuation_service,
)
from portfolio_ledger.schemas.holdings import (
    HoldingResponse,
    HoldingsImportRequest,
    PortfolioValuationResponse,
    TargetAllocationUpdate,
)
from portfolio_ledger.schemas.transactions import ImportResultResponse
from portfolio_ledger.services.holdings import HoldingsService
from portfolio_ledger.services.imports import HoldingsImportService
from portfolio_ledger.services.records import HoldingRecord
from portfolio_ledger.services.valuation import ValuationService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/portfolios",
    tags=["Holdings"],
)


@router.get(
    "/{portfolio_id}/holdings",
    response_model=list[HoldingResponse] | PortfolioValuationResponse,
    summary="List holdings",
)
def list_holdings(
        portfolio_id: int,
        enriched: bool = Query(default=False, description="Include live prices, weights and drift"),
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        holdings_service: HoldingsService = Depends(get_holdings_service),
        valuation_service: ValuationService = Depends(get_valuation_service),
) -> list[HoldingResponse] | PortfolioValuationResponse:
    """
    Open positions ordered by symbol.

    With **enriched=true** the response is the portfolio valuation. A
    holding whose quote is missing has price_status "unavailable"; the
    request itself still succeeds.
    """
    if enriched:
        valuation = valuation_service.valuate(db, portfolio_id, owner_id)
        return PortfolioValuationResponse.model_validate(valuation)

    holdings = holdings_service.list_holdings(db, portfolio_id, owner_id)
    return [HoldingResponse.model_validate(h) for h in holdings]


@router.get(
    "/{portfolio_id}/holdings/{symbol}",
    response_model=HoldingResponse,
    summary="Get a holding",
)
def get_holding(
        portfolio_id: int,
        symbol: str,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: HoldingsService = Depends(get_holdings_service),
) -> HoldingRecord:
    return service.get_holding(db, portfolio_id, symbol, owner_id)


@router.patch(
    "/{portfolio_id}/holdings/{symbol}",
    response_model=HoldingResponse,
    summary="Set target allocation",
)
def update_target_allocation(
        portfolio_id: int,
        symbol: str,
        payload: TargetAllocationUpdate,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: HoldingsService = Depends(get_holdings_service),
) -> HoldingRecord:
    """Target weight in percent, 0 to 100. Null clears it."""
    return service.update_target_allocation(
        db,
        portfolio_id,
        symbol,
        payload.target_allocation_percent,
        owner_id,
    )


@router.post(
    "/{portfolio_id}/holdings/import",
    response_model=ImportResultResponse,
    summary="Import holdings",
)
def import_holdings(
        portfolio_id: int,
        payload: HoldingsImportRequest,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: HoldingsImportService = Depends(get_holdings_import_service),
) -> JSONResponse:
    """
    Upsert positions directly, bypassing the ledger.

    Valid rows are kept even when others fail; the response lists every
    failed row and answers 400 if any failed.
    """
    rows = [row.model_dump() for row in payload.holdings]
    result = service.import_holdings(db, portfolio_id, rows, owner_id=owner_id)
    body = ImportResultResponse.model_validate(result).model_dump(mode="json")
    return JSONResponse(status_code=200 if result.success else 400, content=body)
