# backend/portfolio_ledger/routers/portfolios.py
"""
Portfolio management endpoints.

CRUD for the portfolios of the caller identified by X-Owner-Id. A
portfolio of another owner answers 404, exactly like a missing one.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from portfolio_ledger.dependencies import get_db, get_owner_id, get_portfolio_service
from portfolio_ledger.schemas.portfolios import PortfolioCreate, PortfolioResponse, PortfolioUpdate
from portfolio_ledger.services.portfolio_service import PortfolioService
from portfolio_ledger.services.records import PortfolioRecord

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
)


@router.post(
    "",
    response_model=PortfolioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a portfolio",
)
def create_portfolio(
        payload: PortfolioCreate,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioRecord:
    """
    Create a portfolio. Marking it as default clears the flag on the
    owner's other portfolios.
    """
    return service.create(
        db,
        owner_id=owner_id,
        name=payload.name,
        description=payload.description,
        currency=payload.currency,
        is_default=payload.is_default,
    )


@router.get("", response_model=list[PortfolioResponse], summary="List portfolios")
def list_portfolios(
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: PortfolioService = Depends(get_portfolio_service),
) -> list[PortfolioRecord]:
    """Default portfolio first, then by creation date."""
    return service.list(db, owner_id)


@router.get("/{portfolio_id}", response_model=PortfolioResponse, summary="Get a portfolio")
def get_portfolio(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioRecord:
    return service.get(db, portfolio_id, owner_id)


@router.patch("/{portfolio_id}", response_model=PortfolioResponse, summary="Update a portfolio")
def update_portfolio(
        portfolio_id: int,
        payload: PortfolioUpdate,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: PortfolioService = Depends(get_portfolio_service),
) -> PortfolioRecord:
    """Partial update: only the fields present in the body change."""
    return service.update(db, portfolio_id, owner_id, **payload.model_dump(exclude_unset=True))


@router.delete(
    "/{portfolio_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a portfolio",
)
def delete_portfolio(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: PortfolioService = Depends(get_portfolio_service),
) -> Response:
    """Deletes the portfolio together with its ledger, holdings and snapshots."""
    service.delete(db, portfolio_id, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
