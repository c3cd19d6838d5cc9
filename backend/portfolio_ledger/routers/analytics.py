# backend/portfolio_ledger/routers/analytics.py
"""
Portfolio analytics endpoints.

- GET  /portfolios/{id}/summary               - Equity, day change, returns, alpha
- GET  /portfolios/{id}/allocation            - Sector allocation
- GET  /portfolios/{id}/rebalance             - Drift-based suggestions
- GET  /portfolios/{id}/performance           - Normalized history vs benchmarks
- POST /portfolios/{id}/performance/snapshot  - Record today's snapshot

Everything here reads live quotes and degrades instead of failing when
the provider is down.
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from portfolio_ledger.dependencies import (
    get_db,
    get_owner_id,
    get_performance_recorder,
    get_rebalance_service,
    get_valuation_service,
)
from portfolio_ledger.schemas.analytics import (
    PerformancePointResponse,
    PerformanceSnapshotResponse,
    PortfolioSummaryResponse,
    RebalanceSuggestionResponse,
    SectorAllocationResponse,
)
from portfolio_ledger.services.performance import PerformancePoint, PerformanceRecorder
from portfolio_ledger.services.rebalance import RebalanceService, RebalanceSuggestion
from portfolio_ledger.services.records import PerformanceRecord
from portfolio_ledger.services.valuation import PortfolioSummary, SectorAllocation, ValuationService

router = APIRouter(
    prefix="/portfolios",
    tags=["Analytics"],
)


@router.get(
    "/{portfolio_id}/summary",
    response_model=PortfolioSummaryResponse,
    summary="Portfolio summary",
)
def get_summary(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: ValuationService = Depends(get_valuation_service),
) -> PortfolioSummary:
    """
    Cash plus live holdings value. Unpriced holdings count as 0 and are
    reported in unavailable_count.
    """
    return service.get_summary(db, portfolio_id, owner_id)


@router.get(
    "/{portfolio_id}/allocation",
    response_model=list[SectorAllocationResponse],
    summary="Sector allocation",
)
def get_sector_allocation(
        portfolio_id: int,
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: ValuationService = Depends(get_valuation_service),
) -> list[SectorAllocation]:
    return service.get_sector_allocation(db, portfolio_id, owner_id)


@router.get(
    "/{portfolio_id}/rebalance",
    response_model=list[RebalanceSuggestionResponse],
    summary="Rebalance suggestions",
)
def get_rebalance_suggestions(
        portfolio_id: int,
        threshold: Decimal | None = Query(
            default=None,
            description="Minimum absolute drift in percentage points (default from settings)",
        ),
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        service: RebalanceService = Depends(get_rebalance_service),
) -> list[RebalanceSuggestion]:
    """Holdings with a target whose drift reaches the threshold, largest drift first."""
    return service.get_suggestions(db, portfolio_id, threshold, owner_id)


@router.get(
    "/{portfolio_id}/performance",
    response_model=list[PerformancePointResponse],
    summary="Performance history",
)
def get_performance_history(
        portfolio_id: int,
        start_date: date | None = Query(default=None),
        end_date: date | None = Query(default=None),
        db: Session = Depends(get_db),
        owner_id: int = Depends(get_owner_id),
        recorder: PerformanceRecorder = Depends(get_performance_recorder),
) -> list[PerformancePoint]:
    return recorder.get_history(db, portfolio_id, start_date, end_date, owner_id)


@router.post(
    "/{portfolio_id}/performance/snapshot",
    response_model=PerformanceSnapshotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a performance snapshot",
)
def record_performance_snapshot(
        portfolio_id: int,
        as_of: date | None = Query(default=None, description="Snapshot date, default today"),
        owner_id: int = Depends(get_owner_id),
        recorder: PerformanceRecorder = Depends(get_performance_recorder),
) -> PerformanceRecord:
    """Recording the same day twice overwrites the earlier snapshot."""
    return recorder.record_snapshot(portfolio_id, as_of, owner_id)
