"""
Deal API endpoints.

- GET   /deals                                 List deals
- POST  /deals                                 Create a deal
- GET   /deals/{deal_id}                       Retrieve a deal
- GET   /deals/{deal_id}/distributions         Approved distributions, newest first
- GET   /deals/{deal_id}/distributions/partials  Rollup of partial payouts
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sahem_invest.db.session import get_db
from sahem_invest.models.deal import Deal
from sahem_invest.models.profit_distribution import ProfitDistribution
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.profit_distribution_repo import ProfitDistributionRepository
from sahem_invest.schemas.common import ErrorResponse, ValidationErrorResponse
from sahem_invest.schemas.deal import DealCreate, DealResponse
from sahem_invest.schemas.distribution import DistributionHistoryItem, HistoricalPartials
from sahem_invest.services.deal_service import DealService
from sahem_invest.services.distribution_history_service import DistributionHistoryService

router = APIRouter()


# ── Dependency injection ──
# A fresh service per request, wired to that request's session; tests swap
# these out with dependency_overrides.


def _get_deal_service(db: AsyncSession = Depends(get_db)) -> DealService:
    return DealService(DealRepository(Deal, db))


def _get_history_service(db: AsyncSession = Depends(get_db)) -> DistributionHistoryService:
    return DistributionHistoryService(
        ProfitDistributionRepository(ProfitDistribution, db), DealRepository(Deal, db)
    )


# ── Endpoints ──


@router.get(
    "",
    response_model=List[DealResponse],
    summary="List all deals",
    description="Returns a paginated list of deals.",
)
async def list_deals(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: DealService = Depends(_get_deal_service),
) -> List[DealResponse]:
    return await service.get_all_deals(skip=skip, limit=limit)


@router.post(
    "",
    response_model=DealResponse,
    status_code=201,
    summary="Create a new deal",
    responses={
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_deal(
    deal: DealCreate,
    service: DealService = Depends(_get_deal_service),
) -> DealResponse:
    return await service.create_deal(deal)


@router.get(
    "/{deal_id}",
    response_model=DealResponse,
    summary="Get a specific deal",
    responses={
        404: {"model": ErrorResponse, "description": "Deal not found"},
    },
)
async def get_deal(
    deal_id: UUID,
    service: DealService = Depends(_get_deal_service),
) -> DealResponse:
    return await service.get_deal(deal_id)


@router.get(
    "/{deal_id}/distributions",
    response_model=List[DistributionHistoryItem],
    summary="Distribution history of a deal",
    description=(
        "One item per approved distribution with its profit and capital totals "
        "and the number of investors paid, newest first."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Deal not found"},
    },
)
async def get_distribution_history(
    deal_id: UUID,
    service: DistributionHistoryService = Depends(_get_history_service),
) -> List[DistributionHistoryItem]:
    return await service.get_distribution_history(deal_id)


@router.get(
    "/{deal_id}/distributions/partials",
    response_model=HistoricalPartials,
    summary="Partial payouts received so far",
    description="Totals of the deal's completed partial distributions, overall and per investor.",
    responses={
        404: {"model": ErrorResponse, "description": "Deal not found"},
    },
)
async def get_partial_history(
    deal_id: UUID,
    service: DistributionHistoryService = Depends(_get_history_service),
) -> HistoricalPartials:
    return await service.get_partial_history(deal_id)
