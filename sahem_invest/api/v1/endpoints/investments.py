"""
Investment API endpoints, scoped under deals.

- GET   /deals/{deal_id}/investments   List a deal's investments
- POST  /deals/{deal_id}/investments   Record an investment into a deal
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sahem_invest.db.session import get_db
from sahem_invest.models.deal import Deal
from sahem_invest.models.investment import Investment
from sahem_invest.models.investor import Investor
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.investment_repo import InvestmentRepository
from sahem_invest.repositories.investor_repo import InvestorRepository
from sahem_invest.schemas.common import ErrorResponse, ValidationErrorResponse
from sahem_invest.schemas.investment import InvestmentCreate, InvestmentResponse
from sahem_invest.services.investment_service import InvestmentService

router = APIRouter()


def _get_investment_service(db: AsyncSession = Depends(get_db)) -> InvestmentService:
    """All three repositories share the request's session."""
    return InvestmentService(
        invest_repo=InvestmentRepository(Investment, db),
        deal_repo=DealRepository(Deal, db),
        investor_repo=InvestorRepository(Investor, db),
    )


@router.get(
    "/deals/{deal_id}/investments",
    response_model=List[InvestmentResponse],
    summary="List investments for a deal",
    responses={
        404: {"model": ErrorResponse, "description": "Deal not found"},
    },
)
async def list_investments(
    deal_id: UUID,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: InvestmentService = Depends(_get_investment_service),
) -> List[InvestmentResponse]:
    return await service.get_investments_by_deal(deal_id, skip=skip, limit=limit)


@router.post(
    "/deals/{deal_id}/investments",
    response_model=InvestmentResponse,
    status_code=201,
    summary="Create a new investment",
    description=(
        "Records a capital contribution from an investor into a deal and raises "
        "the deal's current funding. Completed or cancelled deals are rejected."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Deal or investor not found"},
        422: {
            "model": ValidationErrorResponse,
            "description": "Validation error or business rule violation",
        },
    },
)
async def create_investment(
    deal_id: UUID,
    investment: InvestmentCreate,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.create_investment(deal_id, investment)
