"""
Distribution request API endpoints.

- GET   /distribution-requests                  List requests (filter by status, deal)
- POST  /distribution-requests                  Partner files a request
- GET   /distribution-requests/{id}             Retrieve a request
- POST  /distribution-requests/{id}/preview     Recompute with admin edits (no writes)
- POST  /distribution-requests/{id}/approve     Approve and pay out
- POST  /distribution-requests/{id}/reject      Reject with a reason
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sahem_invest.db.session import get_db
from sahem_invest.models.deal import Deal
from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    ProfitDistributionRequest,
)
from sahem_invest.models.investment import Investment
from sahem_invest.models.profit_distribution import ProfitDistribution
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.distribution_request_repo import DistributionRequestRepository
from sahem_invest.repositories.investment_repo import InvestmentRepository
from sahem_invest.repositories.profit_distribution_repo import ProfitDistributionRepository
from sahem_invest.schemas.common import ErrorResponse, ValidationErrorResponse
from sahem_invest.schemas.distribution_request import (
    ApprovalRequest,
    ApprovalResponse,
    DistributionOverrides,
    DistributionPreview,
    DistributionRequestCreate,
    DistributionRequestResponse,
    RejectionRequest,
)
from sahem_invest.services.distribution_request_service import DistributionRequestService

router = APIRouter()


def _get_request_service(db: AsyncSession = Depends(get_db)) -> DistributionRequestService:
    """
    Build the service on one session so an approval's ledger rows, wallet
    credits and status change share a transaction.
    """
    return DistributionRequestService(
        request_repo=DistributionRequestRepository(ProfitDistributionRequest, db),
        deal_repo=DealRepository(Deal, db),
        investment_repo=InvestmentRepository(Investment, db),
        ledger_repo=ProfitDistributionRepository(ProfitDistribution, db),
    )


@router.get(
    "",
    response_model=List[DistributionRequestResponse],
    summary="List distribution requests",
    description="Newest first. Filter by ``status`` and/or ``deal_id``.",
)
async def list_requests(
    status: Optional[DistributionRequestStatus] = Query(None),
    deal_id: Optional[UUID] = Query(None),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: DistributionRequestService = Depends(_get_request_service),
) -> List[DistributionRequestResponse]:
    return await service.list_requests(status=status, deal_id=deal_id, skip=skip, limit=limit)


@router.post(
    "",
    response_model=DistributionRequestResponse,
    status_code=201,
    summary="File a distribution request",
    description=(
        "A partner reports a payout for one of its deals. The profit is "
        "``total_amount * estimated_gain_percent / 100``; the rest of the total "
        "is returned capital."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Deal not found"},
        422: {
            "model": ValidationErrorResponse,
            "description": "Validation error or business rule violation",
        },
    },
)
async def create_request(
    request_in: DistributionRequestCreate,
    service: DistributionRequestService = Depends(_get_request_service),
) -> DistributionRequestResponse:
    return await service.create_request(request_in)


@router.get(
    "/{request_id}",
    response_model=DistributionRequestResponse,
    summary="Get a distribution request",
    responses={
        404: {"model": ErrorResponse, "description": "Request not found"},
    },
)
async def get_request(
    request_id: UUID,
    service: DistributionRequestService = Depends(_get_request_service),
) -> DistributionRequestResponse:
    return await service.get_request(request_id)


@router.post(
    "/{request_id}/preview",
    response_model=DistributionPreview,
    summary="Preview a distribution",
    description=(
        "Breakdown, per-investor payouts, partial history and profitability "
        "computed with the edits in the body. Nothing is stored."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Request not found"},
        422: {"model": ErrorResponse, "description": "Invalid commission configuration"},
    },
)
async def preview_request(
    request_id: UUID,
    overrides: Optional[DistributionOverrides] = Body(None),
    service: DistributionRequestService = Depends(_get_request_service),
) -> DistributionPreview:
    return await service.preview(request_id, overrides)


@router.post(
    "/{request_id}/approve",
    response_model=ApprovalResponse,
    summary="Approve a distribution request",
    description=(
        "Pays the distribution out to the investors' wallets and records it in "
        "the ledger. Only PENDING requests can be approved, and only one "
        "approval per deal runs at a time."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Request not found"},
        409: {"model": ErrorResponse, "description": "Already processed or deal busy"},
        422: {"model": ErrorResponse, "description": "Custom amounts do not add up"},
    },
)
async def approve_request(
    request_id: UUID,
    approval: Optional[ApprovalRequest] = Body(None),
    service: DistributionRequestService = Depends(_get_request_service),
) -> ApprovalResponse:
    return await service.approve(request_id, approval)


@router.post(
    "/{request_id}/reject",
    response_model=DistributionRequestResponse,
    summary="Reject a distribution request",
    responses={
        404: {"model": ErrorResponse, "description": "Request not found"},
        409: {"model": ErrorResponse, "description": "Already processed"},
    },
)
async def reject_request(
    request_id: UUID,
    rejection: RejectionRequest,
    service: DistributionRequestService = Depends(_get_request_service),
) -> DistributionRequestResponse:
    return await service.reject(request_id, rejection.reason, rejection.reviewed_by)
