"""
Investor API endpoints.

- GET   /investors                          List investors with their wallet figures
- POST  /investors                          Create an investor
- GET   /investors/{id}                     One investor
- GET   /investors/{id}/wallet              Wallet totals reconciled against transactions
- GET   /investors/{id}/transactions        Payout transactions, newest first
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sahem_invest.db.session import get_db
from sahem_invest.models.investor import Investor
from sahem_invest.models.transaction import Transaction, TransactionType
from sahem_invest.repositories.investor_repo import InvestorRepository
from sahem_invest.repositories.transaction_repo import TransactionRepository
from sahem_invest.schemas.common import ErrorResponse, ValidationErrorResponse
from sahem_invest.schemas.investor import (
    InvestorCreate,
    InvestorResponse,
    InvestorWallet,
    TransactionResponse,
)
from sahem_invest.services.investor_service import InvestorService

router = APIRouter()


def _get_investor_service(db: AsyncSession = Depends(get_db)) -> InvestorService:
    return InvestorService(InvestorRepository(Investor, db), TransactionRepository(Transaction, db))


@router.get(
    "",
    response_model=List[InvestorResponse],
    summary="List all investors",
)
async def list_investors(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: InvestorService = Depends(_get_investor_service),
) -> List[InvestorResponse]:
    return await service.get_all_investors(skip=skip, limit=limit)


@router.post(
    "",
    response_model=InvestorResponse,
    status_code=201,
    summary="Create a new investor",
    description="Email addresses are unique across investors. Wallets start at zero.",
    responses={
        409: {"model": ErrorResponse, "description": "Duplicate email"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_investor(
    investor: InvestorCreate,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorResponse:
    return await service.create_investor(investor)


@router.get(
    "/{investor_id}",
    response_model=InvestorResponse,
    summary="Get an investor",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_investor(
    investor_id: UUID,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorResponse:
    return await service.get_investor(investor_id)


@router.get(
    "/{investor_id}/wallet",
    response_model=InvestorWallet,
    summary="Wallet totals of an investor",
    description=(
        "Running totals credited by approved distributions, alongside the sums "
        "of the investor's RETURN and CAPITAL_RETURN transactions."
    ),
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_wallet(
    investor_id: UUID,
    service: InvestorService = Depends(_get_investor_service),
) -> InvestorWallet:
    return await service.get_wallet(investor_id)


@router.get(
    "/{investor_id}/transactions",
    response_model=List[TransactionResponse],
    summary="Payout transactions of an investor",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_transactions(
    investor_id: UUID,
    type: Optional[TransactionType] = Query(None, description="Only this transaction type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    service: InvestorService = Depends(_get_investor_service),
) -> List[TransactionResponse]:
    return await service.get_transactions(investor_id, type=type, skip=skip, limit=limit)
