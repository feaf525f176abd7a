"""
Pydantic schemas for the distribution request workflow: partner
submission, admin preview/approval edits, rejection, and the results
returned to the review screen.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    DistributionType,
)
from sahem_invest.schemas.common import Money, Ratio
from sahem_invest.schemas.distribution import (
    AmountValidationResult,
    CustomInvestorAmount,
    DistributionBreakdown,
    HistoricalPartialSummary,
    InvestorDistributionDetail,
    ProfitabilityAnalysis,
)


class DistributionRequestCreate(BaseModel):
    """Schema for ``POST /distribution-requests`` (partner submission)."""

    deal_id: UUID
    partner_id: str = Field(..., min_length=1, max_length=64)
    distribution_type: DistributionType
    total_amount: Decimal = Field(
        ..., gt=0, description="Cash the partner is paying out (USD)", examples=[11_000.00]
    )
    estimated_gain_percent: Decimal = Field(
        ...,
        ge=-100,
        le=100,
        decimal_places=4,
        description="Share of the total that is profit (%); negative for a loss",
        examples=[10],
    )
    estimated_closing_percent: Decimal = Field(
        default=Decimal("0"), ge=0, le=100, description="How far the deal is from closing (%)"
    )
    description: str = Field(..., min_length=1, max_length=2000)
    sahem_invest_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    reserved_gain_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    sahem_invest_amount: Optional[Decimal] = Field(default=None, ge=0)
    reserved_amount: Optional[Decimal] = Field(default=None, ge=0)


class DistributionOverrides(BaseModel):
    """
    Admin edits applied on top of the stored request.

    Only the fields that are sent are applied. Changing the total or the
    gain percentage without sending a profit recomputes
    ``estimated_profit`` and ``estimated_return_capital``; sending a profit
    without a loss flag marks the round as a loss when the profit is
    negative.
    """

    total_amount: Optional[Decimal] = Field(default=None, gt=0)
    estimated_gain_percent: Optional[Decimal] = Field(
        default=None, ge=-100, le=100, decimal_places=4
    )
    estimated_closing_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    estimated_profit: Optional[Decimal] = None
    estimated_return_capital: Optional[Decimal] = Field(default=None, ge=0)
    sahem_invest_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    reserved_gain_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    sahem_invest_amount: Optional[Decimal] = Field(default=None, ge=0)
    reserved_amount: Optional[Decimal] = Field(default=None, ge=0)
    is_loss: Optional[bool] = None
    custom_amounts: Optional[List[CustomInvestorAmount]] = None


class ApprovalRequest(DistributionOverrides):
    """Schema for ``POST /distribution-requests/{id}/approve``."""

    reviewed_by: Optional[str] = Field(default=None, max_length=64)


class RejectionRequest(BaseModel):
    """Schema for ``POST /distribution-requests/{id}/reject``."""

    reason: str = Field(..., min_length=1, max_length=2000)
    reviewed_by: Optional[str] = Field(default=None, max_length=64)


class DistributionTerms(BaseModel):
    """The figures a distribution is computed from, after admin edits."""

    distribution_type: DistributionType
    total_amount: Money
    estimated_gain_percent: Ratio
    estimated_closing_percent: Ratio
    estimated_profit: Money
    estimated_return_capital: Money
    sahem_invest_percent: Ratio
    reserved_gain_percent: Ratio
    sahem_invest_amount: Optional[Money] = None
    reserved_amount: Optional[Money] = None
    is_loss: bool = False

    model_config = ConfigDict(from_attributes=True)


class DistributionRequestResponse(DistributionTerms):
    id: UUID
    deal_id: UUID
    partner_id: str
    description: str
    status: DistributionRequestStatus
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class DistributionPreview(BaseModel):
    """Everything the review screen shows for one request."""

    request_id: UUID
    deal_id: UUID
    terms: DistributionTerms
    breakdown: DistributionBreakdown
    investors: List[InvestorDistributionDetail]
    historical_summary: HistoricalPartialSummary
    profitability: Optional[ProfitabilityAnalysis] = None
    validation: Optional[AmountValidationResult] = None


class ApprovalResponse(BaseModel):
    request: DistributionRequestResponse
    breakdown: DistributionBreakdown
    investors: List[InvestorDistributionDetail]
    ledger_entries: int
