"""
Value models consumed and produced by the distribution engine.

These are plain pydantic models, not tables: the engine reads investments
and ledger rows into them and hands the results to the API and to the
approval service unchanged.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sahem_invest.models.distribution_request import DistributionType
from sahem_invest.schemas.common import Money, Ratio

# ── Inputs ──


class InvestmentRecord(BaseModel):
    """One investment row of a deal, joined to its investor."""

    investor_id: UUID
    investor_name: str = "Unknown"
    investor_email: str = ""
    amount: Money
    investment_id: Optional[UUID] = None


class PartialDistributionRecord(BaseModel):
    """One COMPLETED PARTIAL ledger row, joined to its investor and investment."""

    investor_id: UUID
    investor_name: str = "Unknown"
    investor_email: str = ""
    investment_id: UUID
    investment_amount: Money
    amount: Money
    distribution_date: datetime


class LedgerEntryRecord(BaseModel):
    """A ledger row reduced to what the distribution history needs."""

    request_id: Optional[UUID]
    investor_id: UUID
    profit_period: DistributionType
    amount: Money
    capital_amount: Money
    distribution_date: datetime


class CustomInvestorAmount(BaseModel):
    """Admin-edited payout for one investor."""

    investor_id: UUID
    final_capital: Money = Field(..., ge=0)
    final_profit: Money = Field(..., ge=0)


# ── Historical aggregation ──


class PartialDistributionTotals(BaseModel):
    count: int = 0
    total_profit: Money = Decimal("0.00")
    # Partials never return principal; kept for symmetry with FINAL payouts.
    total_capital: Money = Decimal("0.00")
    dates: List[str] = Field(default_factory=list)


class InvestorHistoricalData(BaseModel):
    investor_id: UUID
    investor_name: str
    investor_email: str
    total_investment: Money
    partial_distributions: PartialDistributionTotals


class HistoricalPartialSummary(BaseModel):
    total_partial_distributions: Money = Decimal("0.00")
    total_partial_profit: Money = Decimal("0.00")
    total_partial_capital: Money = Decimal("0.00")
    distribution_dates: List[str] = Field(default_factory=list)
    distribution_count: int = 0


class HistoricalPartials(BaseModel):
    summary: HistoricalPartialSummary
    investor_data: List[InvestorHistoricalData]


class DistributionHistoryItem(BaseModel):
    """One past distribution event of a deal, summed over its investors."""

    id: Optional[UUID]
    date: str
    amount: Money
    type: DistributionType
    profit_amount: Money
    capital_amount: Money
    investor_count: int
    label: str


# ── Calculation results ──


class DistributionBreakdown(BaseModel):
    """How one distribution round splits between platform, reserve and investors."""

    sahem_amount: Money
    reserve_amount: Money
    investors_profit: Money
    investors_capital: Money
    total_to_investors: Money
    is_loss: bool
    is_final: bool
    # Deductions expressed against their base (the disbursed total for
    # PARTIAL, the realized profit for FINAL).
    calculated_sahem_percent: Optional[Ratio] = None
    calculated_reserve_percent: Optional[Ratio] = None


class InvestorDistributionDetail(BaseModel):
    investor_id: UUID
    investor_name: str
    investor_email: str
    total_investment: Money
    investment_ratio: Ratio
    partial_capital_received: Money
    partial_profit_received: Money
    partial_distribution_count: int
    final_capital: Money
    final_profit: Money
    final_total: Money


class ProfitabilityDetails(BaseModel):
    original_investment: Money
    total_distributed: Money
    commissions_paid: Money
    investor_recovery: Money


class ProfitabilityAnalysis(BaseModel):
    is_profitable: bool
    profit_or_loss_amount: Money
    profit_or_loss_percentage: Ratio
    reason: str
    details: ProfitabilityDetails
    message: str


class AmountValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
