"""
Pydantic schemas for Investment API request / response serialisation.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sahem_invest.schemas.common import Money


class InvestmentBase(BaseModel):
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Capital contributed (USD)",
        examples=[6_000.00],
    )
    investment_date: date = Field(
        ...,
        description="Date of the contribution (ISO-8601)",
        examples=["2025-03-15"],
    )

    @field_validator("investment_date")
    @classmethod
    def validate_investment_date_not_future(cls, v: date) -> date:
        """Contributions cannot be dated more than a day ahead."""
        latest = date.today() + timedelta(days=1)
        if v > latest:
            raise ValueError(f"investment_date cannot be in the future (max: {latest})")
        return v


class InvestmentCreate(InvestmentBase):
    """
    Schema for ``POST /deals/{deal_id}/investments``.

    The deal comes from the URL path.
    """

    investor_id: UUID


class InvestmentResponse(InvestmentBase):
    id: UUID
    deal_id: UUID
    investor_id: UUID
    amount: Money

    model_config = ConfigDict(from_attributes=True)
