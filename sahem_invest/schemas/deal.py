"""
Pydantic schemas for Deal API request / response serialisation.

Kept separate from the SQLModel table so the API contract does not change
with the persistence layer.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sahem_invest.models.deal import DealStatus
from sahem_invest.schemas.common import Money


class DealBase(BaseModel):
    title: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Title of the deal",
        examples=["Riyadh Logistics Hub"],
    )
    partner_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Identifier of the partner running the deal",
    )
    funding_goal: Decimal = Field(
        ..., gt=0, description="Capital the deal aims to raise (USD)", examples=[10_000.00]
    )
    status: DealStatus = Field(default=DealStatus.PUBLISHED)

    @field_validator("title")
    @classmethod
    def validate_title_not_blank(cls, v: str) -> str:
        """Reject whitespace-only titles."""
        if not v.strip():
            raise ValueError("title must not be blank")
        return v.strip()


class DealCreate(DealBase):
    """Schema for ``POST /deals``; funding starts at zero."""

    pass


class DealResponse(DealBase):
    id: UUID
    funding_goal: Money
    current_funding: Money
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
