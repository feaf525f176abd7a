"""
Pydantic schemas for investors, their wallets and wallet transactions.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from sahem_invest.models.transaction import TransactionStatus, TransactionType
from sahem_invest.schemas.common import Money


class InvestorBase(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Full name of the investor",
        examples=["Sara Al-Harbi"],
    )
    email: EmailStr = Field(
        ...,
        description="Contact email address (unique across investors)",
        examples=["sara@example.com"],
    )

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        """Reject whitespace-only names."""
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class InvestorCreate(InvestorBase):
    """Schema for ``POST /investors``."""

    pass


class InvestorResponse(InvestorBase):
    id: UUID
    wallet_balance: Money
    total_returns: Money
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    """A wallet credit booked by an approved distribution."""

    id: UUID
    investment_id: Optional[UUID] = None
    type: TransactionType
    amount: Money
    status: TransactionStatus
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvestorWallet(BaseModel):
    """
    Wallet figures of one investor.

    ``wallet_balance`` and ``total_returns`` are the running totals kept on
    the investor row; ``profit_paid`` and ``capital_returned`` are summed
    from the transactions. ``reconciled`` is false when the two disagree.
    """

    investor_id: UUID
    name: str
    wallet_balance: Money
    total_returns: Money
    profit_paid: Money
    capital_returned: Money
    reconciled: bool
