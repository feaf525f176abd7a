"""
Profit distribution request model.

A partner files a request when a deal pays out; an admin reviews it, may
edit the figures, and approves or rejects it. Approval goes through the
transient ``PROCESSING`` state so two admins cannot pay out the same deal
twice: the partial unique index below allows only one PROCESSING request
per deal at a time.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, text
from sqlmodel import Field, SQLModel


class DistributionType(str, Enum):
    """PARTIAL pays out cash before closing; FINAL closes the deal."""

    PARTIAL = "PARTIAL"
    FINAL = "FINAL"


class DistributionRequestStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ProfitDistributionRequest(SQLModel, table=True):
    """
    Table definition for distribution requests.

    FINAL requests are split by percentage (``sahem_invest_percent``,
    ``reserved_gain_percent``) of the realized profit. PARTIAL requests
    deduct USD amounts (``sahem_invest_amount``, ``reserved_amount``) from
    the cash disbursed; when those are unset they are derived from the
    percentages of ``total_amount``.
    """

    __tablename__ = "distribution_requests"  # type: ignore[assignment]

    __table_args__ = (
        Index(
            "uq_distribution_requests_deal_processing",
            "deal_id",
            unique=True,
            postgresql_where=text("status = 'PROCESSING'"),
            sqlite_where=text("status = 'PROCESSING'"),
        ),
        CheckConstraint("total_amount > 0", name="ck_distribution_requests_total_positive"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    deal_id: uuid.UUID = Field(foreign_key="deals.id", index=True, ondelete="RESTRICT")
    partner_id: str = Field(index=True, max_length=64)
    distribution_type: DistributionType
    description: str = Field(default="", max_length=2000)

    total_amount: Decimal = Field(max_digits=20, decimal_places=2)
    estimated_gain_percent: Decimal = Field(max_digits=9, decimal_places=4)
    estimated_closing_percent: Decimal = Field(
        default=Decimal("0"), max_digits=9, decimal_places=4
    )
    estimated_profit: Decimal = Field(max_digits=20, decimal_places=2)
    estimated_return_capital: Decimal = Field(max_digits=20, decimal_places=2)

    sahem_invest_percent: Decimal = Field(max_digits=9, decimal_places=4)
    reserved_gain_percent: Decimal = Field(max_digits=9, decimal_places=4)
    sahem_invest_amount: Optional[Decimal] = Field(
        default=None, max_digits=20, decimal_places=2
    )
    reserved_amount: Optional[Decimal] = Field(default=None, max_digits=20, decimal_places=2)
    is_loss: bool = Field(default=False)

    status: DistributionRequestStatus = Field(
        default=DistributionRequestStatus.PENDING, index=True
    )
    requested_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )
    reviewed_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    reviewed_by: Optional[str] = Field(default=None, max_length=64)
    rejection_reason: Optional[str] = Field(default=None, max_length=2000)

    def __repr__(self) -> str:
        return (
            f"<ProfitDistributionRequest id={self.id} deal={self.deal_id} "
            f"type={self.distribution_type.value} status={self.status.value}>"
        )
