"""
Deal domain model.

A deal (project) is the investment opportunity a partner raises capital for
and later distributes profit from.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from sahem_invest.models.investment import Investment


class DealStatus(str, Enum):
    """Lifecycle states of a deal."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    FUNDED = "FUNDED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Deal(SQLModel, table=True):
    """
    Table definition for deals.

    ``current_funding`` is the capital raised so far; the distribution engine
    prorates against the sum of the deal's investments, which should match it.
    """

    __tablename__ = "deals"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("funding_goal > 0", name="ck_deals_funding_goal_positive"),
        CheckConstraint("current_funding >= 0", name="ck_deals_current_funding_non_negative"),
        CheckConstraint("length(title) > 0", name="ck_deals_title_not_empty"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(index=True, max_length=255)
    partner_id: str = Field(index=True, max_length=64)
    funding_goal: Decimal = Field(max_digits=20, decimal_places=2)
    current_funding: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    status: DealStatus = Field(default=DealStatus.PUBLISHED)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )

    investments: List["Investment"] = Relationship(back_populates="deal")

    def __repr__(self) -> str:
        return f"<Deal id={self.id} title='{self.title}' status={self.status.value}>"
