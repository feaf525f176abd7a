"""
Investment domain model.

One row per capital contribution of an investor into a deal. An investor
may contribute several times to the same deal; the distribution engine
groups those rows per investor.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Index
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from sahem_invest.models.deal import Deal
    from sahem_invest.models.investor import Investor


class Investment(SQLModel, table=True):
    """
    Table definition for investments.

    ``ix_investments_deal_date`` serves the per-deal listing and the
    investment lookup done for every distribution preview.
    """

    __tablename__ = "investments"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_investments_deal_date", "deal_id", "investment_date"),
        CheckConstraint("amount > 0", name="ck_investments_amount_positive"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(foreign_key="investors.id", index=True, ondelete="RESTRICT")
    deal_id: uuid.UUID = Field(foreign_key="deals.id", index=True, ondelete="RESTRICT")
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    investment_date: date

    deal: Optional["Deal"] = Relationship(back_populates="investments")
    investor: Optional["Investor"] = Relationship(back_populates="investments")

    def __repr__(self) -> str:
        return (
            f"<Investment id={self.id} deal={self.deal_id} "
            f"investor={self.investor_id} amount=${self.amount}>"
        )
