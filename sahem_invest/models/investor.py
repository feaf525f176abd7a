"""
Investor domain model.

Besides identity, an investor carries the wallet figures that approved
distributions credit: ``wallet_balance`` (capital + profit paid out) and
``total_returns`` (profit only).
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from sahem_invest.models.investment import Investment


class Investor(SQLModel, table=True):
    """Table definition for investors; ``email`` is unique."""

    __tablename__ = "investors"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_investors_name_not_empty"),
        CheckConstraint("length(email) > 0", name="ck_investors_email_not_empty"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=255)
    email: str = Field(unique=True, index=True, max_length=320)
    wallet_balance: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    total_returns: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )

    investments: List["Investment"] = Relationship(back_populates="investor")

    def __repr__(self) -> str:
        return f"<Investor id={self.id} name='{self.name}'>"
