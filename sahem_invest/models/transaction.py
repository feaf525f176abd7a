"""Wallet transaction model: one row per credit booked by an approval."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


class TransactionType(str, Enum):
    RETURN = "RETURN"
    CAPITAL_RETURN = "CAPITAL_RETURN"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"  # type: ignore[assignment]

    __table_args__ = (CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(foreign_key="investors.id", index=True, ondelete="RESTRICT")
    investment_id: Optional[uuid.UUID] = Field(default=None, foreign_key="investments.id")
    type: TransactionType
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    status: TransactionStatus = Field(default=TransactionStatus.COMPLETED)
    description: str = Field(default="", max_length=500)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )
