"""
Profit distribution ledger model.

One row per investor per approved distribution. COMPLETED PARTIAL rows are
what the historical aggregator reads when a later FINAL distribution of the
same deal is reviewed.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel

from sahem_invest.models.distribution_request import DistributionType


class LedgerStatus(str, Enum):
    COMPLETED = "COMPLETED"


class ProfitDistribution(SQLModel, table=True):
    """
    Table definition for the distribution ledger.

    ``amount`` is the profit paid to the investor, ``capital_amount`` the
    principal returned (always zero for PARTIAL rows).
    """

    __tablename__ = "profit_distributions"  # type: ignore[assignment]

    # Serves the historical aggregation query:
    #   WHERE deal_id = ? AND profit_period = 'PARTIAL' AND status = 'COMPLETED'
    __table_args__ = (
        Index(
            "ix_profit_distributions_deal_period",
            "deal_id",
            "profit_period",
            "status",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    deal_id: uuid.UUID = Field(foreign_key="deals.id", index=True, ondelete="RESTRICT")
    investor_id: uuid.UUID = Field(foreign_key="investors.id", index=True, ondelete="RESTRICT")
    investment_id: uuid.UUID = Field(foreign_key="investments.id", ondelete="RESTRICT")
    request_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="distribution_requests.id", index=True
    )
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    capital_amount: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    investment_share: Decimal = Field(default=Decimal("0"), max_digits=9, decimal_places=4)
    profit_period: DistributionType
    status: LedgerStatus = Field(default=LedgerStatus.COMPLETED)
    distribution_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return (
            f"<ProfitDistribution id={self.id} investor={self.investor_id} "
            f"period={self.profit_period.value} profit=${self.amount} "
            f"capital=${self.capital_amount}>"
        )
