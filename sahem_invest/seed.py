"""
Seed script: loads a demo deal for development.

    python -m sahem_invest.seed

Creates a deal with two investors ($6,000 and $4,000), one approved PARTIAL
payout already in the ledger, and a PENDING FINAL request ($1,000 profit on
$10,000 capital) ready for review. Running it again is a no-op.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlmodel import SQLModel

import sahem_invest.db.base  # noqa: F401
from sahem_invest.core.logging import setup_logging
from sahem_invest.db.session import AsyncSessionLocal, engine
from sahem_invest.models.deal import Deal, DealStatus
from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    DistributionType,
    ProfitDistributionRequest,
)
from sahem_invest.models.investment import Investment
from sahem_invest.models.investor import Investor
from sahem_invest.models.profit_distribution import LedgerStatus, ProfitDistribution
from sahem_invest.models.transaction import Transaction, TransactionType

logger = logging.getLogger(__name__)

PARTNER_ID = "partner-riyadh-01"
DEAL_ID = uuid.UUID("5a1e8400-e29b-41d4-a716-446655440000")
INVESTOR_A_ID = uuid.UUID("a11e8400-e29b-41d4-a716-446655440001")
INVESTOR_B_ID = uuid.UUID("b22e8400-e29b-41d4-a716-446655440002")
INVESTMENT_A_ID = uuid.UUID("c33e8400-e29b-41d4-a716-446655440003")
INVESTMENT_B_ID = uuid.UUID("d44e8400-e29b-41d4-a716-446655440004")
PARTIAL_REQUEST_ID = uuid.UUID("e55e8400-e29b-41d4-a716-446655440005")
PARTIAL_PAID_AT = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def build_demo_rows() -> list:
    """Rows in insertion order (parents before children)."""
    deal = Deal(
        id=DEAL_ID,
        title="Riyadh Logistics Hub",
        partner_id=PARTNER_ID,
        funding_goal=Decimal("10000.00"),
        current_funding=Decimal("10000.00"),
        status=DealStatus.ACTIVE,
        created_at=datetime(2024, 11, 1, 8, 0, 0, tzinfo=timezone.utc),
    )
    investors = [
        Investor(
            id=INVESTOR_A_ID,
            name="Sara Al-Harbi",
            email="sara@example.com",
            wallet_balance=Decimal("90.00"),
            total_returns=Decimal("90.00"),
        ),
        Investor(
            id=INVESTOR_B_ID,
            name="Omar Haddad",
            email="omar@example.com",
            wallet_balance=Decimal("60.00"),
            total_returns=Decimal("60.00"),
        ),
    ]
    investments = [
        Investment(
            id=INVESTMENT_A_ID,
            investor_id=INVESTOR_A_ID,
            deal_id=DEAL_ID,
            amount=Decimal("6000.00"),
            investment_date=date(2024, 11, 10),
        ),
        Investment(
            id=INVESTMENT_B_ID,
            investor_id=INVESTOR_B_ID,
            deal_id=DEAL_ID,
            amount=Decimal("4000.00"),
            investment_date=date(2024, 11, 12),
        ),
    ]
    partial_request = ProfitDistributionRequest(
        id=PARTIAL_REQUEST_ID,
        deal_id=DEAL_ID,
        partner_id=PARTNER_ID,
        distribution_type=DistributionType.PARTIAL,
        description="First quarter rental income",
        total_amount=Decimal("200.00"),
        estimated_gain_percent=Decimal("100"),
        estimated_profit=Decimal("200.00"),
        estimated_return_capital=Decimal("0.00"),
        sahem_invest_percent=Decimal("12.5"),
        reserved_gain_percent=Decimal("12.5"),
        sahem_invest_amount=Decimal("25.00"),
        reserved_amount=Decimal("25.00"),
        status=DistributionRequestStatus.APPROVED,
        requested_at=datetime(2025, 2, 25, 10, 0, 0, tzinfo=timezone.utc),
        reviewed_at=PARTIAL_PAID_AT,
        reviewed_by="admin",
    )
    ledger = [
        ProfitDistribution(
            deal_id=DEAL_ID,
            investor_id=investor_id,
            investment_id=investment_id,
            request_id=PARTIAL_REQUEST_ID,
            amount=amount,
            capital_amount=Decimal("0.00"),
            investment_share=share,
            profit_period=DistributionType.PARTIAL,
            status=LedgerStatus.COMPLETED,
            distribution_date=PARTIAL_PAID_AT,
        )
        for investor_id, investment_id, amount, share in (
            (INVESTOR_A_ID, INVESTMENT_A_ID, Decimal("90.00"), Decimal("60")),
            (INVESTOR_B_ID, INVESTMENT_B_ID, Decimal("60.00"), Decimal("40")),
        )
    ]
    partial_payouts = [
        Transaction(
            investor_id=investor_id,
            investment_id=investment_id,
            type=TransactionType.RETURN,
            amount=amount,
            description="Partial profit distribution from Riyadh Logistics Hub",
            created_at=PARTIAL_PAID_AT,
        )
        for investor_id, investment_id, amount in (
            (INVESTOR_A_ID, INVESTMENT_A_ID, Decimal("90.00")),
            (INVESTOR_B_ID, INVESTMENT_B_ID, Decimal("60.00")),
        )
    ]
    final_request = ProfitDistributionRequest(
        deal_id=DEAL_ID,
        partner_id=PARTNER_ID,
        distribution_type=DistributionType.FINAL,
        description="Sale of the warehouse; deal closes",
        total_amount=Decimal("11000.00"),
        estimated_gain_percent=Decimal("9.0909"),
        estimated_closing_percent=Decimal("100"),
        estimated_profit=Decimal("1000.00"),
        estimated_return_capital=Decimal("10000.00"),
        sahem_invest_percent=Decimal("10"),
        reserved_gain_percent=Decimal("10"),
    )
    return [
        deal,
        *investors,
        *investments,
        partial_request,
        *ledger,
        *partial_payouts,
        final_request,
    ]


async def seed() -> None:
    """Create tables and insert the demo deal unless it already exists."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async with AsyncSessionLocal() as session:
        result = await session.execute(select(Deal).where(Deal.id == DEAL_ID))
        if result.scalars().first() is not None:
            logger.info("Demo deal already present, skipping seed")
            return

        rows = build_demo_rows()
        for row in rows:
            session.add(row)
            # Flush one by one so foreign keys see their parents.
            await session.flush()
        await session.commit()
        logger.info("Seeded demo deal %s with %d rows", DEAL_ID, len(rows))


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
