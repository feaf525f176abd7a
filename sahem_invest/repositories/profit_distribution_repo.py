"""
Profit distribution repository: the ledger of payouts.

Reads feed the historical rollup and the deal history endpoint; the write
side stages every row of an approval (ledger rows, wallet transactions,
wallet credits) without committing, so the caller can finish the approval
in the same transaction.
"""

from decimal import Decimal
from typing import Dict, List, Sequence, Tuple
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.future import select

from sahem_invest.models.distribution_request import DistributionType
from sahem_invest.models.investment import Investment
from sahem_invest.models.investor import Investor
from sahem_invest.models.profit_distribution import LedgerStatus, ProfitDistribution
from sahem_invest.models.transaction import Transaction
from sahem_invest.repositories.base import BaseRepository
from sahem_invest.schemas.distribution import LedgerEntryRecord, PartialDistributionRecord


class ProfitDistributionRepository(BaseRepository[ProfitDistribution]):
    """Concrete repository for :class:`ProfitDistribution` ledger rows."""

    async def get_completed_partials(self, deal_id: UUID) -> List[PartialDistributionRecord]:
        """
        COMPLETED PARTIAL payouts of a deal with investor and investment details.

        Served by ``ix_profit_distributions_deal_period``.
        """

        async def _get_partials() -> List[PartialDistributionRecord]:
            stmt = (
                select(
                    ProfitDistribution.investor_id,
                    ProfitDistribution.investment_id,
                    ProfitDistribution.amount,
                    ProfitDistribution.distribution_date,
                    Investor.name,
                    Investor.email,
                    Investment.amount.label("investment_amount"),
                )
                .join(Investor, Investor.id == ProfitDistribution.investor_id)
                .join(Investment, Investment.id == ProfitDistribution.investment_id)
                .where(
                    ProfitDistribution.deal_id == deal_id,
                    ProfitDistribution.profit_period == DistributionType.PARTIAL,
                    ProfitDistribution.status == LedgerStatus.COMPLETED,
                )
                .order_by(ProfitDistribution.distribution_date, ProfitDistribution.id)
            )
            result = await self.db.execute(stmt)
            return [
                PartialDistributionRecord(
                    investor_id=row.investor_id,
                    investor_name=row.name,
                    investor_email=row.email,
                    investment_id=row.investment_id,
                    investment_amount=row.investment_amount,
                    amount=row.amount,
                    distribution_date=row.distribution_date,
                )
                for row in result.all()
            ]

        return await self._guarded(_get_partials)

    async def get_ledger_entries(self, deal_id: UUID) -> List[LedgerEntryRecord]:
        """Every COMPLETED ledger row of a deal, oldest first."""

        async def _get_entries() -> List[LedgerEntryRecord]:
            stmt = (
                select(self.model)
                .where(
                    self.model.deal_id == deal_id,
                    self.model.status == LedgerStatus.COMPLETED,
                )
                .order_by(self.model.distribution_date, self.model.id)
            )
            result = await self.db.execute(stmt)
            return [
                LedgerEntryRecord(
                    request_id=row.request_id,
                    investor_id=row.investor_id,
                    profit_period=row.profit_period,
                    amount=row.amount,
                    capital_amount=row.capital_amount,
                    distribution_date=row.distribution_date,
                )
                for row in result.scalars().all()
            ]

        return await self._guarded(_get_entries)

    async def stage_payouts(
        self,
        ledger_rows: Sequence[ProfitDistribution],
        transactions: Sequence[Transaction],
        wallet_credits: Dict[UUID, Tuple[Decimal, Decimal]],
    ) -> None:
        """
        Add ledger rows and transactions and credit wallets, then flush.

        ``wallet_credits`` maps an investor id to ``(total, profit)``: the
        total is added to ``wallet_balance`` and the profit to
        ``total_returns``. Nothing is committed.
        """

        async def _stage() -> None:
            self.db.add_all(list(ledger_rows))
            self.db.add_all(list(transactions))
            for investor_id, (total, profit) in wallet_credits.items():
                await self.db.execute(
                    update(Investor)
                    .where(Investor.id == investor_id)
                    .values(
                        wallet_balance=Investor.wallet_balance + total,
                        total_returns=Investor.total_returns + profit,
                    )
                    .execution_options(synchronize_session=False)
                )
            await self.db.flush()

        await self._guarded(_stage)
