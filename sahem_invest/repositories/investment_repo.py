"""
Investment repository: data access for the ``investments`` table.

Besides the paginated per-deal listing it produces the
:class:`InvestmentRecord` rows the distribution engine prorates over.
"""

from typing import List
from uuid import UUID

from sqlalchemy.future import select

from sahem_invest.models.deal import Deal
from sahem_invest.models.investment import Investment
from sahem_invest.models.investor import Investor
from sahem_invest.repositories.base import BaseRepository
from sahem_invest.schemas.distribution import InvestmentRecord


class InvestmentRepository(BaseRepository[Investment]):
    """Concrete repository for :class:`Investment` entities."""

    async def get_by_deal(
        self, deal_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Investment]:
        """
        Investments linked to a deal, most recent first.

        Served by ``ix_investments_deal_date``.
        """

        async def _get_by_deal() -> List[Investment]:
            stmt = (
                select(self.model)
                .where(self.model.deal_id == deal_id)
                .order_by(self.model.investment_date.desc(), self.model.id)
            )
            return await self._fetch_page(stmt, skip, limit)

        return await self._guarded(_get_by_deal)

    async def get_records_for_deal(self, deal_id: UUID) -> List[InvestmentRecord]:
        """Every investment of the deal joined with its investor's name and email."""

        async def _get_records() -> List[InvestmentRecord]:
            stmt = (
                select(
                    Investment.id,
                    Investment.investor_id,
                    Investment.amount,
                    Investor.name,
                    Investor.email,
                )
                .join(Investor, Investor.id == Investment.investor_id)
                .where(Investment.deal_id == deal_id)
                .order_by(Investment.investment_date, Investment.id)
            )
            result = await self.db.execute(stmt)
            return [
                InvestmentRecord(
                    investment_id=row.id,
                    investor_id=row.investor_id,
                    amount=row.amount,
                    investor_name=row.name,
                    investor_email=row.email,
                )
                for row in result.all()
            ]

        return await self._guarded(_get_records)

    async def create_for_deal(self, investment: Investment, deal: Deal) -> Investment:
        """Insert the investment and raise the deal's ``current_funding`` in one commit."""

        async def _create_for_deal() -> Investment:
            deal.current_funding = deal.current_funding + investment.amount
            self.db.add_all([investment, deal])
            await self._commit("investment insert")
            await self.db.refresh(investment)
            return investment

        return await self._guarded(_create_for_deal)
