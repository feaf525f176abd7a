"""
Transaction repository: data access for the ``transactions`` table.

Transactions are only ever written by an approval (through
:meth:`ProfitDistributionRepository.stage_payouts`); this repository serves
the investor-facing reads.
"""

from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.future import select

from sahem_invest.core.money import money
from sahem_invest.models.transaction import Transaction, TransactionStatus, TransactionType
from sahem_invest.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Concrete repository for :class:`Transaction` entities."""

    async def get_for_investor(
        self,
        investor_id: UUID,
        type: Optional[TransactionType] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Transaction]:
        """An investor's transactions, newest first, optionally of one type."""

        async def _get_for_investor() -> List[Transaction]:
            stmt = select(self.model).where(self.model.investor_id == investor_id)
            if type is not None:
                stmt = stmt.where(self.model.type == type)
            stmt = stmt.order_by(self.model.created_at.desc(), self.model.id)
            return await self._fetch_page(stmt, skip, limit)

        return await self._guarded(_get_for_investor)

    async def totals_by_type(self, investor_id: UUID) -> Dict[TransactionType, Decimal]:
        """Sum of the investor's COMPLETED transactions per type (missing types are absent)."""

        async def _totals() -> Dict[TransactionType, Decimal]:
            stmt = (
                select(self.model.type, func.sum(self.model.amount))
                .where(
                    self.model.investor_id == investor_id,
                    self.model.status == TransactionStatus.COMPLETED,
                )
                .group_by(self.model.type)
            )
            result = await self.db.execute(stmt)
            return {TransactionType(kind): money(total) for kind, total in result.all()}

        return await self._guarded(_totals)
