"""
Investor repository: data access for the ``investors`` table.

Extends generic CRUD with the email lookup used for duplicate detection.
"""

from typing import Optional

from sqlalchemy.future import select

from sahem_invest.models.investor import Investor
from sahem_invest.repositories.base import BaseRepository


class InvestorRepository(BaseRepository[Investor]):
    """Concrete repository for :class:`Investor` entities."""

    async def get_by_email(self, email: str) -> Optional[Investor]:
        """
        Look up an investor by email address.

        Returns ``None`` if no investor with the given email exists. Checked
        before the insert so the caller gets a friendlier error than the
        unique constraint would give.
        """

        async def _get_by_email() -> Optional[Investor]:
            stmt = select(self.model).where(self.model.email == email)
            result = await self.db.execute(stmt)
            return result.scalars().first()

        return await self._guarded(_get_by_email)
