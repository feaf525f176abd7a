"""
Investment service: business logic for capital contributions.

A deal that is COMPLETED or CANCELLED accepts no new capital; every
accepted investment raises the deal's ``current_funding`` in the same
commit.

Caching:
    ``get_investments_by_deal`` reads through the TTL cache;
    ``create_investment`` invalidates ``investments:`` and ``deals:`` keys.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from sahem_invest.core.cache import cache, cache_key
from sahem_invest.core.exceptions import BusinessRuleViolation, NotFoundException
from sahem_invest.models.deal import DealStatus
from sahem_invest.models.investment import Investment
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.investment_repo import InvestmentRepository
from sahem_invest.repositories.investor_repo import InvestorRepository
from sahem_invest.schemas.investment import InvestmentCreate

logger = logging.getLogger(__name__)

CLOSED_DEAL_STATUSES = frozenset({DealStatus.COMPLETED, DealStatus.CANCELLED})


class InvestmentService:
    """
    Encapsulates CRUD + business rules for :class:`Investment`.

    Needs the deal and investor repositories because creating an
    investment validates both related entities.
    """

    CACHE_PREFIX = "investments:"

    def __init__(
        self,
        invest_repo: InvestmentRepository,
        deal_repo: DealRepository,
        investor_repo: InvestorRepository,
    ):
        self._invest_repo = invest_repo
        self._deal_repo = deal_repo
        self._investor_repo = investor_repo

    # ── Queries ──

    async def get_investments_by_deal(
        self, deal_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Investment]:
        """
        Investments of a deal, paginated (cache-backed).

        The deal is checked first so a missing deal is a 404, not an empty list.
        """
        deal = await self._deal_repo.get(deal_id)
        if not deal:
            raise NotFoundException("Deal", deal_id)

        return await cache.get_or_load(
            cache_key("investments", deal_id, skip, limit),
            lambda: self._invest_repo.get_by_deal(deal_id, skip=skip, limit=limit),
        )

    # ── Commands ──

    async def create_investment(
        self, deal_id: UUID, invest_in: InvestmentCreate
    ) -> Investment:
        """
        Record a capital contribution into a deal.

        1. The deal must exist (404).
        2. The deal must still accept capital (422 when COMPLETED or CANCELLED).
        3. The investor must exist (404).
        """
        deal = await self._deal_repo.get(deal_id)
        if not deal:
            raise NotFoundException("Deal", deal_id)

        if deal.status in CLOSED_DEAL_STATUSES:
            raise BusinessRuleViolation(
                f"Deal '{deal.title}' is {deal.status.value.lower()} and no longer accepts investments"
            )

        investor = await self._investor_repo.get(invest_in.investor_id)
        if not investor:
            raise NotFoundException("Investor", invest_in.investor_id)

        investment = Investment(
            deal_id=deal_id,
            investor_id=invest_in.investor_id,
            amount=invest_in.amount,
            investment_date=invest_in.investment_date,
        )
        try:
            created = await self._invest_repo.create_for_deal(investment, deal)
        except IntegrityError as exc:
            # Deal or investor removed between the checks and the insert.
            await self._invest_repo.rollback()
            logger.warning(
                "IntegrityError creating investment (deal=%s, investor=%s): %s",
                deal_id,
                invest_in.investor_id,
                exc,
            )
            raise BusinessRuleViolation(
                "Investment could not be created: a referenced deal or investor "
                "may have been removed, or a database constraint was violated."
            )
        cache.invalidate(self.CACHE_PREFIX, "deals:")
        logger.info(
            "Created investment %s: investor %s -> deal %s ($%s)",
            created.id,
            created.investor_id,
            created.deal_id,
            created.amount,
        )
        return created
