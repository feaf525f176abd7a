"""
Deal service: business logic for deals.

Raises domain exceptions from ``sahem_invest.core.exceptions`` so the
service layer stays framework-agnostic.

Caching:
    ``get_all_deals`` and ``get_deal`` read through the TTL cache;
    ``create_deal`` invalidates every ``deals:`` key.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from sahem_invest.core.cache import cache, cache_key
from sahem_invest.core.exceptions import BusinessRuleViolation, NotFoundException
from sahem_invest.models.deal import Deal
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.schemas.deal import DealCreate

logger = logging.getLogger(__name__)


class DealService:
    """Encapsulates CRUD + business rules for :class:`Deal`."""

    CACHE_PREFIX = "deals:"

    def __init__(self, deal_repo: DealRepository):
        self._repo = deal_repo

    # ── Queries ──

    async def get_all_deals(self, skip: int = 0, limit: int = 100) -> List[Deal]:
        """Return a paginated list of deals (cache-backed)."""
        return await cache.get_or_load(
            cache_key("deals", "list", skip, limit),
            lambda: self._repo.get_all(skip=skip, limit=limit),
        )

    async def get_deal(self, deal_id: UUID) -> Deal:
        """
        Retrieve a single deal by ID (cache-backed).

        Raises :class:`NotFoundException` if the deal does not exist.
        """
        deal = await cache.get_or_load(cache_key("deals", deal_id), lambda: self._repo.get(deal_id))
        if not deal:
            raise NotFoundException("Deal", deal_id)
        return deal

    # ── Commands ──

    async def create_deal(self, deal_in: DealCreate) -> Deal:
        """Create a deal with no funding raised yet."""
        deal = Deal(**deal_in.model_dump())
        try:
            created = await self._repo.create(deal)
        except IntegrityError as exc:
            await self._repo.rollback()
            logger.warning("IntegrityError creating deal: %s", exc)
            raise BusinessRuleViolation(
                "Deal data violates a database constraint. Check all fields."
            )
        cache.invalidate(self.CACHE_PREFIX)
        logger.info("Created deal %s (%s)", created.id, created.title)
        return created
