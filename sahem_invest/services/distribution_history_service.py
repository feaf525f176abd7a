"""
Distribution history service: a deal's past payouts.

The partial rollup is what every FINAL review recomputes the investor table
from, and the review screen asks for it on every edit, so both views are
cached under ``history:<deal_id>``. Approvals invalidate that prefix.
"""

from typing import List
from uuid import UUID

from sahem_invest.core.cache import cache, cache_key
from sahem_invest.core.exceptions import NotFoundException
from sahem_invest.distribution import fetch_historical_partials, summarize_distribution_history
from sahem_invest.repositories.deal_repo import DealRepository
from sahem_invest.repositories.profit_distribution_repo import ProfitDistributionRepository
from sahem_invest.schemas.distribution import DistributionHistoryItem, HistoricalPartials


class DistributionHistoryService:
    def __init__(self, ledger_repo: ProfitDistributionRepository, deal_repo: DealRepository):
        self._ledger_repo = ledger_repo
        self._deal_repo = deal_repo

    @staticmethod
    def invalidate(deal_id: UUID) -> None:
        cache.invalidate(cache_key("history", deal_id))

    async def _require_deal(self, deal_id: UUID) -> None:
        if not await self._deal_repo.get(deal_id):
            raise NotFoundException("Deal", deal_id)

    async def get_historical_partials(self, deal_id: UUID) -> HistoricalPartials:
        """Rollup of the deal's COMPLETED partial payouts (cache-backed)."""
        return await cache.get_or_load(
            cache_key("history", deal_id, "partials"),
            lambda: fetch_historical_partials(deal_id, self._ledger_repo),
        )

    async def get_partial_history(self, deal_id: UUID) -> HistoricalPartials:
        """Like :meth:`get_historical_partials` but 404s for an unknown deal."""
        await self._require_deal(deal_id)
        return await self.get_historical_partials(deal_id)

    async def get_distribution_history(self, deal_id: UUID) -> List[DistributionHistoryItem]:
        """One item per approved distribution of the deal, newest first."""
        await self._require_deal(deal_id)

        async def _load() -> List[DistributionHistoryItem]:
            return summarize_distribution_history(await self._ledger_repo.get_ledger_entries(deal_id))

        return await cache.get_or_load(cache_key("history", deal_id, "events"), _load)
