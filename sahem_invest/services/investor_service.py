"""
Investor service: investors and their wallets.

The ``get_by_email`` pre-check gives a friendly 409 in the common case;
two concurrent requests can still both pass it, so the unique constraint's
``IntegrityError`` is translated to the same 409.

Wallet figures only move when a distribution is approved. Approvals
invalidate every ``investors:`` key, so listings and wallet summaries are
served from the TTL cache in between.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from sahem_invest.core.cache import cache, cache_key
from sahem_invest.core.exceptions import ConflictException, NotFoundException
from sahem_invest.core.money import ZERO
from sahem_invest.models.investor import Investor
from sahem_invest.models.transaction import Transaction, TransactionType
from sahem_invest.repositories.investor_repo import InvestorRepository
from sahem_invest.repositories.transaction_repo import TransactionRepository
from sahem_invest.schemas.investor import InvestorCreate, InvestorWallet

logger = logging.getLogger(__name__)


class InvestorService:
    CACHE_PREFIX = "investors:"

    def __init__(self, investor_repo: InvestorRepository, transaction_repo: TransactionRepository):
        self._repo = investor_repo
        self._transaction_repo = transaction_repo

    # ── Queries ──

    async def get_all_investors(self, skip: int = 0, limit: int = 100) -> List[Investor]:
        return await cache.get_or_load(
            cache_key("investors", "list", skip, limit),
            lambda: self._repo.get_all(skip=skip, limit=limit),
        )

    async def get_investor(self, investor_id: UUID, fresh: bool = False) -> Investor:
        investor = await self._repo.get(investor_id, fresh=fresh)
        if not investor:
            raise NotFoundException("Investor", investor_id)
        return investor

    async def get_wallet(self, investor_id: UUID) -> InvestorWallet:
        """Running wallet totals next to what the transactions add up to."""

        async def _load() -> InvestorWallet:
            investor = await self.get_investor(investor_id, fresh=True)
            totals = await self._transaction_repo.totals_by_type(investor_id)
            profit_paid = totals.get(TransactionType.RETURN, ZERO)
            capital_returned = totals.get(TransactionType.CAPITAL_RETURN, ZERO)
            reconciled = (
                investor.wallet_balance == profit_paid + capital_returned
                and investor.total_returns == profit_paid
            )
            if not reconciled:
                logger.warning(
                    "Wallet of investor %s does not match its transactions "
                    "(balance %s, transactions %s)",
                    investor_id,
                    investor.wallet_balance,
                    profit_paid + capital_returned,
                )
            return InvestorWallet(
                investor_id=investor.id,
                name=investor.name,
                wallet_balance=investor.wallet_balance,
                total_returns=investor.total_returns,
                profit_paid=profit_paid,
                capital_returned=capital_returned,
                reconciled=reconciled,
            )

        return await cache.get_or_load(cache_key("investors", investor_id, "wallet"), _load)

    async def get_transactions(
        self,
        investor_id: UUID,
        type: Optional[TransactionType] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Transaction]:
        """Payout history of an investor, newest first. 404 for an unknown investor."""
        await self.get_investor(investor_id)
        return await self._transaction_repo.get_for_investor(
            investor_id, type=type, skip=skip, limit=limit
        )

    # ── Commands ──

    async def create_investor(self, investor_in: InvestorCreate) -> Investor:
        """
        Create a new investor with an empty wallet.

        Raises :class:`ConflictException` if the email is already taken.
        """
        existing = await self._repo.get_by_email(str(investor_in.email))
        if existing:
            raise ConflictException(f"An investor with email '{investor_in.email}' already exists")

        investor = Investor(**investor_in.model_dump())
        try:
            created = await self._repo.create(investor)
        except IntegrityError:
            await self._repo.rollback()
            logger.warning(
                "IntegrityError caught for duplicate email '%s' (concurrent insert)",
                investor_in.email,
            )
            raise ConflictException(f"An investor with email '{investor_in.email}' already exists")

        cache.invalidate(self.CACHE_PREFIX)
        logger.info("Created investor %s (%s)", created.id, created.name)
        return created
