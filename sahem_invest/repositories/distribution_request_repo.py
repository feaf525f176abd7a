"""
Distribution request repository: data access for ``distribution_requests``.

Status changes are compare-and-set ``UPDATE`` statements: a row only moves
from the status the caller expects, so two admins acting on the same
request cannot both win. Claiming a request for processing additionally
requires that no other request of the same deal is PROCESSING; the partial
unique index ``uq_distribution_requests_deal_processing`` backs this up
when two claims race.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import exists, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from sahem_invest.models.distribution_request import (
    DistributionRequestStatus,
    ProfitDistributionRequest,
)
from sahem_invest.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class DistributionRequestRepository(BaseRepository[ProfitDistributionRequest]):
    """Concrete repository for :class:`ProfitDistributionRequest` entities."""

    async def list_requests(
        self,
        status: Optional[DistributionRequestStatus] = None,
        deal_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProfitDistributionRequest]:
        """Requests matching the optional filters, newest first."""

        async def _list() -> List[ProfitDistributionRequest]:
            stmt = select(self.model)
            if status is not None:
                stmt = stmt.where(self.model.status == status)
            if deal_id is not None:
                stmt = stmt.where(self.model.deal_id == deal_id)
            stmt = stmt.order_by(self.model.requested_at.desc(), self.model.id)
            return await self._fetch_page(stmt, skip, limit)

        return await self._guarded(_list)

    async def transition_status(
        self,
        request_id: UUID,
        expected: DistributionRequestStatus,
        new: DistributionRequestStatus,
        values: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> Optional[ProfitDistributionRequest]:
        """
        Move a request from ``expected`` to ``new`` and apply ``values``.

        Returns the refreshed request, or ``None`` when it was not in
        ``expected`` status. With ``commit=False`` the change joins whatever
        the session already has pending.
        """
        return await self._guarded(self._move, request_id, expected, new, values, commit)

    async def _move(
        self,
        request_id: UUID,
        expected: DistributionRequestStatus,
        new: DistributionRequestStatus,
        values: Optional[Dict[str, Any]],
        commit: bool,
    ) -> Optional[ProfitDistributionRequest]:
        moved = await self._update_where(
            self.model.id == request_id,
            self.model.status == expected,
            values={"status": new, **(values or {})},
        )
        if not moved:
            return None
        if commit:
            await self._commit(f"{expected.value} -> {new.value}")
        return await self.db.get(self.model, request_id, populate_existing=True)

    async def claim_for_processing(self, request_id: UUID, deal_id: UUID) -> bool:
        """
        Move a PENDING request to PROCESSING and commit.

        Fails (returns ``False``) when the request is no longer PENDING or
        another request of the same deal is already PROCESSING.
        """

        async def _claim() -> bool:
            other = aliased(self.model)
            try:
                claimed = await self._update_where(
                    self.model.id == request_id,
                    self.model.status == DistributionRequestStatus.PENDING,
                    ~exists().where(
                        other.deal_id == deal_id,
                        other.status == DistributionRequestStatus.PROCESSING,
                    ),
                    values={"status": DistributionRequestStatus.PROCESSING},
                )
                if not claimed:
                    await self.db.rollback()
                    return False
                await self._commit("claim")
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    "Lost the race to process deal %s (request %s)", deal_id, request_id
                )
                return False
            return True

        return await self._guarded(_claim)

    async def release(self, request_id: UUID) -> bool:
        """
        Put a PROCESSING request back to PENDING after a failed approval.

        Runs outside the circuit breaker: the failure being cleaned up may be
        the one that just opened it. Never raises, so the caller's original
        error is the one that propagates. Returns whether the request moved.
        """
        try:
            released = await self._move(
                request_id,
                DistributionRequestStatus.PROCESSING,
                DistributionRequestStatus.PENDING,
                None,
                True,
            )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Could not release request %s back to PENDING: %s", request_id, exc)
            return False
        if released is None:
            logger.warning("Request %s was not PROCESSING when released", request_id)
            return False
        return True

    async def count_by_status(self) -> Dict[str, int]:
        """Number of requests per status; statuses with no requests report 0."""

        async def _count() -> Dict[str, int]:
            stmt = select(self.model.status, func.count()).group_by(self.model.status)
            result = await self.db.execute(stmt)
            counts = {status.value: 0 for status in DistributionRequestStatus}
            for status, count in result.all():
                counts[DistributionRequestStatus(status).value] = count
            return counts

        return await self._guarded(_count)
