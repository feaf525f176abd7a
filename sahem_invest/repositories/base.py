"""
Generic async repository (data access layer).

Concrete repositories inherit from ``BaseRepository[T]`` and add the
entity-specific queries the services need. Each query is written as a local
coroutine and run through :meth:`BaseRepository._guarded`, which hands it to
the database circuit breaker.

Error policy:

- ``IntegrityError`` propagates; each service maps it to its own domain
  error (duplicate email, vanished deal, second PROCESSING request).
- ``OperationalError`` during a commit rolls the session back before it is
  re-raised, so the next call on the same session starts clean.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select
from sqlmodel import SQLModel

from sahem_invest.core.resilience import db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
T = TypeVar("T")


class BaseRepository(Generic[ModelType]):
    """
    CRUD plus the shared query helpers for one SQLModel table.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        The request-scoped session. Repositories built for the same request
        share it, so their writes land in one transaction.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ── Helpers for subclasses ──

    async def _guarded(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        return await db_circuit_breaker.call(func, *args, **kwargs)

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except OperationalError:
            await self.db.rollback()
            logger.error("OperationalError during %s on %s", action, self.model.__tablename__)
            raise

    async def _fetch_page(self, stmt: Select, skip: int, limit: int) -> List[ModelType]:
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _update_where(self, *conditions: Any, values: Dict[str, Any]) -> bool:
        """
        ``UPDATE ... SET values WHERE conditions`` without a prior read.

        Returns True only when exactly one row matched. The identity map is
        not synchronized; reload with ``populate_existing`` afterwards.
        """
        stmt = (
            update(self.model)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    # ── CRUD ──

    async def get(self, id: Any, fresh: bool = False) -> Optional[ModelType]:
        """
        Entity by primary key, or ``None``.

        ``fresh=True`` re-reads the row even if the session already holds it.
        """

        async def _get() -> Optional[ModelType]:
            return await self.db.get(self.model, id, populate_existing=fresh)

        return await self._guarded(_get)

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[ModelType]:
        """A page of entities in primary-key order."""

        async def _get_all() -> List[ModelType]:
            pk_columns = self.model.__table__.primary_key.columns
            return await self._fetch_page(select(self.model).order_by(*pk_columns), skip, limit)

        return await self._guarded(_get_all)

    async def create(self, obj_in: ModelType) -> ModelType:
        """Insert, commit and return the refreshed instance."""

        async def _create() -> ModelType:
            self.db.add(obj_in)
            await self._commit(f"insert into {self.model.__tablename__}")
            await self.db.refresh(obj_in)
            return obj_in

        return await self._guarded(_create)

    async def rollback(self) -> None:
        """Discard whatever the shared session has pending."""
        await self.db.rollback()
