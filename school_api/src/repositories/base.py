from __future__ import annotations

from typing import Any, Iterable, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      Tenant repositories receive a session already bound to the school's own
      database, so queries need no tenant filter. Write helpers only flush;
      the caller (route or service) decides when to commit so multi-step
      operations stay in one transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def get(self, model: Type[T], entity_id: UUID) -> Optional[T]:
        """Load an entity by primary key."""
        return await self.session.get(model, entity_id)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        """Flush pending changes so generated keys and constraints are applied."""
        await self.session.flush()

    async def refresh(self, entity: Any) -> None:
        """Reload server-generated columns of an entity."""
        await self.session.refresh(entity)

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        """Mark an entity for deletion."""
        await self.session.delete(entity)
