from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds a tenant session for use across multiple repositories.

    Services keep business rules and orchestration and own the transaction: they
    flush through repositories and commit once when the whole operation succeeded.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
