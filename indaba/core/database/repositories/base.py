"""
Shared repository plumbing.

Repositories bind an ``AsyncSession`` to one entity type and collect the
lookups that more than one router needs; writes stay in the routers, which
own their transactions.
"""

from __future__ import annotations

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

EntityType = TypeVar("EntityType", bound=SQLModel)


class AsyncBaseRepository(Generic[EntityType]):
    def __init__(self, session: AsyncSession, model: Type[EntityType]) -> None:
        self.session = session
        self.model = model

    async def get_by_id(self, entity_id: str) -> Optional[EntityType]:
        return await self.session.get(self.model, entity_id)


class QueryBuilder:
    """Statement helpers for the cursor-paginated listings (observations, messages, hours)."""

    @staticmethod
    def apply_cursor(stmt, model: Type[EntityType], cursor: Optional[str], order_field: str):
        """Continue a newest-first listing after the row whose id is ``cursor``.

        Rows sharing the anchor's ``order_field`` value are split by id, which
        the listings also sort on, so a page boundary never repeats or drops one.
        """
        if not cursor:
            return stmt
        column = getattr(model, order_field)
        anchor = select(column).where(model.id == cursor).scalar_subquery()
        return stmt.where((column < anchor) | ((column == anchor) & (model.id < cursor)))
