"""
Family repository.

Family lookups and the assignment checks that decide which children a
nanny or parent may see.
"""

from __future__ import annotations

from typing import List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.families import ACTIVE_ASSIGNMENT, Child, Family, FamilyNanny
from .base import AsyncBaseRepository


class FamilyRepository(AsyncBaseRepository[Family]):
    """Repository for families, children and nanny assignments."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Family)

    async def get_for_parent(self, parent_id: str) -> Optional[Family]:
        result = await self.session.execute(select(Family).where(Family.parent_id == parent_id))
        return result.scalars().first()

    async def get_child(self, child_id: str) -> Optional[Child]:
        return await self.session.get(Child, child_id)

    async def children_for_parent(self, parent_id: str, include_archived: bool = True) -> List[Child]:
        stmt = select(Child).where(Child.parent_id == parent_id)
        if not include_archived:
            stmt = stmt.where(Child.is_archived == False)  # noqa: E712
        result = await self.session.execute(stmt.order_by(Child.first_name))
        return list(result.scalars().all())

    async def active_family_ids(self, nanny_id: str) -> Set[str]:
        """Ids of the families a nanny is actively assigned to."""
        stmt = select(FamilyNanny.family_id).where(
            FamilyNanny.nanny_id == nanny_id, FamilyNanny.status == ACTIVE_ASSIGNMENT
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_assignment(self, nanny_id: str, family_id: str) -> Optional[FamilyNanny]:
        stmt = select(FamilyNanny).where(FamilyNanny.nanny_id == nanny_id, FamilyNanny.family_id == family_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def is_nanny_assigned(self, nanny_id: str, family_id: Optional[str]) -> bool:
        if not family_id:
            return False
        assignment = await self.get_assignment(nanny_id, family_id)
        return assignment is not None and assignment.status == ACTIVE_ASSIGNMENT

    async def children_for_nanny(self, nanny_id: str) -> List[Child]:
        """Children of every family the nanny is actively assigned to."""
        family_ids = await self.active_family_ids(nanny_id)
        if not family_ids:
            return []
        stmt = select(Child).where(Child.family_id.in_(family_ids)).order_by(Child.first_name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
