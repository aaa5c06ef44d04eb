"""
Role-based access rules for children and families.

A parent sees the children they own. A nanny sees the children of families
they are actively assigned to. An admin sees everything.
"""

from __future__ import annotations

from typing import Optional, Set

from sqlmodel import select

from indaba.core.database.entities.families import Child
from indaba.core.database.entities.users import NannyProfile, ParentProfile, UserRole
from indaba.core.database.repositories import SqlRepoBundle
from indaba.core.errors import ForbiddenError, NotFoundError
from indaba.core.logging_config import get_logger

from .deps import CurrentUser

logger = get_logger(__name__)


async def require_nanny_profile(current: CurrentUser, repos: SqlRepoBundle) -> NannyProfile:
    profile = await repos.users.get_nanny_profile(current.id)
    if profile is None:
        raise NotFoundError("Nanny profile not found")
    return profile


async def require_parent_profile(current: CurrentUser, repos: SqlRepoBundle) -> ParentProfile:
    profile = await repos.users.get_parent_profile(current.id)
    if profile is None:
        raise NotFoundError("Parent profile not found")
    return profile


async def get_child_or_404(repos: SqlRepoBundle, child_id: str) -> Child:
    child = await repos.families.get_child(child_id)
    if child is None:
        raise NotFoundError("Child not found")
    return child


async def can_view_child(current: CurrentUser, child: Child, repos: SqlRepoBundle) -> bool:
    if current.role == UserRole.ADMIN:
        return True
    if current.role == UserRole.PARENT:
        parent = await repos.users.get_parent_profile(current.id)
        return parent is not None and child.parent_id == parent.id
    nanny = await repos.users.get_nanny_profile(current.id)
    return nanny is not None and await repos.families.is_nanny_assigned(nanny.id, child.family_id)


async def ensure_can_view_child(current: CurrentUser, child: Child, repos: SqlRepoBundle) -> None:
    if not await can_view_child(current, child, repos):
        logger.warning(f"User {current.id} ({current.role.value}) denied access to child {child.id}")
        raise ForbiddenError()


async def ensure_parent_owns_child(current: CurrentUser, child: Child, repos: SqlRepoBundle) -> ParentProfile:
    parent = await require_parent_profile(current, repos)
    if child.parent_id != parent.id:
        raise ForbiddenError()
    return parent


async def visible_child_ids(current: CurrentUser, repos: SqlRepoBundle) -> Optional[Set[str]]:
    """Ids of the children the caller may see, or ``None`` for no restriction."""
    if current.role == UserRole.ADMIN:
        return None
    if current.role == UserRole.PARENT:
        parent = await repos.users.get_parent_profile(current.id)
        if parent is None:
            return set()
        result = await repos.families.session.execute(select(Child.id).where(Child.parent_id == parent.id))
        return set(result.scalars().all())
    nanny = await repos.users.get_nanny_profile(current.id)
    if nanny is None:
        return set()
    return {child.id for child in await repos.families.children_for_nanny(nanny.id)}
