"""
Milestone achievement rules shared by the parent API and offline sync.

An achievement points at exactly one standard or custom milestone, and a
child achieves each milestone at most once. A child's custom milestones are
the ones created for that child plus the family-wide ones its parent created.
"""

from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from indaba.core.database.entities.families import Child
from indaba.core.database.entities.milestones import ChildMilestone, CustomMilestone, Milestone
from indaba.core.database.entities.users import ParentProfile
from indaba.core.errors import BadRequestError, NotFoundError


def custom_milestones_of(child: Child):
    """Filter selecting the custom milestones that apply to ``child``."""
    owner = select(ParentProfile.user_id).where(ParentProfile.id == child.parent_id).scalar_subquery()
    return or_(
        CustomMilestone.child_id == child.id,
        and_(CustomMilestone.child_id == None, CustomMilestone.created_by == owner),  # noqa: E711
    )


async def resolve_achievement_target(
    session: AsyncSession,
    child: Child,
    milestone_id: Optional[str],
    custom_milestone_id: Optional[str],
) -> Tuple[Optional[Milestone], Optional[CustomMilestone]]:
    """Look up the milestone an achievement refers to.

    Raises:
        BadRequestError: If not exactly one id is given, or it is already achieved
        NotFoundError: If the milestone does not exist or does not apply to the child
    """
    if bool(milestone_id) == bool(custom_milestone_id):
        raise BadRequestError("Provide exactly one of milestone_id or custom_milestone_id")

    if milestone_id:
        milestone = await session.get(Milestone, milestone_id)
        if milestone is None:
            raise NotFoundError("Milestone not found")
        already = ChildMilestone.milestone_id == milestone.id
        custom = None
    else:
        found = await session.execute(
            select(CustomMilestone).where(CustomMilestone.id == custom_milestone_id, custom_milestones_of(child))
        )
        custom = found.scalars().first()
        if custom is None:
            raise NotFoundError("Custom milestone not found")
        already = ChildMilestone.custom_milestone_id == custom.id
        milestone = None

    existing = await session.execute(select(ChildMilestone.id).where(ChildMilestone.child_id == child.id, already))
    if existing.first() is not None:
        raise BadRequestError("This milestone has already been achieved")
    return milestone, custom
