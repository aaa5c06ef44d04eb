"""
Milestone entity models.

``Milestone`` is the standard catalogue, seeded at start-up. Parents can add
``CustomMilestone`` rows, either for one child or for all of their children.
``ChildMilestone`` records an achievement of exactly one standard or custom
milestone, at most once per child.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Milestone(Base, table=True):
    """A standard developmental milestone with its expected age window.

    Table: milestones
    """

    __tablename__ = "milestones"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str
    category: str = Field(index=True)
    age_range_start: int = Field(description="Expected start age in months")
    age_range_end: int = Field(description="Expected end age in months")

    created_at: datetime = Field(default_factory=utc_now)


class CustomMilestone(Base, table=True):
    """A parent-defined milestone.

    Table: custom_milestones
    """

    __tablename__ = "custom_milestones"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: str
    category: str
    child_id: Optional[str] = Field(default=None, foreign_key="children.id", index=True)
    created_by: str = Field(foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now)


class ChildMilestone(Base, table=True):
    """A milestone a child has achieved.

    Table: child_milestones
    """

    __tablename__ = "child_milestones"
    __table_args__ = (
        sa.UniqueConstraint("child_id", "milestone_id", name="uq_child_milestones_standard"),
        sa.UniqueConstraint("child_id", "custom_milestone_id", name="uq_child_milestones_custom"),
        sa.CheckConstraint(
            "(milestone_id IS NULL) <> (custom_milestone_id IS NULL)",
            name="ck_child_milestones_one_target",
        ),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    child_id: str = Field(foreign_key="children.id", index=True)
    milestone_id: Optional[str] = Field(default=None, foreign_key="milestones.id", index=True)
    custom_milestone_id: Optional[str] = Field(default=None, foreign_key="custom_milestones.id", index=True)
    achieved_date: datetime = Field(default_factory=utc_now)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
