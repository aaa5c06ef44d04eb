"""
Observation entity models.

Observations are notes or media items a nanny records about a child;
parents, nannies and admins can comment on them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class ObservationType(str, Enum):
    """Kind of content an observation holds."""

    TEXT = "TEXT"
    PHOTO = "PHOTO"
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    CHECKLIST = "CHECKLIST"
    RICHTEXT = "RICHTEXT"


MEDIA_TYPES = {ObservationType.PHOTO, ObservationType.VIDEO, ObservationType.AUDIO}
TEXT_TYPES = {ObservationType.TEXT, ObservationType.RICHTEXT}


class Observation(Base, table=True):
    """A logged observation about a child.

    Table: observations
    """

    __tablename__ = "observations"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    nanny_id: str = Field(foreign_key="users.id", index=True, description="User who recorded the observation")
    child_id: str = Field(foreign_key="children.id", index=True)
    type: ObservationType
    content: str = Field(default="")
    notes: Optional[str] = Field(default=None)
    media_url: Optional[str] = Field(default=None)
    checklist_items: Optional[str] = Field(default=None, description="JSON array of checklist items")
    ai_tags: Optional[str] = Field(default=None, description="JSON array of tags")
    is_permanent: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class ObservationComment(Base, table=True):
    """A comment on an observation.

    Table: observation_comments
    """

    __tablename__ = "observation_comments"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    observation_id: str = Field(foreign_key="observations.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    content: str

    created_at: datetime = Field(default_factory=utc_now)
