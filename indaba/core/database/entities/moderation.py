"""
Content moderation entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now

PRIORITY_RANK = {"Urgent": 0, "High": 1, "Medium": 2, "Low": 3}

SEVERITY_TO_PRIORITY = {"critical": "Urgent", "high": "High", "medium": "Medium", "low": "Low"}


class FlaggedContent(Base, table=True):
    """A piece of user content queued for moderator review.

    Table: flagged_content
    """

    __tablename__ = "flagged_content"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    content_type: str = Field(index=True, description="Message, Observation, ...")
    content_id: str
    content: Optional[str] = Field(default=None, description="Snapshot of the flagged text")
    reason: str
    status: str = Field(default="Pending", index=True, description="Pending, Reviewed, Resolved, Dismissed")
    priority: str = Field(default="Medium", description="Urgent, High, Medium, Low")
    reported_by: Optional[str] = Field(default=None, foreign_key="users.id")
    moderator_notes: Optional[str] = Field(default=None)
    moderated_by: Optional[str] = Field(default=None, foreign_key="users.id")
    moderated_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class KeywordFlag(Base, table=True):
    """A keyword that flags any message or observation containing it.

    Table: keyword_flags
    """

    __tablename__ = "keyword_flags"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    keyword: str = Field(unique=True, index=True)
    severity: str = Field(default="medium", description="low, medium, high, critical")
    is_active: bool = Field(default=True)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now)
