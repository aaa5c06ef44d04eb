"""
Feedback entity model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Feedback(Base, table=True):
    """Feedback a parent leaves about a nanny.

    Table: feedback
    """

    __tablename__ = "feedback"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    parent_id: str = Field(foreign_key="parent_profiles.id", index=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    child_id: Optional[str] = Field(default=None, foreign_key="children.id")
    type: str = Field(description="care, progress, communication, general")
    rating: int
    content: str
    status: str = Field(default="pending")
    follow_up: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
