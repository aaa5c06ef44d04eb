"""
Resource library entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Resource(Base, table=True):
    """An article, video or document in the resource library.

    Table: resources
    """

    __tablename__ = "resources"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    description: str
    content_url: str
    resource_type: str = Field(index=True)
    visible_to: str = Field(default="[]", description="JSON array of role names")
    developmental_stage: Optional[str] = Field(default=None)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class ContentTag(Base, table=True):
    """A tag used to categorize resources.

    Table: content_tags
    """

    __tablename__ = "content_tags"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(unique=True, index=True)
    category: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)


class ResourceTag(Base, table=True):
    """Link between a resource and a content tag.

    Table: resource_tags
    """

    __tablename__ = "resource_tags"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    resource_id: str = Field(foreign_key="resources.id", index=True)
    tag_id: str = Field(foreign_key="content_tags.id", index=True)
