"""
Observation I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from indaba.core.database.entities.observations import ObservationType


class ChecklistItem(BaseModel):
    text: str
    checked: bool = False


class ObservationCreate(BaseModel):
    """Schema for recording an observation."""

    child_id: str
    type: ObservationType
    content: str = Field(default="", description="Text content; for media types usually a caption")
    notes: Optional[str] = None
    is_permanent: bool = True
    media_url: Optional[str] = Field(default=None, description="URL of stored media for PHOTO, VIDEO and AUDIO")
    checklist_items: Optional[List[ChecklistItem]] = None


class ObservationUpdate(BaseModel):
    """Schema for editing an observation; unset fields are left alone."""

    child_id: Optional[str] = None
    type: Optional[ObservationType] = None
    content: Optional[str] = None
    notes: Optional[str] = Field(default=None, description="Explicit null clears the notes")
    media_url: Optional[str] = None
    checklist_items: Optional[List[ChecklistItem]] = None
    is_permanent: Optional[bool] = None


class ObservationRead(BaseModel):
    id: str
    nanny_id: str
    child_id: str
    child_name: Optional[str] = None
    type: ObservationType
    content: str
    notes: Optional[str] = None
    media_url: Optional[str] = None
    ai_tags: List[str] = Field(default_factory=list)
    is_permanent: bool
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime


class ObservationPage(BaseModel):
    items: List[ObservationRead]
    next_cursor: Optional[str] = None


class RecentObservation(BaseModel):
    id: str
    content: str
    created_at: datetime
    child_name: str


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentRead(BaseModel):
    id: str
    content: str
    user_id: str
    user_name: str
    user_role: str
    created_at: datetime


class ObservationDetail(BaseModel):
    """An observation with type-specific fields and comments."""

    id: str
    nanny_id: str
    nanny_name: str
    child_id: str
    child_name: str
    type: ObservationType
    content: Optional[str] = None
    notes: Optional[str] = None
    media_url: Optional[str] = None
    checklist_items: Optional[List[ChecklistItem]] = None
    ai_tags: List[str] = Field(default_factory=list)
    is_permanent: bool
    comments: List[CommentRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AssignedChild(BaseModel):
    id: str
    first_name: str
    last_name: str
    birth_date: datetime
    family_id: Optional[str] = None
    parent_first_name: Optional[str] = None
    parent_last_name: Optional[str] = None
    address: Optional[str] = None
