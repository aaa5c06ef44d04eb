"""
Messaging I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    recipient_id: str
    content: str = Field(min_length=1)
    child_id: Optional[str] = None
    generate_summary: bool = False


class MessageSender(BaseModel):
    id: str
    name: str
    role: str
    profile_image_url: Optional[str] = None


class MessageRead(BaseModel):
    id: str
    content: str
    summary: Optional[str] = None
    child_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    sender: MessageSender
    is_from_user: bool


class MessagePage(BaseModel):
    items: List[MessageRead]
    next_cursor: Optional[str] = None


class LastMessage(BaseModel):
    id: str
    content: str
    created_at: datetime
    is_from_user: bool


class ConversationRead(BaseModel):
    user_id: str
    name: str
    role: str
    profile_image_url: Optional[str] = None
    last_message: LastMessage
    unread_count: int


class Recipient(BaseModel):
    id: str
    name: str
    email: str
    role: str
    profile_image_url: Optional[str] = None
