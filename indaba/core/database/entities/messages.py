"""
Message entity model.

Direct messages between two users, optionally about a child.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Message(Base, table=True):
    """A direct message.

    Table: messages
    """

    __tablename__ = "messages"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    sender_id: str = Field(foreign_key="users.id", index=True)
    recipient_id: str = Field(foreign_key="users.id", index=True)
    child_id: Optional[str] = Field(default=None, foreign_key="children.id")
    content: str
    summary: Optional[str] = Field(default=None)
    is_read: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utc_now, index=True)

    def __repr__(self) -> str:
        return f"Message(id={self.id}, sender={self.sender_id}, recipient={self.recipient_id})"
