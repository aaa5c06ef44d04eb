"""
Offline sync log entity model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class SyncLog(Base, table=True):
    """One replayed offline operation and its outcome.

    Table: sync_logs
    """

    __tablename__ = "sync_logs"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    operation_type: str = Field(description="CREATE, UPDATE, DELETE")
    model_name: str
    record_id: str
    data: Optional[str] = Field(default=None, description="JSON payload as received")
    status: str = Field(default="Pending", description="Pending, Completed, Failed")
    error_message: Optional[str] = Field(default=None)
    synced_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, index=True)
