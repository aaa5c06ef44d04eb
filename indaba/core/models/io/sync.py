"""
Offline sync I/O models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SyncOperationType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SyncOperationRequest(BaseModel):
    """One queued mutation replayed by an offline client."""

    operation_type: SyncOperationType
    model_name: str = Field(min_length=1, examples=["Observation", "Message"])
    record_id: str = Field(min_length=1, description="Primary key; CREATE uses it as the new row's id")
    data: Dict[str, Any] = Field(default_factory=dict)


class SyncOperationResponse(BaseModel):
    success: bool
    sync_log_id: str
    record: Optional[Dict[str, Any]] = None


class SyncLogRead(BaseModel):
    id: str
    operation_type: str
    model_name: str
    record_id: str
    status: str
    error_message: Optional[str] = None
    synced_at: Optional[datetime] = None
    created_at: datetime
