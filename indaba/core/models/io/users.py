"""
User settings I/O models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProfileVisibility(str, Enum):
    PUBLIC = "public"
    CONNECTED = "connected"
    ADMIN = "admin"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


class NotificationSettingsBody(BaseModel):
    """All notification switches of a user."""

    in_app_messages: bool = True
    in_app_approvals: bool = True
    in_app_emergencies: bool = True
    in_app_reminders: bool = True

    email_messages: bool = False
    email_approvals: bool = True
    email_emergencies: bool = True
    email_reminders: bool = False

    sms_messages: bool = False
    sms_approvals: bool = False
    sms_emergencies: bool = True
    sms_reminders: bool = False

    model_config = ConfigDict(from_attributes=True)


class PrivacySettingsUpdate(BaseModel):
    profile_visibility: ProfileVisibility = ProfileVisibility.CONNECTED
    marketing_opt_in: bool = False


class SyncSettingsUpdate(BaseModel):
    media_cache_size: int = Field(default=100, ge=50, le=1000, description="Media cache size in MB")
    auto_purge_policy: int = Field(default=14, ge=1, le=90, description="Days before cached media is purged")
    sync_on_wifi_only: bool = False


class ExportRequest(BaseModel):
    format: ExportFormat = ExportFormat.JSON


class ExportResponse(BaseModel):
    success: bool
    message: str
    data: Any


class DeleteAccountRequest(BaseModel):
    password: str = Field(min_length=1)
    reason: Optional[str] = None
