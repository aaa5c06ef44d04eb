"""
Administration entity models: scheduled reports and system settings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class ReportSchedule(Base, table=True):
    """A recurring report.

    ``format`` and ``recipients`` are JSON arrays stored as text.

    Table: report_schedules
    """

    __tablename__ = "report_schedules"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    description: Optional[str] = Field(default=None)
    report_type: str
    frequency: str
    format: str = Field(default="[]")
    recipients: str = Field(default="[]")
    filters: Optional[str] = Field(default=None)
    next_run_date: datetime
    created_by: str = Field(foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class SystemSettings(Base, table=True):
    """One section of the system settings, stored as a JSON document.

    Table: system_settings
    """

    __tablename__ = "system_settings"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    section: str = Field(unique=True, index=True, description="general, security, notifications, sync, ai")
    value: str
    updated_by: Optional[str] = Field(default=None, foreign_key="users.id")

    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
