"""
Nanny work entity models.

Certifications, logged hours (with their audit trail), the live shift timer
and the routines that make up a nanny's schedule.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Certification(Base, table=True):
    """A professional certification held by a nanny.

    Table: certifications
    """

    __tablename__ = "certifications"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    name: str
    issuing_authority: str
    date_issued: datetime
    expiry_date: datetime
    certificate_url: Optional[str] = Field(default=None)
    status: str = Field(default="Active", description="Active, Expired, Pending")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class HoursLog(Base, table=True):
    """A block of worked time.

    ``start_time`` and ``end_time`` are ``HH:MM`` wall-clock strings on
    ``date``; a shift that ends before it starts crosses midnight.

    Table: hours_logs
    """

    __tablename__ = "hours_logs"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    family_id: Optional[str] = Field(default=None, foreign_key="families.id")
    date: datetime = Field(index=True)
    start_time: str
    end_time: str
    duration_minutes: int
    break_minutes: int = Field(default=0)
    is_overtime: bool = Field(default=False)
    is_manual_entry: bool = Field(default=True)
    status: str = Field(default="PENDING", description="PENDING, APPROVED, REJECTED")
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class HoursLogAudit(Base, table=True):
    """Change history of an hours log.

    The log id is kept as plain text so audit rows survive deletion.

    Table: hours_log_audits
    """

    __tablename__ = "hours_log_audits"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    hours_log_id: str = Field(index=True)
    user_id: str = Field(foreign_key="users.id")
    action: str = Field(description="UPDATE, DELETE")
    previous_data: Optional[str] = Field(default=None, description="JSON snapshot before the change")

    created_at: datetime = Field(default_factory=utc_now, index=True)


class ActiveShift(Base, table=True):
    """A running shift timer; at most one per nanny.

    Table: active_shifts
    """

    __tablename__ = "active_shifts"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", unique=True, index=True)
    family_id: Optional[str] = Field(default=None, foreign_key="families.id")
    start_time: datetime = Field(default_factory=utc_now)
    break_minutes: int = Field(default=0)
    is_paused: bool = Field(default=False)
    pause_start_time: Optional[datetime] = Field(default=None)
    notes: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)


class Routine(Base, table=True):
    """A scheduled activity, either on one date or every week on one weekday.

    ``recurring_day`` is a lowercase English weekday name.

    Table: routines
    """

    __tablename__ = "routines"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    child_id: Optional[str] = Field(default=None, foreign_key="children.id")
    title: str
    description: Optional[str] = Field(default=None)
    date: Optional[datetime] = Field(default=None)
    time: str = Field(default="09:00")
    is_recurring: bool = Field(default=False)
    recurring_day: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
