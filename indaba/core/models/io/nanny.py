"""
Nanny I/O models: profile, certifications, hours and shifts.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CrudOperation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class CertificationStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    PENDING = "Pending"


class ShiftAction(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"


class NannyProfileUpdate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    availability: Optional[str] = None
    profile_image_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    specialties: Optional[List[str]] = None
    years_of_experience: Optional[int] = Field(default=None, ge=0)
    languages: Optional[List[str]] = None
    display_name: Optional[str] = None
    pronouns: Optional[str] = None


class CertificationData(BaseModel):
    id: Optional[str] = Field(default=None, description="Required for UPDATE and DELETE")
    name: str = Field(min_length=1)
    issuing_authority: str = Field(min_length=1)
    date_issued: datetime
    expiry_date: datetime
    certificate_url: Optional[HttpUrl] = None
    status: CertificationStatus = CertificationStatus.ACTIVE


class CertificationRequest(BaseModel):
    operation: CrudOperation
    certification: CertificationData


class CertificationRead(BaseModel):
    id: str
    name: str
    issuing_authority: str
    date_issued: datetime
    expiry_date: datetime
    certificate_url: Optional[str] = None
    status: str
    is_expired: bool
    expires_in_days: int


class FamilyAccessRequest(BaseModel):
    family_id: str
    message: str = Field(min_length=10, max_length=500)


class HoursLogCreate(BaseModel):
    date: datetime
    start_time: str = Field(pattern=HHMM_PATTERN, examples=["08:30"])
    end_time: str = Field(pattern=HHMM_PATTERN, examples=["17:00"])
    break_minutes: int = Field(default=0, ge=0)
    family_id: Optional[str] = None
    notes: Optional[str] = None


class HoursLogUpdate(BaseModel):
    date: Optional[datetime] = None
    start_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=HHMM_PATTERN)
    break_minutes: Optional[int] = Field(default=None, ge=0)
    family_id: Optional[str] = None
    notes: Optional[str] = None


class HoursLogRead(BaseModel):
    id: str
    date: datetime
    start_time: str
    end_time: str
    duration_minutes: int
    break_minutes: int
    is_overtime: bool
    is_manual_entry: bool
    status: str
    notes: Optional[str] = None
    family_id: Optional[str] = None
    family_name: str


class HoursSummary(BaseModel):
    weekly_hours: float
    monthly_hours: float


class HoursLogPage(BaseModel):
    items: List[HoursLogRead]
    next_cursor: Optional[str] = None
    summary: HoursSummary


class ShiftStart(BaseModel):
    family_id: Optional[str] = None
    notes: Optional[str] = None


class ShiftPauseResume(BaseModel):
    action: ShiftAction


class ShiftEnd(BaseModel):
    notes: Optional[str] = None


class ScheduleItem(BaseModel):
    id: str
    type: str = Field(description="shift or routine")
    title: str
    description: Optional[str] = None
    date: str = Field(description="YYYY-MM-DD")
    time: str = Field(description="HH:MM")
    end_time: Optional[str] = None
    family_name: Optional[str] = None
    child_id: Optional[str] = None
    child_name: Optional[str] = None
    is_recurring: bool = False
