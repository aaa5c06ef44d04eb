"""
Administration I/O models.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl

from indaba.core.database.entities.users import UserRole


class FlagPriority(str, Enum):
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FlagStatus(str, Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    RESOLVED = "Resolved"
    DISMISSED = "Dismissed"


class KeywordSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportType(str, Enum):
    NANNY_PERFORMANCE = "nannyPerformance"
    CHILD_MILESTONES = "childMilestones"
    OBSERVATIONS = "observations"
    USER_GROWTH = "userGrowth"


class DateRange(str, Enum):
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"
    NINETY_DAYS = "90days"
    YEAR = "year"
    CUSTOM = "custom"


class ConnectionChannel(str, Enum):
    AI = "ai"
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class AdminUserUpsert(BaseModel):
    """Create a user (no ``id``) or update an existing one."""

    id: Optional[str] = None
    email: EmailStr
    password: Optional[str] = Field(default=None, min_length=8)
    role: UserRole
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    display_name: Optional[str] = None


class FlagUpdate(BaseModel):
    status: Optional[FlagStatus] = None
    priority: Optional[FlagPriority] = None
    moderator_notes: Optional[str] = None


class KeywordFlagCreate(BaseModel):
    keyword: str = Field(min_length=1)
    severity: KeywordSeverity = KeywordSeverity.MEDIUM


class ResourceCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    content_url: HttpUrl
    resource_type: str = Field(min_length=1)
    visible_to: List[UserRole]
    developmental_stage: Optional[str] = None
    tags: Optional[List[str]] = Field(default=None, description="ContentTag ids")


class ResourceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    content_url: Optional[HttpUrl] = None
    resource_type: Optional[str] = None
    visible_to: Optional[List[UserRole]] = None
    developmental_stage: Optional[str] = None
    tags: Optional[List[str]] = Field(default=None, description="Replaces the tag links when given")


class ContentTagCreate(BaseModel):
    name: str = Field(min_length=1)
    category: Optional[str] = None


class AgencyCreate(BaseModel):
    name: str = Field(min_length=1)
    contact_person: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    emergency_protocols: Optional[str] = None


class AgencyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact_person: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    emergency_protocols: Optional[str] = None


class AgencyAssignmentCreate(BaseModel):
    nanny_id: str = Field(description="Nanny profile id")
    role: Optional[str] = None
    status: str = "Active"
    pay_rate: Optional[float] = Field(default=None, ge=0)
    payment_schedule: Optional[str] = None


class AgencyAssignmentUpdate(BaseModel):
    role: Optional[str] = None
    status: Optional[str] = None
    pay_rate: Optional[float] = Field(default=None, ge=0)
    payment_schedule: Optional[str] = None


class ReportScheduleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    report_type: ReportType
    frequency: str = Field(examples=["Daily", "Weekly", "Monthly", "Quarterly"])
    format: List[str] = Field(examples=[["PDF", "Excel"]])
    recipients: List[EmailStr]
    filters: Optional[str] = None


class SystemSettingsUpdate(BaseModel):
    """Sections left out are kept as stored."""

    general: Optional[Dict[str, Any]] = None
    security: Optional[Dict[str, Any]] = None
    notifications: Optional[Dict[str, Any]] = None
    sync: Optional[Dict[str, Any]] = None
    ai: Optional[Dict[str, Any]] = None


class ConnectionTest(BaseModel):
    channel: ConnectionChannel
    provider: str = Field(examples=["openai", "smtp", "sendgrid", "twilio", "firebase", "none"])
    config: Dict[str, Any] = Field(default_factory=dict)


class ConnectionTestResult(BaseModel):
    success: bool
    message: str
