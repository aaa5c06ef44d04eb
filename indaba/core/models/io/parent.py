"""
Parent I/O models: profile, children, milestones, family and feedback.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl


class FeedbackType(str, Enum):
    CARE = "care"
    PROGRESS = "progress"
    COMMUNICATION = "communication"
    GENERAL = "general"


class AccessDecision(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"


class HouseholdMember(BaseModel):
    relationship: str
    name: Optional[str] = None
    age: Optional[int] = None


class HomeDetails(BaseModel):
    home_type: Optional[str] = None
    number_of_bedrooms: Optional[int] = None
    has_outdoor_space: Optional[bool] = None
    pet_details: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    household_members: Optional[List[HouseholdMember]] = None
    important_notes: Optional[str] = None
    preferred_activities: Optional[List[str]] = None
    house_rules: Optional[List[str]] = None


class ParentProfileUpdate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    profile_image_url: Optional[str] = None
    home_details: Optional[HomeDetails] = None


class Medication(BaseModel):
    name: str
    dosage: str
    frequency: str
    notes: Optional[str] = None


class MedicalInfo(BaseModel):
    conditions: Optional[List[str]] = None
    medications: Optional[List[Medication]] = None
    doctor_name: Optional[str] = None
    doctor_phone: Optional[str] = None
    blood_type: Optional[str] = None
    emergency_notes: Optional[str] = None


class AllergySeverity(str, Enum):
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class Allergy(BaseModel):
    allergen: str
    severity: AllergySeverity
    symptoms: Optional[List[str]] = None
    treatment: Optional[str] = None


class ChildCreate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    birth_date: datetime
    gender: Optional[str] = None
    profile_image_url: Optional[str] = None


class ChildUpdate(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    birth_date: datetime
    gender: Optional[str] = None
    profile_image_url: Optional[str] = None
    medical_info: Optional[MedicalInfo] = None
    allergies: Optional[List[Allergy]] = None
    favorite_activities: Optional[List[str]] = None
    sleep_routine: Optional[Dict[str, Any]] = None
    eating_routine: Optional[Dict[str, Any]] = None


class ChildRead(BaseModel):
    id: str
    first_name: str
    last_name: str
    birth_date: datetime
    gender: Optional[str] = None
    profile_image_url: Optional[str] = None
    family_id: Optional[str] = None
    is_archived: bool
    age: int


class AchieveMilestone(BaseModel):
    """Exactly one of ``milestone_id`` and ``custom_milestone_id`` is set."""

    child_id: str
    milestone_id: Optional[str] = None
    custom_milestone_id: Optional[str] = None
    achieved_date: Optional[datetime] = None
    notes: Optional[str] = None


class UpdateMilestoneAchievement(BaseModel):
    achieved_date: datetime
    notes: Optional[str] = None


class CustomMilestoneCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1)
    child_id: Optional[str] = None


class DocumentCreate(BaseModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    file_url: HttpUrl
    description: Optional[str] = None


class CarePreferences(BaseModel):
    preferred_activities: Optional[List[str]] = None
    dietary_restrictions: Optional[str] = None
    nap_schedule: Optional[str] = None
    bedtime_routine: Optional[str] = None
    morning_routine: Optional[str] = None
    discipline_approach: Optional[str] = None
    screen_time_rules: Optional[str] = None
    outdoor_play_preferences: Optional[str] = None


class FamilyNotificationSettings(BaseModel):
    daily_updates: Optional[bool] = None
    milestone_alerts: Optional[bool] = None
    emergency_alerts: Optional[bool] = None
    message_notifications: Optional[bool] = None
    observation_notifications: Optional[bool] = None
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None


class FamilyPreferencesUpdate(BaseModel):
    care_preferences: Optional[CarePreferences] = None
    dietary_restrictions: Optional[str] = None
    notification_settings: Optional[FamilyNotificationSettings] = None


class InvitationCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    access_level: str = Field(default="view", description="view, edit, full")


class AccessRequestResponse(BaseModel):
    decision: AccessDecision


class FeedbackCreate(BaseModel):
    nanny_id: str = Field(description="Nanny profile id")
    child_id: Optional[str] = None
    type: FeedbackType
    rating: int = Field(ge=1, le=5)
    content: str = Field(min_length=10)


class FeedbackFollowUp(BaseModel):
    follow_up: str = Field(min_length=1)
