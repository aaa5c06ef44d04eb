"""
Family and child entity models.

A family belongs to one primary parent. Nannies are linked to families
through ``FamilyNanny`` rows; a row with status ``Active`` is what grants a
nanny access to the family's children.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now

ACTIVE_ASSIGNMENT = "Active"


class Family(Base, table=True):
    """A household.

    ``home_details`` is a JSON object stored as text.

    Table: families
    """

    __tablename__ = "families"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    parent_id: str = Field(foreign_key="parent_profiles.id", unique=True, index=True)
    home_details: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class Child(Base, table=True):
    """A child cared for by the platform.

    Medical info, allergies and routines are JSON blobs stored as text.

    Table: children
    """

    __tablename__ = "children"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    first_name: str
    last_name: str
    birth_date: datetime
    gender: Optional[str] = Field(default=None)
    profile_image_url: Optional[str] = Field(default=None)
    parent_id: str = Field(foreign_key="parent_profiles.id", index=True)
    family_id: Optional[str] = Field(default=None, foreign_key="families.id", index=True)
    medical_info: Optional[str] = Field(default=None)
    allergies: Optional[str] = Field(default=None)
    favorite_activities: Optional[str] = Field(default=None)
    sleep_routine: Optional[str] = Field(default=None)
    eating_routine: Optional[str] = Field(default=None)
    is_archived: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class FamilyNanny(Base, table=True):
    """Assignment of a nanny to a family.

    Table: family_nannies
    """

    __tablename__ = "family_nannies"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    status: str = Field(default=ACTIVE_ASSIGNMENT, description="Active, Inactive")
    start_date: datetime = Field(default_factory=utc_now)
    end_date: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)


class FamilyNannyRequest(Base, table=True):
    """A nanny asking a family for access.

    Table: family_nanny_requests
    """

    __tablename__ = "family_nanny_requests"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    message: str
    status: str = Field(default="pending", description="pending, approved, declined")
    responded_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)


class FamilyDocument(Base, table=True):
    """A document shared within a family.

    Table: family_documents
    """

    __tablename__ = "family_documents"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    name: str
    type: str
    file_url: str
    description: Optional[str] = Field(default=None)
    uploaded_by: str = Field(foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now)


class FamilyPreference(Base, table=True):
    """Care preferences of a family.

    Table: family_preferences
    """

    __tablename__ = "family_preferences"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", unique=True, index=True)
    care_preferences: Optional[str] = Field(default=None)
    dietary_restrictions: Optional[str] = Field(default=None)
    notification_settings: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class ParentInvitation(Base, table=True):
    """An invitation for another parent to join a family.

    Table: parent_invitations
    """

    __tablename__ = "parent_invitations"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    email: str = Field(index=True)
    name: Optional[str] = Field(default=None)
    access_level: str = Field(default="view")
    token: str = Field(unique=True)
    status: str = Field(default="pending")
    invited_by: str = Field(foreign_key="users.id")
    expires_at: datetime

    created_at: datetime = Field(default_factory=utc_now)
