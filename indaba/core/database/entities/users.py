"""
User and account entity models.

This module contains the database entities for user accounts, the
role-specific profiles hanging off them, login sessions, two-factor
authentication and per-user settings.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class UserRole(str, Enum):
    """Role of a user account."""

    NANNY = "NANNY"
    PARENT = "PARENT"
    ADMIN = "ADMIN"


class User(Base, table=True):
    """An account that can sign in.

    Deleted accounts keep their row; the email is anonymized and the
    password hash is cleared so the account can never sign in again.

    Table: users
    """

    __tablename__ = "users"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True)
    password_hash: str = Field(default="")
    role: UserRole = Field(index=True)
    display_name: Optional[str] = Field(default=None)
    pronouns: Optional[str] = Field(default=None)
    last_login_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, role={self.role})"


class NannyProfile(Base, table=True):
    """Professional profile of a nanny.

    ``specialties`` and ``languages`` are JSON arrays stored as text.

    Table: nanny_profiles
    """

    __tablename__ = "nanny_profiles"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    first_name: str
    last_name: str
    phone_number: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    bio: Optional[str] = Field(default=None)
    availability: Optional[str] = Field(default=None)
    profile_image_url: Optional[str] = Field(default=None)
    cover_image_url: Optional[str] = Field(default=None)
    specialties: Optional[str] = Field(default=None, description="JSON array of specialties")
    years_of_experience: Optional[int] = Field(default=None)
    languages: Optional[str] = Field(default=None, description="JSON array of languages")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class ParentProfile(Base, table=True):
    """Profile of a parent account.

    Table: parent_profiles
    """

    __tablename__ = "parent_profiles"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    first_name: str
    last_name: str
    phone_number: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    profile_image_url: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class AdminProfile(Base, table=True):
    """Profile of an administrator account.

    Table: admin_profiles
    """

    __tablename__ = "admin_profiles"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    first_name: str
    last_name: str
    phone_number: Optional[str] = Field(default=None)
    profile_image_url: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class UserSession(Base, table=True):
    """A login session; access tokens carry its id in the ``sid`` claim.

    Table: user_sessions
    """

    __tablename__ = "user_sessions"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    device: Optional[str] = Field(default=None)
    browser: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    is_revoked: bool = Field(default=False)
    expires_at: datetime
    last_active_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)


class TwoFactorAuth(Base, table=True):
    """TOTP secret and hashed recovery codes of a user.

    Table: two_factor_auth
    """

    __tablename__ = "two_factor_auth"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    secret: str
    is_enabled: bool = Field(default=False)
    recovery_codes: Optional[str] = Field(default=None, description="JSON array of bcrypt-hashed recovery codes")
    last_verified_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class UserSettings(Base, table=True):
    """Privacy and offline-sync preferences of a user.

    Table: user_settings
    """

    __tablename__ = "user_settings"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    profile_visibility: str = Field(default="connected")
    marketing_opt_in: bool = Field(default=False)
    media_cache_size: int = Field(default=100, description="Media cache size in MB")
    auto_purge_policy: int = Field(default=14, description="Days before cached media is purged")
    sync_on_wifi_only: bool = Field(default=False)
    last_sync_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class UserNotificationSettings(Base, table=True):
    """Per-channel notification switches of a user.

    Table: user_notification_settings
    """

    __tablename__ = "user_notification_settings"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)

    in_app_messages: bool = Field(default=True)
    in_app_approvals: bool = Field(default=True)
    in_app_emergencies: bool = Field(default=True)
    in_app_reminders: bool = Field(default=True)

    email_messages: bool = Field(default=False)
    email_approvals: bool = Field(default=True)
    email_emergencies: bool = Field(default=True)
    email_reminders: bool = Field(default=False)

    sms_messages: bool = Field(default=False)
    sms_approvals: bool = Field(default=False)
    sms_emergencies: bool = Field(default=True)
    sms_reminders: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
