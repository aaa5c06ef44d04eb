"""
Authentication I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from indaba.core.database.entities.users import UserRole


class RegisterRequest(BaseModel):
    """Schema for creating a new account."""

    email: EmailStr = Field(description="Login email, unique across accounts")
    password: str = Field(min_length=8, description="Password, at least 8 characters")
    role: UserRole = Field(description="Account role", examples=["NANNY", "PARENT"])
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None


class LoginRequest(BaseModel):
    """Schema for signing in."""

    email: EmailStr
    password: str = Field(min_length=1)


class UserSummary(BaseModel):
    """Account data returned after register and login."""

    id: str
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class AuthResponse(BaseModel):
    """A user together with a freshly issued access token."""

    user: UserSummary
    token: str


class MeResponse(UserSummary):
    """The signed-in user with profile fields for their role."""

    display_name: Optional[str] = None
    pronouns: Optional[str] = None
    phone_number: Optional[str] = None
    profile: dict = Field(default_factory=dict, description="All profile fields of the user's role")
    two_factor_enabled: bool = False
    created_at: datetime


class VerifyTokenResponse(BaseModel):
    valid: bool
    user_id: str
    role: UserRole


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


class TwoFactorSetupResponse(BaseModel):
    secret: str = Field(description="Base32 TOTP secret")
    otpauth_url: str = Field(description="Provisioning URI for authenticator apps")


class TwoFactorVerifyRequest(BaseModel):
    code: str = Field(min_length=6, max_length=6, description="Current 6-digit TOTP code")


class TwoFactorVerifyResponse(BaseModel):
    success: bool
    recovery_codes: List[str] = Field(description="One-time recovery codes, shown only once")


class SessionRead(BaseModel):
    """A login session as shown on the security page."""

    id: str
    device: str
    browser: str
    ip_address: str
    location: str
    last_active_at: datetime
    created_at: datetime
    is_current: bool


class AIAvailability(BaseModel):
    available: bool


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
