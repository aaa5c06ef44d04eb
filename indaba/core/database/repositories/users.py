"""
User repository.

Lookups of accounts and their role-specific profiles.
"""

from __future__ import annotations

from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.users import AdminProfile, NannyProfile, ParentProfile, User, UserRole
from .base import AsyncBaseRepository

Profile = Union[NannyProfile, ParentProfile, AdminProfile]

PROFILE_MODELS = {
    UserRole.NANNY: NannyProfile,
    UserRole.PARENT: ParentProfile,
    UserRole.ADMIN: AdminProfile,
}


class UserRepository(AsyncBaseRepository[User]):
    """Repository for user accounts and their profiles."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Find a user by email, ignoring case."""
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_profile(self, user: User) -> Optional[Profile]:
        """Return the profile matching the user's role."""
        model = PROFILE_MODELS[UserRole(user.role)]
        result = await self.session.execute(select(model).where(model.user_id == user.id))
        return result.scalars().first()

    async def get_nanny_profile(self, user_id: str) -> Optional[NannyProfile]:
        result = await self.session.execute(select(NannyProfile).where(NannyProfile.user_id == user_id))
        return result.scalars().first()

    async def get_parent_profile(self, user_id: str) -> Optional[ParentProfile]:
        result = await self.session.execute(select(ParentProfile).where(ParentProfile.user_id == user_id))
        return result.scalars().first()

    async def display_name(self, user: User) -> str:
        """Best human-readable name: profile names, then display name, then email."""
        profile = await self.get_profile(user)
        if profile is not None:
            return f"{profile.first_name} {profile.last_name}"
        return user.display_name or user.email
