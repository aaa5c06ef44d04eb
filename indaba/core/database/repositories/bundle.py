"""
Repository bundle for dependency injection.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .families import FamilyRepository
from .users import UserRepository


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of the SQL repositories bound to one session."""

    users: UserRepository
    families: FamilyRepository


def build_sql_repos_from_session(*, session: AsyncSession) -> SqlRepoBundle:
    """Build a SqlRepoBundle from an existing session."""
    return SqlRepoBundle(
        users=UserRepository(session),
        families=FamilyRepository(session),
    )
