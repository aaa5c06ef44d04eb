"""
Repositories for the centralized database layer.
"""

from .base import AsyncBaseRepository, QueryBuilder
from .bundle import SqlRepoBundle, build_sql_repos_from_session
from .families import FamilyRepository
from .users import UserRepository

__all__ = [
    "AsyncBaseRepository",
    "FamilyRepository",
    "QueryBuilder",
    "SqlRepoBundle",
    "UserRepository",
    "build_sql_repos_from_session",
]
