"""
Authentication and repository dependencies.

Endpoints declare who may call them through the ``Annotated`` aliases at the
bottom of this module, e.g. ``current: NannyDep``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from indaba.core.database.base import utc_now
from indaba.core.database.entities.users import User, UserRole, UserSession
from indaba.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from indaba.core.errors import ForbiddenError, UnauthorizedError
from indaba.core.logging_config import get_logger
from indaba.core.security import decode_access_token
from indaba.server.core.database import get_session

logger = get_logger(__name__)


@dataclass
class CurrentUser:
    """The authenticated caller."""

    user: User
    session_id: Optional[str] = None

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def role(self) -> UserRole:
        return UserRole(self.user.role)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate_token(token: Optional[str], session: AsyncSession) -> CurrentUser:
    """Resolve an access token to its user.

    Raises:
        UnauthorizedError: If the token is missing or invalid, the user no longer
            exists, or the login session behind the token was revoked or expired
    """
    if not token:
        raise UnauthorizedError("Authentication required")
    payload = decode_access_token(token)

    user = await session.get(User, payload["sub"])
    if user is None:
        raise UnauthorizedError("Invalid or expired token")

    session_id = payload.get("sid")
    if session_id:
        login_session = await session.get(UserSession, session_id)
        if (
            login_session is None
            or login_session.user_id != user.id
            or login_session.is_revoked
            or login_session.expires_at < utc_now()
        ):
            logger.warning(f"Rejected token bound to inactive session {session_id} for user {user.id}")
            raise UnauthorizedError("Session has been revoked or has expired")

    return CurrentUser(user=user, session_id=session_id)


async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    """Authenticate the request from its ``Authorization: Bearer`` header."""
    return await authenticate_token(extract_bearer_token(authorization), session)


def require_roles(*roles: UserRole) -> Callable:
    """Build a dependency that only lets the given roles through."""

    async def _check(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current.role not in roles:
            logger.warning(f"User {current.id} with role {current.role.value} denied; requires {[r.value for r in roles]}")
            raise ForbiddenError()
        return current

    return _check


def get_repos(session: AsyncSession = Depends(get_session)) -> SqlRepoBundle:
    return build_sql_repos_from_session(session=session)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
ReposDep = Annotated[SqlRepoBundle, Depends(get_repos)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
NannyDep = Annotated[CurrentUser, Depends(require_roles(UserRole.NANNY))]
ParentDep = Annotated[CurrentUser, Depends(require_roles(UserRole.PARENT))]
AdminDep = Annotated[CurrentUser, Depends(require_roles(UserRole.ADMIN))]
NannyOrAdminDep = Annotated[CurrentUser, Depends(require_roles(UserRole.NANNY, UserRole.ADMIN))]
ParentOrNannyDep = Annotated[CurrentUser, Depends(require_roles(UserRole.PARENT, UserRole.NANNY))]
