"""
Unit tests for token authentication and role guards.
"""

from datetime import timedelta

import pytest

from indaba.core.database.base import utc_now
from indaba.core.database.entities.users import UserRole, UserSession
from indaba.core.errors import ForbiddenError, UnauthorizedError
from indaba.core.security import create_access_token, decode_access_token
from indaba.server.services.deps import authenticate_token, extract_bearer_token, require_roles


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc.def", "abc.def"),
            ("bearer   abc ", "abc"),
            ("Basic abc", None),
            ("Bearer ", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestAuthenticateToken:
    async def test_valid_token(self, session, nanny):
        current = await authenticate_token(nanny.token, session)

        assert current.id == nanny.id
        assert current.role == UserRole.NANNY
        assert current.session_id == decode_access_token(nanny.token)["sid"]

    async def test_missing_token(self, session):
        with pytest.raises(UnauthorizedError, match="Authentication required"):
            await authenticate_token(None, session)

    async def test_unknown_user(self, session):
        token = create_access_token("no-such-user", "NANNY")

        with pytest.raises(UnauthorizedError, match="Invalid or expired token"):
            await authenticate_token(token, session)

    async def test_token_without_session_is_accepted(self, session, parent):
        current = await authenticate_token(create_access_token(parent.id, "PARENT"), session)

        assert current.session_id is None

    async def test_revoked_session_rejected(self, session, nanny):
        login_session = await session.get(UserSession, decode_access_token(nanny.token)["sid"])
        login_session.is_revoked = True
        await session.commit()

        with pytest.raises(UnauthorizedError, match="revoked or has expired"):
            await authenticate_token(nanny.token, session)

    async def test_expired_session_rejected(self, session, nanny):
        login_session = await session.get(UserSession, decode_access_token(nanny.token)["sid"])
        login_session.expires_at = utc_now() - timedelta(minutes=1)
        await session.commit()

        with pytest.raises(UnauthorizedError):
            await authenticate_token(nanny.token, session)


class TestRequireRoles:
    async def test_allows_listed_roles(self, session, admin):
        check = require_roles(UserRole.ADMIN, UserRole.NANNY)
        current = await authenticate_token(admin.token, session)

        assert await check(current) is current

    async def test_rejects_other_roles(self, session, parent):
        check = require_roles(UserRole.ADMIN)
        current = await authenticate_token(parent.token, session)

        with pytest.raises(ForbiddenError):
            await check(current)
