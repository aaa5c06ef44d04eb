"""Unit tests for the user and family repositories and the shared query helpers."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlmodel import select

from indaba.core.database.entities.families import Family, FamilyNanny
from indaba.core.database.entities.messages import Message
from indaba.core.database.entities.users import User, UserRole
from indaba.core.database.repositories import (
    AsyncBaseRepository,
    FamilyRepository,
    QueryBuilder,
    UserRepository,
    build_sql_repos_from_session,
)

pytestmark = pytest.mark.asyncio


class TestAsyncBaseRepository:
    async def test_get_by_id(self, in_memory_session, sample_people):
        repo = AsyncBaseRepository(in_memory_session, User)

        assert (await repo.get_by_id(sample_people["nanny_user"].id)).email == "nanny@example.com"
        assert await repo.get_by_id("missing") is None


class TestQueryBuilderCursor:
    async def test_cursor_continues_after_anchor_with_ties(self, in_memory_session, sample_people):
        sender, recipient = sample_people["parent_user"], sample_people["nanny_user"]
        base = datetime(2024, 1, 1, 12, 0)
        messages = [
            Message(id="m1", sender_id=sender.id, recipient_id=recipient.id, content="1", created_at=base),
            Message(id="m2", sender_id=sender.id, recipient_id=recipient.id, content="2", created_at=base),
            Message(id="m3", sender_id=sender.id, recipient_id=recipient.id, content="3", created_at=base + timedelta(minutes=1)),
        ]
        in_memory_session.add_all(messages)
        await in_memory_session.commit()

        stmt = select(Message).order_by(Message.created_at.desc(), Message.id.desc())
        first_page = (await in_memory_session.execute(stmt.limit(2))).scalars().all()
        assert [m.id for m in first_page] == ["m3", "m2"]

        next_stmt = QueryBuilder.apply_cursor(stmt, Message, first_page[-1].id, "created_at")
        rest = (await in_memory_session.execute(next_stmt)).scalars().all()
        assert [m.id for m in rest] == ["m1"]

    async def test_no_cursor_returns_statement_unchanged(self):
        stmt = select(Message)

        assert QueryBuilder.apply_cursor(stmt, Message, None, "created_at") is stmt


class TestUserRepository:
    async def test_get_by_email_ignores_case(self, in_memory_session, sample_people):
        repo = UserRepository(in_memory_session)

        user = await repo.get_by_email("  PARENT@example.COM ")

        assert user is not None
        assert user.id == sample_people["parent_user"].id

    async def test_profiles_and_display_name(self, in_memory_session, sample_people):
        repo = UserRepository(in_memory_session)

        assert (await repo.get_profile(sample_people["nanny_user"])).id == sample_people["nanny"].id
        assert (await repo.get_parent_profile(sample_people["parent_user"].id)).first_name == "Paula"
        assert await repo.get_nanny_profile(sample_people["parent_user"].id) is None
        assert await repo.display_name(sample_people["nanny_user"]) == "Nora Nanny"

    async def test_display_name_without_profile(self, in_memory_session):
        repo = UserRepository(in_memory_session)
        user = User(email="solo@example.com", password_hash="x", role=UserRole.ADMIN)
        in_memory_session.add(user)
        await in_memory_session.commit()

        assert await repo.display_name(user) == "solo@example.com"
        user.display_name = "Solo"
        assert await repo.display_name(user) == "Solo"


class TestFamilyRepository:
    async def test_children_for_parent(self, in_memory_session, sample_people):
        repo = FamilyRepository(in_memory_session)
        parent_id = sample_people["parent"].id

        assert [c.first_name for c in await repo.children_for_parent(parent_id)] == ["Ari", "Kim"]
        assert [c.first_name for c in await repo.children_for_parent(parent_id, include_archived=False)] == ["Kim"]
        assert (await repo.get_for_parent(parent_id)).id == sample_people["family"].id

    async def test_nanny_assignment_controls_access(self, in_memory_session, sample_people):
        repo = FamilyRepository(in_memory_session)
        nanny_id, family_id = sample_people["nanny"].id, sample_people["family"].id

        assert await repo.is_nanny_assigned(nanny_id, family_id) is False
        assert await repo.children_for_nanny(nanny_id) == []

        assignment = FamilyNanny(family_id=family_id, nanny_id=nanny_id, start_date=datetime(2024, 1, 1))
        in_memory_session.add(assignment)
        await in_memory_session.commit()

        assert await repo.is_nanny_assigned(nanny_id, family_id) is True
        assert await repo.active_family_ids(nanny_id) == {family_id}
        assert len(await repo.children_for_nanny(nanny_id)) == 2

        assignment.status = "Inactive"
        await in_memory_session.commit()
        assert await repo.is_nanny_assigned(nanny_id, family_id) is False
        assert await repo.is_nanny_assigned(nanny_id, None) is False

    async def test_bundle_shares_session(self, in_memory_session):
        bundle = build_sql_repos_from_session(session=in_memory_session)

        assert bundle.users.session is in_memory_session
        assert bundle.families.session is in_memory_session
        assert bundle.families.model is Family
