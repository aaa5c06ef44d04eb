"""Test configuration for database unit tests.

This module provides common fixtures for testing the centralized database
layer with in-memory SQLite.
"""

from __future__ import annotations

from datetime import datetime
from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel.pool import StaticPool

from indaba.core.database import create_all, create_sessionmaker
from indaba.core.database.entities.families import Child, Family
from indaba.core.database.entities.users import NannyProfile, ParentProfile, User, UserRole


@pytest_asyncio.fixture
async def in_memory_engine() -> AsyncGenerator:
    """Create in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def in_memory_session(in_memory_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a session bound to the in-memory engine."""
    async with create_sessionmaker(in_memory_engine)() as session:
        yield session


@pytest_asyncio.fixture
async def sample_people(in_memory_session: AsyncSession) -> dict:
    """A parent with a family and child, and an unassigned nanny."""
    parent_user = User(email="Parent@Example.com", password_hash="x", role=UserRole.PARENT)
    nanny_user = User(email="nanny@example.com", password_hash="x", role=UserRole.NANNY)
    in_memory_session.add_all([parent_user, nanny_user])
    await in_memory_session.flush()

    parent = ParentProfile(user_id=parent_user.id, first_name="Paula", last_name="Parent")
    nanny = NannyProfile(user_id=nanny_user.id, first_name="Nora", last_name="Nanny")
    in_memory_session.add_all([parent, nanny])
    await in_memory_session.flush()

    family = Family(name="Parent Family", parent_id=parent.id)
    in_memory_session.add(family)
    await in_memory_session.flush()

    child = Child(
        first_name="Kim", last_name="Parent", birth_date=datetime(2023, 5, 1), parent_id=parent.id, family_id=family.id
    )
    archived = Child(
        first_name="Ari",
        last_name="Parent",
        birth_date=datetime(2020, 1, 1),
        parent_id=parent.id,
        family_id=family.id,
        is_archived=True,
    )
    in_memory_session.add_all([child, archived])
    await in_memory_session.commit()
    return {
        "parent_user": parent_user,
        "nanny_user": nanny_user,
        "parent": parent,
        "nanny": nanny,
        "family": family,
        "child": child,
        "archived": archived,
    }
