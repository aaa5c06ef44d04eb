"""Unit tests for database utilities, base helpers and the milestone seed."""

from __future__ import annotations

from datetime import datetime

import pytest
import sqlalchemy as sa
from sqlalchemy import func, inspect
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from indaba.core.database import Base, create_engine, new_id, utc_now
from indaba.core.database.entities.milestones import ChildMilestone, Milestone
from indaba.core.database.seed import STANDARD_MILESTONES, seed_milestones

pytestmark = pytest.mark.asyncio


def _python_type(column: sa.Column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


class TestCreateEngine:
    @pytest.mark.parametrize(
        "url",
        [
            "postgres://user:pw@db:5432/indaba",
            "postgresql://user:pw@db:5432/indaba",
            "postgresql+psycopg2://user:pw@db:5432/indaba",
        ],
    )
    async def test_postgres_urls_use_asyncpg(self, url):
        engine = create_engine(url)
        try:
            assert engine.url.drivername == "postgresql+asyncpg"
            assert engine.url.database == "indaba"
        finally:
            await engine.dispose()

    async def test_sqlite_url_unchanged(self):
        engine = create_engine("sqlite+aiosqlite:///:memory:")
        try:
            assert engine.url.drivername == "sqlite+aiosqlite"
        finally:
            await engine.dispose()

    async def test_plain_sqlite_file_gets_aiosqlite(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'indaba.db'}")
        try:
            assert engine.url.drivername == "sqlite+aiosqlite"
        finally:
            await engine.dispose()


class TestBaseHelpers:
    async def test_utc_now_is_naive(self):
        now = utc_now()

        assert isinstance(now, datetime)
        assert now.tzinfo is None

    async def test_new_id_is_unique(self):
        assert new_id() != new_id()


class TestNaiveDatetimeColumns:
    async def test_datetime_columns_store_naive_utc(self):
        datetime_columns = [
            column
            for table in Base.metadata.tables.values()
            for column in table.columns
            if _python_type(column) is datetime
        ]

        assert datetime_columns
        for column in datetime_columns:
            assert type(column.type) is sa.DateTime, f"{column.table.name}.{column.name}"
            assert column.type.timezone is False

    async def test_naive_timestamps_round_trip(self, in_memory_session):
        achieved = utc_now()
        milestone = Milestone(
            name="Stacks blocks", description="Stacks two blocks", category="Physical", age_range_start=12, age_range_end=18
        )
        milestone.created_at = achieved
        in_memory_session.add(milestone)
        await in_memory_session.commit()

        stored = (await in_memory_session.execute(select(Milestone).where(Milestone.id == milestone.id))).scalar_one()
        assert stored.created_at == achieved
        assert stored.created_at.tzinfo is None


class TestChildMilestoneConstraints:
    @pytest.mark.parametrize(
        "first,second",
        [
            ({"milestone_id": "m-1"}, {"milestone_id": "m-1"}),
            ({"custom_milestone_id": "c-1"}, {"custom_milestone_id": "c-1"}),
            ({}, None),
            ({"milestone_id": "m-1", "custom_milestone_id": "c-1"}, None),
        ],
    )
    async def test_rejected_rows(self, in_memory_session, first, second):
        in_memory_session.add(ChildMilestone(child_id="kid-1", **first))
        if second is not None:
            await in_memory_session.commit()
            in_memory_session.add(ChildMilestone(child_id="kid-1", **second))

        with pytest.raises(IntegrityError):
            await in_memory_session.commit()

    async def test_same_milestone_for_two_children(self, in_memory_session):
        in_memory_session.add_all(
            [
                ChildMilestone(child_id="kid-1", milestone_id="m-1"),
                ChildMilestone(child_id="kid-2", milestone_id="m-1"),
                ChildMilestone(child_id="kid-1", custom_milestone_id="c-1"),
            ]
        )
        await in_memory_session.commit()

        count = await in_memory_session.execute(select(func.count(ChildMilestone.id)))
        assert count.scalar_one() == 3


class TestCreateAll:
    async def test_all_tables_created(self, in_memory_engine):
        async with in_memory_engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))

        assert set(Base.metadata.tables) <= tables
        for name in ("users", "children", "observations", "messages", "hours_logs", "sync_logs", "system_settings"):
            assert name in tables


class TestSeedMilestones:
    async def test_seed_inserts_catalogue_once(self, in_memory_session):
        assert await seed_milestones(in_memory_session) == len(STANDARD_MILESTONES)
        assert await seed_milestones(in_memory_session) == 0

        count = (await in_memory_session.execute(select(func.count()).select_from(Milestone))).scalar_one()
        assert count == len(STANDARD_MILESTONES)

    async def test_catalogue_age_ranges_are_valid(self):
        categories = set()
        for name, description, category, start, end in STANDARD_MILESTONES:
            assert name and description
            assert 0 <= start < end
            categories.add(category)

        assert categories == {"Physical", "Cognitive", "Language", "Social-Emotional"}
