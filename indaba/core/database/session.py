"""
Process-wide engine and session factory.

Both are built from ``DATABASE_URL`` at import time; request handlers get
sessions through ``get_session`` and startup calls ``init_db``.
"""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from indaba.core.logging_config import get_logger
from indaba.server.core.config import settings

from .seed import seed_milestones
from .utils import create_all, create_engine, create_sessionmaker

logger = get_logger(__name__)

engine = create_engine(settings.database_url)
async_session_maker = create_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    # Alembic-migrated databases already have every table, so create_all only fills gaps.
    await create_all(engine)
    async with async_session_maker() as session:
        inserted = await seed_milestones(session)
    logger.debug(f"Database ready; {inserted} standard milestones inserted")
