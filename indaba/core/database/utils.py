"""
Engine and session-factory helpers for the Indaba Care database.

Deployments hand us whatever URL their platform exports (Heroku style
``postgres://``, a sync ``psycopg2`` DSN, or a local SQLite file), so the
URL is coerced onto an async driver before the engine is built.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from . import entities  # noqa: F401  registers all tables on Base.metadata
from .base import Base

_ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def async_database_url(db_url: str) -> URL:
    """Return ``db_url`` with its dialect bound to the async driver Indaba ships with."""
    url = make_url(db_url)
    backend = url.get_backend_name()
    if backend in _ASYNC_DRIVERS and url.drivername not in _ASYNC_DRIVERS.values():
        url = url.set(drivername=_ASYNC_DRIVERS[backend])
    return url


def create_engine(db_url: str) -> AsyncEngine:
    """Build the application's AsyncEngine.

    SQLite connections are shared across the event loop's worker threads,
    while Postgres pools ping connections before handing them out.
    """
    url = async_database_url(db_url)
    options: Dict[str, Any] = {}
    if url.get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return create_async_engine(url, **options)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Routers read attributes after commit when building responses.
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create every Indaba table that is missing; Alembic owns real migrations."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
