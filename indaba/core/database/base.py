"""Common SQLModel base and column default factories for Indaba Care tables."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import ConfigDict
from sqlmodel import SQLModel


class Base(SQLModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


def utc_now() -> datetime:
    # Stored naive: SQLite has no timezone support and Postgres columns are TIMESTAMP WITHOUT TIME ZONE.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Primary keys are UUID4 strings so offline clients can mint them before syncing."""
    return str(uuid.uuid4())
