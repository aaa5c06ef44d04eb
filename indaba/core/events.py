"""
In-process activity feed.

Admins watch a live feed of notable events (new accounts, observations,
flagged content, certifications). Producers call ``activity_bus.emit`` and
every connected subscriber receives the event through its own bounded queue.

Delivery is best-effort: there is no persistence, no replay for late
subscribers, and a subscriber whose queue is full simply misses the event.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional, Set

from pydantic import BaseModel, Field

from indaba.core.logging_config import get_logger

logger = get_logger(__name__)


class ActivityEvent(BaseModel):
    """A single entry in the admin activity feed."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique event identifier.")
    type: str = Field(..., description="Event type.", examples=["user_created", "observation_created"])
    description: str = Field(..., description="Human readable summary of what happened.")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="When the event was emitted."
    )
    user_id: Optional[str] = Field(default=None, description="User who triggered the event.")
    user_name: Optional[str] = Field(default=None, description="Display name of that user.")
    resource_id: Optional[str] = Field(default=None, description="Related resource, if any.")
    content_id: Optional[str] = Field(default=None, description="Related content item, if any.")


class ActivityEventBus:
    """Fan-out of activity events to currently connected subscribers."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: Set[asyncio.Queue[ActivityEvent]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[ActivityEvent]:
        """Register a new listener and return the queue it should read from."""
        queue: asyncio.Queue[ActivityEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug(f"Activity subscriber added ({len(self._subscribers)} connected)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ActivityEvent]) -> None:
        self._subscribers.discard(queue)
        logger.debug(f"Activity subscriber removed ({len(self._subscribers)} connected)")

    def emit(self, event: ActivityEvent) -> int:
        """Deliver an event to every subscriber without blocking.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping activity event {event.type} for a slow subscriber")
        logger.debug(f"Activity event {event.type} delivered to {delivered} subscriber(s)")
        return delivered


def _build_bus() -> ActivityEventBus:
    from indaba.server.core.config import settings

    return ActivityEventBus(queue_size=settings.activity_feed.queue_size)


activity_bus = _build_bus()


def emit_activity(
    event_type: str,
    description: str,
    *,
    user_id: Optional[str] = None,
    user_name: Optional[str] = None,
    resource_id: Optional[str] = None,
    content_id: Optional[str] = None,
) -> ActivityEvent:
    """Build an ``ActivityEvent`` and publish it on the shared bus."""
    event = ActivityEvent(
        type=event_type,
        description=description,
        user_id=user_id,
        user_name=user_name,
        resource_id=resource_id,
        content_id=content_id,
    )
    activity_bus.emit(event)
    return event
