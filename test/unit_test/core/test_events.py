"""
Unit tests for the in-process activity feed.
"""

import asyncio

import pytest

from indaba.core import events
from indaba.core.events import ActivityEvent, ActivityEventBus, emit_activity

pytestmark = pytest.mark.asyncio


class TestActivityEventBus:
    async def test_subscribers_receive_emitted_events(self):
        bus = ActivityEventBus()
        first, second = bus.subscribe(), bus.subscribe()

        delivered = bus.emit(ActivityEvent(type="user_created", description="New nanny account"))

        assert delivered == 2
        assert (await first.get()).type == "user_created"
        assert (await second.get()).description == "New nanny account"

    async def test_unsubscribed_queue_no_longer_receives(self):
        bus = ActivityEventBus()
        queue = bus.subscribe()
        bus.unsubscribe(queue)

        assert bus.emit(ActivityEvent(type="x", description="y")) == 0
        assert queue.empty()
        assert bus.subscriber_count == 0

    async def test_unsubscribe_unknown_queue_is_noop(self):
        bus = ActivityEventBus()
        bus.subscribe()

        bus.unsubscribe(asyncio.Queue())

        assert bus.subscriber_count == 1

    async def test_full_queue_drops_event_without_blocking_others(self):
        bus = ActivityEventBus(queue_size=1)
        slow, fast = bus.subscribe(), bus.subscribe()
        bus.emit(ActivityEvent(type="first", description="1"))
        fast.get_nowait()

        delivered = bus.emit(ActivityEvent(type="second", description="2"))

        assert delivered == 1
        assert slow.qsize() == 1
        assert (await slow.get()).type == "first"
        assert (await fast.get()).type == "second"

    async def test_events_have_unique_ids_and_timestamps(self):
        a = ActivityEvent(type="a", description="a")
        b = ActivityEvent(type="b", description="b")

        assert a.id != b.id
        assert a.timestamp.tzinfo is not None


class TestEmitActivity:
    async def test_emit_activity_publishes_on_shared_bus(self):
        queue = events.activity_bus.subscribe()
        try:
            event = emit_activity(
                "observation_created",
                "New observation for Kim",
                user_id="u1",
                user_name="Nora Nanny",
                resource_id="c1",
                content_id="o1",
            )
            received = await queue.get()
        finally:
            events.activity_bus.unsubscribe(queue)

        assert received is event
        assert received.user_name == "Nora Nanny"
        assert received.resource_id == "c1"
        assert received.content_id == "o1"
