"""
Tests for EventBus: pub/sub, priority, middleware, fault tolerance.
"""

import pytest

from models.events import ChatBackedUpEvent, EventType, HealthIssuesEvent
from services.event_bus import EventBus
from services.middleware import log_middleware


@pytest.mark.asyncio
async def test_basic_pub_sub():
    bus = EventBus()
    received = []

    async def handler(event):
        received.append(event)

    bus.subscribe(EventType.CHAT_BACKED_UP, handler)
    await bus.publish(ChatBackedUpEvent("chat-backup-x.json", 3))

    assert len(received) == 1
    assert received[0].message_count == 3
    assert received[0].to_data() == {"filename": "chat-backup-x.json", "message_count": 3}


@pytest.mark.asyncio
async def test_priority_order():
    bus = EventBus()
    order = []

    bus.subscribe(EventType.HEALTH_ISSUES, lambda e: order.append("low"), priority=1)
    bus.subscribe(EventType.HEALTH_ISSUES, lambda e: order.append("high"), priority=10)
    bus.subscribe(EventType.HEALTH_ISSUES, lambda e: order.append("mid"), priority=5)

    await bus.publish(HealthIssuesEvent(["main_power offline"]))

    assert order == ["high", "mid", "low"]


@pytest.mark.asyncio
async def test_middleware_can_block():
    bus = EventBus()
    received = []
    bus.subscribe(EventType.CHAT_BACKED_UP, received.append)
    bus.add_middleware(lambda e: None if e.message_count == 0 else e)

    await bus.publish(ChatBackedUpEvent("a.json", 0))
    await bus.publish(ChatBackedUpEvent("b.json", 1))

    assert [e.filename for e in received] == ["b.json"]


@pytest.mark.asyncio
async def test_handler_failure_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(EventType.CHAT_BACKED_UP, broken, priority=10)
    bus.subscribe(EventType.CHAT_BACKED_UP, received.append)

    await bus.publish(ChatBackedUpEvent("a.json", 1))

    assert len(received) == 1


@pytest.mark.asyncio
async def test_log_middleware_passes_events_through():
    bus = EventBus()
    bus.add_middleware(log_middleware)
    received = []
    bus.subscribe(EventType.CHAT_BACKED_UP, received.append)

    for i in range(3):
        await bus.publish(ChatBackedUpEvent(f"{i}.json", i))

    assert [e.filename for e in received] == ["0.json", "1.json", "2.json"]
