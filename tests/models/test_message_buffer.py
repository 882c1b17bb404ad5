"""
Tests for MessageBuffer drain atomicity and DaemonContext sessions.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from models.domain import DaemonContext, MessageBuffer, MessageEntry


def _entry(text):
    return MessageEntry(datetime.now(timezone.utc), "user", text, None)


@pytest.mark.asyncio
async def test_drain_removes_only_the_written_batch():
    buffer = MessageBuffer()
    for i in range(3):
        buffer.append(_entry(f"old-{i}"))

    async def slow_writer(batch):
        buffer.append(_entry("arrived-during-write"))
        await asyncio.sleep(0)
        return [e.content for e in batch]

    written = await buffer.drain(slow_writer)

    assert written == ["old-0", "old-1", "old-2"]
    assert [e.content for e in buffer.snapshot()] == ["arrived-during-write"]


@pytest.mark.asyncio
async def test_failed_writer_leaves_buffer_untouched():
    buffer = MessageBuffer()
    buffer.append(_entry("keep"))

    async def failing_writer(batch):
        raise OSError("disk full")

    with pytest.raises(OSError):
        await buffer.drain(failing_writer)

    assert len(buffer) == 1


@pytest.mark.asyncio
async def test_concurrent_drains_never_duplicate():
    buffer = MessageBuffer()
    written = []

    async def writer(batch):
        await asyncio.sleep(0.01)
        written.extend(e.content for e in batch)
        return len(batch)

    async def producer():
        for i in range(30):
            buffer.append(_entry(str(i)))
            await asyncio.sleep(0.001)

    await asyncio.gather(producer(), *(buffer.drain(writer) for _ in range(5)))
    await buffer.drain(writer)

    assert written == [str(i) for i in range(30)]
    assert len(buffer) == 0


@pytest.mark.asyncio
async def test_drain_of_empty_buffer_skips_writer():
    called = []

    async def writer(batch):
        called.append(batch)

    assert await MessageBuffer().drain(writer) is None
    assert called == []


def test_context_reset_keeps_buffer_but_drops_session():
    context = DaemonContext()
    context.start_session("startup")
    context.buffer.append(_entry("pending"))
    context.touch()
    context.status.daemon_running = True

    context.reset()

    assert context.session is None
    assert not context.status.daemon_running
    assert len(context.buffer) == 1


def test_new_session_clears_idle_state():
    context = DaemonContext()
    context.session_idle = True
    context.touch()

    session = context.start_session("activity_after_idle")

    assert session.id.startswith("session_")
    assert not context.session_idle
    assert context.last_activity_at is None
