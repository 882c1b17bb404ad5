"""
Tests for PersistenceService: chat backups, state snapshot, directories.
"""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from models.domain import MessageBuffer, MessageEntry, Session, SystemStatus
from models.errors import PersistenceError
from services.persistence_service import PersistenceService


def _entry(text, session_id="s1"):
    return MessageEntry(datetime.now(timezone.utc), "user", text, session_id)


@pytest.fixture
def persistence(tmp_path):
    service = PersistenceService(tmp_path / "data", {"source": "test"})
    service.ensure_directories()
    return service


def test_ensure_directories_is_idempotent(tmp_path):
    service = PersistenceService(tmp_path / "data")

    service.ensure_directories()
    service.ensure_directories()

    for sub in ("chats", "memory", "logs"):
        assert (tmp_path / "data" / sub).is_dir()


def test_ensure_directories_failure_is_persistence_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(PersistenceError) as exc_info:
        PersistenceService(blocker / "data").ensure_directories()

    assert exc_info.value.operation == "ensure_directories"


@pytest.mark.asyncio
async def test_backup_writes_all_entries_in_order_and_clears_buffer(persistence):
    buffer = MessageBuffer()
    for text in ("one", "two", "three"):
        buffer.append(_entry(text))
    session = Session.create("test")

    result = await persistence.flush_chat_backup(buffer, session)

    files = persistence.list_chat_backups()
    assert files == [result.path]
    assert result.path.name.startswith("chat-backup-")
    assert result.message_count == 3
    assert len(buffer) == 0

    data = json.loads(result.path.read_text(encoding="utf-8"))
    assert [m["content"] for m in data["messages"]] == ["one", "two", "three"]
    assert data["session_id"] == session.id
    assert data["metadata"] == {"source": "test"}
    assert result.bytes_written == result.path.stat().st_size


@pytest.mark.asyncio
async def test_empty_buffer_writes_nothing(persistence):
    assert await persistence.flush_chat_backup(MessageBuffer(), None) is None
    assert persistence.list_chat_backups() == []


@pytest.mark.asyncio
async def test_backup_filenames_are_unique(persistence):
    buffer = MessageBuffer()
    for i in range(3):
        buffer.append(_entry(f"m{i}"))
        await persistence.flush_chat_backup(buffer, None)

    assert len(persistence.list_chat_backups()) == 3


@pytest.mark.asyncio
async def test_failed_backup_leaves_buffer_and_does_not_block_state_flush(persistence):
    buffer = MessageBuffer()
    buffer.append(_entry("keep me"))

    persistence.chats_dir.rmdir()
    persistence.chats_dir.write_text("not a directory", encoding="utf-8")

    with pytest.raises(PersistenceError) as exc_info:
        await persistence.flush_chat_backup(buffer, None)

    assert exc_info.value.operation == "chat_backup"
    assert len(buffer) == 1

    await persistence.flush_state(SystemStatus(), None)
    assert persistence.state_path.exists()


@pytest.mark.asyncio
async def test_state_flush_overwrites_single_file(persistence):
    status = SystemStatus()
    status.started_at = datetime.now(timezone.utc)

    await persistence.flush_state(status, None, {"backup_interval": 60.0})
    status.record_backup(datetime.now(timezone.utc))
    session = Session.create("second")
    await persistence.flush_state(status, session, {"backup_interval": 60.0})

    files = sorted(p.name for p in persistence.data_dir.iterdir() if p.is_file())
    assert files == ["memory-state.json"]

    state = persistence.read_state()
    assert state["system_status"]["chats_saved_count"] == 1
    assert state["current_session"]["id"] == session.id
    assert state["config"] == {"backup_interval": 60.0}
    assert state["uptime_seconds"] >= 0


def test_read_state_missing_or_malformed_returns_none(persistence):
    assert persistence.read_state() is None

    persistence.state_path.write_text("{not json", encoding="utf-8")
    assert persistence.read_state() is None

    persistence.state_path.write_text("[1, 2]", encoding="utf-8")
    assert persistence.read_state() is None


def test_read_state_survives_deeply_nested_json(persistence):
    depth = 100_000
    persistence.state_path.write_text("[" * depth + "]" * depth, encoding="utf-8")

    assert persistence.read_state() is None


@pytest.mark.asyncio
async def test_unserializable_metadata_is_a_persistence_error(tmp_path):
    persistence = PersistenceService(tmp_path / "data", {"created": datetime(2024, 1, 1).date()})
    persistence.ensure_directories()
    buffer = MessageBuffer()
    buffer.append(_entry("keep me"))

    with pytest.raises(PersistenceError) as exc_info:
        await persistence.flush_chat_backup(buffer, None)

    assert exc_info.value.operation == "chat_backup"
    assert len(buffer) == 1
    assert persistence.list_chat_backups() == []


@pytest.mark.asyncio
async def test_appends_during_backup_are_neither_lost_nor_duplicated(persistence):
    buffer = MessageBuffer()
    for i in range(5):
        buffer.append(_entry(f"before-{i}"))

    async def append_while_flushing():
        for i in range(20):
            buffer.append(_entry(f"during-{i}"))
            await asyncio.sleep(0)

    result, _ = await asyncio.gather(
        persistence.flush_chat_backup(buffer, None),
        append_while_flushing(),
    )

    assert result.message_count + len(buffer) == 25
    data = json.loads(result.path.read_text(encoding="utf-8"))
    written = [m["content"] for m in data["messages"]]
    remaining = [e.content for e in buffer.snapshot()]
    assert not set(written) & set(remaining)


def test_knowledge_files(persistence):
    (persistence.memory_dir / "facts.json").write_text("{}", encoding="utf-8")
    (persistence.memory_dir / "notes.txt").write_text("", encoding="utf-8")

    assert [p.name for p in persistence.knowledge_files()] == ["facts.json"]
