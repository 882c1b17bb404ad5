"""Persistence service - JSON snapshots and chat backups under the data root"""

import asyncio
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.domain import MessageBuffer, MessageEntry, Session, SystemStatus
from models.errors import PersistenceError
from utils.logger import get_logger, LogCategory
from utils.serialization import Serializer

log = get_logger().for_category(LogCategory.MEMORY)


CHATS_DIR = "chats"
MEMORY_DIR = "memory"
LOGS_DIR = "logs"
STATE_FILE = "memory-state.json"
CHAT_BACKUP_PREFIX = "chat-backup-"


@dataclass(frozen=True)
class BackupResult:
    """Outcome of one successful chat backup"""
    path: Path
    bytes_written: int
    message_count: int
    timestamp: datetime


class PersistenceService:
    """
    Reads and writes the daemon's on-disk state.

    Layout under data_dir:
        memory-state.json                    single overwritten snapshot
        chats/chat-backup-<timestamp>.json   one file per non-empty flush
        memory/                              knowledge files (read only)
        logs/daemon-<date>.log               written by the logger

    Every failure surfaces as PersistenceError; callers decide whether to
    log and continue. The two flush operations are independent, so one
    failing never prevents the other from being attempted.
    """

    def __init__(self, data_dir: Path, backup_metadata: Optional[Dict[str, Any]] = None):
        """
        Args:
            data_dir: Data root directory
            backup_metadata: Fixed metadata stored in every chat backup
        """
        self.data_dir = Path(data_dir)
        self.backup_metadata = dict(backup_metadata or {})

    # === Paths ===

    @property
    def chats_dir(self) -> Path:
        return self.data_dir / CHATS_DIR

    @property
    def memory_dir(self) -> Path:
        return self.data_dir / MEMORY_DIR

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / LOGS_DIR

    @property
    def state_path(self) -> Path:
        return self.data_dir / STATE_FILE

    # === Directories ===

    def ensure_directories(self) -> None:
        """Create the data root and its subdirectories (no-op if present)."""
        for directory in (self.data_dir, self.chats_dir, self.memory_dir, self.logs_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PersistenceError("ensure_directories", directory, e) from e

    # === Chat backup ===

    async def flush_chat_backup(
        self, buffer: MessageBuffer, session: Optional[Session]
    ) -> Optional[BackupResult]:
        """
        Write the buffered messages to a new backup file and clear them.

        The buffer is cleared only after the file was written; an empty
        buffer writes nothing.

        Returns:
            BackupResult, or None if the buffer was empty

        Raises:
            PersistenceError: write failed, buffer untouched
        """
        session_id = session.id if session else None

        async def writer(batch: List[MessageEntry]) -> BackupResult:
            now = datetime.now(timezone.utc)
            payload = self._chat_payload(batch, session_id, now)
            return await asyncio.to_thread(self._write_chat_backup, payload, len(batch), now)

        return await buffer.drain(writer)

    def _chat_payload(
        self, batch: List[MessageEntry], session_id: Optional[str], now: datetime
    ) -> str:
        data = {
            "session_id": session_id,
            "timestamp": Serializer.datetime_to_str(now),
            "message_count": len(batch),
            "messages": [Serializer.message_to_dict(m) for m in batch],
            "metadata": self.backup_metadata,
        }
        try:
            return json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError("chat_backup", self.chats_dir, e) from e

    def _write_chat_backup(self, payload: str, message_count: int, now: datetime) -> BackupResult:
        stem = f"{CHAT_BACKUP_PREFIX}{Serializer.filename_timestamp(now)}"
        path = self.chats_dir / f"{stem}.json"

        try:
            self.chats_dir.mkdir(parents=True, exist_ok=True)
            encoded = payload.encode("utf-8")

            # Exclusive create: two flushes within the same microsecond get
            # a numeric suffix instead of overwriting each other.
            suffix = 0
            while True:
                try:
                    with open(path, "xb") as f:
                        f.write(encoded)
                    break
                except FileExistsError:
                    suffix += 1
                    path = self.chats_dir / f"{stem}-{suffix}.json"
        except OSError as e:
            raise PersistenceError("chat_backup", path, e) from e

        return BackupResult(
            path=path,
            bytes_written=len(encoded),
            message_count=message_count,
            timestamp=now,
        )

    def list_chat_backups(self) -> List[Path]:
        """Backup files, oldest first."""
        if not self.chats_dir.is_dir():
            return []
        return sorted(self.chats_dir.glob(f"{CHAT_BACKUP_PREFIX}*.json"))

    # === State snapshot ===

    def build_state_snapshot(
        self,
        status: SystemStatus,
        session: Optional[Session],
        config_echo: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        return {
            "timestamp": Serializer.datetime_to_str(now),
            "pid": os.getpid(),
            "system_status": Serializer.status_to_dict(status),
            "current_session": Serializer.session_to_dict(session),
            "uptime_seconds": status.uptime_seconds(now),
            "config": config_echo or {},
        }

    async def flush_state(
        self,
        status: SystemStatus,
        session: Optional[Session],
        config_echo: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Overwrite the state snapshot (last write wins, no history).

        Returns:
            Bytes written

        Raises:
            PersistenceError
        """
        # Serialize on the loop thread so the snapshot is consistent
        snapshot = self.build_state_snapshot(status, session, config_echo)
        try:
            payload = json.dumps(snapshot, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError("flush_state", self.state_path, e) from e
        return await asyncio.to_thread(self._write_atomic, self.state_path, payload)

    def _write_atomic(self, path: Path, payload: str) -> int:
        """Write to a temp file next to `path`, then rename over it."""
        tmp_path = path.with_name(f".{path.name}.tmp")
        encoded = payload.encode("utf-8")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(encoded)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as cleanup_error:
                log.warn(f"Could not remove temp file {tmp_path}: {cleanup_error}")
            raise PersistenceError("flush_state", path, e) from e
        return len(encoded)

    def read_state(self) -> Optional[Dict[str, Any]]:
        """
        Last state snapshot, or None if missing or malformed.

        Never raises: the status path degrades instead of failing.
        """
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            log.debug(f"State file not found: {self.state_path}")
            return None
        except (OSError, ValueError, RecursionError) as e:
            log.warn(f"Invalid state file {self.state_path}: {e}")
            return None

        if not isinstance(data, dict):
            log.warn(f"Invalid state file {self.state_path}: not an object")
            return None
        return data

    # === Knowledge files ===

    def knowledge_files(self) -> List[Path]:
        """JSON files under memory/ (loaded by the semantic memory stage)."""
        if not self.memory_dir.is_dir():
            return []
        return sorted(self.memory_dir.glob("*.json"))
