"""
Serialization utilities - domain objects ↔ JSON-compatible dicts

Single source of truth for the on-disk JSON layout of the state snapshot
and chat backups.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from models.domain import SystemStatus, Session, MessageEntry


class Serializer:
    """Central model serialization for persisted JSON"""

    # ========================================================================
    # PRIMITIVES
    # ========================================================================

    @staticmethod
    def enum_to_str(value: Optional[Enum]) -> Optional[str]:
        """Convert any enum to string name"""
        return value.name if value else None

    @staticmethod
    def datetime_to_str(value: Optional[datetime]) -> Optional[str]:
        """ISO 8601 string (UTC) or None"""
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    @staticmethod
    def str_to_datetime(value: Any) -> Optional[datetime]:
        """
        Parse an ISO 8601 string written by datetime_to_str.

        Returns None for missing or unparseable values instead of raising,
        because callers read files that may come from an older or crashed run.
        """
        if not isinstance(value, str) or not value:
            return None
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def filename_timestamp(value: datetime) -> str:
        """Timestamp safe for file names: 2024-05-01T14-23-45-123456Z"""
        stamp = value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
        return f"{stamp}Z"

    # ========================================================================
    # DOMAIN MODELS
    # ========================================================================

    @staticmethod
    def status_to_dict(status: SystemStatus) -> Dict[str, Any]:
        return {
            "stages": dict(status.stages),
            "daemon_running": status.daemon_running,
            "last_backup_at": Serializer.datetime_to_str(status.last_backup_at),
            "chats_saved_count": status.chats_saved_count,
            "started_at": Serializer.datetime_to_str(status.started_at),
        }

    @staticmethod
    def session_to_dict(session: Optional[Session]) -> Optional[Dict[str, Any]]:
        if session is None:
            return None
        return {
            "id": session.id,
            "started_at": Serializer.datetime_to_str(session.started_at),
            "context": session.context,
        }

    @staticmethod
    def message_to_dict(entry: MessageEntry) -> Dict[str, Any]:
        return {
            "timestamp": Serializer.datetime_to_str(entry.timestamp),
            "sender": entry.sender,
            "content": entry.content,
            "session_id": entry.session_id,
        }
