"""Daemon lifecycle and periodic task events"""

from dataclasses import dataclass
from typing import List, Optional

from models.events.base import Event
from models.events.types import EventType
from models.events.sources import EventSource


@dataclass(init=False)
class DaemonStartedEvent(Event):
    """All stages online, scheduler running"""
    pid: int

    def __init__(self, pid: int):
        super().__init__(type=EventType.DAEMON_STARTED, source=EventSource.LIFECYCLE)
        self.pid = pid


@dataclass(init=False)
class DaemonStoppedEvent(Event):
    """Shutdown sequence finished"""
    reason: str

    def __init__(self, reason: str):
        super().__init__(type=EventType.DAEMON_STOPPED, source=EventSource.LIFECYCLE)
        self.reason = reason


@dataclass(init=False)
class StageActivatedEvent(Event):
    """A single startup stage came online"""
    stage: str
    index: int

    def __init__(self, stage: str, index: int):
        super().__init__(type=EventType.STAGE_ACTIVATED, source=EventSource.LIFECYCLE)
        self.stage = stage
        self.index = index


@dataclass(init=False)
class HealthIssuesEvent(Event):
    """Health check found problems"""
    issues: List[str]

    def __init__(self, issues: List[str]):
        super().__init__(type=EventType.HEALTH_ISSUES, source=EventSource.MEMORY_SERVICE)
        self.issues = list(issues)


@dataclass(init=False)
class ChatBackedUpEvent(Event):
    """Buffer flushed to a chat backup file"""
    filename: str
    message_count: int

    def __init__(self, filename: str, message_count: int):
        super().__init__(type=EventType.CHAT_BACKED_UP, source=EventSource.MEMORY_SERVICE)
        self.filename = filename
        self.message_count = message_count


@dataclass(init=False)
class StateSavedEvent(Event):
    """State snapshot overwritten"""
    uptime_seconds: float

    def __init__(self, uptime_seconds: float):
        super().__init__(type=EventType.STATE_SAVED, source=EventSource.MEMORY_SERVICE)
        self.uptime_seconds = uptime_seconds


@dataclass(init=False)
class SessionStartedEvent(Event):
    """A new session replaced the previous one"""
    session_id: str
    context: str
    previous_session_id: Optional[str]

    def __init__(self, session_id: str, context: str, previous_session_id: Optional[str] = None):
        super().__init__(type=EventType.SESSION_STARTED, source=EventSource.MEMORY_SERVICE)
        self.session_id = session_id
        self.context = context
        self.previous_session_id = previous_session_id
