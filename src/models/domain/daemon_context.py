"""Daemon context - the single owner of mutable daemon state"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.domain.message_buffer import MessageBuffer
from models.domain.session import Session
from models.domain.status import SystemStatus


@dataclass
class DaemonContext:
    """
    All mutable state of one daemon process.

    Passed explicitly to the lifecycle controller, the scheduler's task
    bodies and the persistence layer instead of living in module globals.

    - status: stage flags, counters, timestamps
    - buffer: chat messages waiting for the next backup
    - session: at most one active session
    - last_activity_at: time of the last buffered message
    - session_idle: set by session detection once the session went quiet
    """

    status: SystemStatus = field(default_factory=SystemStatus)
    buffer: MessageBuffer = field(default_factory=MessageBuffer)
    session: Optional[Session] = None
    last_activity_at: Optional[datetime] = None
    session_idle: bool = False

    def start_session(self, context: str) -> Session:
        """Replace the current session with a fresh one"""
        self.session = Session.create(context)
        self.session_idle = False
        self.last_activity_at = None
        return self.session

    def touch(self) -> None:
        self.last_activity_at = datetime.now(timezone.utc)

    def reset(self) -> None:
        """Fresh status for a (re)start; the buffer survives a reload."""
        self.status = SystemStatus()
        self.session = None
        self.session_idle = False
