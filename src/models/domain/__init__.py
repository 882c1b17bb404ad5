"""Domain models - daemon state objects"""

from models.domain.status import SystemStatus
from models.domain.session import Session
from models.domain.message_buffer import MessageBuffer, MessageEntry
from models.domain.daemon_context import DaemonContext

__all__ = [
    "SystemStatus",
    "Session",
    "MessageBuffer",
    "MessageEntry",
    "DaemonContext",
]
