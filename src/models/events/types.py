from enum import Enum, auto


class EventType(Enum):
    # Lifecycle
    DAEMON_STARTED = auto()
    DAEMON_STOPPED = auto()
    STAGE_ACTIVATED = auto()

    # Periodic tasks
    HEALTH_ISSUES = auto()
    CHAT_BACKED_UP = auto()
    STATE_SAVED = auto()
    SESSION_STARTED = auto()
