"""
Enums for the memory daemon
"""

from enum import Enum, auto


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Configuration loading, validation
    SYSTEM = auto()      # Process-level events, fatal errors
    DAEMON = auto()      # Daemon start/stop/restart
    STARTUP = auto()     # Stage activation sequence
    BACKUP = auto()      # Chat buffer flushes
    MEMORY = auto()      # State snapshot writes
    HEALTH = auto()      # Periodic health checks
    SESSION = auto()     # Session detection / replacement
    CHAT = auto()        # Message buffering

    SHUTDOWN = auto()
    LIFECYCLE = auto()
    TASK = auto()
    EVENT = auto()
    STATUS = auto()      # CLI status / stop reporting

    GENERAL = auto()     # Default general category


class ShutdownTrigger(Enum):
    """
    What the daemon should do once the shutdown wait returns.

    STOP: flush, remove liveness marker, exit
    RELOAD: flush, remove liveness marker, run startup again in-place
    """
    STOP = auto()
    RELOAD = auto()
