"""
Models package - Data models for the memory daemon
"""

from .enums import LogLevel, LogCategory, ShutdownTrigger
from .config import DaemonConfig
from .errors import (
    DaemonError,
    StartupError,
    PersistenceError,
    SignalHandlingError,
    AlreadyRunningError,
)

__all__ = [
    'LogLevel',
    'LogCategory',
    'ShutdownTrigger',
    'DaemonConfig',
    'DaemonError',
    'StartupError',
    'PersistenceError',
    'SignalHandlingError',
    'AlreadyRunningError',
]
