"""
Event system for the memory daemon

Lifecycle and periodic-task events published on the EventBus.
"""

from models.events.types import EventType
from models.events.base import Event
from models.events.sources import EventSource

from models.events.daemon_events import (
    DaemonStartedEvent,
    DaemonStoppedEvent,
    StageActivatedEvent,
    HealthIssuesEvent,
    ChatBackedUpEvent,
    StateSavedEvent,
    SessionStartedEvent,
)

__all__ = [
    # Type, base, and sources
    "EventType",
    "Event",
    "EventSource",

    # Lifecycle
    "DaemonStartedEvent",
    "DaemonStoppedEvent",
    "StageActivatedEvent",

    # Periodic tasks
    "HealthIssuesEvent",
    "ChatBackedUpEvent",
    "StateSavedEvent",
    "SessionStartedEvent",
]
