from enum import Enum, auto


class EventSource(Enum):
    """Event source identifiers for daemon events"""
    LIFECYCLE = auto()       # Startup sequencer / lifecycle controller
    MEMORY_SERVICE = auto()  # Periodic task bodies
