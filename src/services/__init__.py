"""Services layer"""

from .event_bus import EventBus
from .persistence_service import PersistenceService, BackupResult
from .periodic_scheduler import PeriodicScheduler, PeriodicTask
from .memory_service import MemoryService
from .status_reporter import StatusReporter, StatusReport
from .service_container import ServiceContainer

__all__ = [
    "EventBus",
    "PersistenceService",
    "BackupResult",
    "PeriodicScheduler",
    "PeriodicTask",
    "MemoryService",
    "StatusReporter",
    "StatusReport",
    "ServiceContainer",
]
