"""
Lifecycle subsystem
-------------------

Exports the public API for:
- startup sequencing
- graceful shutdown
- task tracking & introspection
- the liveness marker

Internal modules remain private. External code should import from:
    from lifecycle import ShutdownCoordinator, StartupSequencer
    from lifecycle.handlers import FinalFlushHandler
"""

from .shutdown_coordinator import ShutdownCoordinator
from .task_registry import TaskRegistry, TaskCategory, TaskInfo, create_tracked_task
from .shutdown_protocol import IShutdownHandler
from .startup_sequencer import Stage, StartupSequencer
from .liveness_marker import LivenessMarker
from . import handlers

__all__ = [
    "ShutdownCoordinator",
    "TaskRegistry",
    "TaskCategory",
    "TaskInfo",
    "create_tracked_task",
    "IShutdownHandler",
    "Stage",
    "StartupSequencer",
    "LivenessMarker",
    "handlers",
]
