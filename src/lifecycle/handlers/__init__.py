from .scheduler_shutdown_handler import SchedulerShutdownHandler
from .final_flush_handler import FinalFlushHandler
from .liveness_marker_shutdown_handler import LivenessMarkerShutdownHandler

__all__ = [
    "SchedulerShutdownHandler",
    "FinalFlushHandler",
    "LivenessMarkerShutdownHandler",
]
