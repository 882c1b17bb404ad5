from __future__ import annotations

from lifecycle.liveness_marker import LivenessMarker
from lifecycle.shutdown_protocol import IShutdownHandler
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class LivenessMarkerShutdownHandler(IShutdownHandler):
    """
    Removes the PID file and drops the single-instance lock.

    Priority: 10 (runs last, the daemon counts as running until here)
    """

    def __init__(self, marker: LivenessMarker):
        self.marker = marker

    @property
    def shutdown_priority(self) -> int:
        return 10

    async def shutdown(self) -> None:
        self.marker.release()
        log.debug(f"Liveness marker released: {self.marker.pid_path}")
