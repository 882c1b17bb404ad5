from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from lifecycle.shutdown_protocol import IShutdownHandler
from utils.logger import get_logger, LogCategory

if TYPE_CHECKING:
    from services.periodic_scheduler import PeriodicScheduler

log = get_logger().for_category(LogCategory.SHUTDOWN)


class SchedulerShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for the periodic scheduler.

    Cancels every pending future firing, then waits (bounded) for firings
    already in flight, so the final flush never races a periodic write.

    Priority: 100 (runs first)
    """

    def __init__(self, scheduler: "PeriodicScheduler", inflight_timeout: Optional[float] = None):
        """
        Args:
            scheduler: PeriodicScheduler to stop
            inflight_timeout: Upper bound for in-flight firings to finish
        """
        self.scheduler = scheduler
        self.inflight_timeout = inflight_timeout

    @property
    def shutdown_priority(self) -> int:
        return 100

    async def shutdown(self) -> None:
        log.info("Stopping periodic tasks...")
        await self.scheduler.stop(wait_inflight=True, timeout=self.inflight_timeout)
        log.debug("Periodic tasks stopped", stats=self.scheduler.stats())
