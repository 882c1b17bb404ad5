from __future__ import annotations

from typing import TYPE_CHECKING

from lifecycle.shutdown_protocol import IShutdownHandler
from utils.logger import get_logger, LogCategory

if TYPE_CHECKING:
    from services.memory_service import MemoryService

log = get_logger().for_category(LogCategory.SHUTDOWN)


class FinalFlushHandler(IShutdownHandler):
    """
    Writes the last chat backup and state snapshot.

    Both writes are attempted even if one fails; MemoryService logs
    persistence failures itself.

    Priority: 50 (after the scheduler stopped)
    """

    def __init__(self, memory_service: "MemoryService"):
        self.memory_service = memory_service

    @property
    def shutdown_priority(self) -> int:
        return 50

    async def shutdown(self) -> None:
        log.info("💾 Final flush of chat backup and memory state...")
        await self.memory_service.final_flush()
