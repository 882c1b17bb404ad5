"""
Startup sequencer - ordered, strictly sequential stage activation.

Each stage models a dependency on the previous one being online, so stages
never run concurrently. The first failure aborts the sequence: earlier
stages stay flagged online, later ones are never invoked.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from models.domain import DaemonContext
from models.errors import StartupError
from models.events import StageActivatedEvent
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.STARTUP)


StageActivation = Callable[[DaemonContext], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    """
    One named unit of startup work.

    Attributes:
        key: Status flag key (e.g. "main_power")
        name: Human readable name for logs
        activate: Idempotent coroutine function receiving the daemon context
    """
    key: str
    name: str
    activate: StageActivation


class StartupSequencer:
    """
    Runs a tagged list of stages in order.

    Example:
        sequencer = StartupSequencer(stages, pacing=0.2, event_bus=bus)
        await sequencer.run(context)   # raises StartupError
    """

    def __init__(self, stages: Sequence[Stage], pacing: float = 0.0, event_bus=None):
        """
        Args:
            stages: Ordered stage list
            pacing: Cosmetic delay between stages (seconds, 0 = none)
            event_bus: Optional EventBus for STAGE_ACTIVATED events
        """
        keys = [s.key for s in stages]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate stage keys: {keys}")

        self.stages: List[Stage] = list(stages)
        self.pacing = pacing
        self.event_bus = event_bus

    async def run(self, context: DaemonContext) -> None:
        """
        Activate every stage in order.

        All flags are registered offline first so a partial startup leaves
        a complete picture in the status snapshot.

        Raises:
            StartupError: first failing stage, with the original exception as cause
        """
        status = context.status
        status.reset_stages(s.key for s in self.stages)

        log.info("🔴 Memory system startup initiated", stages=len(self.stages))

        for index, stage in enumerate(self.stages):
            log.info(f"💡 [STAGE {index + 1}] Activating {stage.name}")

            try:
                await stage.activate(context)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error(f"❌ {stage.name} failed: {e}")
                raise StartupError(stage.key, e) from e

            status.mark_stage_online(stage.key)
            log.info(f"✅ {stage.name} online")

            if self.event_bus is not None:
                await self.event_bus.publish(StageActivatedEvent(stage.key, index))

            if self.pacing > 0 and index < len(self.stages) - 1:
                await asyncio.sleep(self.pacing)

        log.info("🟢 All systems online")

    def stage_keys(self) -> List[str]:
        return [s.key for s in self.stages]

    def get_stage(self, key: str) -> Optional[Stage]:
        for stage in self.stages:
            if stage.key == key:
                return stage
        return None
