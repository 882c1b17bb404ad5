"""
Periodic task scheduler

Runs a fixed set of named recurring tasks, each on its own interval, on the
daemon's event loop. Every firing is spawned as its own task, so a slow or
hanging firing never delays the next one and never blocks other schedules.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set

from lifecycle.task_registry import create_tracked_task, TaskCategory
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.TASK)


@dataclass(frozen=True)
class PeriodicTask:
    """
    One recurring task.

    Attributes:
        name: Unique task name (e.g. "backup")
        interval: Period in seconds
        callback: Coroutine function run on every firing
        category: TaskRegistry category of the schedule loop
        run_immediately: Fire once right after start() instead of after one interval
    """
    name: str
    interval: float
    callback: Callable[[], Awaitable[None]]
    category: TaskCategory = TaskCategory.GENERAL
    run_immediately: bool = False


class PeriodicScheduler:
    """
    Schedules PeriodicTask firings.

    - Schedules are independent; firings of the same task may overlap, so
      callbacks must be idempotent or serialize themselves.
    - A failing firing is logged and counted; its schedule keeps going.
    - stop() cancels pending future firings but lets in-flight ones finish.

    Example:
        scheduler = PeriodicScheduler([
            PeriodicTask("backup", 60, service.backup_current_chat),
            PeriodicTask("health", 30, service.perform_health_check),
        ])
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, tasks: Iterable[PeriodicTask] = ()):
        self._tasks: Dict[str, PeriodicTask] = {}
        self._loops: Dict[str, asyncio.Task] = {}
        self._inflight: Set[asyncio.Task] = set()
        self.fire_counts: Counter = Counter()
        self.failure_counts: Counter = Counter()

        for task in tasks:
            self.add(task)

    # === Configuration ===

    def add(self, task: PeriodicTask) -> None:
        if task.interval <= 0:
            raise ValueError(f"Interval for {task.name} must be > 0, got {task.interval}")
        if task.name in self._tasks:
            raise ValueError(f"Duplicate periodic task: {task.name}")
        if self.running:
            raise RuntimeError("Cannot add tasks while the scheduler is running")
        self._tasks[task.name] = task

    @property
    def task_names(self) -> List[str]:
        return list(self._tasks)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._loops.values())

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    # === Lifecycle ===

    def start(self) -> None:
        """Start one schedule loop per task. Must be called from the event loop."""
        if self.running:
            log.warn("Scheduler already running")
            return

        for task in self._tasks.values():
            self._loops[task.name] = create_tracked_task(
                self._schedule_loop(task),
                category=TaskCategory.SCHEDULER,
                description=f"Periodic {task.name} (every {task.interval:g}s)",
            )

        log.info("📊 Background processes started", tasks=", ".join(self._tasks))

    async def stop(self, wait_inflight: bool = True, timeout: Optional[float] = None) -> None:
        """
        Cancel all pending future firings.

        Args:
            wait_inflight: Also wait for firings already running to finish
            timeout: Upper bound for that wait (None = no bound)
        """
        loops = list(self._loops.values())
        for loop_task in loops:
            if not loop_task.done():
                loop_task.cancel()

        if loops:
            await asyncio.gather(*loops, return_exceptions=True)
        self._loops.clear()

        log.info("Background processes stopped", inflight=len(self._inflight))

        if wait_inflight:
            await self.wait_idle(timeout)

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight firings.

        Returns:
            True if nothing is in flight anymore
        """
        pending = set(self._inflight)
        if not pending:
            return True
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        if still_pending:
            log.warn(f"{len(still_pending)} periodic firing(s) still running after {timeout}s")
        return not still_pending

    # === Internals ===

    async def _schedule_loop(self, task: PeriodicTask) -> None:
        try:
            if task.run_immediately:
                self._fire(task)
            while True:
                await asyncio.sleep(task.interval)
                self._fire(task)
        except asyncio.CancelledError:
            log.debug(f"Schedule for {task.name} cancelled")
            raise

    def _fire(self, task: PeriodicTask) -> None:
        self.fire_counts[task.name] += 1
        firing = asyncio.get_running_loop().create_task(
            self._execute(task), name=f"{task.name}#{self.fire_counts[task.name]}"
        )
        self._inflight.add(firing)
        firing.add_done_callback(self._inflight.discard)

    async def _execute(self, task: PeriodicTask) -> None:
        try:
            await task.callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failure_counts[task.name] += 1
            log.error(f"Periodic task {task.name} failed: {e}", exc_info=True)

    def stats(self) -> Dict[str, Dict[str, int]]:
        return {
            name: {
                "fired": self.fire_counts[name],
                "failed": self.failure_counts[name],
            }
            for name in self._tasks
        }
