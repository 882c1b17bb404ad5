"""
Lifecycle controller
--------------------

Owns one daemon process from start to exit:

    startup  -> directories, log file, liveness marker, stages, scheduler
    run      -> block until a stop/reload request arrives
    shutdown -> scheduler stop, final flush, marker removal (via handlers)

A reload request runs shutdown without exiting, then startup again.
"""

import asyncio
import os
from datetime import datetime, timezone
from typing import Optional, Sequence

from lifecycle.handlers import (
    FinalFlushHandler,
    LivenessMarkerShutdownHandler,
    SchedulerShutdownHandler,
)
from lifecycle.shutdown_coordinator import ShutdownCoordinator
from lifecycle.startup_sequencer import Stage, StartupSequencer
from models.enums import ShutdownTrigger
from models.errors import AlreadyRunningError, PersistenceError, StartupError
from models.events import DaemonStartedEvent, DaemonStoppedEvent
from services.memory_stages import build_default_stages
from services.service_container import ServiceContainer
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LIFECYCLE)


class LifecycleController:
    """
    Drives startup, shutdown and reload of the daemon.

    Keeps `status.daemon_running` true exactly while the scheduler runs:
    it is set after every stage came online, right before the scheduler
    starts, and cleared before the scheduler is stopped.

    Example:
        controller = LifecycleController(services)
        exit_code = await controller.run()
    """

    def __init__(
        self,
        services: ServiceContainer,
        stages: Optional[Sequence[Stage]] = None,
        coordinator: Optional[ShutdownCoordinator] = None,
    ):
        self.services = services
        config = services.config

        if stages is None:
            stages = build_default_stages(
                services.persistence, services.durable_store, services.embeddings
            )
        self.sequencer = StartupSequencer(
            stages, pacing=config.stage_pacing, event_bus=services.event_bus
        )

        self.coordinator = coordinator or ShutdownCoordinator(
            timeout_per_handler=config.shutdown_timeout_per_handler,
            total_timeout=config.shutdown_total_timeout,
        )
        self.coordinator.register(
            SchedulerShutdownHandler(services.scheduler, config.shutdown_timeout_per_handler)
        )
        self.coordinator.register(FinalFlushHandler(services.memory_service))
        self.coordinator.register(LivenessMarkerShutdownHandler(services.marker))

        self._shutdown_task: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self.services.context.status.daemon_running

    # -----------------------------
    # Startup
    # -----------------------------

    async def startup(self) -> None:
        """
        Bring the daemon online.

        Raises:
            StartupError: a stage (or the data directory) failed
            AlreadyRunningError: another instance holds the lock
        """
        s = self.services
        status = s.context.status

        try:
            s.persistence.ensure_directories()
        except PersistenceError as e:
            raise StartupError("data_directories", e) from e
        get_logger().set_log_dir(s.persistence.logs_dir)

        log.info("🚀 Starting memory daemon...", data_dir=str(s.config.data_dir), pid=os.getpid())

        s.marker.acquire()
        try:
            await self.sequencer.run(s.context)
            status.started_at = datetime.now(timezone.utc)
            status.daemon_running = True
            s.scheduler.start()
        except BaseException:
            status.daemon_running = False
            s.marker.release()
            raise

        # First snapshot right away, so `status` has data before the first save interval
        await s.memory_service.save_memory_state()

        log.info("🎯 Memory daemon fully operational")
        await s.event_bus.publish(DaemonStartedEvent(os.getpid()))

    # -----------------------------
    # Shutdown
    # -----------------------------

    async def shutdown(self, reason: str = "MANUAL") -> None:
        """
        Stop periodic tasks, flush, remove the marker.

        Idempotent: concurrent and repeated calls share the first run
        until the controller is re-armed by a reload.
        """
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self._shutdown_sequence(reason))
        await asyncio.shield(self._shutdown_task)

    async def _shutdown_sequence(self, reason: str) -> None:
        s = self.services
        s.context.status.daemon_running = False

        await self.coordinator.shutdown_all(reason)

        # Handlers may have been skipped by the total timeout
        if s.marker.holds_lock or s.marker.read_pid() == os.getpid():
            log.warn("Liveness marker still present after shutdown handlers, releasing")
            s.marker.release()

        await s.event_bus.publish(DaemonStoppedEvent(self.coordinator.reason or reason))
        log.info("👋 Memory daemon stopped", reason=self.coordinator.reason or reason)

    def _rearm(self) -> None:
        self.coordinator.reset()
        self.services.context.reset()
        self._shutdown_task = None

    async def _start_or_abort(self) -> bool:
        """
        Run startup while listening for a stop request.

        A reload request during startup is served once startup finishes;
        a stop request cancels the pending stage.

        Returns:
            True once online, False if startup was abandoned for a stop request
        """
        startup = asyncio.ensure_future(self.startup())
        requested = asyncio.ensure_future(self.coordinator.wait_for_shutdown())
        try:
            await asyncio.wait({startup, requested}, return_when=asyncio.FIRST_COMPLETED)
            while not startup.done() and self.coordinator.trigger is not ShutdownTrigger.STOP:
                await asyncio.wait({startup}, timeout=0.1)

            if startup.done():
                startup.result()
                return True

            log.warn("Stop requested during startup, aborting", reason=self.coordinator.reason)
            startup.cancel()
            await asyncio.gather(startup, return_exceptions=True)
            return False
        finally:
            requested.cancel()
            if not startup.done():
                startup.cancel()

    # -----------------------------
    # Main loop
    # -----------------------------

    async def run(self) -> int:
        """
        Start, then serve until stopped. Reload requests restart in place.

        Returns:
            Process exit code: 0 after a clean shutdown, 1 if startup failed
        """
        loop = asyncio.get_running_loop()
        self.coordinator.setup_signal_handlers(loop)

        try:
            while True:
                try:
                    online = await self._start_or_abort()
                except AlreadyRunningError as e:
                    log.error(f"❌ {e.message}")
                    return 1
                except StartupError as e:
                    log.error(f"❌ Startup failed at {e.stage}: {e.cause}")
                    return 1

                if not online:
                    await self.shutdown(self.coordinator.reason or "MANUAL")
                    return 0

                await self.coordinator.wait_for_shutdown()
                await self.shutdown(self.coordinator.reason or "MANUAL")

                if self.coordinator.trigger != ShutdownTrigger.RELOAD:
                    return 0

                log.info("🔄 Reloading memory daemon...")
                self._rearm()
        finally:
            self.coordinator.remove_signal_handlers(loop)
            await self._close_collaborators()

    async def _close_collaborators(self) -> None:
        for collaborator in (self.services.durable_store, self.services.embeddings):
            try:
                await collaborator.close()
            except Exception as e:
                log.warn(f"Error closing {collaborator.__class__.__name__}: {e}")
