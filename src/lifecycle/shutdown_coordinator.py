"""
Shutdown coordinator that orchestrates graceful shutdown of all components.

Translates OS signals into a shutdown request, waits for that request, and
runs the registered shutdown handlers in priority order with per-handler and
total timeouts. The handler run is idempotent: concurrent or repeated calls
share the first run.
"""

import asyncio
import signal
from typing import Dict, List, Optional, Tuple

from models.enums import ShutdownTrigger
from models.errors import SignalHandlingError
from runtime.runtime_info import RuntimeInfo
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


def _default_stop_signals() -> Tuple[signal.Signals, ...]:
    return (signal.SIGINT, signal.SIGTERM)


def _default_reload_signals() -> Tuple[signal.Signals, ...]:
    return (signal.SIGHUP,) if RuntimeInfo.has_reload_signal() else ()


class ShutdownCoordinator:
    """
    Coordinates graceful shutdown of multiple components.

    Maintains a list of shutdown handlers and executes them in priority order
    when shutdown is triggered. Handles signal registration, timeout management,
    and error logging.

    Example:
        coordinator = ShutdownCoordinator()
        coordinator.register(SchedulerShutdownHandler(scheduler))
        coordinator.register(FinalFlushHandler(memory_service))
        coordinator.register(LivenessMarkerShutdownHandler(marker))

        coordinator.setup_signal_handlers(loop)
        trigger = await coordinator.wait_for_shutdown()
        await coordinator.shutdown_all()
    """

    def __init__(self, timeout_per_handler: float = 5.0, total_timeout: float = 15.0):
        """
        Initialize shutdown coordinator.

        Args:
            timeout_per_handler: Timeout for each individual handler (seconds)
            total_timeout: Total timeout for entire shutdown sequence (seconds)
        """
        self._handlers: List = []
        self._shutdown_event = asyncio.Event()
        self._timeout_per_handler = timeout_per_handler
        self._total_timeout = total_timeout
        self._trigger: Optional[ShutdownTrigger] = None
        self._reason: Optional[str] = None
        self._shutdown_task: Optional[asyncio.Future] = None
        self._installed_signals: List[signal.Signals] = []
        self._previous_handlers: Dict[signal.Signals, object] = {}

    # -----------------------------
    # Handlers
    # -----------------------------

    def register(self, handler) -> None:
        """
        Register a shutdown handler.

        Handler must have:
        - shutdown_priority property (int)
        - async shutdown() method

        Args:
            handler: Object implementing IShutdownHandler protocol
        """
        if not hasattr(handler, "shutdown_priority"):
            raise ValueError(f"Handler {handler} missing shutdown_priority property")
        if not hasattr(handler, "shutdown"):
            raise ValueError(f"Handler {handler} missing shutdown() method")

        self._handlers.append(handler)
        log.debug(f"Registered shutdown handler: {handler.__class__.__name__}")

    def get_handler(self, handler_type: type):
        """Get a registered handler by type (testing / debugging)."""
        for handler in self._handlers:
            if isinstance(handler, handler_type):
                return handler
        return None

    # -----------------------------
    # Requests & signals
    # -----------------------------

    @property
    def trigger(self) -> Optional[ShutdownTrigger]:
        return self._trigger

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_event.is_set()

    def request_shutdown(self, trigger: ShutdownTrigger, reason: str) -> bool:
        """
        Ask the daemon to stop or reload.

        A request while another is pending is ignored, except that a STOP
        upgrades a pending RELOAD (the daemon then exits instead of restarting).

        Returns:
            True if the request changed the pending action
        """
        if self._shutdown_event.is_set():
            if trigger is ShutdownTrigger.STOP and self._trigger is ShutdownTrigger.RELOAD:
                log.info(f"{reason} received during reload → will stop instead")
                self._trigger = ShutdownTrigger.STOP
                self._reason = reason
                return True
            log.debug(f"{reason} ignored, shutdown already in progress")
            return False

        self._trigger = trigger
        self._reason = reason
        self._shutdown_event.set()
        return True

    def _on_signal(self, sig: signal.Signals, trigger: ShutdownTrigger) -> None:
        """Signal callback: never lets an exception escape."""
        try:
            if self.request_shutdown(trigger, sig.name):
                log.info(f"Signal {sig.name} received → {trigger.name.lower()}")
        except Exception as e:
            error = SignalHandlingError(sig.name, e)
            log.error(error.message, exc_info=True)

    def setup_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        stop_signals: Optional[Tuple[signal.Signals, ...]] = None,
        reload_signals: Optional[Tuple[signal.Signals, ...]] = None,
    ) -> None:
        """
        Install OS signal handlers.

        SIGINT/SIGTERM request a stop, SIGHUP (POSIX only) a reload.

        Args:
            loop: Running asyncio event loop
        """
        stop_signals = stop_signals if stop_signals is not None else _default_stop_signals()
        reload_signals = reload_signals if reload_signals is not None else _default_reload_signals()

        mapping = [(s, ShutdownTrigger.STOP) for s in stop_signals]
        mapping += [(s, ShutdownTrigger.RELOAD) for s in reload_signals]

        for sig, trigger in mapping:
            try:
                if RuntimeInfo.supports_loop_signal_handlers():
                    loop.add_signal_handler(sig, self._on_signal, sig, trigger)
                else:
                    self._previous_handlers[sig] = signal.signal(
                        sig,
                        lambda signum, frame, t=trigger: loop.call_soon_threadsafe(
                            self._on_signal, signal.Signals(signum), t
                        ),
                    )
                self._installed_signals.append(sig)
            except (ValueError, OSError, RuntimeError) as e:
                log.error(f"Could not install handler for {sig.name}: {e}")

        log.info(
            "Signal handlers installed",
            signals=", ".join(s.name for s in self._installed_signals),
        )

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Undo setup_signal_handlers()."""
        for sig in self._installed_signals:
            try:
                if RuntimeInfo.supports_loop_signal_handlers():
                    loop.remove_signal_handler(sig)
                else:
                    signal.signal(sig, self._previous_handlers.get(sig, signal.SIG_DFL))
            except (ValueError, OSError, RuntimeError) as e:
                log.warn(f"Could not remove handler for {sig.name}: {e}")
        self._installed_signals.clear()
        self._previous_handlers.clear()

    async def wait_for_shutdown(self) -> ShutdownTrigger:
        """
        Block until a stop or reload is requested.

        Returns:
            The requested action
        """
        await self._shutdown_event.wait()
        log.debug(f"Shutdown requested ({self._reason})")
        return self._trigger or ShutdownTrigger.STOP

    # -----------------------------
    # Shutdown sequence
    # -----------------------------

    async def shutdown_all(self, reason: Optional[str] = None) -> None:
        """
        Execute graceful shutdown of all handlers in priority order.

        Idempotent: the first call starts the sequence, concurrent callers
        await that same run, later callers return immediately. reset()
        re-arms the coordinator for another cycle.
        """
        if self._shutdown_task is None:
            if not self._shutdown_event.is_set():
                self.request_shutdown(ShutdownTrigger.STOP, reason or "MANUAL")
            self._shutdown_task = asyncio.ensure_future(
                self._run_handlers(reason or self._reason or "MANUAL")
            )
        else:
            log.debug("shutdown_all() called again, joining existing run")

        await asyncio.shield(self._shutdown_task)

    async def _run_handlers(self, reason: str) -> None:
        log.info("🛑 Initiating graceful shutdown sequence...")
        log.info(f"   Reason: {reason}")

        # Sort by priority (highest first)
        sorted_handlers = sorted(
            self._handlers, key=lambda h: h.shutdown_priority, reverse=True
        )

        loop = asyncio.get_running_loop()
        start_time = loop.time()

        for handler in sorted_handlers:
            handler_name = handler.__class__.__name__

            elapsed = loop.time() - start_time
            if elapsed > self._total_timeout:
                log.error(
                    f"⚠️  Total shutdown timeout exceeded ({elapsed:.1f}s > {self._total_timeout}s)"
                )
                break

            try:
                log.debug(f"Shutting down {handler_name} (priority={handler.shutdown_priority})...")
                await asyncio.wait_for(handler.shutdown(), timeout=self._timeout_per_handler)
                log.debug(f"✓ {handler_name} shutdown complete")

            except asyncio.TimeoutError:
                log.error(f"⚠️  {handler_name} shutdown timeout ({self._timeout_per_handler}s)")

            except Exception as e:
                # Continue with other handlers even if one fails
                log.error(f"❌ Error shutting down {handler_name}: {e}", exc_info=True)

        log.info("✓ Shutdown sequence complete")

    @property
    def shutdown_complete(self) -> bool:
        return self._shutdown_task is not None and self._shutdown_task.done()

    def reset(self) -> None:
        """Re-arm for another start/shutdown cycle (reload)."""
        if self._shutdown_task is not None and not self._shutdown_task.done():
            raise RuntimeError("Cannot reset while shutdown is running")
        self._shutdown_event.clear()
        self._shutdown_task = None
        self._trigger = None
        self._reason = None
