"""
Tests for ShutdownCoordinator: priority order, idempotence, timeouts and
stop/reload requests.
"""

import asyncio
import signal

import pytest

from lifecycle.shutdown_coordinator import ShutdownCoordinator
from models.enums import ShutdownTrigger


class RecordingHandler:
    def __init__(self, name, priority, calls, delay=0.0, fail=False):
        self.name = name
        self._priority = priority
        self.calls = calls
        self.delay = delay
        self.fail = fail

    @property
    def shutdown_priority(self) -> int:
        return self._priority

    async def shutdown(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")


@pytest.mark.asyncio
async def test_handlers_run_by_priority_highest_first():
    calls = []
    coordinator = ShutdownCoordinator()
    coordinator.register(RecordingHandler("marker", 10, calls))
    coordinator.register(RecordingHandler("scheduler", 100, calls))
    coordinator.register(RecordingHandler("flush", 50, calls))

    await coordinator.shutdown_all("TEST")

    assert calls == ["scheduler", "flush", "marker"]
    assert coordinator.shutdown_complete


@pytest.mark.asyncio
async def test_shutdown_all_runs_handlers_once_for_concurrent_and_repeated_calls():
    calls = []
    coordinator = ShutdownCoordinator()
    coordinator.register(RecordingHandler("flush", 50, calls, delay=0.05))

    await asyncio.gather(
        coordinator.shutdown_all("A"),
        coordinator.shutdown_all("B"),
        coordinator.shutdown_all("C"),
    )
    await coordinator.shutdown_all("D")

    assert calls == ["flush"]
    assert coordinator.reason == "A"


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_later_handlers():
    calls = []
    coordinator = ShutdownCoordinator()
    coordinator.register(RecordingHandler("flush", 50, calls, fail=True))
    coordinator.register(RecordingHandler("marker", 10, calls))

    await coordinator.shutdown_all("TEST")

    assert calls == ["flush", "marker"]


@pytest.mark.asyncio
async def test_handler_timeout_moves_on():
    calls = []
    coordinator = ShutdownCoordinator(timeout_per_handler=0.05)
    coordinator.register(RecordingHandler("slow", 50, calls, delay=1.0))
    coordinator.register(RecordingHandler("marker", 10, calls))

    await coordinator.shutdown_all("TEST")

    assert calls == ["marker"]


@pytest.mark.asyncio
async def test_wait_for_shutdown_returns_requested_trigger():
    coordinator = ShutdownCoordinator()

    async def request_later():
        await asyncio.sleep(0.01)
        coordinator.request_shutdown(ShutdownTrigger.RELOAD, "SIGHUP")

    asyncio.ensure_future(request_later())
    trigger = await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1.0)

    assert trigger is ShutdownTrigger.RELOAD
    assert coordinator.reason == "SIGHUP"


def test_second_request_ignored_but_stop_upgrades_reload():
    coordinator = ShutdownCoordinator()

    assert coordinator.request_shutdown(ShutdownTrigger.STOP, "SIGTERM")
    assert not coordinator.request_shutdown(ShutdownTrigger.STOP, "SIGINT")
    assert not coordinator.request_shutdown(ShutdownTrigger.RELOAD, "SIGHUP")
    assert coordinator.trigger is ShutdownTrigger.STOP
    assert coordinator.reason == "SIGTERM"

    coordinator = ShutdownCoordinator()
    coordinator.request_shutdown(ShutdownTrigger.RELOAD, "SIGHUP")
    assert coordinator.request_shutdown(ShutdownTrigger.STOP, "SIGTERM")
    assert coordinator.trigger is ShutdownTrigger.STOP


def test_signal_callback_never_raises(monkeypatch):
    coordinator = ShutdownCoordinator()

    def broken(trigger, reason):
        raise RuntimeError("boom")

    monkeypatch.setattr(coordinator, "request_shutdown", broken)

    coordinator._on_signal(signal.SIGTERM, ShutdownTrigger.STOP)


@pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="POSIX signals only")
@pytest.mark.asyncio
async def test_signal_handlers_route_to_shutdown_request():
    coordinator = ShutdownCoordinator()
    loop = asyncio.get_running_loop()
    coordinator.setup_signal_handlers(
        loop, stop_signals=(signal.SIGUSR1,), reload_signals=(signal.SIGUSR2,)
    )
    try:
        signal.raise_signal(signal.SIGUSR2)
        trigger = await asyncio.wait_for(coordinator.wait_for_shutdown(), timeout=1.0)
    finally:
        coordinator.remove_signal_handlers(loop)

    assert trigger is ShutdownTrigger.RELOAD
    assert coordinator.reason == "SIGUSR2"


@pytest.mark.asyncio
async def test_reset_rearms_for_another_cycle():
    calls = []
    coordinator = ShutdownCoordinator()
    coordinator.register(RecordingHandler("flush", 50, calls))

    await coordinator.shutdown_all("FIRST")
    coordinator.reset()
    assert not coordinator.shutdown_requested

    await coordinator.shutdown_all("SECOND")

    assert calls == ["flush", "flush"]
    assert coordinator.reason == "SECOND"
