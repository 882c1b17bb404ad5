"""
memory_daemon.py - Entry point for the memory daemon
----------------------------------------------------

Responsible for:
- parsing the command (start / stop / status / restart)
- loading configuration
- wiring dependencies (Dependency Injection)
- running the async lifecycle until a stop signal arrives
"""

import sys

# ---------------------------------------------------------------------------
# UTF-8 ENCODING FIX
# ---------------------------------------------------------------------------

# Status lines use Unicode symbols; some service supervisors start us with ASCII stdio
if hasattr(sys.stdout, 'reconfigure') and sys.stdout.encoding != 'UTF-8':
    sys.stdout.reconfigure(encoding='utf-8')  # type: ignore
if hasattr(sys.stderr, 'reconfigure') and sys.stderr.encoding != 'UTF-8':
    sys.stderr.reconfigure(encoding='utf-8')  # type: ignore

import argparse
import asyncio
import time
from pathlib import Path
from typing import List, Optional

from lifecycle.lifecycle_controller import LifecycleController
from lifecycle.liveness_marker import LivenessMarker
from lifecycle.task_registry import TaskCategory
from managers import ConfigManager
from models.config import DaemonConfig
from models.domain import DaemonContext
from models.enums import LogCategory
from services import (
    EventBus, MemoryService, PeriodicScheduler, PeriodicTask,
    PersistenceService, ServiceContainer, StatusReporter,
)
from services.collaborators import default_collaborators
from services.middleware import log_middleware
from utils.logger import get_logger, configure_logger

log = get_logger().for_category(LogCategory.DAEMON)

COMMANDS = ("start", "stop", "status", "restart")


# ---------------------------------------------------------------------------
# WIRING
# ---------------------------------------------------------------------------

def build_periodic_tasks(memory_service: MemoryService, config: DaemonConfig) -> List[PeriodicTask]:
    return [
        PeriodicTask("backup", config.backup_interval,
                     memory_service.backup_current_chat, TaskCategory.BACKUP),
        PeriodicTask("state_save", config.state_save_interval,
                     memory_service.save_memory_state, TaskCategory.STATE),
        PeriodicTask("health_check", config.health_check_interval,
                     memory_service.perform_health_check, TaskCategory.HEALTH),
        PeriodicTask("session_detect", config.session_detect_interval,
                     memory_service.detect_active_session, TaskCategory.SESSION),
    ]


def build_services(config: DaemonConfig, durable_store=None, embeddings=None) -> ServiceContainer:
    """
    Build every service for one daemon process.

    Args:
        config: Effective configuration
        durable_store: Injected long-term store client (Null store if omitted)
        embeddings: Injected embeddings client (Null provider if omitted)
    """
    null_store, null_embeddings = default_collaborators(config)

    event_bus = EventBus()
    event_bus.add_middleware(log_middleware)

    context = DaemonContext()
    persistence = PersistenceService(config.data_dir, config.backup_metadata)
    memory_service = MemoryService(context, persistence, config, event_bus)

    scheduler = PeriodicScheduler(build_periodic_tasks(memory_service, config))
    memory_service.attach_scheduler(scheduler)

    return ServiceContainer(
        config=config,
        context=context,
        persistence=persistence,
        event_bus=event_bus,
        memory_service=memory_service,
        scheduler=scheduler,
        marker=LivenessMarker(config.pid_path, config.lock_path),
        durable_store=durable_store or null_store,
        embeddings=embeddings or null_embeddings,
    )


def load_config(config_path: Optional[str], data_dir: Optional[str]) -> DaemonConfig:
    config = ConfigManager(Path(config_path) if config_path else None).load()
    if data_dir:
        config.data_dir = Path(data_dir)
    configure_logger(config.log_level, config.log_colors)
    return config


# ---------------------------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------------------------

def cmd_start(config: DaemonConfig) -> int:
    """Run the daemon in the foreground until stopped."""
    controller = LifecycleController(build_services(config))
    try:
        return asyncio.run(controller.run())
    except KeyboardInterrupt:
        # Only reachable where no loop signal handler could be installed
        log.info("Keyboard interrupt received")
        return 0


def _reporter(config: DaemonConfig) -> StatusReporter:
    return StatusReporter(
        LivenessMarker(config.pid_path, config.lock_path),
        PersistenceService(config.data_dir, config.backup_metadata),
        config,
    )


def cmd_stop(config: DaemonConfig) -> int:
    print(_reporter(config).stop())
    return 0


def cmd_status(config: DaemonConfig) -> int:
    for line in _reporter(config).report().format_lines():
        print(line)
    return 0


def cmd_restart(config: DaemonConfig) -> int:
    print("🔄 Restarting memory daemon...")
    print(_reporter(config).stop())
    time.sleep(config.restart_delay)
    return cmd_start(config)


HANDLERS = {
    "start": cmd_start,
    "stop": cmd_stop,
    "status": cmd_status,
    "restart": cmd_restart,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memory-daemon",
        description="Background daemon that keeps conversational memory persisted to disk.",
    )
    parser.add_argument("command", nargs="?", default="start", choices=COMMANDS,
                        help="Action to perform (default: start)")
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument("--data-dir", metavar="PATH", help="Override the data directory")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Dispatch one CLI invocation and return its exit code."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config, args.data_dir)
    return HANDLERS[args.command](config)


def cli_main() -> None:
    sys.exit(main())


# ---------------------------------------------------------------------------
# ENTRY POINT
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    cli_main()
