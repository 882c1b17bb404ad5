"""Shared fixtures for the memory daemon tests."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lifecycle.liveness_marker import LivenessMarker
from lifecycle.task_registry import TaskRegistry
from models.config import DaemonConfig
from utils.logger import get_logger


@pytest.fixture(autouse=True)
def _isolate_singletons():
    """Each test gets a fresh task registry and a logger without a log file."""
    TaskRegistry.reset_instance()
    get_logger().set_log_dir(None)
    yield
    TaskRegistry.reset_instance()
    get_logger().set_log_dir(None)


@pytest.fixture
def config(tmp_path):
    """Fast config rooted in a temporary data directory."""
    return DaemonConfig(
        data_dir=tmp_path / "data",
        backup_interval=0.05,
        state_save_interval=0.05,
        health_check_interval=0.05,
        session_detect_interval=0.05,
        stage_pacing=0.0,
        shutdown_timeout_per_handler=2.0,
        shutdown_total_timeout=5.0,
        stop_wait_timeout=0.5,
        restart_delay=0.0,
        log_colors=False,
    )


@pytest.fixture
def services(config):
    from memory_daemon import build_services
    return build_services(config)


@pytest.fixture
def marker(config):
    return LivenessMarker(config.pid_path, config.lock_path)
