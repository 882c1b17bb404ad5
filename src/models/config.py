"""
Daemon configuration model

Default values defined here are the single source of truth used by
ConfigManager (YAML fallback) and by tests.
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from models.enums import LogLevel


# Keys whose values are connection details and must never be echoed to disk
REDACTED_KEYS = ("durable_store_uri", "embeddings_endpoint")


def _default_backup_metadata() -> Dict[str, Any]:
    return {"source": "memory-daemon", "format_version": 1}


@dataclass
class DaemonConfig:
    """
    Runtime configuration of the memory daemon

    Intervals are in seconds. Relative pid/lock file names are resolved
    against data_dir.
    """

    # === Filesystem ===
    data_dir: Path = Path("memory-data")
    pid_file: Path = Path("memory-daemon.pid")
    lock_file: Path = Path("memory-daemon.lock")

    # === Periodic task intervals ===
    backup_interval: float = 60.0
    state_save_interval: float = 300.0
    health_check_interval: float = 30.0
    session_detect_interval: float = 10.0

    # === Lifecycle ===
    stage_pacing: float = 0.2          # cosmetic delay between startup stages
    session_idle_timeout: float = 1800.0  # 0 disables idle detection
    shutdown_timeout_per_handler: float = 5.0
    shutdown_total_timeout: float = 15.0
    stop_wait_timeout: float = 5.0
    restart_delay: float = 2.0

    # === Logging ===
    log_level: LogLevel = LogLevel.INFO
    log_colors: bool = True

    # === Chat backups ===
    backup_metadata: Dict[str, Any] = field(default_factory=_default_backup_metadata)

    # === External collaborators (injected only, never literal defaults) ===
    durable_store_uri: Optional[str] = None
    embeddings_endpoint: Optional[str] = None

    @property
    def pid_path(self) -> Path:
        return self._resolve(self.pid_file)

    @property
    def lock_path(self) -> Path:
        return self._resolve(self.lock_file)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.data_dir / path

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    def to_public_dict(self) -> Dict[str, Any]:
        """
        Config echo for the state snapshot.

        Connection details are replaced by a marker so they never land on disk.
        """
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Path):
                data[key] = str(value)
        data["log_level"] = self.log_level.name
        for key in REDACTED_KEYS:
            if data.get(key):
                data[key] = "***"
        return data
