"""
Config Manager

Loads the daemon YAML configuration (with include system support),
applies environment overrides and builds a validated DaemonConfig.
"""

import json
import os
import yaml
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from utils.logger import get_logger, LogCategory
from models.config import DaemonConfig
from models.enums import LogLevel

log = get_logger().for_category(LogCategory.CONFIG)


# Environment variable → config key. Applied after YAML.
ENV_OVERRIDES = {
    "MEMORY_DAEMON_DATA_DIR": "data_dir",
    "MEMORY_DAEMON_LOG_LEVEL": "log_level",
    "MEMORY_DAEMON_DURABLE_STORE_URI": "durable_store_uri",
    "MEMORY_DAEMON_EMBEDDINGS_ENDPOINT": "embeddings_endpoint",
}

# Intervals that must be strictly positive
POSITIVE_KEYS = (
    "backup_interval",
    "state_save_interval",
    "health_check_interval",
    "session_detect_interval",
    "shutdown_timeout_per_handler",
    "shutdown_total_timeout",
    "stop_wait_timeout",
)

# Durations where 0 is meaningful (disabled / no delay)
NON_NEGATIVE_KEYS = ("stage_pacing", "session_idle_timeout", "restart_delay")


class ConfigManager:
    """
    Main configuration manager with include system support

    Loads the YAML file and processes an optional include: directive to
    merge modular YAML files. Falls back to DaemonConfig defaults when the
    file is missing or broken; invalid single values fall back to their
    default and are logged.

    Example:
        config = ConfigManager("config/daemon.yaml").load()
        config.backup_interval   # 60.0
        config.pid_path          # memory-data/memory-daemon.pid
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize ConfigManager

        Args:
            config_path: Path to the YAML file; None means defaults + environment
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self.environ = environ if environ is not None else os.environ
        self.data: Dict[str, Any] = {}

    def load(self) -> DaemonConfig:
        """
        Load YAML configuration and build DaemonConfig

        Process:
        1. Load main YAML file
        2. If it has 'include:' list, load and merge those files
        3. On failure fall back to defaults
        4. Apply environment overrides
        5. Validate and coerce each value

        Returns:
            DaemonConfig instance
        """
        self.data = self._load_yaml()

        for env_key, config_key in ENV_OVERRIDES.items():
            value = self.environ.get(env_key)
            if value:
                self.data[config_key] = value
                log.debug(f"Environment override: {env_key}")

        return self._build(self.data)

    def _load_yaml(self) -> Dict[str, Any]:
        if self.config_path is None:
            log.info("No config file given, using defaults")
            return {}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                main_config = yaml.safe_load(f) or {}

            if not isinstance(main_config, dict):
                raise ValueError(f"top level must be a mapping, got {type(main_config).__name__}")

            if 'include' in main_config:
                log.info("Using include-based configuration")
                includes = main_config.pop('include') or []
                merged = self._load_with_includes(includes, self.config_path.parent)
                merged.update(main_config)
                return merged

            log.info(f"Loaded configuration from {self.config_path}")
            return main_config

        except FileNotFoundError as ex:
            log.warn(f"Config file not found: {ex.filename or self.config_path}, using defaults")
            return {}
        except (yaml.YAMLError, ValueError, OSError) as ex:
            log.error("Failed to load config file", error=str(ex), error_type=type(ex).__name__)
            log.warn("Falling back to defaults")
            return {}

    def _load_with_includes(self, include_list: List[str], config_dir: Path) -> Dict[str, Any]:
        """
        Load and merge multiple YAML files from include list

        Args:
            include_list: List of filenames to load (e.g., ["intervals.yaml", "paths.yaml"])
            config_dir: Directory containing config files

        Returns:
            Merged config dict
        """
        merged: Dict[str, Any] = {}

        for filename in include_list:
            filepath = config_dir / filename
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    file_data = yaml.safe_load(f)
                    if file_data:
                        merged.update(file_data)
                        log.info(f"Loaded {filename}", keys=str(list(file_data.keys())))
            except FileNotFoundError:
                log.error(f"File not found: {filename}")
                raise

        log.info("Config merge complete", total_keys=len(merged))
        return merged

    # ===== Validation =====

    def _build(self, data: Dict[str, Any]) -> DaemonConfig:
        defaults = DaemonConfig()
        known = DaemonConfig.field_names()
        values: Dict[str, Any] = {}

        for key in data:
            if key not in known:
                log.warn(f"Unknown config key ignored: {key}")

        for f in fields(DaemonConfig):
            if f.name not in data:
                continue
            default = getattr(defaults, f.name)
            try:
                values[f.name] = self._coerce(f.name, data[f.name], default)
            except (TypeError, ValueError) as ex:
                log.error(
                    f"Invalid value for {f.name}, using default",
                    value=repr(data[f.name]),
                    default=repr(default),
                    error=str(ex),
                )

        return DaemonConfig(**values)

    @staticmethod
    def _coerce(key: str, value: Any, default: Any) -> Any:
        """Convert a raw YAML/env value to the type of the default"""
        if key == "log_level":
            if isinstance(value, LogLevel):
                return value
            try:
                return LogLevel[str(value).upper()]
            except KeyError:
                raise ValueError(f"unknown log level {value!r}")

        if isinstance(default, Path):
            if not isinstance(value, (str, Path)) or not str(value):
                raise TypeError("expected a path")
            return Path(value).expanduser()

        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.lower() in ("true", "false", "yes", "no", "1", "0"):
                return value.lower() in ("true", "yes", "1")
            raise TypeError("expected a boolean")

        if isinstance(default, float):
            if isinstance(value, bool):
                raise TypeError("expected a number")
            number = float(value)
            if key in POSITIVE_KEYS and number <= 0:
                raise ValueError("must be > 0")
            if key in NON_NEGATIVE_KEYS and number < 0:
                raise ValueError("must be >= 0")
            return number

        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise TypeError("expected a mapping")
            # Stored verbatim in every chat backup
            json.dumps(value)
            return dict(value)

        # Optional[str] connection details
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError("expected a string")
        return value
