"""
Status reporter - read-only view of a daemon that may live in another process

Used by the `status`, `stop` and `restart` commands. Nothing here touches
the running daemon's in-memory state: everything is derived from the
liveness marker and the last state snapshot on disk.
"""

import signal
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lifecycle.liveness_marker import LivenessMarker
from models.config import DaemonConfig
from services.persistence_service import PersistenceService
from utils.logger import get_logger, LogCategory
from utils.serialization import Serializer

log = get_logger().for_category(LogCategory.STATUS)


@dataclass
class StatusReport:
    """
    Result of one status query.

    degraded is set when the marker says "running" but the state snapshot
    was missing, malformed or written by a different process.
    """
    running: bool
    pid: Optional[int] = None
    process_alive: Optional[bool] = None
    uptime_seconds: Optional[float] = None
    chats_saved: Optional[int] = None
    last_backup_at: Optional[datetime] = None
    stages: Dict[str, bool] = field(default_factory=dict)
    degraded: bool = False

    def format_lines(self) -> List[str]:
        if not self.running:
            return ["🔴 Memory daemon is not running"]

        lines = [f"🟢 Memory daemon is running (PID: {self.pid if self.pid is not None else '?'})"]
        if self.process_alive is False:
            lines.append("   ⚠️ Process not found, the liveness marker may be stale")
        if self.uptime_seconds is not None:
            lines.append(f"   Uptime: {_format_duration(self.uptime_seconds)}")
        if self.degraded:
            lines.append("   State snapshot unavailable, showing liveness only")
            return lines

        lines.append(f"   Chats saved: {self.chats_saved or 0}")
        last = Serializer.datetime_to_str(self.last_backup_at) if self.last_backup_at else "never"
        lines.append(f"   Last backup: {last}")
        if self.stages:
            online = sum(1 for v in self.stages.values() if v)
            lines.append(f"   Stages online: {online}/{len(self.stages)}")
            for key, active in self.stages.items():
                lines.append(f"     {'✓' if active else '✗'} {key}")
        return lines


def _format_duration(seconds: float) -> str:
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class StatusReporter:
    """
    Answers status queries and sends stop requests.

    Example:
        reporter = StatusReporter(marker, persistence, config)
        for line in reporter.report().format_lines():
            print(line)
    """

    def __init__(self, marker: LivenessMarker, persistence: PersistenceService, config: DaemonConfig):
        self.marker = marker
        self.persistence = persistence
        self.config = config

    def report(self, now: Optional[datetime] = None) -> StatusReport:
        """Build a StatusReport; never raises on missing or malformed files."""
        now = now or datetime.now(timezone.utc)

        if not self.marker.exists():
            return StatusReport(running=False)

        pid = self.marker.read_pid()
        report = StatusReport(
            running=True,
            pid=pid,
            process_alive=LivenessMarker.is_process_alive(pid) if pid is not None else None,
        )

        snapshot = self.persistence.read_state()
        status = self._status_section(snapshot, pid)

        if status is None:
            report.degraded = True
            started_at = self.marker.started_at()
        else:
            started_at = Serializer.str_to_datetime(status.get("started_at")) or self.marker.started_at()
            report.chats_saved = _as_int(status.get("chats_saved_count"))
            report.last_backup_at = Serializer.str_to_datetime(status.get("last_backup_at"))
            stages = status.get("stages")
            if isinstance(stages, dict):
                report.stages = {str(k): bool(v) for k, v in stages.items()}

        if started_at is not None:
            report.uptime_seconds = max(0.0, (now - started_at).total_seconds())
        return report

    def _status_section(self, snapshot: Optional[Dict[str, Any]], pid: Optional[int]) -> Optional[Dict[str, Any]]:
        """system_status of a snapshot written by the marker's process, else None."""
        if snapshot is None:
            return None
        status = snapshot.get("system_status")
        if not isinstance(status, dict):
            log.warn("State snapshot has no system_status section")
            return None
        if pid is not None and snapshot.get("pid") not in (None, pid):
            log.debug(f"State snapshot belongs to PID {snapshot.get('pid')}, not {pid}")
            return None
        return status

    def stop(self, wait_timeout: Optional[float] = None, poll_interval: float = 0.1) -> str:
        """
        Ask the daemon recorded in the marker to terminate.

        Returns:
            Human-readable outcome (the CLI prints it and exits 0 either way)
        """
        wait_timeout = self.config.stop_wait_timeout if wait_timeout is None else wait_timeout

        if not self.marker.exists():
            return "🔴 Memory daemon is not running"

        pid = self.marker.read_pid()
        if pid is None or not LivenessMarker.is_process_alive(pid):
            self.marker.remove()
            log.warn(f"Removed stale liveness marker (PID: {pid})")
            return "🔴 Memory daemon is not running (removed stale liveness marker)"

        try:
            LivenessMarker.send_signal(pid, signal.SIGTERM)
        except ProcessLookupError:
            self.marker.remove()
            return "🔴 Memory daemon is not running (removed stale liveness marker)"
        except PermissionError as e:
            log.error(f"Cannot signal PID {pid}: {e}")
            return f"❌ Not allowed to stop memory daemon (PID: {pid})"

        log.info(f"🛑 Stop signal sent to PID {pid}")

        deadline = time.monotonic() + wait_timeout
        while self.marker.exists() and time.monotonic() < deadline:
            time.sleep(poll_interval)

        if self.marker.exists():
            return f"⚠️ Memory daemon (PID: {pid}) did not stop within {wait_timeout:g}s"
        return f"✅ Memory daemon stopped (PID: {pid})"


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None
