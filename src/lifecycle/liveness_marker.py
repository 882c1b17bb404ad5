"""
Liveness marker and advisory instance lock.

The marker is a PID file whose presence means "a daemon instance believes
it is running". On its own it cannot stop a second instance from starting
after a crash left a stale file behind, so the daemon also holds an
exclusive flock on a separate lock file for its whole lifetime. The kernel
drops that lock when the process dies, which makes stale markers harmless.

Usage:
    marker = LivenessMarker(config.pid_path, config.lock_path)
    marker.acquire()          # raises AlreadyRunningError
    ...
    marker.release()          # removes the PID file, drops the lock
"""

import os
import signal
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, IO

from models.errors import AlreadyRunningError
from runtime.runtime_info import RuntimeInfo
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.LIFECYCLE)


class LivenessMarker:
    """
    PID file plus exclusive advisory lock.

    Read-side helpers (read_pid, started_at, exists) are safe to call from a
    separate short-lived process such as `memory-daemon status`.
    """

    def __init__(self, pid_path: Path, lock_path: Optional[Path] = None):
        """
        Args:
            pid_path: Marker file holding the process identifier
            lock_path: File to flock while running (None disables locking)
        """
        self.pid_path = Path(pid_path)
        self.lock_path = Path(lock_path) if lock_path is not None else None
        self._lock_handle: Optional[IO[str]] = None

    # -----------------------------
    # Daemon side
    # -----------------------------

    def acquire(self, pid: Optional[int] = None) -> None:
        """
        Take the instance lock and write the marker.

        Raises:
            AlreadyRunningError: another live process holds the lock
        """
        pid = pid if pid is not None else os.getpid()
        self._acquire_lock()

        stale_pid = self.read_pid()
        if stale_pid is not None and stale_pid != pid:
            log.warn(f"Overwriting stale liveness marker (PID: {stale_pid})")

        try:
            self.pid_path.parent.mkdir(parents=True, exist_ok=True)
            self.pid_path.write_text(str(pid), encoding="utf-8")
        except OSError:
            self._release_lock()
            raise

        log.debug(f"Liveness marker written: {self.pid_path} (PID: {pid})")

    def release(self) -> bool:
        """
        Remove the marker and drop the lock.

        Returns:
            True if a marker file was removed
        """
        removed = self.remove()
        self._release_lock()
        return removed

    def remove(self) -> bool:
        """Delete the marker file if present."""
        try:
            self.pid_path.unlink()
        except FileNotFoundError:
            return False
        log.debug(f"Liveness marker removed: {self.pid_path}")
        return True

    @property
    def holds_lock(self) -> bool:
        return self._lock_handle is not None

    def _acquire_lock(self) -> None:
        if self.lock_path is None or self._lock_handle is not None:
            return

        if not RuntimeInfo.has_flock():
            log.warn("Advisory locking unavailable on this platform, relying on PID file only")
            return

        import fcntl

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(self.lock_path, "a+", encoding="utf-8")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            handle.close()
            raise AlreadyRunningError(self.lock_path, self.read_pid())
        self._lock_handle = handle

    def _release_lock(self) -> None:
        if self._lock_handle is None:
            return

        import fcntl

        try:
            fcntl.flock(self._lock_handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._lock_handle.close()
            self._lock_handle = None

    # -----------------------------
    # Reader side
    # -----------------------------

    def exists(self) -> bool:
        return self.pid_path.is_file()

    def read_pid(self) -> Optional[int]:
        """PID from the marker, None if missing or garbled."""
        try:
            return int(self.pid_path.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            log.warn(f"Unreadable liveness marker {self.pid_path}: {e}")
            return None

    def started_at(self) -> Optional[datetime]:
        """Marker creation time (mtime), used when no state snapshot exists."""
        try:
            mtime = self.pid_path.stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    @staticmethod
    def is_process_alive(pid: int) -> bool:
        """Probe a PID with signal 0 (no signal is delivered)."""
        if pid <= 0:
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but belongs to another user
            return True
        except OSError:
            return False
        return True

    @staticmethod
    def send_signal(pid: int, sig: int = signal.SIGTERM) -> None:
        os.kill(pid, sig)
