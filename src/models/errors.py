"""
Error taxonomy for the memory daemon

StartupError is fatal (startup aborts, process exits non-zero).
PersistenceError is recovered locally by whoever triggered the write.
SignalHandlingError is only ever logged from inside a signal callback.
"""

from pathlib import Path
from typing import Optional, Union


class DaemonError(Exception):
    """Base class for daemon errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StartupError(DaemonError):
    """A startup stage failed; remaining stages were not activated"""
    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(
            code="STARTUP_FAILED",
            message=f"Startup stage '{stage}' failed: {cause}",
            details={"stage": stage, "cause": repr(cause)},
        )


class PersistenceError(DaemonError):
    """A persistence read or write failed"""
    def __init__(self, operation: str, path: Union[str, Path], cause: BaseException):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            code="PERSISTENCE_FAILED",
            message=f"{operation} failed for {path}: {cause}",
            details={"operation": operation, "path": str(path), "cause": repr(cause)},
        )


class SignalHandlingError(DaemonError):
    """An exception escaped from a signal callback"""
    def __init__(self, signal_name: str, cause: BaseException):
        self.signal_name = signal_name
        self.cause = cause
        super().__init__(
            code="SIGNAL_HANDLER_FAILED",
            message=f"Handler for {signal_name} failed: {cause}",
            details={"signal": signal_name, "cause": repr(cause)},
        )


class AlreadyRunningError(DaemonError):
    """Another daemon instance holds the advisory lock"""
    def __init__(self, lock_path: Union[str, Path], pid: Optional[int] = None):
        self.lock_path = Path(lock_path)
        self.pid = pid
        super().__init__(
            code="ALREADY_RUNNING",
            message=f"Another daemon instance is running (PID: {pid if pid is not None else 'unknown'})",
            details={"lock_path": str(lock_path), "pid": pid},
        )
