import signal
import sys
import importlib.util


class RuntimeInfo:
    """Platform probes used to pick signal and locking strategies"""

    @classmethod
    def is_windows(cls) -> bool:
        return sys.platform.startswith("win")

    @classmethod
    def has_reload_signal(cls) -> bool:
        """SIGHUP exists only on POSIX platforms"""
        return hasattr(signal, "SIGHUP")

    @classmethod
    def supports_loop_signal_handlers(cls) -> bool:
        """loop.add_signal_handler() is not implemented on Windows event loops"""
        return not cls.is_windows()

    @classmethod
    def has_flock(cls) -> bool:
        return cls.has_module("fcntl")

    @classmethod
    def has_module(cls, module_name: str) -> bool:
        try:
            return importlib.util.find_spec(module_name) is not None
        except (ImportError, ValueError):
            return False
