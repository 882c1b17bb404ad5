"""Runtime/platform probes"""

from .runtime_info import RuntimeInfo

__all__ = ["RuntimeInfo"]
