"""
Utility functions for the memory daemon
"""

from .logger import get_logger, configure_logger
from .serialization import Serializer

__all__ = [
    'get_logger',
    'configure_logger',
    'Serializer',
]
