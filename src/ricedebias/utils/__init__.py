"""
Shared utilities: logging and resource management.
"""

from .logger import DebiasLogger, get_logger, get_debias_logger
from .memory_manager import MemoryManager, get_memory_manager

__all__ = [
    "DebiasLogger",
    "get_logger",
    "get_debias_logger",
    "MemoryManager",
    "get_memory_manager",
]
