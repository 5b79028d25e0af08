"""
Resource Management Utilities

Memory budget checks for output allocation and CPU counting for sizing
the correction thread pool.
"""

import numpy as np
import psutil
from typing import Tuple, Optional


class MemoryManager:
    """Reports memory and CPU resources available to the process"""

    def __init__(self, max_memory_gb: float = 10.0):
        """
        Initialize memory manager

        Args:
            max_memory_gb: Maximum GB to use for in-memory operations (default 10GB)
        """
        self.max_memory_bytes = int(max_memory_gb * 1024**3)

    def get_available_memory(self) -> int:
        """Get currently available system memory in bytes"""
        return psutil.virtual_memory().available

    def can_fit_in_memory(self, array_shape: Tuple, dtype: np.dtype) -> bool:
        """
        Check if an array of given shape and dtype can fit in available memory

        Args:
            array_shape: Shape tuple
            dtype: NumPy dtype

        Returns:
            True if array fits in memory budget
        """
        array_bytes = int(np.prod(array_shape)) * np.dtype(dtype).itemsize
        available = self.get_available_memory()
        return array_bytes < min(self.max_memory_bytes, available * 0.8)

    def available_threads(self) -> int:
        """Number of logical CPUs, never less than one"""
        count = psutil.cpu_count(logical=True)
        return max(1, count or 1)


# Global memory manager instance
_memory_manager: Optional[MemoryManager] = None


def get_memory_manager(max_memory_gb: float = 10.0) -> MemoryManager:
    """Get or create global memory manager"""
    global _memory_manager
    if _memory_manager is None:
        _memory_manager = MemoryManager(max_memory_gb)
    return _memory_manager
