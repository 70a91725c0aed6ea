"""
Sysconverge Adapters - OS primitives the convergence engine drives.
"""

from .base import OsAdapter
from .linux import LinuxAdapter

__all__ = [
    "LinuxAdapter",
    "OsAdapter",
]
