"""
Assembly - dependency graph construction and stage scheduling.
"""

from .graph import DependencyGraph, GraphBuilder
from .scheduler import StageScheduler

__all__ = [
    "DependencyGraph",
    "GraphBuilder",
    "StageScheduler",
]
