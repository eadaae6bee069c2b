"""
sitebuild Build Layer

Provides:
- BuildDriver: renders full and partial batches, records dependencies
- ChangeCoalescer: debounces raw change notifications into flushes
- BuildSession: owns the graph, cache and coalescer for one process
- SiteAdapter: contract for catalog, renderer and post-build hooks
"""

from .adapters import SiteAdapter, load_adapter
from .driver import BuildDriver, BuildResult
from .coalescer import ChangeCoalescer, CoalescerState
from .session import BuildSession

__all__ = [
    # Adapters
    "SiteAdapter",
    "load_adapter",
    # Driver
    "BuildDriver",
    "BuildResult",
    # Coalescer
    "ChangeCoalescer",
    "CoalescerState",
    # Session
    "BuildSession",
]
