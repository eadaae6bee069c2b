"""
sitebuild Dependency & Invalidation Engine

Provides:
- DependencyGraph: unit -> dependency key records with on-demand inversion
- InvalidationCache: boundary for dropping cached derivations of a key
- DerivationCache: in-memory keyed cache render adapters can share
- TriggerLog: Audit trail for changes, invalidations and renders
"""

from .graph import DependencyGraph
from .invalidation import (
    InvalidationCache,
    NullCache,
    CallbackCache,
    DerivationCache,
)
from .trigger_log import (
    TriggerLog,
    TriggerEntry,
    TriggerType,
)

__all__ = [
    # Graph
    "DependencyGraph",
    # Invalidation
    "InvalidationCache",
    "NullCache",
    "CallbackCache",
    "DerivationCache",
    # Trigger Log
    "TriggerLog",
    "TriggerEntry",
    "TriggerType",
]
