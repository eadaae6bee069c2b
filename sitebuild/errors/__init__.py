"""
errors/ - Error Taxonomy & Aggregation

Structured failure types for renders, post-build hooks, configuration
and the change notification protocol.
"""

from .taxonomy import (
    ErrorCategory,
    BuildError,
    RenderFailure,
    AggregateHookFailure,
    ConfigurationError,
    ProtocolError,
    AdapterLoadError,
)

from .aggregator import (
    ErrorReport,
    ErrorAggregator,
)

__all__ = [
    # Taxonomy
    "ErrorCategory",
    "BuildError",
    "RenderFailure",
    "AggregateHookFailure",
    "ConfigurationError",
    "ProtocolError",
    "AdapterLoadError",
    # Aggregator
    "ErrorReport",
    "ErrorAggregator",
]
