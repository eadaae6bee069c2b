"""
errors/taxonomy.py - Error classification for the build engine

Every failure the engine reports is local to the unit or hook that
caused it; these types carry enough context to report it and move on.
"""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from sitebuild.core.units import ContentUnit


class ErrorCategory(Enum):
    """Error categories."""
    RENDER = "render"
    AGGREGATE_HOOK = "aggregate_hook"
    CONFIGURATION = "configuration"
    PROTOCOL = "protocol"
    ADAPTER = "adapter"


class BuildError(Exception):
    """Base exception for build engine errors."""

    category: ErrorCategory = ErrorCategory.RENDER

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.created_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "cause": repr(self.cause) if self.cause is not None else None,
            "created_at": self.created_at.isoformat(),
        }


class RenderFailure(BuildError):
    """The render adapter raised while rendering one unit."""

    category = ErrorCategory.RENDER

    def __init__(self, unit: "ContentUnit", cause: BaseException):
        super().__init__(f"Failed to render {unit.label}: {cause}", cause)
        self.unit = unit
        self.traceback: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["unit"] = self.unit.handle
        return data


class AggregateHookFailure(BuildError):
    """The post-build hook failed after a full build."""

    category = ErrorCategory.AGGREGATE_HOOK

    def __init__(self, cause: BaseException):
        super().__init__(f"Aggregate post-build hook failed: {cause}", cause)


class ConfigurationError(BuildError):
    """Invalid configuration value."""

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ProtocolError(BuildError):
    """Malformed change notification."""

    category = ErrorCategory.PROTOCOL


class AdapterLoadError(BuildError):
    """A site adapter spec could not be imported or instantiated."""

    category = ErrorCategory.ADAPTER
