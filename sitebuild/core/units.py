"""
sitebuild Content Units

Value types passed between the catalog, the render adapter and the
build engine. The engine treats unit metadata as opaque payload; only
object identity matters for dependency tracking.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional


# =============================================================================
# CONTENT UNIT
# =============================================================================

@dataclass(eq=False)
class ContentUnit:
    """
    One independently renderable item in the corpus (a page or a post).

    Identity is the object itself, so two units with identical metadata
    are still tracked separately.
    """
    handle: str
    title: Optional[str] = None
    url: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Human readable name used in progress output."""
        return self.title or self.url or self.handle

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "title": self.title,
            "url": self.url,
            "date": self.date,
            "description": self.description,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentUnit":
        return cls(
            handle=data["handle"],
            title=data.get("title"),
            url=data.get("url"),
            date=data.get("date"),
            description=data.get("description"),
            metadata=dict(data.get("metadata", {})),
        )

    def __repr__(self) -> str:
        return f"ContentUnit(handle={self.handle!r})"


# =============================================================================
# RENDER OUTPUT
# =============================================================================

@dataclass(frozen=True)
class RenderOutput:
    """Result of rendering one unit: output payload plus the keys it read."""
    output: Any
    dependencies: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if not isinstance(self.dependencies, frozenset):
            object.__setattr__(self, "dependencies", _as_keys(self.dependencies))

    @classmethod
    def coerce(cls, value: Any) -> "RenderOutput":
        """
        Normalize what a render adapter returned.

        Accepts a RenderOutput or an (output, dependencies) pair.

        Raises:
            TypeError: If the value has neither shape
        """
        if isinstance(value, RenderOutput):
            return value
        if isinstance(value, tuple) and len(value) == 2:
            output, dependencies = value
            return cls(output=output, dependencies=_as_keys(dependencies))
        raise TypeError(
            f"Render adapter must return RenderOutput or (output, dependencies), "
            f"got {type(value).__name__}"
        )


def _as_keys(dependencies: Optional[Iterable[str]]) -> FrozenSet[str]:
    if dependencies is None:
        return frozenset()
    if isinstance(dependencies, str):
        # A bare string is one key, not a set of characters
        return frozenset([dependencies])
    return frozenset(dependencies)
