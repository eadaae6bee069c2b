"""
build/adapters.py - Site adapter contract

A site adapter bundles the collaborators the engine does not implement:
the content catalog, the render function, the cache the render function
reads through, and corpus-wide post-build work (feeds, style audits).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable
import importlib
import inspect
import logging

from sitebuild.core.units import ContentUnit
from sitebuild.errors.taxonomy import AdapterLoadError

logger = logging.getLogger(__name__)


class SiteAdapter(ABC):
    """
    Collaborators for one site.

    Subclasses must provide ``load_units`` and ``render``; the hooks
    default to no-ops.
    """

    @abstractmethod
    def load_units(self) -> Iterable[ContentUnit]:
        """Return the fixed set of content units for this session."""

    @abstractmethod
    def render(self, unit: ContentUnit) -> Any:
        """Render one unit, returning RenderOutput or (output, dependencies)."""

    def configure(self, settings: Dict[str, Any]) -> None:
        """Receive the free-form ``settings`` section of the configuration."""

    def invalidate(self, key: str) -> None:
        """Drop cached derivations of ``key``."""

    def before_full_build(self) -> None:
        """Reset corpus-wide state ahead of a full build."""

    def after_full_build(self, outputs: Dict[ContentUnit, Any]) -> None:
        """Produce corpus-wide artifacts from the complete output set."""


def load_adapter(spec: str) -> SiteAdapter:
    """
    Import a site adapter from a ``package.module:attribute`` spec.

    The attribute may be a SiteAdapter instance, a SiteAdapter subclass,
    or a zero-argument factory returning an adapter.

    Raises:
        AdapterLoadError: If the spec cannot be resolved to an adapter
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise AdapterLoadError(f"Adapter spec must look like 'module:attribute', got {spec!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise AdapterLoadError(f"Cannot import adapter module {module_name!r}: {e}", e) from e

    target: Any = module
    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise AdapterLoadError(f"Module {module_name!r} has no attribute {attr_path!r}", e) from e

    if isinstance(target, SiteAdapter):
        adapter = target
    elif inspect.isclass(target) or callable(target):
        try:
            adapter = target()
        except Exception as e:
            raise AdapterLoadError(f"Adapter factory {spec!r} raised: {e}", e) from e
    else:
        adapter = target

    if not isinstance(adapter, SiteAdapter):
        raise AdapterLoadError(
            f"{spec!r} resolved to {type(adapter).__name__}, not a SiteAdapter"
        )

    logger.debug(f"Loaded site adapter {type(adapter).__name__} from {spec}")
    return adapter
