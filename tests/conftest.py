"""
sitebuild Test Configuration and Fixtures

Provides an in-memory site whose renders report a configurable set of
dependency keys, so tests can drive the engine without a file system.
"""

import pytest
from typing import Any, Dict, Iterable, List, Optional, Set

from sitebuild.build.adapters import SiteAdapter
from sitebuild.core.units import ContentUnit, RenderOutput


class FakeSite(SiteAdapter):
    """
    In-memory site adapter.

    ``dependencies`` maps unit handle -> keys the next render reports.
    Handles listed in ``failing`` raise on render.
    """

    def __init__(self, handles: Iterable[str], dependencies: Optional[Dict[str, Set[str]]] = None):
        self.units = [ContentUnit(handle=h, title=h.title(), url=f"/{h}/") for h in handles]
        self.dependencies: Dict[str, Set[str]] = {
            h: set(keys) for h, keys in (dependencies or {}).items()
        }
        self.failing: Set[str] = set()
        self.render_calls: List[str] = []
        self.invalidated: List[str] = []
        self.prepare_calls = 0
        self.aggregate_calls: List[Dict[ContentUnit, Any]] = []
        self.aggregate_error: Optional[Exception] = None
        self.versions: Dict[str, int] = {}
        self.settings: Optional[Dict[str, Any]] = None

    def unit(self, handle: str) -> ContentUnit:
        for unit in self.units:
            if unit.handle == handle:
                return unit
        raise KeyError(handle)

    def load_units(self):
        return list(self.units)

    def render(self, unit: ContentUnit) -> RenderOutput:
        self.render_calls.append(unit.handle)
        if unit.handle in self.failing:
            raise RuntimeError(f"cannot render {unit.handle}")
        version = self.versions.get(unit.handle, 0) + 1
        self.versions[unit.handle] = version
        return RenderOutput(
            output=f"<html>{unit.handle} v{version}</html>",
            dependencies=frozenset(self.dependencies.get(unit.handle, set())),
        )

    def configure(self, settings: Dict[str, Any]) -> None:
        self.settings = settings

    def invalidate(self, key: str) -> None:
        self.invalidated.append(key)

    def before_full_build(self) -> None:
        self.prepare_calls += 1

    def after_full_build(self, outputs: Dict[ContentUnit, Any]) -> None:
        self.aggregate_calls.append(outputs)
        if self.aggregate_error is not None:
            raise self.aggregate_error


@pytest.fixture
def fake_site():
    """Three-unit site: two posts sharing a layout, one standalone page."""
    return FakeSite(
        ["home", "post-a", "post-b"],
        {
            "home": {"pages/home.md", "layouts/base.html"},
            "post-a": {"posts/a.md", "layouts/base.html", "layouts/post.html"},
            "post-b": {"posts/b.md", "layouts/base.html", "layouts/post.html"},
        },
    )


@pytest.fixture
def two_unit_site():
    """U1 depends on {x}, U2 depends on {y}."""
    return FakeSite(["u1", "u2"], {"u1": {"x"}, "u2": {"y"}})


@pytest.fixture
def units():
    return [ContentUnit(handle=f"unit-{i}") for i in range(3)]
