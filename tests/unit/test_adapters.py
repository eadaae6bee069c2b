"""
Unit tests for build/adapters.py
"""

import sys
import types

import pytest

from sitebuild.build.adapters import SiteAdapter, load_adapter
from sitebuild.core.units import ContentUnit
from sitebuild.errors.taxonomy import AdapterLoadError


class MinimalSite(SiteAdapter):

    def load_units(self):
        return [ContentUnit(handle="index")]

    def render(self, unit):
        return "<html/>", set()


@pytest.fixture
def adapter_module(monkeypatch):
    module = types.ModuleType("fake_site_adapters")
    module.MinimalSite = MinimalSite
    module.instance = MinimalSite()
    module.factory = lambda: MinimalSite()
    module.not_an_adapter = 42
    module.broken_factory = lambda: 1 / 0
    monkeypatch.setitem(sys.modules, "fake_site_adapters", module)
    return module


class TestSiteAdapter:
    """Test the adapter contract."""

    def test_hooks_default_to_noops(self):
        site = MinimalSite()

        assert site.configure({"output_dir": "public"}) is None
        assert site.invalidate("a") is None
        assert site.before_full_build() is None
        assert site.after_full_build({}) is None

    def test_abstract_methods_required(self):
        with pytest.raises(TypeError):
            SiteAdapter()


class TestLoadAdapter:
    """Test load_adapter."""

    def test_load_class(self, adapter_module):
        assert isinstance(load_adapter("fake_site_adapters:MinimalSite"), MinimalSite)

    def test_load_instance(self, adapter_module):
        assert load_adapter("fake_site_adapters:instance") is adapter_module.instance

    def test_load_factory(self, adapter_module):
        assert isinstance(load_adapter("fake_site_adapters:factory"), MinimalSite)

    @pytest.mark.parametrize("spec", [
        "no-colon",
        "fake_site_adapters:",
        ":MinimalSite",
        "module_that_does_not_exist_xyz:Site",
        "fake_site_adapters:Missing",
        "fake_site_adapters:not_an_adapter",
        "fake_site_adapters:broken_factory",
    ])
    def test_bad_specs(self, adapter_module, spec):
        with pytest.raises(AdapterLoadError):
            load_adapter(spec)
