"""
Unit tests for dependencies/graph.py

Tests dependency records, wholesale replacement and the derived inverted index.
"""

import threading

import pytest

from sitebuild.core.units import ContentUnit
from sitebuild.dependencies.graph import DependencyGraph


@pytest.fixture
def graph():
    return DependencyGraph()


class TestRecord:
    """Test DependencyGraph.record."""

    def test_record_creates_entry(self, graph, units):
        """Recording a unit stores exactly its keys."""
        graph.record(units[0], {"a", "b"})

        assert graph.has_record(units[0])
        assert graph.get_record(units[0]) == frozenset({"a", "b"})

    def test_unrecorded_unit_has_empty_record(self, graph, units):
        """Before first render a unit has no record."""
        assert not graph.has_record(units[0])
        assert graph.get_record(units[0]) == frozenset()
        assert units[0] not in graph

    def test_record_replaces_not_merges(self, graph, units):
        """A new record drops keys the previous render reported."""
        graph.record(units[0], {"a", "b"})
        graph.record(units[0], {"b", "c"})

        assert graph.get_record(units[0]) == frozenset({"b", "c"})

    def test_record_is_idempotent(self, graph, units):
        """Recording identical input twice leaves the same state."""
        graph.record(units[0], {"a"})
        graph.record(units[0], {"a"})

        assert graph.get_record(units[0]) == frozenset({"a"})
        assert len(graph) == 1

    def test_record_empty_set(self, graph, units):
        """A render with no dependencies still creates a record."""
        graph.record(units[0], set())

        assert graph.has_record(units[0])
        assert graph.get_record(units[0]) == frozenset()

    def test_units_with_equal_metadata_are_distinct(self, graph):
        """Identity, not field equality, distinguishes units."""
        first = ContentUnit(handle="same")
        second = ContentUnit(handle="same")

        graph.record(first, {"a"})
        graph.record(second, {"b"})

        assert len(graph) == 2
        assert graph.affected_by({"a"}) == {first}


class TestAffectedBy:
    """Test DependencyGraph.affected_by."""

    def test_returns_units_depending_on_key(self, graph, units):
        graph.record(units[0], {"x"})
        graph.record(units[1], {"y"})

        assert graph.affected_by({"x"}) == {units[0]}
        assert graph.affected_by({"y"}) == {units[1]}

    def test_union_over_changed_keys(self, graph, units):
        graph.record(units[0], {"x"})
        graph.record(units[1], {"y"})
        graph.record(units[2], {"z"})

        assert graph.affected_by({"x", "y"}) == {units[0], units[1]}

    def test_shared_key_returns_all_dependents(self, graph, units):
        for unit in units:
            graph.record(unit, {"layout"})

        assert graph.affected_by({"layout"}) == set(units)

    def test_unknown_key_returns_empty(self, graph, units):
        """A key nobody references is a valid, empty outcome."""
        graph.record(units[0], {"x"})

        assert graph.affected_by({"nobody-uses-this"}) == set()

    def test_empty_changes_return_empty(self, graph, units):
        graph.record(units[0], {"x"})

        assert graph.affected_by(set()) == set()

    def test_unrecorded_units_never_returned(self, graph, units):
        graph.record(units[0], {"x"})

        assert units[1] not in graph.affected_by({"x"})

    def test_exact_tracking_after_rerecord(self, graph, units):
        """After re-render, dropped keys no longer select the unit."""
        graph.record(units[0], {"old", "kept"})
        graph.record(units[0], {"kept", "new"})

        assert graph.affected_by({"old"}) == set()
        assert graph.affected_by({"kept"}) == {units[0]}
        assert graph.affected_by({"new"}) == {units[0]}

    def test_computed_from_current_records(self, graph, units):
        """Results reflect records changed since the previous query."""
        graph.record(units[0], {"x"})
        assert graph.affected_by({"x"}) == {units[0]}

        graph.record(units[1], {"x"})
        assert graph.affected_by({"x"}) == {units[0], units[1]}


class TestInvertedIndex:
    """Test the derived key -> units view."""

    def test_inverted_index_matches_records(self, graph, units):
        graph.record(units[0], {"a", "b"})
        graph.record(units[1], {"b"})

        index = graph.inverted_index()

        assert index == {"a": {units[0]}, "b": {units[0], units[1]}}

    def test_inverted_index_is_a_snapshot(self, graph, units):
        """Mutating the returned index does not touch the records."""
        graph.record(units[0], {"a"})

        index = graph.inverted_index()
        index["a"].add(units[1])

        assert graph.affected_by({"a"}) == {units[0]}

    def test_keys(self, graph, units):
        graph.record(units[0], {"a", "b"})
        graph.record(units[1], {"c"})

        assert graph.keys() == {"a", "b", "c"}


class TestSerialization:
    """Test diagnostics serialization."""

    def test_to_dict(self, graph, units):
        graph.record(units[0], {"b", "a"})

        data = graph.to_dict()

        assert data["unit_count"] == 1
        assert data["records"]["unit-0"] == ["a", "b"]

    def test_clear(self, graph, units):
        graph.record(units[0], {"a"})
        graph.clear()

        assert len(graph) == 0
        assert graph.affected_by({"a"}) == set()


class TestConcurrency:
    """Test that concurrent writers never corrupt the records."""

    def test_concurrent_records(self, graph):
        units = [ContentUnit(handle=f"u{i}") for i in range(50)]

        def writer(offset):
            for round_ in range(20):
                for unit in units[offset::5]:
                    graph.record(unit, {f"k{round_}", "shared"})

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(graph) == 50
        assert graph.affected_by({"shared"}) == set(units)
        for unit in units:
            assert graph.get_record(unit) == frozenset({"k19", "shared"})
