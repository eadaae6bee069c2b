"""
Unit tests for dependencies/trigger_log.py
"""

import json
from datetime import datetime, timedelta, timezone

from sitebuild.dependencies.trigger_log import TriggerEntry, TriggerLog, TriggerType


class TestTriggerEntry:
    """Test TriggerEntry serialization."""

    def test_to_dict_round_trip(self):
        entry = TriggerEntry(
            trigger_type=TriggerType.UNIT_RENDERED,
            unit="post-a",
            build_id="abc123",
            source="BuildDriver",
            metadata={"dependency_count": 3},
        )

        restored = TriggerEntry.from_dict(entry.to_dict())

        assert restored.entry_id == entry.entry_id
        assert restored.trigger_type == TriggerType.UNIT_RENDERED
        assert restored.unit == "post-a"
        assert restored.metadata == {"dependency_count": 3}


class TestTriggerLog:
    """Test TriggerLog queries and bounds."""

    def test_record_and_len(self):
        log = TriggerLog()
        log.record(TriggerType.CHANGE_RECEIVED, key="a.md")
        log.record(TriggerType.CHANGE_RECEIVED, key="b.md")

        assert len(log) == 2

    def test_query_by_key_newest_first(self):
        log = TriggerLog()
        log.record(TriggerType.CHANGE_RECEIVED, key="a.md")
        log.record(TriggerType.KEY_INVALIDATED, key="a.md")
        log.record(TriggerType.CHANGE_RECEIVED, key="b.md")

        entries = log.get_for_key("a.md")

        assert [e.trigger_type for e in entries] == [
            TriggerType.KEY_INVALIDATED,
            TriggerType.CHANGE_RECEIVED,
        ]

    def test_query_by_unit_and_type(self):
        log = TriggerLog()
        log.record(TriggerType.UNIT_RENDERED, unit="home")
        log.record(TriggerType.UNIT_FAILED, unit="home")
        log.record(TriggerType.UNIT_RENDERED, unit="post")

        failed = log.query(unit="home", trigger_types={TriggerType.UNIT_FAILED})

        assert len(failed) == 1
        assert failed[0].unit == "home"

    def test_get_build_oldest_first(self):
        log = TriggerLog()
        log.record(TriggerType.BUILD_STARTED, build_id="b1")
        log.record(TriggerType.UNIT_RENDERED, build_id="b1", unit="home")
        log.record(TriggerType.BUILD_COMPLETED, build_id="b1")

        entries = log.get_build("b1")

        assert entries[0].trigger_type == TriggerType.BUILD_STARTED
        assert entries[-1].trigger_type == TriggerType.BUILD_COMPLETED

    def test_query_time_range(self):
        log = TriggerLog()
        old = TriggerEntry(
            trigger_type=TriggerType.FLUSH,
            timestamp=datetime.now(timezone.utc) - timedelta(hours=2),
        )
        log.log(old)
        log.record(TriggerType.FLUSH)

        recent = log.query(since=datetime.now(timezone.utc) - timedelta(hours=1))

        assert len(recent) == 1
        assert recent[0].entry_id != old.entry_id

    def test_trims_to_max_entries(self):
        log = TriggerLog(max_entries=5)
        for i in range(12):
            log.record(TriggerType.CHANGE_RECEIVED, key=f"k{i}")

        assert len(log) == 5
        assert log.get_for_key("k0") == []
        assert len(log.get_for_key("k11")) == 1

    def test_export_json(self, tmp_path):
        log = TriggerLog()
        log.record(TriggerType.FLUSH, message="two keys")
        path = tmp_path / "trigger_log.json"

        count = log.export_json(path)

        data = json.loads(path.read_text())
        assert count == 1
        assert data["entry_count"] == 1
        assert data["entries"][0]["trigger_type"] == "flush"

    def test_clear(self):
        log = TriggerLog()
        log.record(TriggerType.FLUSH, key="a")
        log.clear()

        assert len(log) == 0
        assert log.get_for_key("a") == []
