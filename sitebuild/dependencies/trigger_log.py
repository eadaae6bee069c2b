"""
sitebuild Trigger Log

Audit trail of what the build engine did and why: which change
notifications arrived, which keys each flush invalidated, which units were
rendered, and how each build ended.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union
import json
import logging
import threading
import uuid

from sitebuild.core.constants import DEFAULT_MAX_LOG_ENTRIES

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# TRIGGER TYPES
# =============================================================================

class TriggerType(Enum):
    """Type of trigger event."""
    CHANGE_RECEIVED = "change_received"   # Raw change notification accepted
    FLUSH = "flush"                       # Coalesced key set flushed
    KEY_INVALIDATED = "key_invalidated"   # Cache entry for a key dropped
    UNIT_RENDERED = "unit_rendered"       # Unit rendered and recorded
    UNIT_FAILED = "unit_failed"           # Render adapter raised
    BUILD_STARTED = "build_started"       # Full or partial build began
    BUILD_COMPLETED = "build_completed"   # Build finished (possibly with failures)
    AGGREGATE_HOOK = "aggregate_hook"     # Post-build hook ran


# =============================================================================
# TRIGGER ENTRY
# =============================================================================

@dataclass
class TriggerEntry:
    """A single entry in the trigger log."""
    entry_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=_now)

    trigger_type: TriggerType = TriggerType.CHANGE_RECEIVED

    # Subject
    key: Optional[str] = None
    unit: Optional[str] = None
    build_id: Optional[str] = None

    # Context
    source: str = "unknown"
    message: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "trigger_type": self.trigger_type.value,
            "key": self.key,
            "unit": self.unit,
            "build_id": self.build_id,
            "source": self.source,
            "message": self.message,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerEntry":
        return cls(
            entry_id=data.get("entry_id", str(uuid.uuid4())[:12]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else _now(),
            trigger_type=TriggerType(data.get("trigger_type", "change_received")),
            key=data.get("key"),
            unit=data.get("unit"),
            build_id=data.get("build_id"),
            source=data.get("source", "unknown"),
            message=data.get("message", ""),
            metadata=data.get("metadata", {}),
        )


# =============================================================================
# TRIGGER LOG
# =============================================================================

class TriggerLog:
    """
    Bounded, queryable audit trail for one build session.

    Entries are indexed by key, unit handle and build id. Once
    ``max_entries`` is exceeded the oldest entries are dropped.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_LOG_ENTRIES):
        self._entries: List[TriggerEntry] = []
        self._max_entries = max_entries
        self._lock = threading.Lock()

        # Indexes for fast lookup
        self._by_key: Dict[str, List[TriggerEntry]] = {}
        self._by_unit: Dict[str, List[TriggerEntry]] = {}
        self._by_build: Dict[str, List[TriggerEntry]] = {}

    def log(self, entry: TriggerEntry) -> str:
        """
        Add an entry to the log.

        Returns:
            Entry ID
        """
        with self._lock:
            self._entries.append(entry)
            self._index(entry)

            if len(self._entries) > self._max_entries:
                self._trim_entries()

        return entry.entry_id

    def record(
        self,
        trigger_type: TriggerType,
        key: Optional[str] = None,
        unit: Optional[str] = None,
        build_id: Optional[str] = None,
        source: str = "unknown",
        message: str = "",
        **metadata: Any,
    ) -> str:
        """Convenience method to build and log an entry."""
        return self.log(TriggerEntry(
            trigger_type=trigger_type,
            key=key,
            unit=unit,
            build_id=build_id,
            source=source,
            message=message,
            metadata=metadata,
        ))

    def query(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        key: Optional[str] = None,
        unit: Optional[str] = None,
        build_id: Optional[str] = None,
        trigger_types: Optional[Set[TriggerType]] = None,
        limit: int = 100,
    ) -> List[TriggerEntry]:
        """
        Query the trigger log.

        Returns:
            List of matching entries (newest first)
        """
        with self._lock:
            if key is not None:
                entries = list(self._by_key.get(key, []))
            elif unit is not None:
                entries = list(self._by_unit.get(unit, []))
            elif build_id is not None:
                entries = list(self._by_build.get(build_id, []))
            else:
                entries = list(self._entries)

        filtered = []
        for entry in reversed(entries):
            if since and entry.timestamp < since:
                continue
            if until and entry.timestamp > until:
                continue
            if key is not None and entry.key != key:
                continue
            if unit is not None and entry.unit != unit:
                continue
            if build_id is not None and entry.build_id != build_id:
                continue
            if trigger_types and entry.trigger_type not in trigger_types:
                continue

            filtered.append(entry)
            if len(filtered) >= limit:
                break

        return filtered

    def get_recent(self, count: int = 100) -> List[TriggerEntry]:
        """Get most recent entries."""
        with self._lock:
            return list(reversed(self._entries[-count:]))

    def get_for_key(self, key: str, limit: int = 100) -> List[TriggerEntry]:
        return self.query(key=key, limit=limit)

    def get_for_unit(self, unit: str, limit: int = 100) -> List[TriggerEntry]:
        return self.query(unit=unit, limit=limit)

    def get_build(self, build_id: str) -> List[TriggerEntry]:
        """Get all entries for a build, oldest first."""
        with self._lock:
            return list(self._by_build.get(build_id, []))

    def export_json(self, path: Union[str, Path], limit: int = 10000) -> int:
        """
        Export log entries to a JSON file.

        Returns:
            Number of entries exported
        """
        entries = self.query(limit=limit)
        data = {
            "exported_at": _now().isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }

        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(entries)} trigger log entries to {path}")
        return len(entries)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": [e.to_dict() for e in self._entries[-1000:]],
                "max_entries": self._max_entries,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._by_key.clear()
            self._by_unit.clear()
            self._by_build.clear()

    def _index(self, entry: TriggerEntry) -> None:
        if entry.key:
            self._by_key.setdefault(entry.key, []).append(entry)
        if entry.unit:
            self._by_unit.setdefault(entry.unit, []).append(entry)
        if entry.build_id:
            self._by_build.setdefault(entry.build_id, []).append(entry)

    def _trim_entries(self) -> None:
        """Trim to max entries and rebuild indexes."""
        trim_count = len(self._entries) - self._max_entries
        self._entries = self._entries[trim_count:]

        self._by_key.clear()
        self._by_unit.clear()
        self._by_build.clear()
        for entry in self._entries:
            self._index(entry)

        logger.debug(f"Trimmed {trim_count} trigger log entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
