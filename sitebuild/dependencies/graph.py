"""
sitebuild Dependency Graph

Maps every rendered content unit to the set of dependency keys its last
successful render reported. The inverted view (key -> units) is derived
from the records on demand, so it is always consistent with the latest
render of every unit.
"""

from __future__ import annotations
from typing import Any, Dict, FrozenSet, Iterable, List, Set, TYPE_CHECKING
import logging
import threading

if TYPE_CHECKING:
    from sitebuild.core.units import ContentUnit

logger = logging.getLogger(__name__)


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

class DependencyGraph:
    """
    Dependency records for the units of one build session.

    INVARIANT: after a successful render of a unit, its record equals
    exactly the dependency set that render returned.
    """

    def __init__(self):
        self._records: Dict["ContentUnit", FrozenSet[str]] = {}
        self._lock = threading.RLock()

    def record(self, unit: "ContentUnit", keys: Iterable[str]) -> None:
        """
        Replace the unit's dependency set wholesale.

        Keys from a previous render that are absent from ``keys`` are
        dropped, never merged.
        """
        new_keys = frozenset(keys)
        with self._lock:
            previous = self._records.get(unit)
            self._records[unit] = new_keys

        if previous is not None and previous != new_keys:
            logger.debug(
                f"Dependencies of {unit.label} changed: "
                f"+{len(new_keys - previous)} -{len(previous - new_keys)}"
            )

    def affected_by(self, changed_keys: Iterable[str]) -> Set["ContentUnit"]:
        """
        Get units whose current record contains any of the changed keys.

        Returns an empty set when nothing depends on the keys.
        """
        changed = set(changed_keys)
        if not changed:
            return set()

        index = self.inverted_index()
        affected: Set["ContentUnit"] = set()
        for key in changed:
            affected.update(index.get(key, ()))
        return affected

    def inverted_index(self) -> Dict[str, Set["ContentUnit"]]:
        """Build a fresh key -> units index from the current records."""
        index: Dict[str, Set["ContentUnit"]] = {}
        with self._lock:
            for unit, keys in self._records.items():
                for key in keys:
                    units = index.get(key)
                    if units is None:
                        units = set()
                        index[key] = units
                    units.add(unit)
        return index

    def get_record(self, unit: "ContentUnit") -> FrozenSet[str]:
        """Get the unit's current dependency set (empty before first render)."""
        with self._lock:
            return self._records.get(unit, frozenset())

    def has_record(self, unit: "ContentUnit") -> bool:
        with self._lock:
            return unit in self._records

    def units(self) -> List["ContentUnit"]:
        """Get all units that have a record."""
        with self._lock:
            return list(self._records)

    def keys(self) -> Set[str]:
        """Get every key at least one unit depends on."""
        with self._lock:
            result: Set[str] = set()
            for keys in self._records.values():
                result.update(keys)
            return result

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, unit: object) -> bool:
        return self.has_record(unit)  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize records keyed by unit handle (for diagnostics)."""
        with self._lock:
            return {
                "records": {
                    unit.handle: sorted(keys)
                    for unit, keys in self._records.items()
                },
                "unit_count": len(self._records),
            }
