"""
sitebuild Build Session

Owns the state of one build process: dependency graph, invalidation
cache, build driver, change coalescer, trigger log and error aggregator.
Constructed once at startup and passed by reference; there is no
module-level state.

Incremental cycle, on each coalesced flush of changed keys K:
1. invalidate every key of K in the cache
2. resolve the units whose current records contain a key of K
3. stop if there are none
4. otherwise rebuild exactly those units

INVARIANT: invalidation of every key happens-before the affected units
are resolved, which happens-before any render of the batch.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING
import asyncio
import logging
import uuid

from sitebuild.bootstrap.config import BuildConfig
from sitebuild.core.units import ContentUnit
from sitebuild.dependencies.graph import DependencyGraph
from sitebuild.dependencies.invalidation import CallbackCache, InvalidationCache, NullCache
from sitebuild.dependencies.trigger_log import TriggerLog, TriggerType
from sitebuild.errors.aggregator import ErrorAggregator, ErrorReport

from .coalescer import ChangeCoalescer
from .driver import AggregateHook, BuildDriver, BuildResult, PrepareHook, RenderFunc

if TYPE_CHECKING:
    from sitebuild.protocol.messages import ChangeNotification
    from .adapters import SiteAdapter

logger = logging.getLogger(__name__)


class BuildSession:
    """
    Incremental build orchestrator for one site.

    Usage:
        session = BuildSession.from_adapter(adapter, config.build)
        session.start()
        await session.run(queue)
    """

    def __init__(
        self,
        units: Iterable[ContentUnit],
        render: RenderFunc,
        cache: Optional[InvalidationCache] = None,
        prepare_hook: Optional[PrepareHook] = None,
        aggregate_hook: Optional[AggregateHook] = None,
        config: Optional[BuildConfig] = None,
    ):
        self.config = config or BuildConfig()
        self.config.validate()

        self.graph = DependencyGraph()
        self.cache: InvalidationCache = cache if cache is not None else NullCache()
        self.trigger_log = TriggerLog(max_entries=self.config.max_log_entries)
        self.errors = ErrorAggregator()

        self.driver = BuildDriver(
            units,
            render,
            self.graph,
            prepare_hook=prepare_hook,
            aggregate_hook=aggregate_hook,
            trigger_log=self.trigger_log,
        )
        self.coalescer = ChangeCoalescer(
            self.apply_changes,
            debounce_seconds=self.config.debounce_seconds,
        )

        self._history: List[BuildResult] = []
        self._max_history = 100

    @classmethod
    def from_adapter(
        cls,
        adapter: "SiteAdapter",
        config: Optional[BuildConfig] = None,
        cache: Optional[InvalidationCache] = None,
    ) -> "BuildSession":
        """Wire a session to a site adapter's catalog, renderer and hooks."""
        return cls(
            adapter.load_units(),
            adapter.render,
            cache=cache if cache is not None else CallbackCache(adapter.invalidate),
            prepare_hook=adapter.before_full_build,
            aggregate_hook=adapter.after_full_build,
            config=config,
        )

    @property
    def history(self) -> List[BuildResult]:
        return list(self._history)

    @property
    def last_result(self) -> Optional[BuildResult]:
        return self._history[-1] if self._history else None

    def start(self) -> BuildResult:
        """Full build of every unit (run once at startup)."""
        result = self.driver.build_all()
        self._record(result)
        return result

    def notify(self, key: str) -> None:
        """Accept one raw change notification."""
        self.trigger_log.record(TriggerType.CHANGE_RECEIVED, key=key, source="BuildSession")
        self.coalescer.notify(key)

    def apply_changes(self, keys: Iterable[str]) -> Optional[BuildResult]:
        """
        Run one incremental cycle for a set of changed keys.

        Returns:
            BuildResult of the partial rebuild, or None if no unit
            depends on any of the keys
        """
        changed = sorted(set(keys))
        if not changed:
            return None

        flush_id = str(uuid.uuid4())[:8]
        self.trigger_log.record(TriggerType.FLUSH, build_id=flush_id,
                                source="BuildSession", keys=changed)

        for key in changed:
            self.cache.invalidate(key)
            self.trigger_log.record(TriggerType.KEY_INVALIDATED, key=key,
                                    build_id=flush_id, source="BuildSession")

        affected = self.graph.affected_by(changed)
        if not affected:
            logger.debug(f"No units depend on {len(changed)} changed key(s): {', '.join(changed)}")
            return None

        logger.debug(f"{len(changed)} changed key(s) affect {len(affected)} unit(s)")
        result = self.driver.build_set(affected, build_id=flush_id)
        self._record(result)
        return result

    async def run(self, queue: "asyncio.Queue[Optional[ChangeNotification]]") -> None:
        """
        Consume change notifications until a ``None`` sentinel arrives.

        Pending changes are flushed before returning.
        """
        while True:
            message = await queue.get()
            try:
                if message is None:
                    break
                self.notify(message.key)
            finally:
                queue.task_done()

        await self.coalescer.flush_now()

    async def shutdown(self) -> None:
        """Flush outstanding changes and stop accepting new ones."""
        await self.coalescer.flush_now()
        self.coalescer.close()

    def error_report(self) -> ErrorReport:
        return self.errors.generate_report()

    def stats(self) -> Dict[str, Any]:
        return {
            "units": len(self.driver.units),
            "recorded_units": len(self.graph),
            "tracked_keys": len(self.graph.keys()),
            "builds": len(self._history),
            "errors": len(self.errors),
            "coalescer": self.coalescer.stats(),
        }

    def _record(self, result: BuildResult) -> None:
        self._history.append(result)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        self.errors.add_all(result.failures)
        if result.aggregate_error is not None:
            self.errors.add(result.aggregate_error)
