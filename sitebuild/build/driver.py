"""
sitebuild Build Driver

Renders batches of content units and keeps the dependency graph in step
with what each render reported.

Two batch kinds:
- full: every unit of the catalog, followed by corpus-wide post-build work
- partial: a caller-supplied subset, outputs only

A unit whose render fails keeps its previous dependency record and its
last-known-good output; the rest of the batch still renders.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, TYPE_CHECKING
import logging
import time
import traceback
import uuid

from sitebuild.core.constants import (
    BUILD_KIND_FULL,
    BUILD_KIND_PARTIAL,
    FULL_BUILD_MESSAGE,
    PARTIAL_BUILD_MESSAGE,
)
from sitebuild.core.units import ContentUnit, RenderOutput
from sitebuild.dependencies.trigger_log import TriggerType
from sitebuild.errors.taxonomy import AggregateHookFailure, RenderFailure

if TYPE_CHECKING:
    from sitebuild.dependencies.graph import DependencyGraph
    from sitebuild.dependencies.trigger_log import TriggerLog

logger = logging.getLogger(__name__)


# Render adapter: unit -> RenderOutput | (output, dependencies)
RenderFunc = Callable[[ContentUnit], Any]

# Post-build hook over the complete output set
AggregateHook = Callable[[Dict[ContentUnit, Any]], None]

PrepareHook = Callable[[], None]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# BUILD RESULT
# =============================================================================

@dataclass
class BuildResult:
    """Result of one build batch."""
    build_id: str
    kind: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    message: str = ""

    rendered: List[ContentUnit] = field(default_factory=list)
    failures: List[RenderFailure] = field(default_factory=list)

    # Full builds only
    aggregate_ran: bool = False
    aggregate_error: Optional[AggregateHookFailure] = None

    @property
    def success(self) -> bool:
        return not self.failures and self.aggregate_error is None

    @property
    def rendered_count(self) -> int:
        return len(self.rendered)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> Dict[str, Any]:
        return {
            "build_id": self.build_id,
            "kind": self.kind,
            "success": self.success,
            "rendered": self.rendered_count,
            "failed": self.failed_count,
            "aggregate_ran": self.aggregate_ran,
            "duration_seconds": self.duration_seconds,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data.update({
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "rendered_units": [u.handle for u in self.rendered],
            "failures": [f.to_dict() for f in self.failures],
            "aggregate_error": self.aggregate_error.to_dict() if self.aggregate_error else None,
        })
        return data


# =============================================================================
# BUILD DRIVER
# =============================================================================

class BuildDriver:
    """
    Renders units and records their dependencies.

    Usage:
        driver = BuildDriver(units, render, graph, aggregate_hook=write_feed)
        driver.build_all()
        driver.build_set({changed_unit})
    """

    def __init__(
        self,
        units: Iterable[ContentUnit],
        render: RenderFunc,
        graph: "DependencyGraph",
        prepare_hook: Optional[PrepareHook] = None,
        aggregate_hook: Optional[AggregateHook] = None,
        trigger_log: Optional["TriggerLog"] = None,
    ):
        self._units: List[ContentUnit] = list(units)
        self._positions: Dict[ContentUnit, int] = {u: i for i, u in enumerate(self._units)}
        self._render = render
        self._graph = graph
        self._prepare_hook = prepare_hook
        self._aggregate_hook = aggregate_hook
        self._trigger_log = trigger_log

        # Last-known-good output per unit
        self._outputs: Dict[ContentUnit, Any] = {}

        # Units whose most recent render failed
        self._failed: Set[ContentUnit] = set()

        self._progress_callbacks: List[Callable[[ContentUnit, BuildResult], None]] = []

    @property
    def units(self) -> List[ContentUnit]:
        return list(self._units)

    @property
    def outputs(self) -> Dict[ContentUnit, Any]:
        return dict(self._outputs)

    def output_for(self, unit: ContentUnit, default: Any = None) -> Any:
        return self._outputs.get(unit, default)

    @property
    def failed_units(self) -> Set[ContentUnit]:
        """Units whose most recent render attempt failed."""
        return set(self._failed)

    def build_all(
        self,
        units: Optional[Iterable[ContentUnit]] = None,
        message: str = FULL_BUILD_MESSAGE,
        build_id: Optional[str] = None,
    ) -> BuildResult:
        """
        Render every unit unconditionally, then run post-build work.

        The aggregate hook runs once, and only if every unit rendered.
        """
        batch = self._units if units is None else list(units)

        if self._prepare_hook is not None:
            self._prepare_hook()

        result = self._run(batch, BUILD_KIND_FULL, message, build_id)

        if result.failures:
            logger.warning(
                f"Skipping post-build work: {result.failed_count} unit(s) failed to render"
            )
        elif self._aggregate_hook is not None:
            self._run_aggregate_hook(result)

        self._finish(result)
        return result

    def build_set(
        self,
        units: Iterable[ContentUnit],
        message: str = PARTIAL_BUILD_MESSAGE,
        build_id: Optional[str] = None,
    ) -> BuildResult:
        """
        Render only the given units.

        Post-build work is defined over the whole corpus, so it is not
        run for a partial batch.
        """
        result = self._run(self._in_catalog_order(units), BUILD_KIND_PARTIAL, message, build_id)
        self._finish(result)
        return result

    def on_unit_rendered(self, callback: Callable[[ContentUnit, BuildResult], None]) -> None:
        """Register a callback invoked after each successful render."""
        self._progress_callbacks.append(callback)

    def _in_catalog_order(self, units: Iterable[ContentUnit]) -> List[ContentUnit]:
        fallback = len(self._units)
        return sorted(
            set(units),
            key=lambda u: (self._positions.get(u, fallback), u.handle),
        )

    def _run(
        self,
        batch: List[ContentUnit],
        kind: str,
        message: str,
        build_id: Optional[str] = None,
    ) -> BuildResult:
        result = BuildResult(
            build_id=build_id or str(uuid.uuid4())[:8],
            kind=kind,
            started_at=_now(),
            message=message,
        )
        self._log(TriggerType.BUILD_STARTED, build_id=result.build_id,
                  message=message, kind=kind, unit_count=len(batch))

        logger.info(f"[{message}...]")

        for unit in batch:
            self._render_one(unit, result)

        return result

    def _render_one(self, unit: ContentUnit, result: BuildResult) -> None:
        logger.info(f"- Building {unit.label}")

        start = time.perf_counter()
        try:
            rendered = RenderOutput.coerce(self._render(unit))
        except Exception as e:
            failure = RenderFailure(unit, e)
            failure.traceback = traceback.format_exc()
            result.failures.append(failure)
            self._failed.add(unit)
            logger.error(f"Render failed for {unit.label}: {e}")
            logger.debug(failure.traceback)
            self._log(TriggerType.UNIT_FAILED, unit=unit.handle,
                      build_id=result.build_id, message=str(e))
            return

        elapsed_ms = int((time.perf_counter() - start) * 1000)

        self._graph.record(unit, rendered.dependencies)
        self._outputs[unit] = rendered.output
        self._failed.discard(unit)
        result.rendered.append(unit)

        self._log(TriggerType.UNIT_RENDERED, unit=unit.handle, build_id=result.build_id,
                  dependency_count=len(rendered.dependencies), render_ms=elapsed_ms)
        self._notify_progress(unit, result)

    def _run_aggregate_hook(self, result: BuildResult) -> None:
        try:
            self._aggregate_hook(self.outputs)
        except Exception as e:
            result.aggregate_error = AggregateHookFailure(e)
            logger.error(f"Post-build work failed: {e}")
            self._log(TriggerType.AGGREGATE_HOOK, build_id=result.build_id,
                      message=str(e), success=False)
            return

        result.aggregate_ran = True
        self._log(TriggerType.AGGREGATE_HOOK, build_id=result.build_id, success=True)

    def _finish(self, result: BuildResult) -> None:
        result.completed_at = _now()
        summary = result.summary()
        summary.pop("build_id")
        self._log(TriggerType.BUILD_COMPLETED, build_id=result.build_id, **summary)

        duration = f"{result.duration_seconds:.2f}"
        if result.success:
            logger.info(f"[Build completed in {duration}s]")
        else:
            logger.warning(
                f"[Build completed in {duration}s with "
                f"{result.failed_count} render failure(s)"
                f"{', post-build work failed' if result.aggregate_error else ''}]"
            )

    def _notify_progress(self, unit: ContentUnit, result: BuildResult) -> None:
        for callback in self._progress_callbacks:
            try:
                callback(unit, result)
            except Exception as e:
                logger.error(f"Progress callback error: {e}")

    def _log(self, trigger_type: TriggerType, **kwargs: Any) -> None:
        if self._trigger_log is not None:
            self._trigger_log.record(trigger_type, source="BuildDriver", **kwargs)
