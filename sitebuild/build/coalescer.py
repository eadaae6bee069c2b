"""
sitebuild Change Coalescer

Absorbs bursts of raw change notifications into a single rebuild request.

States:
- IDLE: no pending keys, no timer armed
- ACCUMULATING: one or more pending keys, debounce timer armed

Every notification adds its key to the pending set and cancels and
re-arms the timer, so a continuous stream of edits does not flush until
it pauses. When the timer fires the pending set is snapshotted, cleared,
and handed to the flush handler.

INVARIANT: the coalescer is owned by one asyncio event loop. Pending-set
mutation and timer re-arm happen in a single loop callback, so a
notification can never be lost to a racing flush.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Set, Union
import asyncio
import inspect
import logging

from sitebuild.core.constants import DEFAULT_DEBOUNCE_MS

logger = logging.getLogger(__name__)


# Flush handler: may be a plain function or a coroutine function
FlushHandler = Callable[[FrozenSet[str]], Union[Any, Awaitable[Any]]]


class CoalescerState(Enum):
    """Coalescer lifecycle states."""
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class ChangeCoalescer:
    """
    Debounces change notifications into distinct key-set flushes.

    Flushes are serialized: flush N completes before flush N+1 starts,
    even when the handler is a coroutine.

    Usage:
        coalescer = ChangeCoalescer(session.apply_changes, debounce_seconds=0.05)
        coalescer.notify("posts/hello.md")
        coalescer.notify("assets/site.css")
        # ~50ms after the last notification: apply_changes({...both keys...})
    """

    def __init__(
        self,
        on_flush: FlushHandler,
        debounce_seconds: float = DEFAULT_DEBOUNCE_MS / 1000,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {debounce_seconds}")

        self._on_flush = on_flush
        self._debounce_seconds = debounce_seconds
        self._loop = loop

        self._pending: Set[str] = set()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._flush_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

        # Statistics
        self._notifications = 0
        self._flushes = 0
        self._failed_flushes = 0

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    @property
    def state(self) -> CoalescerState:
        if self._pending:
            return CoalescerState.ACCUMULATING
        return CoalescerState.IDLE

    @property
    def is_idle(self) -> bool:
        return self.state == CoalescerState.IDLE

    @property
    def pending(self) -> FrozenSet[str]:
        return frozenset(self._pending)

    @property
    def is_flushing(self) -> bool:
        return bool(self._tasks)

    def notify(self, key: str) -> None:
        """
        Accept one raw change notification.

        Must be called from the owning event loop; use notify_threadsafe
        from other threads.
        """
        if self._closed:
            raise RuntimeError("ChangeCoalescer is closed")

        loop = self._get_loop()
        self._pending.add(key)
        self._notifications += 1

        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self._debounce_seconds, self._on_timer)

    def notify_threadsafe(self, key: str) -> None:
        """Marshal a notification from another thread onto the owning loop."""
        if self._loop is None:
            raise RuntimeError("ChangeCoalescer is not bound to an event loop yet")
        self._loop.call_soon_threadsafe(self.notify, key)

    async def flush_now(self) -> FrozenSet[str]:
        """
        Flush pending keys immediately and wait for every flush to finish.

        Returns:
            The keys flushed by this call (empty if nothing was pending)
        """
        self._cancel_timer()
        snapshot = self._take_pending()
        if snapshot:
            self._dispatch(snapshot)
        await self.drain()
        return snapshot

    async def drain(self) -> None:
        """Wait until no flush is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel the timer and discard pending keys."""
        self._cancel_timer()
        if self._pending:
            logger.warning(f"Discarding {len(self._pending)} pending change(s) on close")
        self._pending.clear()
        self._closed = True

    def stats(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "pending": len(self._pending),
            "notifications": self._notifications,
            "flushes": self._flushes,
            "failed_flushes": self._failed_flushes,
        }

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _on_timer(self) -> None:
        self._timer = None
        snapshot = self._take_pending()
        if snapshot:
            self._dispatch(snapshot)

    def _take_pending(self) -> FrozenSet[str]:
        snapshot = frozenset(self._pending)
        self._pending.clear()
        return snapshot

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _dispatch(self, keys: FrozenSet[str]) -> None:
        self._flushes += 1
        logger.debug(f"Flushing {len(keys)} changed key(s)")

        task = self._get_loop().create_task(self._run_flush(keys))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_flush(self, keys: FrozenSet[str]) -> None:
        async with self._flush_lock:
            try:
                result = self._on_flush(keys)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._failed_flushes += 1
                logger.exception(f"Flush handler failed for {len(keys)} key(s)")
