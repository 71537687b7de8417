# -*- coding: utf-8 -*-
"""
Refresh Scheduler

Re-runs the aggregator on a fixed interval and on demand, and publishes
each completed cycle as an immutable ``FeedSnapshot``.

Concurrency model (single asyncio event loop):
    - One periodic background task; its first cycle runs immediately.
    - At most one refresh is in flight. ``refresh_now()`` called while a
      refresh is running joins it instead of starting another.
    - Publication is a reference swap of an immutable snapshot, so readers
      never observe a partially built result.
    - ``stop()`` cancels the periodic task, detaches subscribers, then lets
      an in-flight refresh finish and publish. No tasks are left behind.

Faults:
    Exceptions escaping a cycle are logged with traceback (WARNING for
    transient source outages, ERROR otherwise), counted as scheduler
    faults, and the previous snapshot stays published. A cycle in which
    every source failed also keeps the previous snapshot.

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from prohori.disaster_feed.aggregator import AggregatorEngine
from prohori.disaster_feed.metrics import (
    record_refresh_cycle,
    record_scheduler_fault,
    update_snapshot_size,
)
from prohori.disaster_feed.models import FeedSnapshot
from prohori.exceptions import SchedulerFault, format_exception_chain, is_retriable

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[FeedSnapshot], Union[None, Awaitable[None]]]


class RefreshScheduler:
    """Periodic and on-demand refresh with atomic snapshot publication.

    Args:
        aggregator: Engine run once per cycle.
        stale_after_seconds: Snapshot age that marks the feed stale. When
            0, twice the running interval is used.
    """

    def __init__(
        self,
        aggregator: AggregatorEngine,
        stale_after_seconds: float = 0.0,
    ) -> None:
        self._aggregator = aggregator
        self._stale_after_seconds = stale_after_seconds
        self._snapshot: Optional[FeedSnapshot] = None
        self._inflight: Optional[asyncio.Task] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._interval: Optional[float] = None
        self._subscribers: List[SnapshotCallback] = []

        self._refresh_count = 0
        self._fault_count = 0
        self._consecutive_failures = 0
        self._last_success_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._last_error_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Optional[FeedSnapshot]:
        """Latest published snapshot, or None before the first success."""
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def interval(self) -> Optional[float]:
        return self._interval

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, interval: float) -> None:
        """Start periodic refreshes every ``interval`` seconds.

        The first refresh begins immediately. Calling start on a running
        scheduler is a no-op.

        Raises:
            ValueError: If ``interval`` is not positive.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if self.is_running:
            logger.warning("RefreshScheduler already running (interval=%s)", self._interval)
            return
        self._interval = interval
        self._loop_task = asyncio.get_running_loop().create_task(
            self._run_loop(interval), name="prohori-feed-refresh-loop",
        )
        logger.info("RefreshScheduler started with interval=%.1fs", interval)

    async def stop(self) -> None:
        """Stop the periodic loop and drain the in-flight refresh."""
        loop_task, self._loop_task = self._loop_task, None
        self._subscribers.clear()
        if loop_task is not None and not loop_task.done():
            loop_task.cancel()
            try:
                await loop_task
            except asyncio.CancelledError:
                pass
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await inflight
        self._inflight = None
        logger.info("RefreshScheduler stopped after %d refreshes", self._refresh_count)

    async def _run_loop(self, interval: float) -> None:
        while True:
            await self.refresh_now()
            await asyncio.sleep(interval)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh_now(self) -> Optional[FeedSnapshot]:
        """Refresh immediately, or join the refresh already in flight.

        Returns:
            The snapshot published after the refresh (the previous one if
            the cycle failed).
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.get_running_loop().create_task(
                self._refresh_cycle(), name="prohori-feed-refresh",
            )
        return await asyncio.shield(self._inflight)

    async def _refresh_cycle(self) -> Optional[FeedSnapshot]:
        try:
            report = await self._aggregator.run()
            if report.all_failed:
                self._record_failure(
                    f"All {len(report.outcomes)} sources failed",
                )
                record_refresh_cycle("failed")
                logger.error(
                    "Refresh failed: every source unavailable, keeping snapshot %s",
                    self._snapshot.snapshot_id if self._snapshot else None,
                )
                return self._snapshot
            snapshot = FeedSnapshot.build(
                records=report.records,
                source_outcomes=report.outcomes,
                dropped_missing_coordinates=report.dropped_missing_coordinates,
                dropped_hidden=report.dropped_hidden,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            fault = SchedulerFault(f"Refresh cycle failed: {exc}", cause=exc)
            fault.__cause__ = exc
            self._fault_count += 1
            self._record_failure(fault.message)
            record_scheduler_fault()
            record_refresh_cycle("fault")
            level = logging.WARNING if is_retriable(exc) else logging.ERROR
            logger.log(level, "%s", format_exception_chain(fault), exc_info=True)
            return self._snapshot

        await self._publish(snapshot)
        self._refresh_count += 1
        self._consecutive_failures = 0
        self._last_success_at = snapshot.refreshed_at
        record_refresh_cycle("partial" if snapshot.failed_sources else "success")
        return snapshot

    def _record_failure(self, message: str) -> None:
        self._consecutive_failures += 1
        self._last_error = message
        self._last_error_at = datetime.now(timezone.utc)

    async def _publish(self, snapshot: FeedSnapshot) -> None:
        self._snapshot = snapshot
        update_snapshot_size(len(snapshot.records))
        logger.info(
            "Published snapshot %s with %d records",
            snapshot.snapshot_id, len(snapshot.records),
        )
        for callback in list(self._subscribers):
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register ``callback`` for every published snapshot.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """True when no snapshot exists or it is older than the threshold."""
        if self._snapshot is None:
            return True
        threshold = self._stale_after_seconds
        if threshold <= 0:
            if not self._interval:
                return False
            threshold = 2 * self._interval
        now = now or datetime.now(timezone.utc)
        age = (now - self._snapshot.refreshed_at).total_seconds()
        return age > threshold

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "interval_seconds": self._interval,
            "refreshing": self._inflight is not None and not self._inflight.done(),
            "refresh_count": self._refresh_count,
            "fault_count": self._fault_count,
            "consecutive_failures": self._consecutive_failures,
            "last_success_at": (
                self._last_success_at.isoformat() if self._last_success_at else None
            ),
            "last_error": self._last_error,
            "last_error_at": (
                self._last_error_at.isoformat() if self._last_error_at else None
            ),
            "stale": self.is_stale(),
            "subscribers": len(self._subscribers),
            "snapshot": self._snapshot.summary() if self._snapshot else None,
        }


__all__ = [
    "SnapshotCallback",
    "RefreshScheduler",
]
