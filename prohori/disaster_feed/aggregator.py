# -*- coding: utf-8 -*-
"""
Feed Aggregator

Fans out to every enabled source adapter concurrently, bounds each fetch
by the per-source timeout, tolerates partial failure, concatenates the
results and applies the visibility filter.

A failing or slow source contributes zero records for the cycle; its
outcome is logged, counted and reported so the scheduler can expose it.
Records are not deduplicated across sources; a record's identity is its
``(category, id)`` pair. Result order is not guaranteed.

Example:
    >>> aggregator = AggregatorEngine(adapters, timeout_seconds=10.0)
    >>> report = await aggregator.run()
    >>> print(len(report.records), report.failed_sources)

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from prohori.disaster_feed.metrics import record_source_fetch
from prohori.disaster_feed.models import (
    DisasterRecord,
    SourceOutcome,
    SourceStatus,
)
from prohori.disaster_feed.source_adapter import SourceAdapter
from prohori.disaster_feed.visibility import VisibilityFilter
from prohori.exceptions import SourceUnavailable

logger = logging.getLogger(__name__)


@dataclass
class AggregationReport:
    """Result of one fan-out/fan-in cycle.

    Attributes:
        records: Visible records with coordinates.
        outcomes: One entry per enabled source.
        fetched_count: Records produced by adapters before filtering.
        dropped_missing_coordinates: Records dropped for lacking a point.
        dropped_hidden: Records dropped for not being visible.
        duration_seconds: Wall time of the cycle.
    """

    records: List[DisasterRecord] = field(default_factory=list)
    outcomes: List[SourceOutcome] = field(default_factory=list)
    fetched_count: int = 0
    dropped_missing_coordinates: int = 0
    dropped_hidden: int = 0
    duration_seconds: float = 0.0

    @property
    def failed_sources(self) -> List[str]:
        return [o.source_id for o in self.outcomes if o.status != SourceStatus.OK]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and len(self.failed_sources) == len(self.outcomes)


class AggregatorEngine:
    """Concurrent multi-source fetch with per-source timeouts.

    Args:
        adapters: One adapter per configured source.
        timeout_seconds: Upper bound for each adapter's fetch.
        visibility_filter: Filter applied to the merged record set.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        timeout_seconds: float = 10.0,
        visibility_filter: Optional[VisibilityFilter] = None,
    ) -> None:
        self.adapters = list(adapters)
        self.timeout_seconds = timeout_seconds
        self.visibility_filter = visibility_filter or VisibilityFilter()
        self._runs = 0
        self._source_failures: Dict[str, int] = {}
        logger.info(
            "AggregatorEngine initialized: %d sources, timeout=%.1fs",
            len(self.adapters), timeout_seconds,
        )

    @property
    def active_adapters(self) -> List[SourceAdapter]:
        return [a for a in self.adapters if a.definition.enabled]

    async def run(self) -> AggregationReport:
        """Fetch every enabled source concurrently and filter the merge."""
        started = time.monotonic()
        adapters = self.active_adapters
        results = await asyncio.gather(
            *(self._fetch_one(adapter) for adapter in adapters),
            return_exceptions=True,
        )

        merged: List[DisasterRecord] = []
        outcomes: List[SourceOutcome] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                # Store and document errors are converted inside the
                # adapter; anything else escaping a child fails only
                # that source.
                outcome = self._failure_outcome(
                    adapter,
                    SourceUnavailable(
                        f"Fetch aborted: {result!r}", source=adapter.source_id,
                    ),
                    0.0,
                )
                records: List[DisasterRecord] = []
            else:
                records, outcome = result
            merged.extend(records)
            outcomes.append(outcome)

        filtered = self.visibility_filter.filter(merged)
        self._runs += 1
        report = AggregationReport(
            records=filtered.records,
            outcomes=outcomes,
            fetched_count=len(merged),
            dropped_missing_coordinates=filtered.dropped_missing_coordinates,
            dropped_hidden=filtered.dropped_hidden,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Aggregation cycle: %d/%d sources ok, %d fetched, %d published, "
            "dropped %d without coordinates and %d hidden in %.2fs",
            len(outcomes) - len(report.failed_sources),
            len(outcomes),
            report.fetched_count,
            len(report.records),
            report.dropped_missing_coordinates,
            report.dropped_hidden,
            report.duration_seconds,
        )
        return report

    async def refresh(self) -> List[DisasterRecord]:
        """Run one cycle and return only the filtered records."""
        report = await self.run()
        return report.records

    async def _fetch_one(
        self, adapter: SourceAdapter,
    ) -> Tuple[List[DisasterRecord], SourceOutcome]:
        started = time.monotonic()
        try:
            records, error = await asyncio.wait_for(
                adapter.fetch(), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            error = SourceUnavailable(
                f"Fetch timed out after {self.timeout_seconds:.1f}s",
                source=adapter.source_id,
                timeout_seconds=self.timeout_seconds,
            )
            records = []
        duration = time.monotonic() - started

        if error is not None:
            return [], self._failure_outcome(adapter, error, duration)

        record_source_fetch(adapter.source_id, SourceStatus.OK.value, duration)
        return records, SourceOutcome(
            source_id=adapter.source_id,
            category=adapter.category,
            status=SourceStatus.OK,
            record_count=len(records),
            duration_seconds=round(duration, 4),
        )

    def _failure_outcome(
        self,
        adapter: SourceAdapter,
        error: SourceUnavailable,
        duration: float,
    ) -> SourceOutcome:
        status = SourceStatus.TIMEOUT if error.is_timeout else SourceStatus.FAILED
        self._source_failures[adapter.source_id] = (
            self._source_failures.get(adapter.source_id, 0) + 1
        )
        record_source_fetch(adapter.source_id, status.value, duration)
        logger.warning(
            "Source %s (%s) unavailable: %s",
            adapter.source_id, adapter.category.value, error.message,
        )
        return SourceOutcome(
            source_id=adapter.source_id,
            category=adapter.category,
            status=status,
            record_count=0,
            duration_seconds=round(duration, 4),
            error=error.message,
        )

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "sources": len(self.adapters),
            "active_sources": len(self.active_adapters),
            "runs": self._runs,
            "source_failures": dict(self._source_failures),
            "visibility": self.visibility_filter.get_statistics(),
        }


__all__ = [
    "AggregationReport",
    "AggregatorEngine",
]
