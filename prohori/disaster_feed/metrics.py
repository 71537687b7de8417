# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Prohori Disaster Feed

Prometheus metrics for the disaster feed aggregation and risk service.

Metrics:
    1.  ph_disaster_feed_source_fetches_total (Counter, labels: source, status)
    2.  ph_disaster_feed_source_fetch_duration_seconds (Histogram, labels: source)
    3.  ph_disaster_feed_records_dropped_total (Counter, labels: reason)
    4.  ph_disaster_feed_refresh_cycles_total (Counter, labels: status)
    5.  ph_disaster_feed_snapshot_records (Gauge)
    6.  ph_disaster_feed_risk_assessments_total (Counter, labels: risk_level)
    7.  ph_disaster_feed_invalid_queries_total (Counter)
    8.  ph_disaster_feed_geocoding_requests_total (Counter, labels: operation, status)
    9.  ph_disaster_feed_scheduler_faults_total (Counter)

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Source fetches by source and status
disaster_feed_source_fetches_total = Counter(
    "ph_disaster_feed_source_fetches_total",
    "Total disaster source fetches",
    labelnames=["source", "status"],
)

# 2. Source fetch duration
disaster_feed_source_fetch_duration_seconds = Histogram(
    "ph_disaster_feed_source_fetch_duration_seconds",
    "Disaster source fetch duration in seconds",
    labelnames=["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# 3. Records dropped by the visibility filter
disaster_feed_records_dropped_total = Counter(
    "ph_disaster_feed_records_dropped_total",
    "Total disaster records dropped before publication",
    labelnames=["reason"],
)

# 4. Refresh cycles by outcome
disaster_feed_refresh_cycles_total = Counter(
    "ph_disaster_feed_refresh_cycles_total",
    "Total feed refresh cycles",
    labelnames=["status"],
)

# 5. Records in the published snapshot
disaster_feed_snapshot_records = Gauge(
    "ph_disaster_feed_snapshot_records",
    "Number of records in the currently published snapshot",
)

# 6. Risk assessments by level
disaster_feed_risk_assessments_total = Counter(
    "ph_disaster_feed_risk_assessments_total",
    "Total region risk assessments computed",
    labelnames=["risk_level"],
)

# 7. Rejected risk queries
disaster_feed_invalid_queries_total = Counter(
    "ph_disaster_feed_invalid_queries_total",
    "Total risk queries rejected for invalid coordinates",
)

# 8. Geocoding requests by operation and status
disaster_feed_geocoding_requests_total = Counter(
    "ph_disaster_feed_geocoding_requests_total",
    "Total geocoding requests",
    labelnames=["operation", "status"],
)

# 9. Unexpected refresh failures
disaster_feed_scheduler_faults_total = Counter(
    "ph_disaster_feed_scheduler_faults_total",
    "Total unexpected errors caught by the refresh scheduler",
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def record_source_fetch(source: str, status: str, duration: float = 0.0) -> None:
    """Record one source fetch.

    Args:
        source: Source identifier.
        status: Outcome (ok, failed, timeout).
        duration: Fetch duration in seconds.
    """
    disaster_feed_source_fetches_total.labels(source=source, status=status).inc()
    if duration > 0:
        disaster_feed_source_fetch_duration_seconds.labels(
            source=source,
        ).observe(duration)


def record_dropped(reason: str, count: int = 1) -> None:
    """Record records dropped before publication.

    Args:
        reason: Drop reason (missing_coordinates, hidden).
        count: Number of records dropped.
    """
    if count > 0:
        disaster_feed_records_dropped_total.labels(reason=reason).inc(count)


def record_refresh_cycle(status: str) -> None:
    """Record a completed or failed refresh cycle.

    Args:
        status: Cycle outcome (success, partial, fault).
    """
    disaster_feed_refresh_cycles_total.labels(status=status).inc()


def update_snapshot_size(count: int) -> None:
    """Set the published snapshot size gauge."""
    disaster_feed_snapshot_records.set(count)


def record_risk_assessment(risk_level: str) -> None:
    """Record a computed risk assessment."""
    disaster_feed_risk_assessments_total.labels(risk_level=risk_level).inc()


def record_invalid_query() -> None:
    """Record a rejected risk query."""
    disaster_feed_invalid_queries_total.inc()


def record_geocoding(operation: str, status: str) -> None:
    """Record a geocoding request.

    Args:
        operation: reverse or search.
        status: Outcome (ok, empty, error).
    """
    disaster_feed_geocoding_requests_total.labels(
        operation=operation, status=status,
    ).inc()


def record_scheduler_fault() -> None:
    """Record an unexpected error caught by the scheduler."""
    disaster_feed_scheduler_faults_total.inc()


__all__ = [
    # Metric objects
    "disaster_feed_source_fetches_total",
    "disaster_feed_source_fetch_duration_seconds",
    "disaster_feed_records_dropped_total",
    "disaster_feed_refresh_cycles_total",
    "disaster_feed_snapshot_records",
    "disaster_feed_risk_assessments_total",
    "disaster_feed_invalid_queries_total",
    "disaster_feed_geocoding_requests_total",
    "disaster_feed_scheduler_faults_total",
    # Helper functions
    "record_source_fetch",
    "record_dropped",
    "record_refresh_cycle",
    "update_snapshot_size",
    "record_risk_assessment",
    "record_invalid_query",
    "record_geocoding",
    "record_scheduler_fault",
]
