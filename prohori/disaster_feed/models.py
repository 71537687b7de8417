# -*- coding: utf-8 -*-
"""
Disaster Feed Data Models

Pydantic v2 data models for the Prohori disaster feed. Defines the
enumerations, the canonical disaster record every source is normalized
into, the computed region risk assessment, the immutable feed snapshot
published by the refresh scheduler, and the geocoding and map marker
shapes returned to consumers.

Models:
    - Enumerations: DisasterCategory, RiskLevel, Region, SourceStatus,
        StoreKind
    - Core models: Coordinates, DisasterRecord, RegionRiskAssessment,
        SourceDefinition, SourceOutcome, FeedSnapshot
    - Consumer models: GeocodeResult, GeocodeCandidate, MarkerSpec,
        LocationReport

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _compute_hash(data: Any) -> str:
    """Compute a deterministic SHA-256 hash for JSON-serializable data."""
    if isinstance(data, BaseModel):
        serializable = data.model_dump(mode="json")
    else:
        serializable = data
    payload = json.dumps(serializable, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# =============================================================================
# Enumerations
# =============================================================================


class DisasterCategory(str, Enum):
    """Fixed set of disaster categories the feed aggregates.

    The category is assigned by the source adapter from configuration and
    drives the marker icon; it is never re-inferred from record content.
    """

    EARTHQUAKE = "earthquake"
    FLOOD = "flood"
    CYCLONE = "cyclone"
    LANDSLIDE = "landslide"
    TSUNAMI = "tsunami"
    FIRE = "fire"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human-readable category name."""
        return self.value.capitalize()


class RiskLevel(str, Enum):
    """Coarse risk classification derived from the overall score."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Region(str, Enum):
    """Hazard-prone regions used as proxies for per-hazard risk."""

    COASTAL = "coastal"
    RIVER_BASIN = "river_basin"
    HILLY = "hilly"


class SourceStatus(str, Enum):
    """Outcome of one source fetch within a refresh cycle."""

    OK = "ok"
    FAILED = "failed"
    TIMEOUT = "timeout"


class StoreKind(str, Enum):
    """Kind of document store a source reads from."""

    API = "api"
    USGS = "usgs"


# =============================================================================
# Core models
# =============================================================================


class Coordinates(BaseModel):
    """A validated WGS84 point.

    Attributes:
        latitude: Latitude in decimal degrees, within [-90, 90].
        longitude: Longitude in decimal degrees, within [-180, 180].
    """

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    @field_validator("latitude", "longitude")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        """Reject NaN and infinities."""
        if not math.isfinite(v):
            raise ValueError("coordinate must be a finite number")
        return v


class DisasterRecord(BaseModel):
    """Canonical, immutable projection of one disaster document.

    Attributes:
        id: Source-scoped identifier.
        category: Disaster category assigned by the adapter.
        source_id: Configured source that produced the record.
        title: Display title.
        location_text: Human-readable place description.
        coordinates: Point of the event, None when the source had none.
        severity: Danger level clamped to [1, 10].
        occurred_at: Event time in UTC, when known.
        visible: Normalized admin visibility flag.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    category: DisasterCategory
    source_id: str = Field(..., min_length=1)
    title: str
    location_text: str = "Unknown Location"
    coordinates: Optional[Coordinates] = None
    severity: int = Field(default=5, ge=1, le=10)
    occurred_at: Optional[datetime] = None
    visible: bool = False

    @property
    def identity(self) -> Tuple[str, str]:
        """Record identity within the feed: (category, id)."""
        return (self.category.value, self.id)


class RegionRiskAssessment(BaseModel):
    """Computed hazard estimate for one coordinate. Never persisted.

    Attributes:
        coordinates: Queried point.
        flood_risk: Flood score in [1, 10].
        cyclone_risk: Cyclone score in [1, 10].
        landslide_risk: Landslide score in [1, 10].
        elevation_meters: Elevation estimate in metres.
        overall_risk: Rounded mean of the three scores.
        risk_level: Low, Medium or High.
        regions: Regions the point falls in.
        safety_tips: Guidance for high-scoring hazards.
    """

    model_config = ConfigDict(frozen=True)

    coordinates: Coordinates
    flood_risk: int = Field(..., ge=1, le=10)
    cyclone_risk: int = Field(..., ge=1, le=10)
    landslide_risk: int = Field(..., ge=1, le=10)
    elevation_meters: int = Field(..., ge=0)
    overall_risk: int = Field(..., ge=1, le=10)
    risk_level: RiskLevel
    regions: List[Region] = Field(default_factory=list)
    safety_tips: List[str] = Field(default_factory=list)


class SourceDefinition(BaseModel):
    """Configuration of one source: a (category, store, collection) triple.

    Attributes:
        source_id: Unique source identifier.
        category: Category every record from this source receives.
        collection: Collection name (or feed name) within the store.
        store: Kind of store the source reads from.
        enabled: Disabled sources are skipped by the aggregator.
    """

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(..., min_length=1)
    category: DisasterCategory
    collection: str = Field(..., min_length=1)
    store: StoreKind = StoreKind.API
    enabled: bool = True


class SourceOutcome(BaseModel):
    """Per-source result of one refresh cycle."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    category: DisasterCategory
    status: SourceStatus
    record_count: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None


class FeedSnapshot(BaseModel):
    """Complete, filtered result of one refresh, published atomically.

    Attributes:
        snapshot_id: Unique snapshot identifier.
        records: Visible records with coordinates.
        refreshed_at: When the refresh completed.
        source_outcomes: Status of every source in the cycle.
        dropped_missing_coordinates: Records dropped for lacking a point.
        dropped_hidden: Records dropped for not being visible.
        content_hash: SHA-256 over the record identities.
    """

    model_config = ConfigDict(frozen=True)

    snapshot_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    records: Tuple[DisasterRecord, ...] = ()
    refreshed_at: datetime = Field(default_factory=_utcnow)
    source_outcomes: Tuple[SourceOutcome, ...] = ()
    dropped_missing_coordinates: int = 0
    dropped_hidden: int = 0
    content_hash: str = ""

    @classmethod
    def build(
        cls,
        records: List[DisasterRecord],
        source_outcomes: List[SourceOutcome],
        dropped_missing_coordinates: int = 0,
        dropped_hidden: int = 0,
    ) -> FeedSnapshot:
        """Create a snapshot with its content hash computed."""
        identities = sorted(f"{r.category.value}:{r.id}" for r in records)
        return cls(
            records=tuple(records),
            source_outcomes=tuple(source_outcomes),
            dropped_missing_coordinates=dropped_missing_coordinates,
            dropped_hidden=dropped_hidden,
            content_hash=_compute_hash(identities),
        )

    @property
    def failed_sources(self) -> List[str]:
        """Identifiers of sources that did not contribute this cycle."""
        return [
            o.source_id for o in self.source_outcomes
            if o.status != SourceStatus.OK
        ]

    def by_category(self, category: Optional[DisasterCategory]) -> List[DisasterRecord]:
        """Records of one category, or all records when category is None."""
        if category is None:
            return list(self.records)
        return [r for r in self.records if r.category == category]

    def summary(self) -> Dict[str, Any]:
        """Compact description used by status and refresh responses."""
        counts: Dict[str, int] = {}
        for record in self.records:
            counts[record.category.value] = counts.get(record.category.value, 0) + 1
        return {
            "snapshot_id": self.snapshot_id,
            "refreshed_at": self.refreshed_at.isoformat(),
            "record_count": len(self.records),
            "records_by_category": counts,
            "failed_sources": self.failed_sources,
            "dropped_missing_coordinates": self.dropped_missing_coordinates,
            "dropped_hidden": self.dropped_hidden,
            "content_hash": self.content_hash,
        }


# =============================================================================
# Consumer models
# =============================================================================


class GeocodeResult(BaseModel):
    """Reverse geocoding result for a point."""

    display_name: str
    latitude: float
    longitude: float
    address: Dict[str, str] = Field(default_factory=dict)


class GeocodeCandidate(BaseModel):
    """One forward geocoding match."""

    display_name: str
    latitude: float
    longitude: float
    place_type: Optional[str] = None
    importance: Optional[float] = None


class MarkerSpec(BaseModel):
    """Map marker derived from a visible disaster record.

    Attributes:
        record_id: Source-scoped record identifier.
        category: Category driving the icon.
        icon: Icon key for the category.
        color: Severity color band.
        latitude: Marker latitude.
        longitude: Marker longitude.
        title: Popup title.
        location_text: Popup location line.
        severity: Record severity.
        occurred_at: Event time, when known.
    """

    record_id: str
    category: DisasterCategory
    icon: str
    color: str
    latitude: float
    longitude: float
    title: str
    location_text: str
    severity: int
    occurred_at: Optional[datetime] = None


class LocationReport(BaseModel):
    """Risk assessment for a point plus a best-effort place name."""

    assessment: RegionRiskAssessment
    risk_color: str
    place: Optional[GeocodeResult] = None


__all__ = [
    # Enumerations
    "DisasterCategory",
    "RiskLevel",
    "Region",
    "SourceStatus",
    "StoreKind",
    # Core models
    "Coordinates",
    "DisasterRecord",
    "RegionRiskAssessment",
    "SourceDefinition",
    "SourceOutcome",
    "FeedSnapshot",
    # Consumer models
    "GeocodeResult",
    "GeocodeCandidate",
    "MarkerSpec",
    "LocationReport",
]
