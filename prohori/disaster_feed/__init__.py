# -*- coding: utf-8 -*-
"""
Prohori Disaster Feed Aggregation & Geospatial Risk Engine
==========================================================

This package pulls disaster records from independently shaped sources,
normalizes them into one schema, keeps only visible records with
coordinates, and estimates per-location hazard risk. It supports:

- 7 disaster categories (earthquake, flood, cyclone, landslide, tsunami,
  fire, other), one configurable source each, plus the optional USGS
  earthquake feed
- Table-driven source adapters with field aliases per category
- Concurrent aggregation with per-source timeouts and partial failure
- Fail-closed visibility filtering across legacy flag encodings
- Rule-based region risk estimates with seeded (reproducible) scoring
- Periodic and on-demand refresh with atomic snapshot publication
- Best-effort Nominatim geocoding
- Map marker and color band presentation contract
- Prometheus metrics for observability
- FastAPI REST API
- Thread-safe configuration with PROHORI_DISASTER_FEED_ env prefix

Key Components:
    - config: DisasterFeedConfig with PROHORI_DISASTER_FEED_ env prefix
    - models: Pydantic v2 models for all data structures
    - stores: Platform API and USGS document stores
    - source_adapter: Per-source normalization into DisasterRecord
    - visibility: Visibility resolution and filtering
    - aggregator: Concurrent multi-source fetch engine
    - risk_engine: Geospatial region risk engine
    - scheduler: Refresh scheduler and snapshot publication
    - geocoding: Nominatim client
    - presentation: Markers and color bands
    - metrics: Prometheus metrics
    - api: FastAPI HTTP service
    - setup: DisasterFeedService facade

Example:
    >>> from prohori.disaster_feed import DisasterFeedService
    >>> service = DisasterFeedService()
    >>> await service.refresh()
    >>> print(len(service.list_disasters()))
"""

__version__ = "0.4.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from prohori.disaster_feed.config import (
    DisasterFeedConfig,
    get_config,
    reset_config,
    set_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from prohori.disaster_feed.models import (
    Coordinates,
    DisasterCategory,
    DisasterRecord,
    FeedSnapshot,
    GeocodeCandidate,
    GeocodeResult,
    LocationReport,
    MarkerSpec,
    Region,
    RegionRiskAssessment,
    RiskLevel,
    SourceDefinition,
    SourceOutcome,
    SourceStatus,
    StoreKind,
)

# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
from prohori.disaster_feed.aggregator import AggregationReport, AggregatorEngine
from prohori.disaster_feed.geocoding import NominatimGeocoder
from prohori.disaster_feed.presentation import build_markers, risk_band, severity_band
from prohori.disaster_feed.risk_engine import RandomScorer, RiskEngine, SeededScorer
from prohori.disaster_feed.scheduler import RefreshScheduler
from prohori.disaster_feed.source_adapter import CategoryFieldMap, SourceAdapter
from prohori.disaster_feed.stores import HttpDocumentStore, UsgsFeedStore
from prohori.disaster_feed.visibility import VisibilityFilter, resolve_visibility

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from prohori.disaster_feed.setup import (
    DisasterFeedService,
    configure_disaster_feed,
    get_disaster_feed,
    get_router,
)

__all__ = [
    "__version__",
    # Configuration
    "DisasterFeedConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Models
    "Coordinates",
    "DisasterCategory",
    "DisasterRecord",
    "FeedSnapshot",
    "GeocodeCandidate",
    "GeocodeResult",
    "LocationReport",
    "MarkerSpec",
    "Region",
    "RegionRiskAssessment",
    "RiskLevel",
    "SourceDefinition",
    "SourceOutcome",
    "SourceStatus",
    "StoreKind",
    # Engines
    "AggregationReport",
    "AggregatorEngine",
    "NominatimGeocoder",
    "build_markers",
    "risk_band",
    "severity_band",
    "RandomScorer",
    "RiskEngine",
    "SeededScorer",
    "RefreshScheduler",
    "CategoryFieldMap",
    "SourceAdapter",
    "HttpDocumentStore",
    "UsgsFeedStore",
    "VisibilityFilter",
    "resolve_visibility",
    # Service
    "DisasterFeedService",
    "configure_disaster_feed",
    "get_disaster_feed",
    "get_router",
]
