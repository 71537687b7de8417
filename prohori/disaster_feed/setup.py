# -*- coding: utf-8 -*-
"""
Disaster Feed Service Facade

Provides the main service class and FastAPI integration functions:
- DisasterFeedService: Composes stores, adapters, aggregator, visibility
  filter, risk engine, geocoder and refresh scheduler into one facade
- configure_disaster_feed(app): Register service on FastAPI app
- get_disaster_feed(app): Retrieve service from app state
- get_router(): Return FastAPI router for mounting

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from prohori import __version__
from prohori.disaster_feed.aggregator import AggregatorEngine
from prohori.disaster_feed.config import DisasterFeedConfig, get_config
from prohori.disaster_feed.geocoding import NominatimGeocoder
from prohori.disaster_feed.models import (
    DisasterCategory,
    DisasterRecord,
    FeedSnapshot,
    GeocodeCandidate,
    LocationReport,
    MarkerSpec,
    RegionRiskAssessment,
    SourceDefinition,
    StoreKind,
)
from prohori.disaster_feed.presentation import build_markers, risk_band
from prohori.disaster_feed.risk_engine import RiskEngine, RiskScorer, build_scorer
from prohori.disaster_feed.scheduler import RefreshScheduler
from prohori.disaster_feed.source_adapter import SourceAdapter
from prohori.disaster_feed.stores import (
    DocumentStore,
    HttpDocumentStore,
    UsgsFeedStore,
)
from prohori.disaster_feed.visibility import VisibilityFilter

logger = logging.getLogger(__name__)

USGS_SOURCE_ID = "usgs_earthquakes"


def build_source_definitions(config: DisasterFeedConfig) -> List[SourceDefinition]:
    """One source per configured category, plus USGS when enabled."""
    definitions = [
        SourceDefinition(
            source_id=category,
            category=DisasterCategory(category),
            collection=collection,
            store=StoreKind.API,
        )
        for category, collection in config.collection_map().items()
    ]
    if config.enable_usgs_feed:
        definitions.append(SourceDefinition(
            source_id=USGS_SOURCE_ID,
            category=DisasterCategory.EARTHQUAKE,
            collection="usgs",
            store=StoreKind.USGS,
        ))
    return definitions


def build_default_stores(config: DisasterFeedConfig) -> Dict[StoreKind, DocumentStore]:
    stores: Dict[StoreKind, DocumentStore] = {
        StoreKind.API: HttpDocumentStore(
            config.api_base_url,
            timeout_seconds=config.source_timeout_seconds,
            user_agent=config.geocoder_user_agent,
        ),
    }
    if config.enable_usgs_feed:
        stores[StoreKind.USGS] = UsgsFeedStore(
            config.usgs_feed_url,
            min_latitude=config.usgs_min_latitude,
            max_latitude=config.usgs_max_latitude,
            min_longitude=config.usgs_min_longitude,
            max_longitude=config.usgs_max_longitude,
            limit=config.usgs_limit,
            timeout_seconds=config.source_timeout_seconds,
            user_agent=config.geocoder_user_agent,
        )
    return stores


class DisasterFeedService:
    """Facade composing all disaster feed engines.

    Attributes:
        config: DisasterFeedConfig instance.
        stores: Document store per store kind.
        adapters: One SourceAdapter per configured source.
        visibility_filter: VisibilityFilter instance.
        aggregator: AggregatorEngine instance.
        risk_engine: RiskEngine instance.
        geocoder: NominatimGeocoder instance.
        scheduler: RefreshScheduler instance.
    """

    def __init__(
        self,
        config: Optional[DisasterFeedConfig] = None,
        stores: Optional[Mapping[StoreKind, DocumentStore]] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        scorer: Optional[RiskScorer] = None,
    ):
        """Initialize the service and wire its engines.

        Args:
            config: DisasterFeedConfig instance. If None, loads from env.
            stores: Store overrides keyed by kind; defaults to HTTP stores.
            geocoder: Geocoder override; defaults to Nominatim.
            scorer: Risk scorer override; defaults to the configured mode.
        """
        if config is None:
            config = get_config()
        self.config = config

        logging.getLogger("prohori").setLevel(config.log_level.upper())

        self.stores: Dict[StoreKind, DocumentStore] = dict(
            stores if stores is not None else build_default_stores(config)
        )
        self.adapters: List[SourceAdapter] = []
        for definition in build_source_definitions(config):
            store = self.stores.get(definition.store)
            if store is None:
                logger.warning(
                    "No %s store configured; skipping source %s",
                    definition.store.value, definition.source_id,
                )
                continue
            self.adapters.append(SourceAdapter(definition, store))

        self.visibility_filter = VisibilityFilter()
        self.aggregator = AggregatorEngine(
            self.adapters,
            timeout_seconds=config.source_timeout_seconds,
            visibility_filter=self.visibility_filter,
        )
        self.risk_engine = RiskEngine(
            scorer or build_scorer(config.risk_scoring, config.risk_seed)
        )
        self.geocoder = geocoder or NominatimGeocoder(
            base_url=config.geocoder_url,
            country_codes=config.geocoder_country_codes,
            user_agent=config.geocoder_user_agent,
            timeout_seconds=config.geocoder_timeout_seconds,
        )
        self.scheduler = RefreshScheduler(
            self.aggregator, stale_after_seconds=config.stale_after_seconds,
        )
        self._started = False

        logger.info(
            "DisasterFeedService initialized: %d sources, scoring=%s",
            len(self.adapters), config.risk_scoring,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def startup(
        self,
        interval: Optional[float] = None,
        view: Optional[str] = None,
    ) -> None:
        """Start periodic refreshes. Safe to call multiple times.

        Args:
            interval: Refresh period in seconds. Takes precedence over
                ``view``.
            view: Refresh preset (``list``, ``map`` or ``default``);
                defaults to ``config.refresh_view``.
        """
        if self._started:
            logger.debug("DisasterFeedService already started; skipping")
            return
        period = interval or self.config.refresh_interval(view)
        self._started = True
        await self.scheduler.start(period)
        logger.info("DisasterFeedService startup complete")

    async def shutdown(self) -> None:
        """Stop the scheduler and release HTTP sessions."""
        if not self._started:
            return
        self._started = False
        await self.scheduler.stop()
        for store in self.stores.values():
            close = getattr(store, "close", None)
            if close is not None:
                await close()
        await self.geocoder.close()
        logger.info("DisasterFeedService shut down")

    @property
    def started(self) -> bool:
        return self._started

    # =========================================================================
    # Feed
    # =========================================================================

    @property
    def snapshot(self) -> Optional[FeedSnapshot]:
        return self.scheduler.snapshot

    def list_disasters(
        self, category: Optional[DisasterCategory] = None,
    ) -> List[DisasterRecord]:
        """Visible records of the current snapshot, optionally by category."""
        snapshot = self.scheduler.snapshot
        if snapshot is None:
            return []
        return snapshot.by_category(category)

    def list_markers(
        self, category: Optional[DisasterCategory] = None,
    ) -> List[MarkerSpec]:
        snapshot = self.scheduler.snapshot
        if snapshot is None:
            return []
        return build_markers(snapshot.records, category)

    async def refresh(self) -> Optional[FeedSnapshot]:
        """Refresh now, joining a refresh already in flight."""
        return await self.scheduler.refresh_now()

    # =========================================================================
    # Risk and geocoding
    # =========================================================================

    def assess_risk(self, lat: Any, lng: Any) -> RegionRiskAssessment:
        """Delegate to the risk engine; raises InvalidQuery on bad input."""
        return self.risk_engine.assess(lat, lng)

    async def locate(self, lat: Any, lng: Any) -> LocationReport:
        """Risk assessment plus a best-effort reverse geocode."""
        assessment = self.risk_engine.assess(lat, lng)
        place = await self.geocoder.reverse(
            assessment.coordinates.latitude, assessment.coordinates.longitude,
        )
        return LocationReport(
            assessment=assessment,
            risk_color=risk_band(assessment.overall_risk),
            place=place,
        )

    async def search_places(self, text: str) -> List[GeocodeCandidate]:
        return await self.geocoder.search(text)

    # =========================================================================
    # Health and statistics
    # =========================================================================

    def get_health(self) -> Dict[str, Any]:
        """Overall health derived from scheduler state.

        ``healthy`` when a fresh snapshot exists, ``degraded`` when the
        snapshot is stale or sources failed last cycle, ``unhealthy``
        when nothing has been published.
        """
        snapshot = self.scheduler.snapshot
        if snapshot is None:
            status = "unhealthy"
        elif self.scheduler.is_stale() or snapshot.failed_sources:
            status = "degraded"
        else:
            status = "healthy"
        return {
            "status": status,
            "started": self._started,
            "version": __version__,
            "snapshot_id": snapshot.snapshot_id if snapshot else None,
            "failed_sources": snapshot.failed_sources if snapshot else [],
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get comprehensive service statistics.

        Returns:
            Dictionary with statistics from all engines.
        """
        return {
            "service": "prohori-disaster-feed",
            "version": __version__,
            "sources": [a.definition.model_dump(mode="json") for a in self.adapters],
            "aggregator": self.aggregator.get_statistics(),
            "risk_engine": self.risk_engine.get_statistics(),
            "scheduler": self.scheduler.status(),
        }


# =============================================================================
# FastAPI Integration
# =============================================================================

_SERVICE_KEY = "disaster_feed_service"


def configure_disaster_feed(
    app: Any,
    config: Optional[DisasterFeedConfig] = None,
    service: Optional[DisasterFeedService] = None,
) -> DisasterFeedService:
    """Register the Disaster Feed Service on a FastAPI application.

    Creates the service (unless one is given), attaches it to app.state,
    and includes the API router. Scheduling starts with
    ``service.startup()``, normally from the application lifespan.

    Args:
        app: FastAPI application instance.
        config: Optional configuration for a newly created service.
        service: Pre-built service to attach instead.

    Returns:
        Configured DisasterFeedService instance.
    """
    if service is None:
        service = DisasterFeedService(config=config)
    setattr(app.state, _SERVICE_KEY, service)

    app.include_router(get_router())

    logger.info("Disaster Feed Service configured on FastAPI app")
    return service


def get_disaster_feed(app: Any) -> DisasterFeedService:
    """Retrieve the Disaster Feed Service from a FastAPI application.

    Raises:
        RuntimeError: If service not configured.
    """
    service = getattr(app.state, _SERVICE_KEY, None)
    if service is None:
        raise RuntimeError(
            "Disaster Feed Service not configured. "
            "Call configure_disaster_feed(app) first."
        )
    return service


def get_router():
    """Return the FastAPI router for the Disaster Feed Service."""
    from prohori.disaster_feed.api.router import router
    return router


__all__ = [
    "USGS_SOURCE_ID",
    "build_source_definitions",
    "build_default_stores",
    "DisasterFeedService",
    "configure_disaster_feed",
    "get_disaster_feed",
    "get_router",
]
