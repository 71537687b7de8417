# -*- coding: utf-8 -*-
"""
Disaster Feed API Routes

REST endpoints for the disaster feed, mounted under
``/api/v1/disaster-feed``:

- GET  /disasters          Visible records of the current snapshot
- GET  /markers            Map markers for the current snapshot
- GET  /risk               Region risk assessment for a point
- GET  /location           Risk assessment plus reverse geocode
- GET  /geocode/search     Forward geocoding candidates
- POST /refresh            Trigger (or join) a refresh
- GET  /status             Scheduler status and statistics
- GET  /health             Service health
- GET  /metrics            Prometheus exposition

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from prohori.disaster_feed.models import DisasterCategory
from prohori.disaster_feed.presentation import risk_band
from prohori.disaster_feed.setup import DisasterFeedService, get_disaster_feed
from prohori.exceptions import InvalidQuery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/disaster-feed", tags=["Disaster Feed"])


def _service(request: Request) -> DisasterFeedService:
    try:
        return get_disaster_feed(request.app)
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc),
        ) from exc


def _invalid_query_response(exc: InvalidQuery) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": exc.to_dict()},
    )


def _snapshot_meta(service: DisasterFeedService) -> Dict[str, Any]:
    snapshot = service.snapshot
    return {
        "snapshot_id": snapshot.snapshot_id if snapshot else None,
        "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot else None,
        "stale": service.scheduler.is_stale(),
    }


# =============================================================================
# Feed
# =============================================================================


@router.get("/disasters", summary="List visible disasters")
async def list_disasters(
    category: Optional[DisasterCategory] = Query(None, description="Filter by category"),
    visible_only: bool = Query(True, alias="visibleOnly"),
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    """Records of the latest snapshot. Hidden records are never exposed."""
    if not visible_only:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Hidden disasters are not available from this endpoint",
        )
    records = service.list_disasters(category)
    return {
        "success": True,
        "count": len(records),
        "data": [r.model_dump(mode="json") for r in records],
        **_snapshot_meta(service),
    }


@router.get("/markers", summary="Map markers for visible disasters")
async def list_markers(
    category: Optional[DisasterCategory] = Query(None, description="Filter by category"),
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    markers = service.list_markers(category)
    return {
        "success": True,
        "count": len(markers),
        "data": [m.model_dump(mode="json") for m in markers],
        **_snapshot_meta(service),
    }


@router.post("/refresh", summary="Refresh the feed now")
async def refresh_feed(
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    snapshot = await service.refresh()
    return {
        "success": snapshot is not None,
        "snapshot": snapshot.summary() if snapshot else None,
        "status": service.scheduler.status(),
    }


# =============================================================================
# Risk and geocoding
# =============================================================================


@router.get("/risk", summary="Region risk assessment for a point")
async def assess_risk(
    lat: float = Query(..., description="Latitude in decimal degrees"),
    lng: float = Query(..., description="Longitude in decimal degrees"),
    service: DisasterFeedService = Depends(_service),
) -> Any:
    try:
        assessment = service.assess_risk(lat, lng)
    except InvalidQuery as exc:
        logger.info("Rejected risk query: %s", exc.message)
        return _invalid_query_response(exc)
    return {
        "success": True,
        "data": assessment.model_dump(mode="json"),
        "risk_color": risk_band(assessment.overall_risk),
    }


@router.get("/location", summary="Risk assessment plus place name")
async def locate(
    lat: float = Query(..., description="Latitude in decimal degrees"),
    lng: float = Query(..., description="Longitude in decimal degrees"),
    service: DisasterFeedService = Depends(_service),
) -> Any:
    try:
        report = await service.locate(lat, lng)
    except InvalidQuery as exc:
        logger.info("Rejected location query: %s", exc.message)
        return _invalid_query_response(exc)
    return {"success": True, "data": report.model_dump(mode="json")}


@router.get("/geocode/search", summary="Search places by name")
async def search_places(
    q: str = Query(..., min_length=1, description="Place name"),
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    candidates = await service.search_places(q)
    return {
        "success": True,
        "count": len(candidates),
        "data": [c.model_dump(mode="json") for c in candidates],
    }


# =============================================================================
# Operations
# =============================================================================


@router.get("/status", summary="Scheduler status and statistics")
async def get_status(
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    return service.get_statistics()


@router.get("/health", summary="Service health")
async def get_health(
    service: DisasterFeedService = Depends(_service),
) -> Dict[str, Any]:
    return service.get_health()


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["router"]
