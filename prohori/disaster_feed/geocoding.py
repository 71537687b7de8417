# -*- coding: utf-8 -*-
"""
Nominatim geocoding (best effort).

Reverse lookups turn a map point into a place name for the risk panel;
forward search backs the location search box. Neither may block the
feed: every failure is logged, counted and reported as ``None`` or an
empty list.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from prohori.disaster_feed.metrics import record_geocoding
from prohori.disaster_feed.models import GeocodeCandidate, GeocodeResult

logger = logging.getLogger(__name__)

REVERSE_ZOOM = 18
SEARCH_LIMIT = 5


class NominatimGeocoder:
    """Thin async client for the Nominatim reverse and search endpoints."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        country_codes: str = "bd",
        user_agent: str = "prohori-disaster-feed",
        timeout_seconds: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.country_codes = country_codes
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        session = self._get_session()
        async with session.get(f"{self.base_url}/{path}", params=params) as response:
            if response.status != 200:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=f"Nominatim {path} returned HTTP {response.status}",
                )
            return await response.json(content_type=None)

    async def reverse(self, lat: float, lng: float) -> Optional[GeocodeResult]:
        """Return the place at (lat, lng), or None when unavailable."""
        params = {
            "format": "json",
            "lat": lat,
            "lon": lng,
            "zoom": REVERSE_ZOOM,
            "addressdetails": 1,
        }
        try:
            payload = await self._get_json("reverse", params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            record_geocoding("reverse", "error")
            logger.warning("Reverse geocoding failed for (%s, %s): %s", lat, lng, exc)
            return None

        if not isinstance(payload, dict) or "error" in payload or not payload.get("display_name"):
            record_geocoding("reverse", "empty")
            return None

        try:
            address = payload.get("address") or {}
            result = GeocodeResult(
                display_name=payload["display_name"],
                latitude=float(payload.get("lat", lat)),
                longitude=float(payload.get("lon", lng)),
                address={str(k): str(v) for k, v in address.items()},
            )
        except (TypeError, ValueError, AttributeError) as exc:
            # pydantic's ValidationError is a ValueError
            record_geocoding("reverse", "error")
            logger.warning("Malformed reverse geocoding payload for (%s, %s): %s", lat, lng, exc)
            return None
        record_geocoding("reverse", "ok")
        return result

    async def search(self, text: str, limit: int = SEARCH_LIMIT) -> List[GeocodeCandidate]:
        """Forward-geocode ``text`` within the configured countries."""
        query = (text or "").strip()
        if not query:
            return []
        params: Dict[str, Any] = {"q": query, "format": "json", "limit": limit}
        if self.country_codes:
            params["countrycodes"] = self.country_codes
        try:
            payload = await self._get_json("search", params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            record_geocoding("search", "error")
            logger.warning("Geocoding search failed for %r: %s", query, exc)
            return []

        candidates: List[GeocodeCandidate] = []
        for item in payload if isinstance(payload, list) else []:
            try:
                candidates.append(GeocodeCandidate(
                    display_name=item["display_name"],
                    latitude=float(item["lat"]),
                    longitude=float(item["lon"]),
                    place_type=item.get("type"),
                    importance=item.get("importance"),
                ))
            except (KeyError, TypeError, ValueError):
                logger.debug("Ignoring malformed search result: %r", item)
        record_geocoding("search", "ok" if candidates else "empty")
        return candidates

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = ["NominatimGeocoder"]
