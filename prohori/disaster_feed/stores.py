# -*- coding: utf-8 -*-
"""
Disaster Document Stores

Read-only access to the raw disaster documents behind each configured
source. Two stores ship with the feed:

- ``HttpDocumentStore`` reads a named collection through the platform API
  (``GET {api_base_url}/disasters/mongodb/<collection>``), which answers
  ``{"success": true, "data": [...]}``.
- ``UsgsFeedStore`` queries the USGS FDSN event service for a bounding box
  and flattens each GeoJSON feature into a plain document.

Any object with an async ``find(collection)`` coroutine returning a list of
dicts can stand in for a store (see ``DocumentStore``).

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp

from prohori.exceptions import SourceUnavailable

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Anything that can list the raw documents of a collection."""

    async def find(self, collection: str) -> List[Dict[str, Any]]:
        ...


# ---------------------------------------------------------------------------
# Shared session handling
# ---------------------------------------------------------------------------


class _HttpStore:
    """Lazily opened aiohttp session shared by the HTTP-backed stores."""

    def __init__(self, timeout_seconds: float, user_agent: str) -> None:
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
                headers={"User-Agent": self._user_agent},
            )
        return self._session

    async def _get_json(
        self,
        url: str,
        source: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        session = self._get_session()
        try:
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    raise SourceUnavailable(
                        f"HTTP {response.status} from {url}",
                        source=source,
                        context={"status": response.status, "url": url},
                    )
                return await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(
                f"Request to {url} timed out after {self._timeout_seconds:.1f}s",
                source=source,
                cause=exc,
                timeout_seconds=self._timeout_seconds,
            ) from exc
        except aiohttp.ClientError as exc:
            raise SourceUnavailable(
                f"Request to {url} failed: {exc}",
                source=source,
                cause=exc,
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session, if open."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


# ---------------------------------------------------------------------------
# Platform API store
# ---------------------------------------------------------------------------


class HttpDocumentStore(_HttpStore):
    """Reads disaster collections through the platform REST API.

    Attributes:
        base_url: API base URL, e.g. ``http://localhost:5000/api``.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        user_agent: str = "prohori-disaster-feed",
    ) -> None:
        super().__init__(timeout_seconds, user_agent)
        self.base_url = base_url.rstrip("/")

    def collection_url(self, collection: str) -> str:
        return f"{self.base_url}/disasters/mongodb/{collection}"

    async def find(self, collection: str) -> List[Dict[str, Any]]:
        """Return every document of ``collection``.

        Raises:
            SourceUnavailable: On transport errors, non-200 responses, an
                unsuccessful envelope or a malformed payload.
        """
        url = self.collection_url(collection)
        payload = await self._get_json(url, source=collection)

        if isinstance(payload, list):
            return [doc for doc in payload if isinstance(doc, dict)]
        if not isinstance(payload, dict):
            raise SourceUnavailable(
                "Unexpected response payload",
                source=collection,
                context={"url": url, "payload_type": type(payload).__name__},
            )
        if payload.get("success") is False:
            raise SourceUnavailable(
                payload.get("message") or "Store reported failure",
                source=collection,
                context={"url": url},
            )
        data = payload.get("data")
        if not isinstance(data, list):
            raise SourceUnavailable(
                "Response envelope has no data list",
                source=collection,
                context={"url": url},
            )
        documents = [doc for doc in data if isinstance(doc, dict)]
        logger.debug("Fetched %d documents from %s", len(documents), collection)
        return documents


# ---------------------------------------------------------------------------
# USGS earthquake feed
# ---------------------------------------------------------------------------


def flatten_usgs_feature(feature: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a USGS GeoJSON feature into a plain earthquake document.

    USGS events are not admin-moderated, so they are marked visible.
    """
    props = feature.get("properties") or {}
    return {
        "_id": feature.get("id"),
        "title": props.get("title"),
        "place": props.get("place"),
        "mag": props.get("mag"),
        "time": props.get("time"),
        "updated": props.get("updated"),
        "url": props.get("url"),
        "geometry": feature.get("geometry") or {},
        "visible": True,
    }


class UsgsFeedStore(_HttpStore):
    """Queries the USGS FDSN event service for earthquakes in a box."""

    def __init__(
        self,
        feed_url: str,
        min_latitude: float,
        max_latitude: float,
        min_longitude: float,
        max_longitude: float,
        limit: int = 100,
        timeout_seconds: float = 10.0,
        user_agent: str = "prohori-disaster-feed",
    ) -> None:
        super().__init__(timeout_seconds, user_agent)
        self.feed_url = feed_url
        self.params = {
            "format": "geojson",
            "minlatitude": min_latitude,
            "maxlatitude": max_latitude,
            "minlongitude": min_longitude,
            "maxlongitude": max_longitude,
            "orderby": "time",
            "limit": limit,
        }

    async def find(self, collection: str) -> List[Dict[str, Any]]:
        """Return the flattened features of the configured query.

        ``collection`` only labels errors; the query is fixed by
        configuration.
        """
        payload = await self._get_json(self.feed_url, source=collection, params=self.params)
        features = payload.get("features") if isinstance(payload, dict) else None
        if not isinstance(features, list):
            raise SourceUnavailable(
                "USGS response has no feature list",
                source=collection,
                context={"url": self.feed_url},
            )
        return [flatten_usgs_feature(f) for f in features if isinstance(f, dict)]


__all__ = [
    "DocumentStore",
    "HttpDocumentStore",
    "UsgsFeedStore",
    "flatten_usgs_feature",
]
