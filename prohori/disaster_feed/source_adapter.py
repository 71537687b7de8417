# -*- coding: utf-8 -*-
"""
Source Adapter

One adapter per configured source. Every source is bound to a single
disaster category, reads one collection from its document store, and
coerces the store's field names into the canonical ``DisasterRecord``.

The per-category differences live in ``CategoryFieldMap`` tables rather
than in separate fetch/normalize code paths:

- ``occurred_at`` accepts ``dateTime``, ``time``, ``createdAt`` or
  ``updatedAt`` (datetimes, ISO-8601 strings, epoch milliseconds or
  seconds, Mongo ``{"$date": ...}``).
- Coordinates come from ``latitude``/``longitude`` or from a GeoJSON-style
  ``[lng, lat]`` pair under ``coordinates``, ``location.coordinates`` or
  ``geometry.coordinates``. ``(0, 0)`` is the store's placeholder and is
  treated as missing.
- Severity is an explicit ``dangerLevel``/``severity`` when present;
  earthquakes otherwise derive it from magnitude as
  ``min(ceil(mag * 1.5), 10)``; everything else defaults to 5.

Adapters never raise into their siblings: a store failure is returned as
``([], SourceUnavailable)``.

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from prohori.disaster_feed.models import (
    Coordinates,
    DisasterCategory,
    DisasterRecord,
    SourceDefinition,
    _compute_hash,
)
from prohori.disaster_feed.stores import DocumentStore
from prohori.disaster_feed.visibility import resolve_visibility
from prohori.exceptions import SourceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY = 5
MIN_SEVERITY = 1
MAX_SEVERITY = 10

# Epoch values above this are milliseconds (year ~5138 in seconds).
_EPOCH_MS_THRESHOLD = 1e11


# ---------------------------------------------------------------------------
# Field alias tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategoryFieldMap:
    """Raw field aliases for one category, tried in order.

    Dotted names address nested fields (``location.coordinates``). Pair
    fields hold ``[lng, lat]`` in GeoJSON order.
    """

    id_fields: Tuple[str, ...] = ("_id", "id")
    title_fields: Tuple[str, ...] = ("name", "title")
    location_fields: Tuple[str, ...] = ("location", "place", "locationName", "address")
    time_fields: Tuple[str, ...] = ("dateTime", "time", "createdAt", "updatedAt")
    latitude_fields: Tuple[str, ...] = ("latitude", "lat")
    longitude_fields: Tuple[str, ...] = ("longitude", "lng", "lon")
    pair_fields: Tuple[str, ...] = (
        "coordinates",
        "location.coordinates",
        "geometry.coordinates",
    )
    severity_fields: Tuple[str, ...] = ("dangerLevel", "severity")
    magnitude_fields: Tuple[str, ...] = ()
    magnitude_title: bool = False


DEFAULT_FIELD_MAP = CategoryFieldMap()

EARTHQUAKE_FIELD_MAP = CategoryFieldMap(
    title_fields=("title", "name"),
    location_fields=("place", "location", "locationName"),
    magnitude_fields=("magnitude", "mag"),
    magnitude_title=True,
)

FIELD_MAPS: Dict[DisasterCategory, CategoryFieldMap] = {
    DisasterCategory.EARTHQUAKE: EARTHQUAKE_FIELD_MAP,
}


def field_map_for(category: DisasterCategory) -> CategoryFieldMap:
    """Return the alias table for ``category``."""
    return FIELD_MAPS.get(category, DEFAULT_FIELD_MAP)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _get_path(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_severity(value: int) -> int:
    return max(MIN_SEVERITY, min(MAX_SEVERITY, value))


def make_coordinates(latitude: Any, longitude: Any) -> Optional[Coordinates]:
    """Build validated coordinates, or None for unusable input.

    Non-numeric, non-finite and out-of-range values are unusable, as is
    the ``(0, 0)`` placeholder.
    """
    lat = _to_float(latitude)
    lng = _to_float(longitude)
    if lat is None or lng is None:
        return None
    if lat == 0.0 and lng == 0.0:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        return None
    return Coordinates(latitude=lat, longitude=lng)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse the timestamp encodings found in the stores into UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Mapping) and "$date" in value:
        return parse_timestamp(value["$date"])
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        numeric = _to_float(text)
        if numeric is not None:
            return parse_timestamp(numeric)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parse_timestamp(parsed)
    number = _to_float(value)
    if number is None:
        return None
    if abs(number) > _EPOCH_MS_THRESHOLD:
        number /= 1000.0
    try:
        return datetime.fromtimestamp(number, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def severity_from_magnitude(magnitude: float) -> int:
    """Earthquake danger level: ``min(ceil(mag * 1.5), 10)``, at least 1."""
    return clamp_severity(min(math.ceil(magnitude * 1.5), MAX_SEVERITY))


# ---------------------------------------------------------------------------
# SourceAdapter
# ---------------------------------------------------------------------------


class SourceAdapter:
    """Fetches one source and normalizes its documents.

    Args:
        definition: Source configuration (category, collection).
        store: Document store the collection lives in.
        field_map: Alias table; defaults to the category's table.
    """

    def __init__(
        self,
        definition: SourceDefinition,
        store: DocumentStore,
        field_map: Optional[CategoryFieldMap] = None,
    ) -> None:
        self.definition = definition
        self.store = store
        self.field_map = field_map or field_map_for(definition.category)

    @property
    def source_id(self) -> str:
        return self.definition.source_id

    @property
    def category(self) -> DisasterCategory:
        return self.definition.category

    async def fetch(self) -> Tuple[List[DisasterRecord], Optional[SourceUnavailable]]:
        """Read the collection and normalize every usable document.

        Returns:
            ``(records, None)`` on success, ``([], error)`` when the store
            could not be read. Documents that cannot be normalized are
            skipped.
        """
        try:
            documents = await self.store.find(self.definition.collection)
        except asyncio.CancelledError:
            raise
        except SourceUnavailable as exc:
            if exc.source is None:
                exc.source = self.source_id
            return [], exc
        except Exception as exc:
            return [], SourceUnavailable(
                f"Store read failed for {self.definition.collection}: {exc}",
                source=self.source_id,
                cause=exc,
            )

        records: List[DisasterRecord] = []
        skipped = 0
        for document in documents:
            try:
                records.append(self.normalize(document))
            except (ValidationError, ValueError, TypeError, OverflowError) as exc:
                skipped += 1
                logger.debug(
                    "Skipping malformed document in %s: %s", self.source_id, exc,
                )
        if skipped:
            logger.warning(
                "Source %s: skipped %d malformed documents", self.source_id, skipped,
            )
        return records, None

    def normalize(self, document: Mapping[str, Any]) -> DisasterRecord:
        """Project one raw document onto ``DisasterRecord``."""
        magnitude = self._first_number(self.field_map.magnitude_fields, document)
        return DisasterRecord(
            id=self._resolve_id(document),
            category=self.category,
            source_id=self.source_id,
            title=self._resolve_title(document, magnitude),
            location_text=self._first_text(self.field_map.location_fields, document)
            or "Unknown Location",
            coordinates=self._resolve_coordinates(document),
            severity=self._resolve_severity(document, magnitude),
            occurred_at=self._resolve_time(document),
            visible=resolve_visibility(document),
        )

    # ------------------------------------------------------------------
    # Field resolution
    # ------------------------------------------------------------------

    def _resolve_id(self, document: Mapping[str, Any]) -> str:
        for name in self.field_map.id_fields:
            value = _get_path(document, name)
            if isinstance(value, Mapping):
                value = value.get("$oid")
            if value is None or isinstance(value, bool):
                continue
            text = str(value).strip()
            if text:
                return text
        return _compute_hash(dict(document))[:24]

    def _resolve_title(
        self, document: Mapping[str, Any], magnitude: Optional[float],
    ) -> str:
        title = self._first_text(self.field_map.title_fields, document)
        if title:
            return title
        if self.field_map.magnitude_title and magnitude is not None:
            return f"M{magnitude:.1f} Earthquake"
        return f"Unnamed {self.category.label}"

    def _resolve_coordinates(self, document: Mapping[str, Any]) -> Optional[Coordinates]:
        fm = self.field_map
        latitude = self._first_present(fm.latitude_fields, document)
        longitude = self._first_present(fm.longitude_fields, document)
        coords = make_coordinates(latitude, longitude)
        if coords is not None:
            return coords
        for name in fm.pair_fields:
            pair = _get_path(document, name)
            if isinstance(pair, (list, tuple)) and len(pair) >= 2:
                coords = make_coordinates(pair[1], pair[0])
                if coords is not None:
                    return coords
        return None

    def _resolve_severity(
        self, document: Mapping[str, Any], magnitude: Optional[float],
    ) -> int:
        explicit = self._first_number(self.field_map.severity_fields, document)
        if explicit is not None:
            return clamp_severity(round_half_up(explicit))
        if magnitude is not None:
            return severity_from_magnitude(magnitude)
        return DEFAULT_SEVERITY

    def _resolve_time(self, document: Mapping[str, Any]) -> Optional[datetime]:
        for name in self.field_map.time_fields:
            parsed = parse_timestamp(_get_path(document, name))
            if parsed is not None:
                return parsed
        return None

    # ------------------------------------------------------------------
    # Alias lookups
    # ------------------------------------------------------------------

    @staticmethod
    def _first_present(names: Tuple[str, ...], document: Mapping[str, Any]) -> Any:
        for name in names:
            value = _get_path(document, name)
            if value is not None:
                return value
        return None

    @staticmethod
    def _first_number(
        names: Tuple[str, ...], document: Mapping[str, Any],
    ) -> Optional[float]:
        for name in names:
            number = _to_float(_get_path(document, name))
            if number is not None:
                return number
        return None

    @staticmethod
    def _first_text(names: Tuple[str, ...], document: Mapping[str, Any]) -> Optional[str]:
        for name in names:
            value = _get_path(document, name)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def __repr__(self) -> str:
        return (
            f"SourceAdapter(source_id={self.source_id!r}, "
            f"category={self.category.value!r}, "
            f"collection={self.definition.collection!r})"
        )


__all__ = [
    "CategoryFieldMap",
    "DEFAULT_FIELD_MAP",
    "EARTHQUAKE_FIELD_MAP",
    "FIELD_MAPS",
    "field_map_for",
    "make_coordinates",
    "parse_timestamp",
    "severity_from_magnitude",
    "round_half_up",
    "SourceAdapter",
]
