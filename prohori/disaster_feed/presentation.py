# -*- coding: utf-8 -*-
"""
Map presentation contract.

Maps visible records to map markers (category icon, severity color) and
risk scores to color bands. Pure functions; the map client only renders.

Severity bands:  >= 8 red, >= 5 orange, else yellow
Risk bands:      >= 7 red, >= 4 yellow, else green
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from prohori.disaster_feed.models import (
    DisasterCategory,
    DisasterRecord,
    MarkerSpec,
)

CATEGORY_ICONS: Dict[DisasterCategory, str] = {
    DisasterCategory.EARTHQUAKE: "earthquake",
    DisasterCategory.FLOOD: "water",
    DisasterCategory.CYCLONE: "wind",
    DisasterCategory.LANDSLIDE: "mountain",
    DisasterCategory.TSUNAMI: "wave",
    DisasterCategory.FIRE: "fire",
    DisasterCategory.OTHER: "alert",
}


def severity_band(severity: int) -> str:
    if severity >= 8:
        return "red"
    if severity >= 5:
        return "orange"
    return "yellow"


def risk_band(score: int) -> str:
    if score >= 7:
        return "red"
    if score >= 4:
        return "yellow"
    return "green"


def build_marker(record: DisasterRecord) -> Optional[MarkerSpec]:
    """Marker for a record, or None when it cannot be placed."""
    if record.coordinates is None or not record.visible:
        return None
    return MarkerSpec(
        record_id=record.id,
        category=record.category,
        icon=CATEGORY_ICONS[record.category],
        color=severity_band(record.severity),
        latitude=record.coordinates.latitude,
        longitude=record.coordinates.longitude,
        title=record.title,
        location_text=record.location_text,
        severity=record.severity,
        occurred_at=record.occurred_at,
    )


def build_markers(
    records: Iterable[DisasterRecord],
    category: Optional[DisasterCategory] = None,
) -> List[MarkerSpec]:
    """Markers for ``records``, optionally limited to one category."""
    markers = []
    for record in records:
        if category is not None and record.category != category:
            continue
        marker = build_marker(record)
        if marker is not None:
            markers.append(marker)
    return markers


__all__ = [
    "CATEGORY_ICONS",
    "severity_band",
    "risk_band",
    "build_marker",
    "build_markers",
]
