# -*- coding: utf-8 -*-
"""
Visibility Filter

Admins hide disaster documents by toggling a visibility flag, but the
stores carry it under different names and encodings: ``visible`` or
``isVisible``, as booleans, numbers 1/0 or the strings "1"/"0"/"true"/
"false". ``resolve_visibility`` folds these into one boolean and fails
closed when no flag is present.

``VisibilityFilter`` is the last stage before publication: it keeps only
records that are visible and carry coordinates, and counts what it drops.

Author: Prohori Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from prohori.disaster_feed.metrics import record_dropped
from prohori.disaster_feed.models import DisasterRecord
from prohori.exceptions import InvalidRecord

logger = logging.getLogger(__name__)

VISIBILITY_FIELDS: Tuple[str, ...] = ("visible", "isVisible")

DROP_MISSING_COORDINATES = "missing_coordinates"
DROP_HIDDEN = "hidden"


def _is_truthy_flag(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true")
    return False


def resolve_visibility(document: Mapping[str, Any]) -> bool:
    """Return True when any visibility field marks the document visible.

    Accepted truthy encodings are ``True``, ``1``, ``"1"`` and ``"true"``.
    A document with none of the fields is not visible.
    """
    return any(
        _is_truthy_flag(document[name])
        for name in VISIBILITY_FIELDS
        if name in document
    )


@dataclass
class FilterResult:
    """Records that survived the filter plus drop counts."""

    records: List[DisasterRecord] = field(default_factory=list)
    dropped_missing_coordinates: int = 0
    dropped_hidden: int = 0

    @property
    def dropped_total(self) -> int:
        return self.dropped_missing_coordinates + self.dropped_hidden


class VisibilityFilter:
    """Keeps records that are visible and have coordinates.

    Pure apart from metric and counter updates; safe to call from any
    refresh cycle.
    """

    def __init__(self) -> None:
        self._total_dropped_missing_coordinates = 0
        self._total_dropped_hidden = 0
        self._total_passed = 0

    def filter(self, records: Iterable[DisasterRecord]) -> FilterResult:
        """Partition ``records`` and report per-reason drop counts.

        A record without coordinates is counted as missing coordinates
        even when it is also hidden.
        """
        result = FilterResult()
        for record in records:
            if record.coordinates is None:
                result.dropped_missing_coordinates += 1
                logger.debug("%s", InvalidRecord(
                    f"Dropping {record.category.value}/{record.id}: no usable coordinates",
                    source=record.source_id,
                    record_id=record.id,
                    reason=DROP_MISSING_COORDINATES,
                ))
                continue
            if not record.visible:
                result.dropped_hidden += 1
                logger.debug(
                    "Dropping %s/%s: hidden", record.category.value, record.id,
                )
                continue
            result.records.append(record)

        self._total_dropped_missing_coordinates += result.dropped_missing_coordinates
        self._total_dropped_hidden += result.dropped_hidden
        self._total_passed += len(result.records)
        record_dropped(DROP_MISSING_COORDINATES, result.dropped_missing_coordinates)
        record_dropped(DROP_HIDDEN, result.dropped_hidden)
        return result

    def apply(self, records: Iterable[DisasterRecord]) -> List[DisasterRecord]:
        """Return only the records that may be shown to consumers."""
        return self.filter(records).records

    def get_statistics(self) -> Dict[str, int]:
        return {
            "passed": self._total_passed,
            "dropped_missing_coordinates": self._total_dropped_missing_coordinates,
            "dropped_hidden": self._total_dropped_hidden,
        }


__all__ = [
    "VISIBILITY_FIELDS",
    "DROP_MISSING_COORDINATES",
    "DROP_HIDDEN",
    "resolve_visibility",
    "FilterResult",
    "VisibilityFilter",
]
