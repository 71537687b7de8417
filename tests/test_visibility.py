"""
Tests for visibility resolution and the visibility filter.
"""

import pytest

from prohori.disaster_feed.models import Coordinates, DisasterCategory, DisasterRecord
from prohori.disaster_feed.visibility import VisibilityFilter, resolve_visibility


def _record(record_id, visible=True, coordinates=(23.8, 90.4)):
    return DisasterRecord(
        id=record_id,
        category=DisasterCategory.FIRE,
        source_id="fire",
        title="Fire",
        coordinates=Coordinates(latitude=coordinates[0], longitude=coordinates[1])
        if coordinates else None,
        visible=visible,
    )


class TestResolveVisibility:
    """Legacy flag encodings."""

    @pytest.mark.parametrize("document", [
        {"visible": True},
        {"visible": 1},
        {"visible": "1"},
        {"visible": "true"},
        {"visible": "TRUE"},
        {"isVisible": True},
        {"isVisible": 1},
        {"isVisible": 1.0},
        {"visible": 0, "isVisible": 1},
    ])
    def test_visible(self, document):
        """Test encodings that mark a document visible."""
        assert resolve_visibility(document) is True

    @pytest.mark.parametrize("document", [
        {},
        {"visible": False},
        {"visible": 0},
        {"visible": "0"},
        {"visible": "false"},
        {"isVisible": 0},
        {"visible": None},
        {"visible": 2},
        {"visible": "yes"},
        {"status": "visible"},
    ])
    def test_not_visible(self, document):
        """Test encodings that keep a document hidden, including absence."""
        assert resolve_visibility(document) is False


class TestVisibilityFilter:
    """Filtering before publication."""

    def test_keeps_visible_with_coordinates(self):
        """Test only visible records with coordinates pass."""
        records = [
            _record("ok"),
            _record("hidden", visible=False),
            _record("nowhere", coordinates=None),
        ]
        result = VisibilityFilter().filter(records)
        assert [r.id for r in result.records] == ["ok"]
        assert result.dropped_hidden == 1
        assert result.dropped_missing_coordinates == 1
        assert result.dropped_total == 2

    def test_missing_coordinates_takes_precedence(self):
        """Test a hidden record without coordinates counts as missing coordinates."""
        result = VisibilityFilter().filter([_record("x", visible=False, coordinates=None)])
        assert result.dropped_missing_coordinates == 1
        assert result.dropped_hidden == 0

    def test_apply_returns_list(self):
        """Test apply returns the surviving records."""
        assert [r.id for r in VisibilityFilter().apply([_record("a"), _record("b")])] == ["a", "b"]

    def test_statistics_accumulate(self):
        """Test counters accumulate across calls."""
        vf = VisibilityFilter()
        vf.filter([_record("a"), _record("b", visible=False)])
        vf.filter([_record("c", coordinates=None)])
        assert vf.get_statistics() == {
            "passed": 1,
            "dropped_missing_coordinates": 1,
            "dropped_hidden": 1,
        }
