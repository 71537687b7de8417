"""
Tests for SourceAdapter normalization and fetch behaviour.
"""

from datetime import datetime, timedelta, timezone

import pytest

from prohori.disaster_feed.models import (
    DisasterCategory,
    SourceDefinition,
)
from prohori.disaster_feed.source_adapter import (
    EARTHQUAKE_FIELD_MAP,
    DEFAULT_FIELD_MAP,
    SourceAdapter,
    field_map_for,
    make_coordinates,
    parse_timestamp,
    severity_from_magnitude,
)
from prohori.exceptions import SourceUnavailable


def _adapter(category=DisasterCategory.FLOOD, store=None, collection="col"):
    definition = SourceDefinition(
        source_id=category.value, category=category, collection=collection,
    )
    return SourceAdapter(definition, store)


@pytest.fixture
def quake():
    return _adapter(DisasterCategory.EARTHQUAKE)


@pytest.fixture
def flood():
    return _adapter(DisasterCategory.FLOOD)


class TestFieldMaps:
    """Category alias tables."""

    def test_earthquake_table(self):
        """Test earthquakes use their own table."""
        assert field_map_for(DisasterCategory.EARTHQUAKE) is EARTHQUAKE_FIELD_MAP

    def test_other_categories_share_default(self):
        """Test all non-earthquake categories use the default table."""
        for category in DisasterCategory:
            if category is not DisasterCategory.EARTHQUAKE:
                assert field_map_for(category) is DEFAULT_FIELD_MAP


class TestSeverity:
    """Severity resolution and clamping."""

    def test_magnitude_six_is_nine(self, quake):
        """Test magnitude 6.0 maps to severity 9."""
        record = quake.normalize({"_id": "a", "magnitude": 6.0, "latitude": 24, "longitude": 91})
        assert record.severity == 9

    def test_usgs_mag_alias(self, quake):
        """Test the USGS 'mag' field is used."""
        assert quake.normalize({"_id": "a", "mag": 4.0}).severity == 6

    @pytest.mark.parametrize("magnitude,expected", [
        (0.3, 1),
        (2.0, 3),
        (6.0, 9),
        (6.7, 10),
        (9.5, 10),
        (-1.0, 1),
    ])
    def test_severity_from_magnitude(self, magnitude, expected):
        """Test the magnitude formula and its bounds."""
        assert severity_from_magnitude(magnitude) == expected

    @pytest.mark.parametrize("value,expected", [
        (7.5, 8),
        (7.4, 7),
        (15, 10),
        (0, 1),
        ("6", 6),
    ])
    def test_explicit_danger_level_clamped(self, flood, value, expected):
        """Test explicit danger levels are rounded and clamped."""
        assert flood.normalize({"_id": "a", "dangerLevel": value}).severity == expected

    def test_explicit_beats_magnitude(self, quake):
        """Test explicit dangerLevel wins over magnitude."""
        record = quake.normalize({"_id": "a", "dangerLevel": 3, "magnitude": 7.0})
        assert record.severity == 3

    def test_default_severity(self, flood):
        """Test records without severity default to 5."""
        assert flood.normalize({"_id": "a"}).severity == 5

    def test_magnitude_ignored_outside_earthquakes(self, flood):
        """Test magnitude only applies to earthquakes."""
        assert flood.normalize({"_id": "a", "magnitude": 7.0}).severity == 5


class TestTitleAndLocation:
    """Display field fallbacks."""

    def test_earthquake_title_from_magnitude(self, quake):
        """Test the magnitude title fallback."""
        assert quake.normalize({"_id": "a", "mag": 4.56}).title == "M4.6 Earthquake"

    def test_unnamed_fallback(self, flood):
        """Test the generic title fallback."""
        assert flood.normalize({"_id": "a"}).title == "Unnamed Flood"

    def test_earthquake_without_magnitude(self, quake):
        """Test earthquakes without magnitude use the generic fallback."""
        assert quake.normalize({"_id": "a"}).title == "Unnamed Earthquake"

    def test_name_field(self, flood):
        """Test the name field is used as title."""
        assert flood.normalize({"_id": "a", "name": " Bogura flood "}).title == "Bogura flood"

    def test_earthquake_place(self, quake):
        """Test USGS place becomes location text."""
        record = quake.normalize({"_id": "a", "place": "10 km N of Sylhet"})
        assert record.location_text == "10 km N of Sylhet"

    def test_geojson_location_is_not_text(self, flood):
        """Test a GeoJSON location object is not used as location text."""
        record = flood.normalize({
            "_id": "a",
            "location": {"type": "Point", "coordinates": [90.4, 23.8]},
        })
        assert record.location_text == "Unknown Location"
        assert record.coordinates.latitude == 23.8


class TestCoordinates:
    """Coordinate resolution."""

    def test_explicit_fields(self, flood):
        """Test latitude/longitude fields."""
        record = flood.normalize({"_id": "a", "latitude": 23.8, "longitude": 90.4})
        assert (record.coordinates.latitude, record.coordinates.longitude) == (23.8, 90.4)

    def test_pair_is_lng_lat(self, flood):
        """Test a bare coordinate pair is read in GeoJSON order."""
        record = flood.normalize({"_id": "a", "coordinates": [90.4, 23.8]})
        assert (record.coordinates.latitude, record.coordinates.longitude) == (23.8, 90.4)

    def test_geometry_with_depth(self, quake):
        """Test USGS geometry with a depth component."""
        record = quake.normalize({"_id": "a", "geometry": {"coordinates": [91.9, 24.1, 10.0]}})
        assert (record.coordinates.latitude, record.coordinates.longitude) == (24.1, 91.9)

    def test_zero_placeholder_falls_back_to_pair(self, quake):
        """Test (0, 0) explicit fields defer to the GeoJSON location."""
        record = quake.normalize({
            "_id": "a",
            "latitude": 0,
            "longitude": 0,
            "location": {"coordinates": [91.87, 24.9]},
        })
        assert record.coordinates.latitude == 24.9

    def test_zero_placeholder_is_missing(self, quake):
        """Test the store's default [0, 0] counts as missing."""
        record = quake.normalize({"_id": "a", "location": {"coordinates": [0, 0]}})
        assert record.coordinates is None

    @pytest.mark.parametrize("lat,lng", [
        (91.0, 90.0),
        (23.0, 181.0),
        ("north", 90.0),
        (None, 90.0),
        (float("nan"), 90.0),
        (True, 90.0),
    ])
    def test_unusable_values(self, lat, lng):
        """Test out-of-range and non-numeric coordinates are rejected."""
        assert make_coordinates(lat, lng) is None

    def test_numeric_strings(self):
        """Test numeric strings are accepted."""
        coords = make_coordinates("22.65", "92.2")
        assert coords.latitude == 22.65 and coords.longitude == 92.2


class TestTimestamps:
    """Timestamp parsing across encodings."""

    EXPECTED = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [
        "2024-05-01T10:00:00Z",
        "2024-05-01T10:00:00+00:00",
        "2024-05-01T16:00:00+06:00",
        1714557600000,
        1714557600,
        "1714557600000",
        {"$date": "2024-05-01T10:00:00Z"},
        datetime(2024, 5, 1, 10, 0),
    ])
    def test_encodings(self, value):
        """Test every supported encoding parses to the same UTC instant."""
        assert parse_timestamp(value) == self.EXPECTED

    @pytest.mark.parametrize("value", [None, "", "yesterday", True])
    def test_unparseable(self, value):
        """Test unparseable values yield None."""
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", [
        "0001-01-01T00:00:00+01:00",
        datetime(9999, 12, 31, 23, 0, tzinfo=timezone(timedelta(hours=-5))),
    ])
    def test_unrepresentable_in_utc(self, value):
        """Test dates that overflow when converted to UTC yield None."""
        assert parse_timestamp(value) is None

    def test_alias_order(self, flood):
        """Test dateTime wins, then time, then createdAt, then updatedAt."""
        record = flood.normalize({
            "_id": "a",
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-02-01T00:00:00Z",
        })
        assert record.occurred_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_unparseable_alias_skipped(self, flood):
        """Test a bad dateTime falls through to the next alias."""
        record = flood.normalize({"_id": "a", "dateTime": "soon", "time": 1714557600000})
        assert record.occurred_at == self.EXPECTED


class TestIdentity:
    """Identifier resolution."""

    def test_oid_unwrapped(self, flood):
        """Test Mongo ObjectId wrappers are unwrapped."""
        assert flood.normalize({"_id": {"$oid": "abc123"}}).id == "abc123"

    def test_numeric_id(self, flood):
        """Test numeric ids are stringified."""
        assert flood.normalize({"id": 42}).id == "42"

    def test_hash_fallback_is_stable(self, flood):
        """Test documents without ids get a stable content hash."""
        doc = {"name": "No id", "latitude": 23.0, "longitude": 90.0}
        first = flood.normalize(doc).id
        assert first == flood.normalize(dict(doc)).id
        assert len(first) == 24

    def test_category_comes_from_definition(self, flood):
        """Test the category is assigned by configuration, not content."""
        record = flood.normalize({"_id": "a", "category": "fire", "type": "fire"})
        assert record.category is DisasterCategory.FLOOD
        assert record.source_id == "flood"


class TestVisibility:
    """Visibility flag normalization during projection."""

    @pytest.mark.parametrize("doc,expected", [
        ({"visible": True}, True),
        ({"isVisible": 1}, True),
        ({"isVisible": 0}, False),
        ({"visible": "false", "isVisible": "1"}, True),
        ({}, False),
    ])
    def test_visible(self, flood, doc, expected):
        """Test visibility encodings."""
        assert flood.normalize({"_id": "a", **doc}).visible is expected


class TestFetch:
    """Fetching through the store."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, fake_store):
        """Test a successful fetch normalizes every document."""
        adapter = _adapter(DisasterCategory.FLOOD, fake_store, "disasterflood")
        records, error = await adapter.fetch()
        assert error is None
        assert {r.id for r in records} == {"fl-1", "fl-hidden"}
        assert fake_store.calls == ["disasterflood"]

    @pytest.mark.asyncio
    async def test_store_error_wrapped(self, store_factory):
        """Test arbitrary store errors become SourceUnavailable."""
        store = store_factory(failures={"disasterfire": ConnectionError("refused")})
        adapter = _adapter(DisasterCategory.FIRE, store, "disasterfire")
        records, error = await adapter.fetch()
        assert records == []
        assert isinstance(error, SourceUnavailable)
        assert error.source == "fire"
        assert error.context["cause_type"] == "ConnectionError"

    @pytest.mark.asyncio
    async def test_source_unavailable_passthrough(self, store_factory):
        """Test SourceUnavailable from the store is returned as is."""
        original = SourceUnavailable("HTTP 503")
        store = store_factory(failures={"disasterfire": original})
        adapter = _adapter(DisasterCategory.FIRE, store, "disasterfire")
        records, error = await adapter.fetch()
        assert records == []
        assert error is original
        assert error.source == "fire"

    @pytest.mark.asyncio
    async def test_empty_collection(self, store_factory):
        """Test an empty collection is a success with no records."""
        adapter = _adapter(DisasterCategory.TSUNAMI, store_factory({}), "disastertsunami")
        assert await adapter.fetch() == ([], None)
