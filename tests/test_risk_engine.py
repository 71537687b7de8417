"""
Tests for the geospatial risk engine.
"""

import math

import pytest

from prohori.disaster_feed.models import Region, RiskLevel
from prohori.disaster_feed.risk_engine import (
    BoundingBox,
    RandomScorer,
    RiskEngine,
    SeededScorer,
    build_scorer,
    classify_regions,
    classify_risk_level,
    overall_score,
    safety_tips,
)
from prohori.exceptions import InvalidQuery


@pytest.fixture
def engine():
    return RiskEngine(SeededScorer(seed=42))


class TestRegions:
    """Region classification with strict bounds."""

    def test_coastal_point(self):
        """Test a southern point east of 89E is coastal only."""
        assert classify_regions(22.0, 89.5) == [Region.COASTAL]

    def test_brahmaputra_basin(self):
        """Test a Brahmaputra point is in the river basin."""
        assert classify_regions(24.0, 90.0) == [Region.RIVER_BASIN]

    def test_meghna_basin(self):
        """Test a Meghna point is in the river basin."""
        assert classify_regions(24.0, 91.0) == [Region.RIVER_BASIN]

    def test_ganges_basin(self):
        """Test a Ganges point is in the river basin."""
        assert classify_regions(23.0, 89.0) == [Region.RIVER_BASIN]

    def test_coastal_and_hilly(self):
        """Test the Chittagong hills are both coastal and hilly."""
        assert classify_regions(22.5, 92.0) == [Region.COASTAL, Region.HILLY]

    def test_strict_bounds(self):
        """Test points on a boundary are outside."""
        assert classify_regions(23.0, 90.0) == []
        assert Region.COASTAL not in classify_regions(22.0, 89.0)
        assert Region.HILLY not in classify_regions(23.0, 91.5)

    def test_no_region(self):
        """Test a northern inland point is in no region."""
        assert classify_regions(26.0, 89.0) == []

    def test_bounding_box_open_sides(self):
        """Test None edges are unbounded."""
        box = BoundingBox(max_lat=23.0)
        assert box.contains(-80.0, 170.0)
        assert not box.contains(23.0, 0.0)


class TestScoring:
    """Scores, elevation and classification."""

    def test_coastal_assessment(self, engine):
        """Test the coastal point's score ranges."""
        result = engine.assess(22.0, 89.5)
        assert 6 <= result.cyclone_risk <= 10
        assert 1 <= result.flood_risk <= 5
        assert 1 <= result.landslide_risk <= 3
        assert 0 <= result.elevation_meters <= 99
        assert result.regions == [Region.COASTAL]

    def test_seeded_reproducible(self, engine):
        """Test identical queries give identical assessments."""
        first = engine.assess(22.0, 89.5)
        second = engine.assess(22.0, 89.5)
        other_engine = RiskEngine(SeededScorer(seed=42)).assess(22.0, 89.5)
        assert first == second == other_engine

    def test_hilly_assessment(self, engine):
        """Test hilly points raise landslide risk and elevation."""
        result = engine.assess(22.5, 92.0)
        assert 6 <= result.landslide_risk <= 10
        assert 6 <= result.cyclone_risk <= 10
        assert 100 <= result.elevation_meters <= 399

    def test_river_basin_assessment(self, engine):
        """Test river basin points raise flood risk only."""
        result = engine.assess(24.0, 90.0)
        assert 6 <= result.flood_risk <= 10
        assert 1 <= result.cyclone_risk <= 5
        assert 1 <= result.landslide_risk <= 3

    def test_grid_invariants(self, engine):
        """Test ranges and level consistency across Bangladesh."""
        for lat10 in range(205, 267, 7):
            for lng10 in range(880, 927, 5):
                lat, lng = lat10 / 10.0, lng10 / 10.0
                result = engine.assess(lat, lng)
                for score in (result.flood_risk, result.cyclone_risk, result.landslide_risk):
                    assert 1 <= score <= 10
                assert result.overall_risk == overall_score(
                    result.flood_risk, result.cyclone_risk, result.landslide_risk,
                )
                assert result.risk_level == classify_risk_level(result.overall_risk)

    def test_random_scorer_ranges(self):
        """Test the random scorer respects the same ranges."""
        engine = RiskEngine(RandomScorer())
        for _ in range(50):
            result = engine.assess(22.0, 89.5)
            assert 6 <= result.cyclone_risk <= 10
            assert 1 <= result.landslide_risk <= 3

    @pytest.mark.parametrize("scores,expected", [
        ((6, 1, 1), 3),
        ((5, 5, 4), 5),
        ((10, 10, 10), 10),
        ((1, 1, 1), 1),
        ((10, 5, 3), 6),
    ])
    def test_overall_score(self, scores, expected):
        """Test the rounded mean."""
        assert overall_score(*scores) == expected

    @pytest.mark.parametrize("overall,level", [
        (10, RiskLevel.HIGH),
        (7, RiskLevel.HIGH),
        (6, RiskLevel.MEDIUM),
        (4, RiskLevel.MEDIUM),
        (3, RiskLevel.LOW),
        (1, RiskLevel.LOW),
    ])
    def test_risk_level(self, overall, level):
        """Test level thresholds."""
        assert classify_risk_level(overall) is level

    def test_safety_tips(self):
        """Test tips for hazards scoring 7 or more."""
        assert safety_tips(7, 3, 9) == ["Keep supplies ready", "Alert during heavy rain"]
        assert safety_tips(6, 6, 6) == []

    def test_build_scorer(self):
        """Test configuration picks the scorer."""
        assert isinstance(build_scorer("random"), RandomScorer)
        scorer = build_scorer("seeded", 5)
        assert isinstance(scorer, SeededScorer) and scorer.seed == 5


class TestInvalidQueries:
    """Input validation."""

    @pytest.mark.parametrize("lat,lng", [
        (91.0, 92.0),
        (-90.5, 90.0),
        (23.0, 180.5),
        (23.0, -181.0),
        (math.nan, 90.0),
        (23.0, math.inf),
        (None, 90.0),
        (23.0, None),
        ("north", 90.0),
        (True, 90.0),
    ])
    def test_rejected(self, engine, lat, lng):
        """Test invalid coordinates raise InvalidQuery."""
        with pytest.raises(InvalidQuery):
            engine.assess(lat, lng)

    def test_boundary_values_accepted(self, engine):
        """Test the closed coordinate ranges."""
        engine.assess(90.0, 180.0)
        engine.assess(-90.0, -180.0)

    def test_error_details(self, engine):
        """Test the error names the invalid field."""
        with pytest.raises(InvalidQuery) as exc_info:
            engine.assess(91.0, 92.0)
        assert exc_info.value.context["invalid_fields"] == {"lat": "out of range"}

    def test_statistics(self, engine):
        """Test assessment and rejection counters."""
        engine.assess(22.0, 89.5)
        with pytest.raises(InvalidQuery):
            engine.assess(91.0, 92.0)
        stats = engine.get_statistics()
        assert stats["assessments"] == 1
        assert stats["invalid_queries"] == 1
        assert sum(stats["by_risk_level"].values()) == 1
