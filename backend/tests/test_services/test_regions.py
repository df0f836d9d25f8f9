"""Tests for region bucket resolution."""

import pytest

from eurohazard.services.regions import (
    CONTINENTAL_REGION,
    EUROPE,
    GLOBAL_REGION,
    BoundingBox,
    region_channel,
    resolve_region,
)


class TestResolveRegion:
    def test_london_is_uk(self):
        assert resolve_region(51.5, -0.12) == "UK"

    def test_outside_area_of_interest_is_global(self):
        assert resolve_region(0, 0) == GLOBAL_REGION

    @pytest.mark.parametrize(
        "lat, lon, expected",
        [
            (48.8566, 2.3522, "FR"),  # Paris
            (52.5200, 13.4050, "DE"),  # Berlin
            (41.9028, 12.4964, "IT"),  # Rome
            (40.4168, -3.7038, "ES"),  # Madrid
            (52.3676, 4.9041, "NL"),  # Amsterdam
            (48.2082, 16.3738, "AT"),  # Vienna
            (52.2297, 21.0122, "PL"),  # Warsaw
        ],
    )
    def test_capitals(self, lat, lon, expected):
        assert resolve_region(lat, lon) == expected

    def test_inside_europe_but_no_named_box_is_eu(self):
        # Budapest and Athens fall outside every named box
        assert resolve_region(47.4979, 19.0402) == CONTINENTAL_REGION
        assert resolve_region(37.9838, 23.7275) == CONTINENTAL_REGION

    def test_first_match_wins_on_overlap(self):
        # Inside both the DE and FR boxes; DE is checked first
        assert resolve_region(49.0, 8.0) == "DE"
        # Inside both the DE and NL boxes
        assert resolve_region(52.0, 6.0) == "DE"

    def test_boundaries_are_inclusive(self):
        assert resolve_region(60.0, 2.0) == "UK"
        assert resolve_region(70.0, 40.0) == CONTINENTAL_REGION
        assert resolve_region(35.0, -10.0) == CONTINENTAL_REGION

    def test_just_outside_area_of_interest(self):
        assert resolve_region(70.01, 10.0) == GLOBAL_REGION
        assert resolve_region(50.0, -10.01) == GLOBAL_REGION

    def test_custom_area_of_interest(self):
        aoi = BoundingBox(0, 10, 0, 10)
        assert resolve_region(5, 5, aoi) == CONTINENTAL_REGION
        assert resolve_region(51.5, -0.12, aoi) == GLOBAL_REGION


class TestBoundingBox:
    def test_contains(self):
        assert EUROPE.contains(50, 10)
        assert not EUROPE.contains(34.9, 10)


def test_region_channel():
    assert region_channel("UK") == "region_UK"
