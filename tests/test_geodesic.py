"""
Tests for haversine distance and distance formatting.

Run with:
    pytest tests/test_geodesic.py -v
"""

from __future__ import annotations

import pytest

from backend.quakescope.spatial.geodesic import (
    EARTH_RADIUS_KM,
    distance_km,
    format_distance,
)

POINTS = [
    (0.0, 0.0),
    (13.0827, 80.2707),
    (-33.8688, 151.2093),
    (61.2181, -149.9003),
    (90.0, 0.0),
    (-90.0, 180.0),
]


class TestDistanceKm:
    def test_identical_points_zero(self):
        for lat, lon in POINTS:
            assert distance_km(lat, lon, lat, lon) == 0.0

    def test_symmetric(self):
        for a in POINTS:
            for b in POINTS:
                assert distance_km(*a, *b) == pytest.approx(distance_km(*b, *a))

    def test_one_degree_at_equator(self):
        # 2πR / 360
        assert distance_km(0, 0, 0, 1) == pytest.approx(111.195, abs=0.01)
        assert distance_km(0, 0, 1, 0) == pytest.approx(111.195, abs=0.01)

    def test_pole_to_pole_is_half_circumference(self):
        assert distance_km(90, 0, -90, 0) == pytest.approx(3.141592653589793 * EARTH_RADIUS_KM)

    def test_antimeridian_crossing_is_short(self):
        assert distance_km(0, 179.5, 0, -179.5) == pytest.approx(111.195, abs=0.01)

    def test_known_city_pair(self):
        """New York → London ≈ 5570 km."""
        d = distance_km(40.7128, -74.0060, 51.5074, -0.1278)
        assert 5550 < d < 5590

    def test_never_negative(self):
        for a in POINTS:
            for b in POINTS:
                assert distance_km(*a, *b) >= 0.0

    def test_out_of_range_inputs_accepted(self):
        # no validation: callers own the ranges
        assert distance_km(95.0, 200.0, 95.0, 200.0) == 0.0
        assert distance_km(0, 0, 0, 360) >= 0.0


class TestFormatDistance:
    def test_metres(self):
        assert format_distance(0.25) == "250 m"

    def test_one_decimal_below_100(self):
        assert format_distance(12.345) == "12.3 km"

    def test_integer_above_100(self):
        assert format_distance(480.6) == "481 km"
