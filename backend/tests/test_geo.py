"""Tests for great-circle distance."""

from vantrack.core.geo import haversine_m


def test_same_point_is_zero():
    assert haversine_m(12.97, 77.59, 12.97, 77.59) == 0.0


def test_one_degree_latitude():
    # ~111.2 km per degree along a meridian
    d = haversine_m(0.0, 0.0, 1.0, 0.0)
    assert 111_000 < d < 111_400


def test_symmetric():
    a = haversine_m(12.9716, 77.5946, 12.9352, 77.6245)
    b = haversine_m(12.9352, 77.6245, 12.9716, 77.5946)
    assert abs(a - b) < 1e-6
    assert 4_000 < a < 6_000
