"""Tests for geodesic point and segment distances."""

from __future__ import annotations

import math

import numpy as np
import pytest

from gapix.errors import InvalidCoordinateError
from gapix.geodesy import (
    consecutive_distances,
    perpendicular_distance,
    point_distance,
    segment_distances,
)


def test_point_distance_identical_points_is_zero():
    assert point_distance((51.5, -0.1), (51.5, -0.1)) == 0.0


def test_point_distance_one_degree_of_latitude():
    # One degree along a meridian is ~111 km on WGS84.
    d = point_distance((0.0, 0.0), (1.0, 0.0))
    assert d == pytest.approx(110_574.4, rel=1e-4)


def test_point_distance_is_symmetric():
    a, b = (51.5, -0.1), (48.85, 2.35)
    assert point_distance(a, b) == pytest.approx(point_distance(b, a))


@pytest.mark.parametrize(
    "lat, lon",
    [(float("nan"), 0.0), (0.0, float("inf")), (91.0, 0.0), (0.0, -180.5)],
)
def test_point_distance_rejects_invalid_coordinates(lat, lon):
    with pytest.raises(InvalidCoordinateError):
        point_distance((lat, lon), (0.0, 0.0))


def test_perpendicular_distance_to_equator_segment():
    # 0.0001 degrees of WGS84 meridian north of a segment on the equator.
    d = perpendicular_distance((0.0001, 0.0005), (0.0, 0.0), (0.0, 0.001))
    assert d == pytest.approx(11.057, abs=0.01)
    assert d == pytest.approx(point_distance((0.0001, 0.0005), (0.0, 0.0005)), rel=1e-6)


@pytest.mark.parametrize(
    "p",
    [
        (0.001, 1e-9),
        (0.001, 0.0),
        (0.001, 0.000999999),
        (-0.0005, 0.0002),
        (51.5, -0.1),
        (45.0, 179.0),
    ],
)
def test_segment_distance_never_exceeds_endpoint_distance(p):
    start, end = (0.0, 0.0), (0.0, 0.001)
    d = perpendicular_distance(p, start, end)
    assert d <= min(point_distance(p, start), point_distance(p, end)) + 1e-9


def test_segment_distance_is_continuous_at_the_arc_boundary():
    start, end = (0.0, 0.0), (0.0, 0.001)
    just_inside = perpendicular_distance((0.001, 1e-9), start, end)
    just_outside = perpendicular_distance((0.001, -1e-9), start, end)
    assert just_inside == pytest.approx(just_outside, abs=1e-3)
    assert just_inside == pytest.approx(110.574, abs=0.01)


def test_perpendicular_distance_point_on_segment_is_near_zero():
    d = perpendicular_distance((0.0, 0.0005), (0.0, 0.0), (0.0, 0.001))
    assert d == pytest.approx(0.0, abs=1e-6)


def test_perpendicular_distance_beyond_end_uses_nearest_endpoint():
    p, start, end = (0.0, 0.002), (0.0, 0.0), (0.0, 0.001)
    assert perpendicular_distance(p, start, end) == pytest.approx(point_distance(p, end))


def test_perpendicular_distance_before_start_uses_nearest_endpoint():
    p, start, end = (0.0005, -0.001), (0.0, 0.0), (0.0, 0.001)
    assert perpendicular_distance(p, start, end) == pytest.approx(point_distance(p, start))


def test_perpendicular_distance_degenerate_segment():
    p, s = (51.501, -0.1), (51.5, -0.1)
    assert perpendicular_distance(p, s, s) == point_distance(p, s)


def test_perpendicular_distance_rejects_invalid_segment():
    with pytest.raises(InvalidCoordinateError):
        perpendicular_distance((0.0, 0.0), (float("nan"), 0.0), (1.0, 1.0))


def test_segment_distances_matches_scalar_version():
    lats = np.array([0.0001, 0.0, -0.0002, 0.0003])
    lons = np.array([0.0005, 0.002, 0.0007, -0.0004])
    start, end = (0.0, 0.0), (0.0, 0.001)
    vectorised = segment_distances(lats, lons, start, end)
    scalar = [perpendicular_distance((la, lo), start, end) for la, lo in zip(lats, lons)]
    assert vectorised == pytest.approx(scalar)
    assert all(math.isfinite(v) and v >= 0 for v in vectorised)


def test_segment_distances_empty_input():
    assert segment_distances([], [], (0.0, 0.0), (1.0, 1.0)).size == 0


def test_segment_distances_antipodal_endpoints_fall_back_to_endpoints():
    d = segment_distances([0.0], [90.0], (0.0, 0.0), (0.0, 180.0))
    expected = min(point_distance((0.0, 90.0), (0.0, 0.0)), point_distance((0.0, 90.0), (0.0, 180.0)))
    assert d[0] == pytest.approx(expected)


def test_consecutive_distances_length_and_zero_for_repeats():
    lats = [51.5, 51.5, 51.501]
    lons = [-0.1, -0.1, -0.1]
    d = consecutive_distances(lats, lons)
    assert d.shape == (2,)
    assert d[0] == 0.0
    assert d[1] == pytest.approx(111.26, abs=0.5)


def test_consecutive_distances_reports_bad_index():
    with pytest.raises(InvalidCoordinateError, match="Track point 1"):
        consecutive_distances([0.0, 95.0], [0.0, 0.0])
