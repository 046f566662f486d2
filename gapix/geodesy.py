"""Distance computations on the earth's surface.

Every distance is a WGS84 geodesic computed with :mod:`pyproj`. For
point-to-segment distances the foot of the perpendicular is located on the
great circle through the segment endpoints and the geodesic distance to that
foot is measured; when the foot lies outside the segment the nearer endpoint
is used instead. A segment distance never exceeds the distance to either
endpoint. Every function validates its coordinates and raises
:class:`~gapix.errors.InvalidCoordinateError` on NaN or out-of-range input.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray
from pyproj import Geod

from .errors import InvalidCoordinateError

LatLon = Tuple[float, float]
FloatArray = NDArray[np.float64]

WGS84 = Geod(ellps="WGS84")

# Cross products shorter than this mean the endpoints are coincident or antipodal.
_PARALLEL_EPS = 1e-12


def validate_coordinate(lat: float, lon: float) -> None:
    """Raise ``InvalidCoordinateError`` unless ``lat``/``lon`` are finite and in range."""

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidCoordinateError(f"Coordinate ({lat}, {lon}) is not finite")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinateError(f"Latitude {lat} is outside -90..90")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinateError(f"Longitude {lon} is outside -180..180")


def validate_coordinates(lats: FloatArray, lons: FloatArray) -> None:
    """Vectorised :func:`validate_coordinate`; the message names the first bad index."""

    finite = np.isfinite(lats) & np.isfinite(lons)
    in_range = (np.abs(lats) <= 90.0) & (np.abs(lons) <= 180.0)
    bad = ~(finite & in_range)
    if bad.any():
        idx = int(np.argmax(bad))
        raise InvalidCoordinateError(
            f"Track point {idx} has an invalid coordinate "
            f"({float(lats[idx])}, {float(lons[idx])})"
        )


def point_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the geodesic distance in metres between two ``(lat, lon)`` pairs."""

    lat1, lon1 = _as_latlon(a)
    lat2, lon2 = _as_latlon(b)
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    _, _, distance = WGS84.inv(lon1, lat1, lon2, lat2)
    return float(distance)


def distances_to(lats: ArrayLike, lons: ArrayLike, target: Sequence[float]) -> FloatArray:
    """Return geodesic distances from every coordinate to ``target``."""

    lat_arr, lon_arr = _as_arrays(lats, lons)
    t_lat, t_lon = _as_latlon(target)
    if lat_arr.size == 0:
        return np.empty(0, dtype=float)
    validate_coordinates(lat_arr, lon_arr)
    _, _, dist = WGS84.inv(
        lon_arr,
        lat_arr,
        np.full_like(lon_arr, t_lon),
        np.full_like(lat_arr, t_lat),
    )
    result = np.asarray(dist, dtype=float)
    result[(lat_arr == t_lat) & (lon_arr == t_lon)] = 0.0
    return result


def consecutive_distances(lats: ArrayLike, lons: ArrayLike) -> FloatArray:
    """Return the ``n - 1`` geodesic distances between neighbouring coordinates."""

    lat_arr, lon_arr = _as_arrays(lats, lons)
    if lat_arr.size < 2:
        return np.empty(0, dtype=float)
    validate_coordinates(lat_arr, lon_arr)
    _, _, dist = WGS84.inv(lon_arr[:-1], lat_arr[:-1], lon_arr[1:], lat_arr[1:])
    result = np.asarray(dist, dtype=float)
    same = (lat_arr[:-1] == lat_arr[1:]) & (lon_arr[:-1] == lon_arr[1:])
    result[same] = 0.0
    return result


def segment_distances(
    lats: ArrayLike,
    lons: ArrayLike,
    seg_start: Sequence[float],
    seg_end: Sequence[float],
) -> FloatArray:
    """Return the distance in metres from each coordinate to a geodesic segment.

    Args:
        lats: Latitudes in degrees.
        lons: Longitudes in degrees, same length as ``lats``.
        seg_start: ``(lat, lon)`` of the segment start.
        seg_end: ``(lat, lon)`` of the segment end.

    Returns:
        Array of non-negative distances, one per coordinate.
    """

    lat_arr, lon_arr = _as_arrays(lats, lons)
    start = _as_latlon(seg_start)
    end = _as_latlon(seg_end)
    if lat_arr.size == 0:
        return np.empty(0, dtype=float)
    validate_coordinates(lat_arr, lon_arr)
    if start == end:
        return distances_to(lat_arr, lon_arr, start)

    a = _unit_vector(*start)
    b = _unit_vector(*end)
    normal = np.cross(a, b)
    norm = float(np.linalg.norm(normal))
    if norm < _PARALLEL_EPS:
        if float(np.dot(a, b)) > 0.0:
            return distances_to(lat_arr, lon_arr, start)
        # Antipodal endpoints do not define a unique great circle.
        return np.minimum(
            distances_to(lat_arr, lon_arr, start),
            distances_to(lat_arr, lon_arr, end),
        )
    normal = normal / norm

    points = _unit_vectors(lat_arr, lon_arr)
    foot = points - np.outer(points @ normal, normal)
    foot_norm = np.linalg.norm(foot, axis=1)

    # The foot lies on the minor arc a->b only when both turns agree with the normal.
    after_start = np.cross(a, foot) @ normal >= 0.0
    before_end = np.cross(foot, b) @ normal >= 0.0
    # A point on the pole of the great circle has no unique foot.
    inside = after_start & before_end & (foot_norm >= _PARALLEL_EPS)

    nearest = np.minimum(
        distances_to(lat_arr, lon_arr, start),
        distances_to(lat_arr, lon_arr, end),
    )
    result = nearest.copy()
    if inside.any():
        foot_lat, foot_lon = _to_latlon(foot[inside] / foot_norm[inside, None])
        _, _, dist = WGS84.inv(lon_arr[inside], lat_arr[inside], foot_lon, foot_lat)
        result[inside] = np.minimum(np.asarray(dist, dtype=float), nearest[inside])
    return result


def perpendicular_distance(
    p: Sequence[float],
    seg_start: Sequence[float],
    seg_end: Sequence[float],
) -> float:
    """Return the shortest distance in metres from ``p`` to the segment.

    A degenerate segment (``seg_start == seg_end``) degrades to
    :func:`point_distance`.
    """

    lat, lon = _as_latlon(p)
    start = _as_latlon(seg_start)
    end = _as_latlon(seg_end)
    if start == end:
        return point_distance((lat, lon), start)
    distances = segment_distances(
        np.array([lat], dtype=float), np.array([lon], dtype=float), start, end
    )
    return float(distances[0])


def _as_latlon(value: Sequence[float]) -> LatLon:
    lat, lon = float(value[0]), float(value[1])
    validate_coordinate(lat, lon)
    return lat, lon


def _as_arrays(lats: ArrayLike, lons: ArrayLike) -> Tuple[FloatArray, FloatArray]:
    lat_arr = np.asarray(lats, dtype=float).reshape(-1)
    lon_arr = np.asarray(lons, dtype=float).reshape(-1)
    if lat_arr.shape != lon_arr.shape:
        raise ValueError("Latitude and longitude arrays must be the same length")
    return lat_arr, lon_arr


def _unit_vector(lat: float, lon: float) -> FloatArray:
    phi = math.radians(lat)
    lam = math.radians(lon)
    return np.array(
        [math.cos(phi) * math.cos(lam), math.cos(phi) * math.sin(lam), math.sin(phi)],
        dtype=float,
    )


def _unit_vectors(lats: FloatArray, lons: FloatArray) -> FloatArray:
    phi = np.radians(lats)
    lam = np.radians(lons)
    cos_phi = np.cos(phi)
    return np.column_stack((cos_phi * np.cos(lam), cos_phi * np.sin(lam), np.sin(phi)))


def _to_latlon(vectors: FloatArray) -> Tuple[FloatArray, FloatArray]:
    x, y, z = vectors[:, 0], vectors[:, 1], vectors[:, 2]
    return np.degrees(np.arctan2(z, np.hypot(x, y))), np.degrees(np.arctan2(y, x))


__all__ = [
    "LatLon",
    "validate_coordinate",
    "validate_coordinates",
    "point_distance",
    "distances_to",
    "consecutive_distances",
    "segment_distances",
    "perpendicular_distance",
]
