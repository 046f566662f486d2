"""Data models for track points, stages and simplification results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
import math
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, overload

import numpy as np

from .errors import InvalidCoordinateError, NonMonotonicTimeError
from .geodesy import LatLon, consecutive_distances, validate_coordinates


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """A single location sample.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        elevation: Elevation in metres, when recorded.
        time: Timezone-aware UTC timestamp, when recorded.
        speed: Device-reported speed in metres/second, when recorded.
        heart_rate: Heart rate in bpm from the Garmin extension.
        cadence: Cadence in rpm from the Garmin extension.
        air_temp: Air temperature in degrees Celsius from the Garmin extension.
    """

    latitude: float
    longitude: float
    elevation: Optional[float] = None
    time: Optional[datetime] = None
    speed: Optional[float] = None
    heart_rate: Optional[int] = None
    cadence: Optional[int] = None
    air_temp: Optional[float] = None

    @property
    def latlon(self) -> LatLon:
        return (self.latitude, self.longitude)

    @property
    def reported_speed_kmh(self) -> Optional[float]:
        """Device-reported speed converted to km/h."""

        if self.speed is None:
            return None
        return self.speed * 3.6


Track = Sequence[TrackPoint]


def speed_kmh(metres: float, seconds: float) -> float:
    """Return the speed in km/h for a distance covered in a number of seconds."""

    if seconds <= 0:
        return 0.0
    return (metres / seconds) * 3.6


def coordinate_arrays(points: Track) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(lats, lons)`` float arrays for a track."""

    lats = np.fromiter((p.latitude for p in points), dtype=float, count=len(points))
    lons = np.fromiter((p.longitude for p in points), dtype=float, count=len(points))
    return lats, lons


def validate_track(points: Track) -> None:
    """Raise ``InvalidCoordinateError`` if any point has a bad coordinate or elevation."""

    if not points:
        return
    lats, lons = coordinate_arrays(points)
    validate_coordinates(lats, lons)
    for idx, point in enumerate(points):
        if point.elevation is not None and not math.isfinite(point.elevation):
            raise InvalidCoordinateError(
                f"Track point {idx} has a non-finite elevation {point.elevation}"
            )


def point_speeds_kmh(points: Track) -> List[Optional[float]]:
    """Return the speed of every point in km/h.

    The reported speed is used when present; otherwise the speed is derived
    from the distance and time to the previous point. The first point takes
    the speed of the second. A pair with equal timestamps carries the previous
    speed forward. Points without timestamps (and no reported speed) get
    ``None``.

    Raises:
        NonMonotonicTimeError: If timestamps decrease between neighbours.
    """

    count = len(points)
    if count == 0:
        return []
    lats, lons = coordinate_arrays(points)
    deltas = consecutive_distances(lats, lons)
    speeds: List[Optional[float]] = [points[0].reported_speed_kmh]
    for idx in range(1, count):
        prev, cur = points[idx - 1], points[idx]
        reported = cur.reported_speed_kmh
        if prev.time is not None and cur.time is not None:
            seconds = (cur.time - prev.time).total_seconds()
            if seconds < 0:
                raise NonMonotonicTimeError(
                    f"Track point {idx} at {cur.time.isoformat()} is earlier than "
                    f"point {idx - 1} at {prev.time.isoformat()}"
                )
        else:
            seconds = None
        if reported is not None:
            speeds.append(reported)
        elif seconds is None:
            speeds.append(None)
        elif seconds == 0:
            speeds.append(speeds[-1])
        else:
            speeds.append(speed_kmh(float(deltas[idx - 1]), seconds))
    if speeds[0] is None and count > 1:
        speeds[0] = speeds[1]
    return speeds


def cumulative_distances(points: Track) -> np.ndarray:
    """Return the running distance in metres at every point (0 at the first)."""

    if not points:
        return np.empty(0, dtype=float)
    lats, lons = coordinate_arrays(points)
    return np.concatenate(([0.0], np.cumsum(consecutive_distances(lats, lons))))


def _climb(points: Track) -> Tuple[float, float]:
    """Return ``(ascent, descent)`` in metres over consecutive points with elevation."""

    ascent = 0.0
    descent = 0.0
    for prev, cur in zip(points, points[1:]):
        if prev.elevation is None or cur.elevation is None:
            continue
        delta = cur.elevation - prev.elevation
        if delta > 0:
            ascent += delta
        else:
            descent -= delta
    return ascent, descent


def _min_max_elevation(
    points: Track,
) -> Tuple[Optional[TrackPoint], Optional[TrackPoint]]:
    with_elevation = [p for p in points if p.elevation is not None]
    if not with_elevation:
        return None, None
    lowest = min(with_elevation, key=lambda p: float(p.elevation or 0.0))
    highest = max(with_elevation, key=lambda p: float(p.elevation or 0.0))
    return lowest, highest


def _max_speed(speeds: Sequence[Optional[float]]) -> Optional[float]:
    known = [s for s in speeds if s is not None]
    return max(known) if known else None


class StageType(str, Enum):
    """Classification of a stage."""

    MOVING = "Moving"
    STOPPED = "Stopped"

    def __str__(self) -> str:
        return self.value

    def toggle(self) -> "StageType":
        return StageType.STOPPED if self is StageType.MOVING else StageType.MOVING


@dataclass(frozen=True, slots=True)
class Stage:
    """A contiguous ``[start, end)`` run of a track classified as moving or stopped.

    The stage keeps a reference to the source track and derives every metric on
    demand; it never copies points.
    """

    stage_type: StageType
    start: int
    end: int
    track: Track = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0 <= self.start < self.end <= len(self.track):
            raise ValueError(
                f"Stage range [{self.start}, {self.end}) is invalid for a track "
                f"of {len(self.track)} points"
            )

    @property
    def count(self) -> int:
        return self.end - self.start

    @property
    def first_index(self) -> int:
        return self.start

    @property
    def last_index(self) -> int:
        return self.end - 1

    @property
    def first_point(self) -> TrackPoint:
        return self.track[self.start]

    @property
    def last_point(self) -> TrackPoint:
        return self.track[self.end - 1]

    @property
    def points(self) -> Sequence[TrackPoint]:
        return self.track[self.start : self.end]

    @property
    def duration(self) -> timedelta:
        """Time between the first and last point of the stage."""

        first, last = self.first_point.time, self.last_point.time
        if first is None or last is None:
            return timedelta(0)
        return last - first

    @property
    def duration_seconds(self) -> float:
        return self.duration.total_seconds()

    @property
    def distance_m(self) -> float:
        """Sum of the geodesic distances between consecutive points of the stage."""

        lats, lons = coordinate_arrays(self.points)
        return float(np.sum(consecutive_distances(lats, lons)))

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def average_speed_kmh(self) -> float:
        return speed_kmh(self.distance_m, self.duration_seconds)

    @property
    def max_speed_kmh(self) -> Optional[float]:
        # Include the preceding point so the first speed is derived, not borrowed.
        offset = 1 if self.start > 0 else 0
        speeds = point_speeds_kmh(self.track[self.start - offset : self.end])
        return _max_speed(speeds[offset:])

    @property
    def ascent_m(self) -> float:
        return _climb(self.points)[0]

    @property
    def descent_m(self) -> float:
        return _climb(self.points)[1]

    @property
    def min_elevation_point(self) -> Optional[TrackPoint]:
        return _min_max_elevation(self.points)[0]

    @property
    def max_elevation_point(self) -> Optional[TrackPoint]:
        return _min_max_elevation(self.points)[1]

    @property
    def average_heart_rate(self) -> Optional[float]:
        rates = [p.heart_rate for p in self.points if p.heart_rate is not None]
        if not rates:
            return None
        return sum(rates) / len(rates)

    @property
    def max_heart_rate(self) -> Optional[int]:
        rates = [p.heart_rate for p in self.points if p.heart_rate is not None]
        return max(rates) if rates else None


@dataclass(frozen=True, slots=True)
class StageList(Sequence[Stage]):
    """Ordered stages covering a whole track, plus track-wide totals."""

    stages: Tuple[Stage, ...]
    track: Track = field(repr=False, compare=False)

    @overload
    def __getitem__(self, index: int) -> Stage: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[Stage, ...]: ...

    def __getitem__(self, index: int | slice) -> Stage | Tuple[Stage, ...]:
        return self.stages[index]

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    @property
    def start_time(self) -> Optional[datetime]:
        return self.track[0].time if self.track else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.track[-1].time if self.track else None

    @property
    def duration(self) -> timedelta:
        if self.start_time is None or self.end_time is None:
            return timedelta(0)
        return self.end_time - self.start_time

    @property
    def stopped_time(self) -> timedelta:
        total = timedelta(0)
        for stage in self.stages:
            if stage.stage_type is StageType.STOPPED:
                total += stage.duration
        return total

    @property
    def moving_time(self) -> timedelta:
        return self.duration - self.stopped_time

    @property
    def stop_count(self) -> int:
        return sum(1 for s in self.stages if s.stage_type is StageType.STOPPED)

    @property
    def distance_m(self) -> float:
        """Distance over the whole track, including hops between adjacent stages."""

        lats, lons = coordinate_arrays(self.track)
        return float(np.sum(consecutive_distances(lats, lons)))

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000.0

    @property
    def average_moving_speed_kmh(self) -> float:
        return speed_kmh(self.distance_m, self.moving_time.total_seconds())

    @property
    def average_overall_speed_kmh(self) -> float:
        return speed_kmh(self.distance_m, self.duration.total_seconds())

    @property
    def total_ascent_m(self) -> float:
        return _climb(self.track)[0]

    @property
    def total_descent_m(self) -> float:
        return _climb(self.track)[1]

    @property
    def min_elevation_point(self) -> Optional[TrackPoint]:
        return _min_max_elevation(self.track)[0]

    @property
    def max_elevation_point(self) -> Optional[TrackPoint]:
        return _min_max_elevation(self.track)[1]

    @property
    def max_speed_kmh(self) -> Optional[float]:
        return _max_speed(point_speeds_kmh(self.track))


@dataclass(frozen=True, slots=True)
class SimplificationResult:
    """Ordered subsequence of a track kept by a simplifier.

    ``indices`` are positions in the source track. ``tolerance_m`` is the
    tolerance that produced the result (``None`` for decimation) and
    ``capped`` records that a point budget forced extra reduction.
    """

    points: Tuple[TrackPoint, ...]
    indices: Tuple[int, ...]
    source_count: int
    tolerance_m: Optional[float] = None
    capped: bool = False

    @property
    def count(self) -> int:
        return len(self.points)

    @property
    def retained_ratio(self) -> float:
        """Fraction of source points kept (1.0 for an empty source)."""

        if self.source_count == 0:
            return 1.0
        return self.count / self.source_count


@dataclass(frozen=True, slots=True)
class GpxDocument:
    """A parsed GPX file flattened into a single ordered track."""

    points: Tuple[TrackPoint, ...]
    filename: Optional[Path] = None
    track_name: Optional[str] = None
    track_type: Optional[str] = None
    creator: Optional[str] = None
    metadata_time: Optional[datetime] = None


__all__ = [
    "TrackPoint",
    "Track",
    "speed_kmh",
    "coordinate_arrays",
    "validate_track",
    "point_speeds_kmh",
    "cumulative_distances",
    "StageType",
    "Stage",
    "StageList",
    "SimplificationResult",
    "GpxDocument",
]
