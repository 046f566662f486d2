"""Detection of moving and stopped stages in a track.

A sample's speed describes the interval that ends at that sample, so a
low-speed sample means the rider was (nearly) stationary since the previous
sample. A stop is confirmed once a run of low-speed samples has lasted at
least ``min_stop_seconds`` measured from the start of that interval; the stop
stage is then backdated to the first low-speed sample. Once stopped, the
speed must reach the higher ``resume_speed_kmh`` before a new moving stage
starts, which keeps GPS jitter around a single threshold from flapping
between states.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math
from typing import List, Optional, Sequence

from .config import (
    STAGE_MIN_STOP_SECONDS,
    STAGE_RESUME_SPEED_KMH,
    STAGE_SPEED_THRESHOLD_KMH,
)
from .errors import EmptyTrackError, MissingTimestampError
from .models import (
    Stage,
    StageList,
    StageType,
    Track,
    point_speeds_kmh,
    validate_track,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StageDetectionParameters:
    """Parameters controlling stage detection."""

    # At or under this speed (km/h) a sample counts towards a stop.
    speed_threshold_kmh: float = STAGE_SPEED_THRESHOLD_KMH
    # Low-speed samples must span at least this long to become a stop.
    min_stop_seconds: float = STAGE_MIN_STOP_SECONDS
    # Once stopped, a sample must reach this speed (km/h) to resume moving.
    resume_speed_kmh: float = STAGE_RESUME_SPEED_KMH

    def validate(self) -> None:
        values = (self.speed_threshold_kmh, self.min_stop_seconds, self.resume_speed_kmh)
        if not all(math.isfinite(v) for v in values):
            raise ValueError("Stage detection parameters must be finite")
        if self.speed_threshold_kmh <= 0:
            raise ValueError("speed_threshold_kmh must be greater than zero")
        if self.min_stop_seconds < 0:
            raise ValueError("min_stop_seconds must be >= 0")
        if self.resume_speed_kmh <= self.speed_threshold_kmh:
            raise ValueError("resume_speed_kmh must be greater than speed_threshold_kmh")


@dataclass(slots=True)
class _StopCandidate:
    """Low-speed run that may become a stop once it lasts long enough."""

    index: int
    since: datetime


def detect_stages(
    points: Track,
    speed_threshold_kmh: float,
    min_stop_seconds: float,
    resume_speed_kmh: float,
) -> StageList:
    """Partition ``points`` into contiguous moving and stopped stages.

    A low-speed run is timed from the sample *before* its first low sample,
    because each speed covers the interval ending at its sample. Low samples
    at indices ``i..j`` therefore last ``time[j] - time[i - 1]`` (or
    ``time[j] - time[0]`` when ``i == 0``). The confirmed stop stage still
    starts at index ``i``.

    Args:
        points: Track points with timestamps, in recording order.
        speed_threshold_kmh: Speed at or under which a sample is low.
        min_stop_seconds: Minimum duration of a low-speed run to count as a stop.
        resume_speed_kmh: Speed a stopped track must reach to move again.

    Returns:
        Stages whose ``[start, end)`` ranges cover every point exactly once.

    Raises:
        ValueError: If the parameters are out of range.
        EmptyTrackError: If ``points`` is empty.
        MissingTimestampError: If any point has no timestamp.
        NonMonotonicTimeError: If timestamps decrease.
        InvalidCoordinateError: If any point has an invalid coordinate.
    """

    params = StageDetectionParameters(
        speed_threshold_kmh=speed_threshold_kmh,
        min_stop_seconds=min_stop_seconds,
        resume_speed_kmh=resume_speed_kmh,
    )
    return detect_stages_with(points, params)


def detect_stages_with(points: Track, params: StageDetectionParameters) -> StageList:
    """Variant of :func:`detect_stages` taking a parameter bundle."""

    params.validate()
    if len(points) == 0:
        raise EmptyTrackError("Cannot detect stages in an empty track")
    validate_track(points)
    times = _require_timestamps(points)
    speeds = point_speeds_kmh(points)

    LOGGER.debug(
        "Detecting stages using speed_threshold=%.2fkm/h, min_stop=%.0fs, resume_speed=%.2fkm/h",
        params.speed_threshold_kmh,
        params.min_stop_seconds,
        params.resume_speed_kmh,
    )

    stages: List[Stage] = []
    state = StageType.MOVING
    stage_start = 0
    candidate: Optional[_StopCandidate] = None

    for idx, speed in enumerate(speeds):
        if state is StageType.MOVING:
            if speed is None or speed > params.speed_threshold_kmh:
                candidate = None
                continue
            if candidate is None:
                since = times[idx - 1] if idx > 0 else times[idx]
                candidate = _StopCandidate(index=idx, since=since)
            elapsed = (times[idx] - candidate.since).total_seconds()
            if elapsed < params.min_stop_seconds:
                continue
            if candidate.index > stage_start:
                stages.append(_close(StageType.MOVING, stage_start, candidate.index, points))
            stage_start = candidate.index
            state = StageType.STOPPED
            candidate = None
        elif speed is not None and speed >= params.resume_speed_kmh:
            stages.append(_close(StageType.STOPPED, stage_start, idx, points))
            stage_start = idx
            state = StageType.MOVING

    stages.append(_close(state, stage_start, len(points), points))
    LOGGER.debug(
        "Detected %d stages (%d stopped) over %d points",
        len(stages),
        sum(1 for s in stages if s.stage_type is StageType.STOPPED),
        len(points),
    )
    return StageList(stages=tuple(stages), track=points)


def _close(stage_type: StageType, start: int, end: int, points: Track) -> Stage:
    LOGGER.debug("%s stage from point %d to %d", stage_type, start, end - 1)
    return Stage(stage_type=stage_type, start=start, end=end, track=points)


def _require_timestamps(points: Track) -> Sequence[datetime]:
    times: List[datetime] = []
    for idx, point in enumerate(points):
        if point.time is None:
            raise MissingTimestampError(f"Track point {idx} has no timestamp")
        times.append(point.time)
    return times


__all__ = [
    "StageDetectionParameters",
    "detect_stages",
    "detect_stages_with",
]
