"""Stage detection scenarios."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0, make_line, make_speed_track, stage_summary
from gapix.errors import (
    EmptyTrackError,
    InvalidCoordinateError,
    MissingTimestampError,
    NonMonotonicTimeError,
)
from gapix.models import StageType, TrackPoint
from gapix.stage_detection import (
    StageDetectionParameters,
    detect_stages,
    detect_stages_with,
)


def _detect(points, threshold=5.0, min_stop=300.0, resume=15.0):
    return detect_stages(
        points,
        speed_threshold_kmh=threshold,
        min_stop_seconds=min_stop,
        resume_speed_kmh=resume,
    )


def _assert_partition(stages, count):
    assert stages[0].start == 0
    assert stages[-1].end == count
    for prev, cur in zip(stages, list(stages)[1:]):
        assert prev.end == cur.start
        assert prev.stage_type is not cur.stage_type
    assert sum(s.count for s in stages) == count


def test_constant_movement_is_single_moving_stage():
    track = make_speed_track([20.0] * 30)
    stages = _detect(track)
    assert stage_summary(stages) == [("Moving", 0, 30)]


def test_hysteresis_stop_then_resume():
    speeds = [20, 20, 20, 4, 4, 4, 4, 4, 4, 20, 20]
    track = make_speed_track(speeds, interval_s=1.0)
    stages = _detect(track, threshold=5.0, min_stop=5.0, resume=15.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 3),
        ("Stopped", 3, 9),
        ("Moving", 9, 11),
    ]


def test_sample_after_resume_can_start_the_next_stop():
    speeds = [20, 1, 1, 1, 1, 1, 1, 20, 1, 1, 1, 1, 1, 1, 20]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 1),
        ("Stopped", 1, 7),
        ("Moving", 7, 8),
        ("Stopped", 8, 14),
        ("Moving", 14, 15),
    ]


def test_stop_duration_counts_from_sample_before_first_low():
    # Five low samples span 4 s, but the interval ending at the first one
    # starts a second earlier, so together they last 5 s.
    speeds = [20, 20, 20, 1, 1, 1, 1, 1, 20, 20]
    track = make_speed_track(speeds, interval_s=1.0)
    stages = _detect(track, threshold=2.0, min_stop=5.0, resume=8.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 3),
        ("Stopped", 3, 8),
        ("Moving", 8, 10),
    ]
    shorter = _detect(track, threshold=2.0, min_stop=6.0, resume=8.0)
    assert stage_summary(shorter) == [("Moving", 0, 10)]


def test_speed_between_threshold_and_resume_stays_stopped():
    speeds = [20, 20, 3, 3, 3, 3, 10, 10, 3, 10, 20, 20]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=5.0, min_stop=120.0, resume=15.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 2),
        ("Stopped", 2, 10),
        ("Moving", 10, 12),
    ]


def test_short_low_speed_run_is_not_a_stop():
    speeds = [20, 20, 3, 3, 20, 20]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=5.0, min_stop=300.0, resume=15.0)
    assert stage_summary(stages) == [("Moving", 0, 6)]


def test_low_run_interrupted_above_threshold_restarts_candidate():
    # Two 3-minute low runs separated by a fast sample never reach 5 minutes.
    speeds = [20, 3, 3, 3, 20, 3, 3, 3, 20]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=5.0, min_stop=300.0, resume=15.0)
    assert stage_summary(stages) == [("Moving", 0, 9)]


def test_single_point_stop_after_long_gap():
    # Point 2 arrives 20 minutes after point 1 having barely moved.
    base = make_speed_track([20.0, 20.0], interval_s=60.0)
    lat = base[-1].latitude
    track = list(base) + [
        TrackPoint(latitude=lat + 0.00001, longitude=-0.1, time=T0 + timedelta(minutes=21)),
        TrackPoint(latitude=lat + 0.006, longitude=-0.1, time=T0 + timedelta(minutes=22)),
        TrackPoint(latitude=lat + 0.012, longitude=-0.1, time=T0 + timedelta(minutes=23)),
    ]
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 2),
        ("Stopped", 2, 3),
        ("Moving", 3, 5),
    ]
    assert stages[1].duration == timedelta(0)


def test_trailing_stop_runs_to_end_of_track():
    speeds = [20, 20, 20, 1, 1, 1, 1, 1, 1, 1]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [("Moving", 0, 3), ("Stopped", 3, 10)]
    assert stages[-1].end == len(track)


def test_stop_at_track_start():
    speeds = [0, 0, 0, 0, 0, 0, 0, 20, 20, 20]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [("Stopped", 0, 7), ("Moving", 7, 10)]


def test_multiple_stops_alternate_types():
    speeds = [20] * 3 + [0] * 7 + [20] * 3 + [0] * 7 + [20] * 3
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert [str(s.stage_type) for s in stages] == [
        "Moving",
        "Stopped",
        "Moving",
        "Stopped",
        "Moving",
    ]
    assert stages.stop_count == 2
    _assert_partition(stages, len(track))


def test_stages_cover_track_exactly_once():
    speeds = [15, 1, 1, 1, 1, 1, 1, 9, 1, 12, 30, 1, 1, 1, 1, 1, 1, 1, 25]
    track = make_speed_track(speeds, interval_s=60.0)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    _assert_partition(stages, len(track))


def test_derived_speeds_detect_a_stop():
    # No reported speeds: a 10 minute pause at the same location.
    moving = make_line(5, spacing_m=500.0, interval_s=60.0)
    last = moving[-1]
    paused = [
        TrackPoint(latitude=last.latitude, longitude=last.longitude, time=last.time + timedelta(minutes=m))
        for m in range(1, 11)
    ]
    end = paused[-1]
    resumed = [
        TrackPoint(
            latitude=end.latitude + 0.0045 * k,
            longitude=end.longitude,
            time=end.time + timedelta(minutes=k),
        )
        for k in range(1, 4)
    ]
    track = moving + paused + resumed
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [
        ("Moving", 0, 5),
        ("Stopped", 5, 15),
        ("Moving", 15, 18),
    ]


def test_equal_timestamps_carry_speed_forward():
    track = make_line(6, spacing_m=200.0, interval_s=60.0)
    dup = TrackPoint(latitude=track[3].latitude, longitude=track[3].longitude, time=track[3].time)
    stages = _detect(track[:4] + [dup] + track[4:], threshold=2.0, min_stop=60.0, resume=8.0)
    assert stage_summary(stages) == [("Moving", 0, 7)]


def test_single_point_track_is_moving():
    track = make_line(1)
    stages = _detect(track, threshold=2.0, min_stop=300.0, resume=8.0)
    assert stage_summary(stages) == [("Moving", 0, 1)]


def test_empty_track_raises():
    with pytest.raises(EmptyTrackError):
        _detect([])


def test_missing_timestamp_raises():
    track = make_line(5)
    track[3] = TrackPoint(latitude=track[3].latitude, longitude=track[3].longitude)
    with pytest.raises(MissingTimestampError, match="3"):
        _detect(track)


def test_decreasing_timestamps_raise():
    track = make_line(5, interval_s=60.0)
    track[2], track[3] = track[3], track[2]
    with pytest.raises(NonMonotonicTimeError):
        _detect(track)


def test_invalid_coordinate_raises():
    track = make_line(5)
    track[1] = TrackPoint(latitude=100.0, longitude=0.0, time=track[1].time)
    with pytest.raises(InvalidCoordinateError):
        _detect(track)


@pytest.mark.parametrize(
    "threshold, min_stop, resume",
    [
        (0.0, 300.0, 8.0),
        (-1.0, 300.0, 8.0),
        (2.0, -1.0, 8.0),
        (8.0, 300.0, 8.0),
        (8.0, 300.0, 2.0),
        (float("nan"), 300.0, 8.0),
    ],
)
def test_invalid_parameters_raise(threshold, min_stop, resume):
    with pytest.raises(ValueError):
        _detect(make_speed_track([10.0] * 3), threshold, min_stop, resume)


def test_parameter_bundle_defaults_are_valid():
    params = StageDetectionParameters()
    params.validate()
    stages = detect_stages_with(make_speed_track([20.0] * 5), params)
    assert len(stages) == 1
    assert stages[0].stage_type is StageType.MOVING
