"""Global pytest fixtures & helpers.

Adds project root to path and provides track factories shared by the
simplification, stage detection and output tests.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from gapix.models import TrackPoint

T0 = datetime(2024, 9, 1, 5, 0, 0, tzinfo=timezone.utc)

# Metres per degree of latitude, close enough for building test tracks.
METRES_PER_DEGREE = 111_195.0


# --- Factory helpers -------------------------------------------------
def make_line(count, spacing_m=10.0, lat0=51.5, lon0=-0.1, interval_s=1.0):
    """Points heading due north along a meridian (a geodesic)."""

    step = spacing_m / METRES_PER_DEGREE
    return [
        TrackPoint(
            latitude=lat0 + i * step,
            longitude=lon0,
            elevation=10.0,
            time=T0 + timedelta(seconds=i * interval_s),
        )
        for i in range(count)
    ]


def make_zigzag(count, amplitude_m=50.0, spacing_m=100.0, lat0=51.5, lon0=-0.1):
    """Points heading north that alternate east and west of the meridian."""

    step = spacing_m / METRES_PER_DEGREE
    offset = amplitude_m / METRES_PER_DEGREE
    return [
        TrackPoint(
            latitude=lat0 + i * step,
            longitude=lon0 + (offset if i % 2 else 0.0),
            time=T0 + timedelta(seconds=i * 10),
        )
        for i in range(count)
    ]


def make_speed_track(speeds_kmh, interval_s=60.0, lat0=51.5, lon0=-0.1, elevations=None):
    """Build a track whose samples report the given speeds.

    Each sample ``i`` reports ``speeds_kmh[i]`` and lies the matching
    distance north of sample ``i - 1``.
    """

    points = []
    lat = lat0
    for i, speed in enumerate(speeds_kmh):
        if i > 0:
            lat += (speed / 3.6) * interval_s / METRES_PER_DEGREE
        points.append(
            TrackPoint(
                latitude=lat,
                longitude=lon0,
                elevation=None if elevations is None else elevations[i],
                time=T0 + timedelta(seconds=i * interval_s),
                speed=speed / 3.6,
            )
        )
    return points


def stage_summary(stages):
    """Return ``[(type, start, end), ...]`` for compact assertions."""

    return [(str(s.stage_type), s.start, s.end) for s in stages]


SAMPLE_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="Garmin Connect"
     xmlns="http://www.topografix.com/GPX/1/1"
     xmlns:ns3="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">
  <metadata>
    <time>2024-09-01T05:00:00Z</time>
  </metadata>
  <trk>
    <name>Morning Ride</name>
    <type>cycling</type>
    <trkseg>
      <trkpt lat="51.500000" lon="-0.100000">
        <ele>10.0</ele>
        <time>2024-09-01T05:00:00Z</time>
        <extensions>
          <ns3:TrackPointExtension>
            <ns3:atemp>18.0</ns3:atemp>
            <ns3:hr>120</ns3:hr>
            <ns3:cad>80</ns3:cad>
          </ns3:TrackPointExtension>
        </extensions>
      </trkpt>
      <trkpt lat="51.500500" lon="-0.100000">
        <ele>12.5</ele>
        <time>2024-09-01T05:00:10Z</time>
      </trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="51.501000" lon="-0.100000">
        <ele>11.0</ele>
        <time>2024-09-01T05:00:20+00:00</time>
      </trkpt>
    </trkseg>
  </trk>
</gpx>
"""


def write_gpx_text(path: Path, text: str = SAMPLE_GPX) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def straight_track():
    return make_line(50)


@pytest.fixture
def zigzag_track():
    return make_zigzag(21)


@pytest.fixture
def sample_gpx(tmp_path):
    return write_gpx_text(tmp_path / "ride.gpx")
