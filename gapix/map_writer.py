"""Interactive HTML map of a track, its simplification and its stops."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from .config import MAP_ZOOM_START
from .errors import EmptyTrackError
from .models import StageList, StageType, Track, TrackPoint
from .utils import format_duration, format_utc, map_link

LatLon = Tuple[float, float]
PathLike = Union[str, Path]

_TRACK_COLOR = "#2c7bb6"
_SIMPLIFIED_COLOR = "#1a9641"
_STOP_COLOR = "#d73027"


def _latlon_points(points: Sequence[TrackPoint]) -> List[LatLon]:
    return [(p.latitude, p.longitude) for p in points]


def _stop_popup(number: int, stages: StageList, index: int) -> folium.Popup:
    stage = stages[index]
    first = stage.first_point
    link = map_link(first.latitude, first.longitude)
    return folium.Popup(
        html=(
            f"<strong>Stop {number}</strong><br>"
            f"From {format_utc(first.time)} for {format_duration(stage.duration)}<br>"
            f"Points {stage.first_index}-{stage.last_index}<br>"
            f'<a href="{link}" target="_blank">Open in Google Maps</a>'
        ),
        max_width=300,
    )


def create_track_map(
    points: Track,
    stages: Optional[StageList] = None,
    simplified: Optional[Sequence[TrackPoint]] = None,
    *,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create an interactive map of a track.

    Args:
        points: The full track.
        stages: Optional detected stages; each stopped stage gets a marker.
        simplified: Optional simplified points drawn over the full track.
        output_html_path: Optional path to persist the map as an HTML file.

    Returns:
        A :class:`folium.Map` instance.

    Raises:
        EmptyTrackError: If ``points`` is empty.
    """

    if len(points) == 0:
        raise EmptyTrackError("Cannot draw a map for an empty track")

    track = _latlon_points(points)
    folium_map = folium.Map(location=track[0], zoom_start=MAP_ZOOM_START, control_scale=True)
    folium.PolyLine(
        track,
        color=_TRACK_COLOR,
        weight=4,
        opacity=0.5,
        tooltip=f"Track ({len(track)} points)",
    ).add_to(folium_map)

    if simplified is not None and len(simplified) >= 2:
        folium.PolyLine(
            _latlon_points(simplified),
            color=_SIMPLIFIED_COLOR,
            weight=3,
            opacity=0.8,
            tooltip=f"Simplified ({len(simplified)} points)",
        ).add_to(folium_map)

    if stages is not None:
        number = 0
        for index, stage in enumerate(stages):
            if stage.stage_type is not StageType.STOPPED:
                continue
            number += 1
            folium.CircleMarker(
                location=stage.first_point.latlon,
                radius=7,
                color=_STOP_COLOR,
                fill=True,
                fill_color=_STOP_COLOR,
                tooltip=f"Stop {number} ({format_duration(stage.duration)})",
                popup=_stop_popup(number, stages, index),
            ).add_to(folium_map)

    if len(track) > 1:
        lats = [lat for lat, _ in track]
        lons = [lon for _, lon in track]
        folium_map.fit_bounds([(min(lats), min(lons)), (max(lats), max(lons))])

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_track_map"]
