"""Excel summary writer for stage detection output."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    EXCEL_WRITE_HYPERLINKS,
    STAGES_SHEET,
    SUMMARY_SHEET,
    TRACK_POINTS_SHEET,
)
from .models import GpxDocument, StageList, Track, cumulative_distances, point_speeds_kmh
from .utils import format_duration, format_utc, map_link, to_naive_utc

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]

EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"
MAP_COLUMN = "Map"
MAP_LINK_TEXT = "Map"

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFFF40FF")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

STAGE_COLUMNS = [
    "Stage",
    "Type",
    "First Index",
    "Last Index",
    "Count",
    "Start Time (UTC)",
    "End Time (UTC)",
    "Duration (h:mm:ss)",
    "Duration (sec)",
    "Distance (km)",
    "Running Distance (km)",
    "Avg Speed (km/h)",
    "Max Speed (km/h)",
    "Ascent (m)",
    "Descent (m)",
    "Min Elevation (m)",
    "Max Elevation (m)",
    "Avg Heart Rate",
    "Max Heart Rate",
    "Lat",
    "Lon",
]

TRACK_POINT_COLUMNS = [
    "Index",
    "Time (UTC)",
    "Lat",
    "Lon",
    "Elevation (m)",
    "Delta (m)",
    "Running Distance (km)",
    "Speed (km/h)",
    "Heart Rate",
    "Cadence",
    "Air Temp (C)",
]


def write_summary(
    path: PathInput,
    document: GpxDocument,
    stages: StageList,
    include_hyperlinks: bool = EXCEL_WRITE_HYPERLINKS,
) -> Path:
    """Write the Stages, Summary and Track Points sheets for one track.

    Args:
        path: Destination ``.xlsx`` file; parent folders are created.
        document: The source document, used for file and track names.
        stages: Detected stages over ``stages.track``.
        include_hyperlinks: Add a ``Map`` hyperlink column to the stage and
            track point sheets. Large workbooks open slowly with many links.
    """

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    frames = [
        (STAGES_SHEET, build_stage_rows(stages, include_hyperlinks)),
        (SUMMARY_SHEET, build_summary_rows(document, stages)),
        (TRACK_POINTS_SHEET, build_track_point_rows(stages.track, include_hyperlinks)),
    ]
    with pd.ExcelWriter(
        output_path, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
    ) as writer:
        for sheet_name, df in frames:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            ws = _get_worksheet(writer, sheet_name)
            if ws is None:
                continue
            _style_header_row(ws, 1, len(df.columns))
            if include_hyperlinks and MAP_COLUMN in df.columns:
                _convert_links(ws, list(df.columns).index(MAP_COLUMN) + 1)
            _autosize(ws)
            LOGGER.debug("Wrote sheet %s rows=%d", sheet_name, len(df))
    LOGGER.info("Wrote summary workbook %s (%d stages)", output_path, len(stages))
    return output_path


def build_stage_rows(stages: StageList, include_hyperlinks: bool = False) -> pd.DataFrame:
    """Return one row per stage with its metrics."""

    running = cumulative_distances(stages.track)
    rows: List[Dict[str, Any]] = []
    for number, stage in enumerate(stages, start=1):
        first = stage.first_point
        min_point = stage.min_elevation_point
        max_point = stage.max_elevation_point
        row: Dict[str, Any] = {
            "Stage": number,
            "Type": str(stage.stage_type),
            "First Index": stage.first_index,
            "Last Index": stage.last_index,
            "Count": stage.count,
            "Start Time (UTC)": to_naive_utc(first.time),
            "End Time (UTC)": to_naive_utc(stage.last_point.time),
            "Duration (h:mm:ss)": format_duration(stage.duration),
            "Duration (sec)": round(stage.duration_seconds, 1),
            "Distance (km)": round(stage.distance_km, 3),
            "Running Distance (km)": round(float(running[stage.last_index]) / 1000.0, 3),
            "Avg Speed (km/h)": round(stage.average_speed_kmh, 2),
            "Max Speed (km/h)": _round(stage.max_speed_kmh, 2),
            "Ascent (m)": round(stage.ascent_m, 1),
            "Descent (m)": round(stage.descent_m, 1),
            "Min Elevation (m)": _round(min_point.elevation if min_point else None, 1),
            "Max Elevation (m)": _round(max_point.elevation if max_point else None, 1),
            "Avg Heart Rate": _round(stage.average_heart_rate, 0),
            "Max Heart Rate": stage.max_heart_rate,
            "Lat": round(first.latitude, 6),
            "Lon": round(first.longitude, 6),
        }
        if include_hyperlinks:
            row[MAP_COLUMN] = map_link(first.latitude, first.longitude)
        rows.append(row)
    columns = STAGE_COLUMNS + ([MAP_COLUMN] if include_hyperlinks else [])
    return pd.DataFrame(rows, columns=columns)


def build_summary_rows(document: GpxDocument, stages: StageList) -> pd.DataFrame:
    """Return metric/value rows describing the whole track."""

    min_point = stages.min_elevation_point
    max_point = stages.max_elevation_point
    metrics: List[tuple[str, Any]] = [
        ("Source File", document.filename.name if document.filename else ""),
        ("Track Name", document.track_name or ""),
        ("Start Time (UTC)", format_utc(stages.start_time)),
        ("End Time (UTC)", format_utc(stages.end_time)),
        ("Duration (h:mm:ss)", format_duration(stages.duration)),
        ("Moving Time (h:mm:ss)", format_duration(stages.moving_time)),
        ("Stopped Time (h:mm:ss)", format_duration(stages.stopped_time)),
        ("Stops", stages.stop_count),
        ("Distance (km)", round(stages.distance_km, 3)),
        ("Avg Moving Speed (km/h)", round(stages.average_moving_speed_kmh, 2)),
        ("Avg Overall Speed (km/h)", round(stages.average_overall_speed_kmh, 2)),
        ("Max Speed (km/h)", _round(stages.max_speed_kmh, 2)),
        ("Total Ascent (m)", round(stages.total_ascent_m, 1)),
        ("Total Descent (m)", round(stages.total_descent_m, 1)),
        ("Min Elevation (m)", _round(min_point.elevation if min_point else None, 1)),
        ("Max Elevation (m)", _round(max_point.elevation if max_point else None, 1)),
        ("Track Points", len(stages.track)),
    ]
    return pd.DataFrame(metrics, columns=["Metric", "Value"])


def build_track_point_rows(points: Track, include_hyperlinks: bool = False) -> pd.DataFrame:
    """Return one row per track point."""

    running = cumulative_distances(points)
    speeds = point_speeds_kmh(points)
    rows: List[Dict[str, Any]] = []
    for idx, point in enumerate(points):
        delta = float(running[idx] - running[idx - 1]) if idx > 0 else 0.0
        row: Dict[str, Any] = {
            "Index": idx,
            "Time (UTC)": to_naive_utc(point.time),
            "Lat": round(point.latitude, 6),
            "Lon": round(point.longitude, 6),
            "Elevation (m)": _round(point.elevation, 1),
            "Delta (m)": round(delta, 2),
            "Running Distance (km)": round(float(running[idx]) / 1000.0, 3),
            "Speed (km/h)": _round(speeds[idx], 2),
            "Heart Rate": point.heart_rate,
            "Cadence": point.cadence,
            "Air Temp (C)": point.air_temp,
        }
        if include_hyperlinks:
            row[MAP_COLUMN] = map_link(point.latitude, point.longitude)
        rows.append(row)
    columns = TRACK_POINT_COLUMNS + ([MAP_COLUMN] if include_hyperlinks else [])
    return pd.DataFrame(rows, columns=columns)


def _round(value: Optional[float], digits: int) -> Optional[float]:
    if value is None:
        return None
    return round(value, digits)


def _get_worksheet(writer: pd.ExcelWriter, sheet_name: str) -> Worksheet | None:
    try:
        return writer.book[sheet_name]
    except KeyError:
        return writer.sheets.get(sheet_name)


def _style_header_row(ws: Worksheet, row_idx: int, max_col: int | None = None) -> None:
    max_col = max_col or ws.max_column
    for col_idx in range(1, max_col + 1):
        cell = ws.cell(row=row_idx, column=col_idx)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER


def _convert_links(ws: Worksheet, col_idx: int) -> None:
    """Turn the URLs in ``col_idx`` into clickable ``Map`` links."""

    for row_idx in range(2, ws.max_row + 1):
        cell = ws.cell(row=row_idx, column=col_idx)
        if not cell.value:
            continue
        cell.hyperlink = str(cell.value)
        cell.value = MAP_LINK_TEXT
        cell.style = "Hyperlink"


def _autosize(ws: Worksheet) -> None:
    from .config import (
        EXCEL_AUTOSIZE_COLUMNS,
        EXCEL_AUTOSIZE_MAX_ROWS,
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
    )

    if not EXCEL_AUTOSIZE_COLUMNS or ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


__all__ = [
    "write_summary",
    "build_stage_rows",
    "build_summary_rows",
    "build_track_point_rows",
]
