"""GPX reader producing a single ordered track per file.

Every ``<trk>``/``<trkseg>`` in the file is merged, in document order, into
one point sequence. Both GPX 1.0 and 1.1 are accepted by matching element
local names and ignoring namespaces. Sensor values are read from the Garmin
``TrackPointExtension`` when present.
"""

from __future__ import annotations

from datetime import datetime
import logging
from os import PathLike
from pathlib import Path
from typing import Iterator, List, Optional
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from .errors import GpxFormatError
from .models import GpxDocument, TrackPoint
from .utils import parse_iso8601

LOGGER = logging.getLogger(__name__)

PathInput = str | Path | PathLike[str]


def read_gpx(path: PathInput) -> GpxDocument:
    """Parse a GPX file into a :class:`GpxDocument`.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        GpxFormatError: If the file is not well-formed GPX.
    """

    source = Path(path)
    try:
        tree = ET.parse(source)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise GpxFormatError(f"{source}: not a well-formed GPX file ({exc})") from exc
    document = _document_from_root(tree.getroot(), source)
    LOGGER.info("Read %d trackpoints from %s", len(document.points), source)
    return document


def read_gpx_string(text: str, filename: Optional[Path] = None) -> GpxDocument:
    """Parse GPX content held in memory."""

    try:
        root = ET.fromstring(text)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise GpxFormatError(f"Not well-formed GPX content ({exc})") from exc
    return _document_from_root(root, filename)


def _document_from_root(root: Element, filename: Optional[Path]) -> GpxDocument:
    if _local(root.tag) != "gpx":
        raise GpxFormatError(f"Root element is <{_local(root.tag)}>, expected <gpx>")

    metadata = _child(root, "metadata")
    time_text = _child_text(metadata, "time") if metadata is not None else None
    if time_text is None:
        # GPX 1.0 keeps the file time directly under <gpx>.
        time_text = _child_text(root, "time")

    tracks = [el for el in root if _local(el.tag) == "trk"]
    track_name = _child_text(tracks[0], "name") if tracks else None
    track_type = _child_text(tracks[0], "type") if tracks else None

    points: List[TrackPoint] = []
    for trkpt in _iter_trackpoints(tracks):
        points.append(_parse_trackpoint(trkpt, len(points)))

    return GpxDocument(
        points=tuple(points),
        filename=filename,
        track_name=track_name,
        track_type=track_type,
        creator=root.get("creator"),
        metadata_time=_parse_time(time_text, "metadata") if time_text else None,
    )


def _iter_trackpoints(tracks: List[Element]) -> Iterator[Element]:
    for trk in tracks:
        for trkseg in trk:
            if _local(trkseg.tag) != "trkseg":
                continue
            for trkpt in trkseg:
                if _local(trkpt.tag) == "trkpt":
                    yield trkpt


def _parse_trackpoint(el: Element, index: int) -> TrackPoint:
    lat_text = el.get("lat")
    lon_text = el.get("lon")
    if lat_text is None or lon_text is None:
        raise GpxFormatError(f"Trackpoint {index} is missing the lat or lon attribute")

    elevation = _child_text(el, "ele")
    time_text = _child_text(el, "time")
    speed = _child_text(el, "speed")
    heart_rate = cadence = air_temp = None

    extensions = _child(el, "extensions")
    if extensions is not None:
        for node in extensions.iter():
            name = _local(node.tag)
            text = (node.text or "").strip()
            if not text:
                continue
            if name == "hr":
                heart_rate = text
            elif name == "cad":
                cadence = text
            elif name == "atemp":
                air_temp = text
            elif name == "speed" and speed is None:
                speed = text

    return TrackPoint(
        latitude=_parse_float(lat_text, "lat", index),
        longitude=_parse_float(lon_text, "lon", index),
        elevation=_parse_float(elevation, "ele", index) if elevation else None,
        time=_parse_time(time_text, f"trackpoint {index}") if time_text else None,
        speed=_parse_float(speed, "speed", index) if speed else None,
        heart_rate=int(_parse_float(heart_rate, "hr", index)) if heart_rate else None,
        cadence=int(_parse_float(cadence, "cad", index)) if cadence else None,
        air_temp=_parse_float(air_temp, "atemp", index) if air_temp else None,
    )


def _parse_float(text: str, field_name: str, index: int) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise GpxFormatError(
            f"Trackpoint {index} has an invalid {field_name} value {text!r}"
        ) from exc


def _parse_time(text: str, where: str) -> datetime:
    try:
        return parse_iso8601(text)
    except ValueError as exc:
        raise GpxFormatError(f"Invalid time {text!r} in {where}") from exc


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(el: Element, name: str) -> Optional[Element]:
    for child in el:
        if _local(child.tag) == name:
            return child
    return None


def _child_text(el: Element, name: str) -> Optional[str]:
    child = _child(el, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


__all__ = ["read_gpx", "read_gpx_string"]
