"""GPX 1.1 writer for simplified tracks."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Optional, Sequence
import xml.etree.ElementTree as ET

from .config import GPX_CREATOR
from .models import GpxDocument, TrackPoint
from .utils import format_utc

LOGGER = logging.getLogger(__name__)

GPX_NS = "http://www.topografix.com/GPX/1/1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{GPX_NS} http://www.topografix.com/GPX/1/1/gpx.xsd"


def build_gpx_tree(
    document: GpxDocument,
    points: Optional[Sequence[TrackPoint]] = None,
) -> ET.ElementTree:
    """Build a GPX 1.1 tree with a single track and segment.

    ``points`` replaces the document's own points when given, which is how
    simplified output keeps the source metadata.
    """

    track = document.points if points is None else points
    attrs = {
        "version": "1.1",
        "creator": GPX_CREATOR,
        "xmlns": GPX_NS,
        "xmlns:xsi": XSI_NS,
        "xsi:schemaLocation": SCHEMA_LOCATION,
    }
    gpx = ET.Element("gpx", attrs)

    metadata_time = document.metadata_time
    if metadata_time is None and track:
        metadata_time = track[0].time
    if metadata_time is not None:
        metadata = ET.SubElement(gpx, "metadata")
        _text_element(metadata, "time", format_utc(metadata_time))

    trk = ET.SubElement(gpx, "trk")
    if document.track_name:
        _text_element(trk, "name", document.track_name)
    if document.track_type:
        _text_element(trk, "type", document.track_type)
    trkseg = ET.SubElement(trk, "trkseg")

    for point in track:
        trkpt = ET.SubElement(
            trkseg,
            "trkpt",
            {"lat": f"{point.latitude:.6f}", "lon": f"{point.longitude:.6f}"},
        )
        if point.elevation is not None:
            _text_element(trkpt, "ele", f"{point.elevation:.1f}")
        if point.time is not None:
            _text_element(trkpt, "time", format_utc(point.time))

    return ET.ElementTree(gpx)


def write_gpx(
    path: str | Path | PathLike[str],
    document: GpxDocument,
    points: Optional[Sequence[TrackPoint]] = None,
) -> Path:
    """Write ``document`` (or ``points`` with its metadata) to ``path``."""

    output_path = Path(path)
    tree = build_gpx_tree(document, points)
    ET.indent(tree, space="  ")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tree.write(output_path, encoding="utf-8", xml_declaration=True)
    written = len(document.points if points is None else points)
    LOGGER.info("Wrote %d trackpoints to %s", written, output_path)
    return output_path


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


__all__ = ["GPX_NS", "build_gpx_tree", "write_gpx"]
