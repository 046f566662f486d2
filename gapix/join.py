"""Joining several GPX documents into one continuous track."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import List, Sequence

from .config import GPX_CREATOR, GPX_EXTENSION, JOINED_STEM
from .models import GpxDocument, TrackPoint

LOGGER = logging.getLogger(__name__)


def join_documents(documents: Sequence[GpxDocument]) -> GpxDocument:
    """Concatenate the points of ``documents`` and order them by time.

    The sort is stable so points sharing a timestamp keep their file order.
    When any point lacks a timestamp the concatenation order is kept as is.
    Metadata (track name and type) comes from the first document.

    Raises:
        ValueError: If ``documents`` is empty.
    """

    if not documents:
        raise ValueError("At least one document is required to join")

    points: List[TrackPoint] = []
    for document in documents:
        LOGGER.debug(
            "Joining %d trackpoints from %s", len(document.points), document.filename
        )
        points.extend(document.points)

    if all(p.time is not None for p in points):
        points.sort(key=lambda p: p.time)  # type: ignore[arg-type,return-value]
    else:
        LOGGER.warning(
            "Some trackpoints have no timestamp; keeping joined points in file order"
        )

    first = documents[0]
    filename = None
    if first.filename is not None:
        filename = first.filename.with_name(JOINED_STEM + GPX_EXTENSION)

    metadata_times = [d.metadata_time for d in documents if d.metadata_time is not None]
    LOGGER.info("Joined %d files into %d trackpoints", len(documents), len(points))
    return replace(
        first,
        points=tuple(points),
        filename=filename,
        creator=GPX_CREATOR,
        metadata_time=min(metadata_times) if metadata_times else None,
    )


__all__ = ["join_documents"]
