"""Central error types used across the application."""

from __future__ import annotations


class GapixError(ValueError):
    """Base error for invalid track data reaching the processing core."""


class InvalidCoordinateError(GapixError):
    """Raised when a latitude, longitude or elevation is NaN or out of range."""


class MissingTimestampError(GapixError):
    """Raised when stage detection is given a track point without a timestamp."""


class EmptyTrackError(GapixError):
    """Raised when a track with no points is passed where points are required."""


class NonMonotonicTimeError(GapixError):
    """Raised when timestamps decrease between consecutive track points."""


class GpxFormatError(GapixError):
    """Raised when a GPX file is malformed or missing required attributes."""


__all__ = [
    "GapixError",
    "InvalidCoordinateError",
    "MissingTimestampError",
    "EmptyTrackError",
    "NonMonotonicTimeError",
    "GpxFormatError",
]
