"""GPX track simplification and stage detection package."""

from .errors import (
    EmptyTrackError,
    GapixError,
    GpxFormatError,
    InvalidCoordinateError,
    MissingTimestampError,
    NonMonotonicTimeError,
)
from .geodesy import perpendicular_distance, point_distance
from .main import main
from .models import (
    GpxDocument,
    SimplificationResult,
    Stage,
    StageList,
    StageType,
    TrackPoint,
)
from .simplification import decimate, simplify, simplify_with_budget
from .stage_detection import StageDetectionParameters, detect_stages

__all__ = [
    "main",
    "TrackPoint",
    "Stage",
    "StageList",
    "StageType",
    "SimplificationResult",
    "GpxDocument",
    "point_distance",
    "perpendicular_distance",
    "simplify",
    "decimate",
    "simplify_with_budget",
    "detect_stages",
    "StageDetectionParameters",
    "GapixError",
    "InvalidCoordinateError",
    "MissingTimestampError",
    "EmptyTrackError",
    "NonMonotonicTimeError",
    "GpxFormatError",
]
