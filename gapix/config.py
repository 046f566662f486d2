"""Central configuration for the gapix GPX tool.

All values are constants imported by the rest of the package. Command line
flags override them per run. Each tunable can also be set through an
environment variable (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Input/Output
# ---------------------------------------------------------------------------
# Extension of input files picked up when a directory is scanned.
GPX_EXTENSION = ".gpx"

# Suffixes appended to the input stem for each output artefact. Files ending
# in the simplified suffix are never treated as inputs.
SIMPLIFIED_SUFFIX = ".simplified.gpx"
SUMMARY_SUFFIX = ".summary.xlsx"
MAP_SUFFIX = ".map.html"

# Name used for the output when several inputs are joined.
JOINED_STEM = "joined"

# Creator attribute written into GPX output.
GPX_CREATOR = "gapix"


# ---------------------------------------------------------------------------
# Simplification
# ---------------------------------------------------------------------------
# Maximum deviation (metres) allowed by Ramer-Douglas-Peucker. Typical values
# are 1 (near-perfect fit to the road) up to 100 (heavy corner cutting).
SIMPLIFY_TOLERANCE_M = _env_float("SIMPLIFY_TOLERANCE_M", 10.0)

# Safety cap on the number of points written by the budgeted simplifier.
# Set to 0 to disable the cap.
SIMPLIFY_MAX_POINTS = _env_int("SIMPLIFY_MAX_POINTS", 0)

# Factor applied to the tolerance while trying to meet the point budget.
SIMPLIFY_BUDGET_GROWTH = 1.5
SIMPLIFY_BUDGET_ATTEMPTS = 5


# ---------------------------------------------------------------------------
# Stage detection
# ---------------------------------------------------------------------------
# You are considered stopped when your speed is at or under this (km/h).
STAGE_SPEED_THRESHOLD_KMH = _env_float("STAGE_SPEED_THRESHOLD_KMH", 2.0)

# A low-speed period must last at least this long (seconds) to become a stop.
STAGE_MIN_STOP_SECONDS = _env_float("STAGE_MIN_STOP_SECONDS", 5 * 60.0)

# Once stopped, speed must reach this (km/h) before you are moving again.
STAGE_RESUME_SPEED_KMH = _env_float("STAGE_RESUME_SPEED_KMH", 8.0)


# ---------------------------------------------------------------------------
# Excel formatting
# ---------------------------------------------------------------------------
STAGES_SHEET = "Stages"
SUMMARY_SHEET = "Summary"
TRACK_POINTS_SHEET = "Track Points"

# Hyperlinks slow down opening large workbooks in LibreOffice considerably.
EXCEL_WRITE_HYPERLINKS = _env_bool("EXCEL_WRITE_HYPERLINKS", False)

# Automatically size columns after writing each sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = True
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
EXCEL_AUTOSIZE_MAX_ROWS = (
    5000  # skip autosize for very large sheets (performance guard)
)

# Map link used for stage and track point locations.
MAP_LINK_TEMPLATE = "https://www.google.com/maps/search/?api=1&query={lat:.6f},{lon:.6f}"


# ---------------------------------------------------------------------------
# Map output
# ---------------------------------------------------------------------------
MAP_ZOOM_START = _env_int("MAP_ZOOM_START", 13)
