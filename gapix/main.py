"""Command line entry point: simplify GPX files and report their stages."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .config import (
    EXCEL_WRITE_HYPERLINKS,
    GPX_EXTENSION,
    JOINED_STEM,
    MAP_SUFFIX,
    SIMPLIFIED_SUFFIX,
    SIMPLIFY_MAX_POINTS,
    SIMPLIFY_TOLERANCE_M,
    STAGE_MIN_STOP_SECONDS,
    STAGE_RESUME_SPEED_KMH,
    STAGE_SPEED_THRESHOLD_KMH,
    SUMMARY_SUFFIX,
)
from .errors import EmptyTrackError
from .excel_writer import write_summary
from .gpx_reader import read_gpx
from .gpx_writer import write_gpx
from .join import join_documents
from .map_writer import create_track_map
from .models import GpxDocument, SimplificationResult, StageList
from .simplification import decimate, simplify, simplify_with_budget
from .stage_detection import detect_stages

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
MIN_METRES = 1.0
MAX_METRES = 1000.0


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(level)


def _metres(value: str) -> float:
    try:
        metres = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid metres value: {value!r}") from exc
    if not MIN_METRES <= metres <= MAX_METRES:
        raise argparse.ArgumentTypeError(
            f"metres must be between {MIN_METRES:g} and {MAX_METRES:g}"
        )
    return metres


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("value must be at least 1")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("value must be >= 0")
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gapix",
        description=(
            "Simplify GPX tracks with Ramer-Douglas-Peucker and optionally "
            "split them into moving and stopped stages."
        ),
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        type=Path,
        default=[Path(".")],
        help="GPX files or directories to scan (default: current directory)",
    )
    reduce_group = parser.add_mutually_exclusive_group()
    reduce_group.add_argument(
        "-m",
        "--metres",
        type=_metres,
        default=None,
        help=(
            "Maximum distance in metres a removed point may lie from the "
            f"simplified track (default {SIMPLIFY_TOLERANCE_M:g})"
        ),
    )
    reduce_group.add_argument(
        "-k",
        "--keep",
        type=_positive_int,
        default=None,
        help="Keep every Nth point instead of running the simplifier",
    )
    parser.add_argument(
        "--max-points",
        type=int,
        default=SIMPLIFY_MAX_POINTS,
        help="Cap the simplified output at this many points (0 disables the cap)",
    )
    parser.add_argument(
        "-j",
        "--join",
        action="store_true",
        help="Join all input files into one track, ordered by time",
    )
    parser.add_argument(
        "-d",
        "--detect-stages",
        action="store_true",
        help="Detect moving/stopped stages and write an Excel summary",
    )
    parser.add_argument(
        "--stopped-speed",
        type=_non_negative_float,
        default=STAGE_SPEED_THRESHOLD_KMH,
        help="Speed in km/h at or under which you are considered stopped",
    )
    parser.add_argument(
        "--min-stop-time",
        type=_non_negative_float,
        default=STAGE_MIN_STOP_SECONDS / 60.0,
        help="Minimum length of a stop in minutes",
    )
    parser.add_argument(
        "--resume-speed",
        type=_non_negative_float,
        default=STAGE_RESUME_SPEED_KMH,
        help="Speed in km/h you must reach after a stop to be moving again",
    )
    parser.add_argument(
        "--write-trackpoint-hyperlinks",
        action="store_true",
        default=EXCEL_WRITE_HYPERLINKS,
        help="Add Google Maps links to the stage and track point sheets",
    )
    parser.add_argument(
        "--map",
        action="store_true",
        help="Write an interactive HTML map next to each output",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for outputs (default: next to each input file)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite outputs that already exist",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)
    if args.max_points and args.max_points < 2:
        parser.error("--max-points must be 0 or at least 2")
    if args.detect_stages and args.resume_speed <= args.stopped_speed:
        parser.error("--resume-speed must be greater than --stopped-speed")
    if args.detect_stages and args.stopped_speed <= 0:
        parser.error("--stopped-speed must be greater than 0")
    return args


def _is_simplified_output(path: Path) -> bool:
    return path.name.lower().endswith(SIMPLIFIED_SUFFIX)


def discover_inputs(paths: Sequence[Path]) -> List[Path]:
    """Expand directories into their GPX files, skipping our own outputs.

    Files inside a directory are returned sorted by name; explicitly named
    files keep their command line order.
    """

    found: List[Path] = []
    for path in paths:
        if path.is_dir():
            candidates = sorted(
                p
                for p in path.iterdir()
                if p.is_file()
                and p.suffix.lower() == GPX_EXTENSION
                and not _is_simplified_output(p)
            )
            if not candidates:
                LOGGER.info("No GPX files found in %s", path)
            found.extend(candidates)
        elif _is_simplified_output(path):
            LOGGER.info("Ignoring %s, it is a simplified output", path)
        else:
            found.append(path)
    # The same file may be reachable twice (dir and explicit path).
    unique: List[Path] = []
    seen = set()
    for path in found:
        key = path.resolve()
        if key in seen:
            continue
        seen.add(key)
        unique.append(path)
    return unique


def _output_path(source: Path, stem: str, suffix: str, output_dir: Optional[Path]) -> Path:
    directory = output_dir if output_dir is not None else source.parent
    return directory / f"{stem}{suffix}"


def _should_write(path: Path, force: bool) -> bool:
    if path.exists() and not force:
        LOGGER.info("Skipping %s, it already exists (use --force to overwrite)", path)
        return False
    return True


def _reduce(document: GpxDocument, args: argparse.Namespace) -> SimplificationResult:
    if args.keep is not None:
        return decimate(document.points, args.keep)
    tolerance = args.metres if args.metres is not None else SIMPLIFY_TOLERANCE_M
    if args.max_points:
        return simplify_with_budget(document.points, tolerance, args.max_points)
    return simplify(document.points, tolerance)


def process_document(
    document: GpxDocument,
    source: Path,
    stem: str,
    args: argparse.Namespace,
) -> None:
    """Write the simplified GPX and, when requested, the summary and map."""

    if not document.points:
        raise EmptyTrackError(f"{source} contains no trackpoints")

    result = _reduce(document, args)
    LOGGER.info(
        "%s: %d points reduced to %d (%.1f%% kept)%s",
        source.name,
        result.source_count,
        result.count,
        result.retained_ratio * 100.0,
        ", capped by --max-points" if result.capped else "",
    )
    gpx_path = _output_path(source, stem, SIMPLIFIED_SUFFIX, args.output_dir)
    if _should_write(gpx_path, args.force):
        write_gpx(gpx_path, document, result.points)

    stages: Optional[StageList] = None
    if args.detect_stages:
        stages = detect_stages(
            document.points,
            speed_threshold_kmh=args.stopped_speed,
            min_stop_seconds=args.min_stop_time * 60.0,
            resume_speed_kmh=args.resume_speed,
        )
        LOGGER.info(
            "%s: %d stages, %d stops, moving for %s",
            source.name,
            len(stages),
            stages.stop_count,
            stages.moving_time,
        )
        summary_path = _output_path(source, stem, SUMMARY_SUFFIX, args.output_dir)
        if _should_write(summary_path, args.force):
            write_summary(
                summary_path,
                document,
                stages,
                include_hyperlinks=args.write_trackpoint_hyperlinks,
            )

    if args.map:
        map_path = _output_path(source, stem, MAP_SUFFIX, args.output_dir)
        if _should_write(map_path, args.force):
            create_track_map(
                document.points,
                stages,
                result.points,
                output_html_path=map_path,
            )
            LOGGER.info("Wrote map %s", map_path)


def _run_joined(inputs: Sequence[Path], args: argparse.Namespace) -> int:
    failures = 0
    documents: List[GpxDocument] = []
    for path in inputs:
        try:
            documents.append(read_gpx(path))
        except (OSError, ValueError) as exc:
            LOGGER.error("Failed to read %s: %s", path, exc)
            failures += 1
    if not documents:
        return failures or 1
    try:
        joined = join_documents(documents)
        source = inputs[0].parent / f"{JOINED_STEM}{GPX_EXTENSION}"
        process_document(joined, source, JOINED_STEM, args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed to process joined track: %s", exc)
        failures += 1
    return failures


def _run_each(inputs: Sequence[Path], args: argparse.Namespace) -> int:
    failures = 0
    for path in inputs:
        try:
            process_document(read_gpx(path), path, path.stem, args)
        except (OSError, ValueError) as exc:
            LOGGER.error("Failed to process %s: %s", path, exc)
            failures += 1
    return failures


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _setup_logging(args.log_level)

    inputs = discover_inputs(args.inputs)
    if not inputs:
        LOGGER.warning("No GPX files to process")
        return 0
    LOGGER.info("Processing %d GPX file(s)", len(inputs))

    if args.join:
        failures = _run_joined(inputs, args)
    else:
        failures = _run_each(inputs, args)

    if failures:
        LOGGER.error("%d file(s) failed", failures)
        return 1
    LOGGER.info("Done")
    return 0
