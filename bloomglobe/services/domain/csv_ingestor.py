"""
Domain service: CSV ingestion of bloom observations.

Provides:
- Strict parsing against the required column contract
- Best-effort parsing for files that break the contract
- A deterministic synthetic grid used as the last fallback
"""
import csv
import io
import logging
import math
from collections import Counter
from typing import Optional

import numpy as np

from bloomglobe.domain.errors import DatasetError, MissingColumnsError
from bloomglobe.domain.models import (
    BloomDataPoint,
    BloomLabel,
    Bounds,
    FallbackStage,
    IngestionReport,
    IngestionResult,
)

logger = logging.getLogger(__name__)


REQUIRED_COLUMNS: tuple[str, ...] = (
    "lat", "lon", "tmean", "pr", "NDVI", "label", "month",
    "year", "srad", "soil", "vpd", "dtr", "AGDD",
)

# Regional Americas exports name the accumulated GDD column differently
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "AGDD": ("GDDm",),
}

VALID_LABELS = frozenset(label.value for label in BloomLabel)

# CSV column -> BloomDataPoint field for plain float measurements
MEASUREMENT_FIELDS: dict[str, str] = {
    "tmean": "tmean",
    "pr": "pr",
    "NDVI": "ndvi",
    "srad": "srad",
    "soil": "soil",
    "vpd": "vpd",
    "dtr": "dtr",
}

_LAT_NAMES = ("lat", "latitude")
_LON_NAMES = ("lon", "lng", "longitude")


def detect_delimiter(header_line: str) -> str:
    """
    Pick the field delimiter from the header line.

    Args:
        header_line: First non-blank line of the file

    Returns:
        ';' for semicolon-only headers, ',' otherwise
    """
    if ";" in header_line and "," not in header_line:
        return ";"
    return ","


def _parse_float(value: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    # Tolerate integral floats such as "4.0"
    number = _parse_float(value)
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return None


def _valid_coordinates(lat: float, lon: float) -> bool:
    return (
        math.isfinite(lat) and math.isfinite(lon) and
        -90 <= lat <= 90 and -180 <= lon <= 180
    )


def _split_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.strip()]


def _iter_rows(reader, source: str, strict: bool = True):
    """
    Yield CSV rows until the reader fails.

    A tokenizer failure (for example a field over the csv field size limit)
    raises DatasetError when strict, otherwise it ends the iteration.
    """
    try:
        yield from reader
    except csv.Error as e:
        if strict:
            raise DatasetError(f"Malformed CSV in {source}: {str(e)}") from e
        logger.warning(f"Stopped reading {source} at a malformed row: {str(e)}")


def _resolve_columns(headers: list[str]) -> dict[str, int]:
    """
    Map each required column to its index in the header.

    Raises:
        MissingColumnsError: If any required column (or alias) is absent
    """
    positions = {name: idx for idx, name in enumerate(headers)}
    indices: dict[str, int] = {}
    missing: list[str] = []

    for column in REQUIRED_COLUMNS:
        candidates = (column,) + COLUMN_ALIASES.get(column, ())
        found = next((positions[c] for c in candidates if c in positions), None)
        if found is None:
            missing.append(column)
        else:
            indices[column] = found

    if missing:
        raise MissingColumnsError(missing)
    return indices


def _finalize_report(report: IngestionReport, points: list[BloomDataPoint]) -> IngestionReport:
    """Fill distribution statistics and log the summary."""
    report.valid_rows = len(points)
    report.invalid_rows = report.total_rows - report.valid_rows
    report.year_counts = dict(sorted(Counter(p.year for p in points).items()))
    report.label_counts = dict(sorted(Counter(p.label for p in points).items()))

    if points:
        lats = np.array([p.lat for p in points])
        lons = np.array([p.lon for p in points])
        report.lat_range = (float(lats.min()), float(lats.max()))
        report.lon_range = (float(lons.min()), float(lons.max()))

    logger.info(f"Ingested {report.valid_rows}/{report.total_rows} rows from {report.source} "
                f"(invalid={report.invalid_rows}, column_mismatch={report.column_mismatch_rows}, "
                f"unparseable={report.unparseable_rows}, out_of_bounds={report.out_of_bounds_rows})")
    logger.debug(f"Year distribution: {report.year_counts}")
    logger.debug(f"Label distribution: {report.label_counts}")
    if points:
        logger.debug(f"Coordinate extents: lat={report.lat_range}, lon={report.lon_range}")

    return report


def parse_bloom_csv(text: str, source: str = "<memory>") -> IngestionResult:
    """
    Parse CSV text that follows the bloom column contract.

    Rows with the wrong field count, unparseable coordinates or time fields,
    or coordinates outside geographic bounds are dropped and counted.

    Args:
        text: Raw file content, first non-blank line is the header
        source: Name of the file or URL, used for reporting

    Returns:
        IngestionResult with every valid point and the ingestion report

    Raises:
        MissingColumnsError: If the header lacks a required column
        DatasetError: If the CSV reader cannot tokenize the text
    """
    lines = _split_lines(text)
    if not lines:
        raise MissingColumnsError(list(REQUIRED_COLUMNS))

    delimiter = detect_delimiter(lines[0])
    rows = _iter_rows(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter), source)
    headers = [h.strip() for h in next(rows)]
    indices = _resolve_columns(headers)

    logger.info(f"Parsing {source}: {len(lines) - 1} data lines, delimiter '{delimiter}'")

    report = IngestionReport(source=source)
    points: list[BloomDataPoint] = []

    for values in rows:
        report.total_rows += 1

        if len(values) != len(headers):
            report.column_mismatch_rows += 1
            continue

        values = [v.strip() for v in values]
        lat = _parse_float(values[indices["lat"]])
        lon = _parse_float(values[indices["lon"]])

        if not (math.isfinite(lat) and math.isfinite(lon)):
            report.unparseable_rows += 1
            continue
        if not _valid_coordinates(lat, lon):
            report.out_of_bounds_rows += 1
            continue

        year = _parse_int(values[indices["year"]])
        month = _parse_int(values[indices["month"]])
        if year is None or month is None or not 1 <= month <= 12:
            report.unparseable_rows += 1
            continue

        label = _parse_int(values[indices["label"]])
        if label not in VALID_LABELS:
            label = 0

        agdd = _parse_float(values[indices["AGDD"]])
        if math.isnan(agdd):
            agdd = 0.0

        measurements = {
            field: _parse_float(values[indices[column]])
            for column, field in MEASUREMENT_FIELDS.items()
        }

        points.append(BloomDataPoint(
            lat=lat,
            lon=lon,
            label=label,
            month=month,
            year=year,
            agdd=agdd,
            **measurements,
        ))

        if report.total_rows % 50000 == 0:
            logger.debug(f"Processed {report.total_rows} rows from {source}")

    return IngestionResult(points=points, report=_finalize_report(report, points))


def parse_best_effort(text: str, source: str = "<memory>") -> IngestionResult:
    """
    Minimal parse that only needs latitude/longitude columns.

    Column lookup is case-insensitive; absent measurements default to 0.
    Never raises.

    Args:
        text: Raw file content
        source: Name of the file or URL

    Returns:
        IngestionResult, possibly empty
    """
    report = IngestionReport(source=source, fallback_stage=FallbackStage.BEST_EFFORT)
    lines = _split_lines(text or "")
    if not lines:
        return IngestionResult(points=[], report=_finalize_report(report, []))

    delimiter = detect_delimiter(lines[0])
    rows = _iter_rows(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter), source, strict=False)
    header = next(rows, None)
    if header is None:
        return IngestionResult(points=[], report=_finalize_report(report, []))
    headers = [h.strip().lower() for h in header]
    positions = {name: idx for idx, name in enumerate(headers)}

    lat_idx = next((positions[n] for n in _LAT_NAMES if n in positions), None)
    lon_idx = next((positions[n] for n in _LON_NAMES if n in positions), None)
    if lat_idx is None or lon_idx is None:
        logger.warning(f"Best-effort parse of {source} found no coordinate columns")
        return IngestionResult(points=[], report=_finalize_report(report, []))

    def lookup(values: list[str], *names: str) -> str:
        for name in names:
            idx = positions.get(name.lower())
            if idx is not None and idx < len(values):
                return values[idx]
        return ""

    def number(values: list[str], *names: str) -> float:
        value = _parse_float(lookup(values, *names))
        return value if math.isfinite(value) else 0.0

    points: list[BloomDataPoint] = []
    for values in rows:
        report.total_rows += 1
        values = [v.strip() for v in values]
        if max(lat_idx, lon_idx) >= len(values):
            report.column_mismatch_rows += 1
            continue

        lat = _parse_float(values[lat_idx])
        lon = _parse_float(values[lon_idx])
        if not _valid_coordinates(lat, lon):
            report.out_of_bounds_rows += 1
            continue

        month = _parse_int(lookup(values, "month")) or 1
        label = _parse_int(lookup(values, "label")) or 0

        points.append(BloomDataPoint(
            lat=lat,
            lon=lon,
            tmean=number(values, "tmean", "temperature"),
            pr=number(values, "pr", "precipitation"),
            ndvi=number(values, "ndvi"),
            label=label if label in VALID_LABELS else 0,
            month=month if 1 <= month <= 12 else 1,
            year=_parse_int(lookup(values, "year")) or 0,
            srad=number(values, "srad"),
            soil=number(values, "soil"),
            vpd=number(values, "vpd"),
            dtr=number(values, "dtr"),
            agdd=number(values, "agdd", "gddm"),
        ))

    return IngestionResult(points=points, report=_finalize_report(report, points))


def generate_synthetic_grid(
    year: int,
    month: int,
    bounds: Bounds,
    step: float = 2.5,
) -> list[BloomDataPoint]:
    """
    Generate a small deterministic grid of plausible observations.

    NDVI and temperature follow a latitude gradient modulated by a seasonal
    cosine peaking in July (northern hemisphere) or January (southern).

    Args:
        year: Year stamped on every point
        month: Month stamped on every point
        bounds: Area covered by the grid
        step: Grid spacing in degrees

    Returns:
        List of synthetic BloomDataPoint instances
    """
    if step <= 0:
        raise ValueError("Grid step must be positive")

    # arange may step past the far edge; every point must stay inside the bounds
    lats = np.arange(bounds.min_lat, bounds.max_lat + step / 2, step)
    lons = np.arange(bounds.min_lon, bounds.max_lon + step / 2, step)
    lats = np.minimum(lats[lats <= bounds.max_lat + 1e-9], bounds.max_lat)
    lons = np.minimum(lons[lons <= bounds.max_lon + 1e-9], bounds.max_lon)

    points = []
    for lat in lats:
        hemisphere_peak = 7 if lat >= 0 else 1
        season = np.cos(2 * np.pi * (month - hemisphere_peak) / 12)  # 1 at peak, -1 opposite
        warmth = 1 - abs(lat) / 90

        for lon in lons:
            ndvi = float(np.clip(0.2 + 0.5 * warmth + 0.15 * season, 0.0, 0.9))
            tmean = float(30 * warmth - 5 + 10 * season)
            label = BloomLabel.PEAK if ndvi > 0.6 else BloomLabel.EMERGING if ndvi > 0.4 else BloomLabel.NONE

            points.append(BloomDataPoint(
                lat=float(lat),
                lon=float(lon),
                tmean=round(tmean, 2),
                pr=round(float(60 + 40 * season), 2),
                ndvi=round(ndvi, 3),
                label=label.value,
                month=month,
                year=year,
                srad=round(float(15 + 10 * warmth + 5 * season), 2),
                soil=round(float(0.3 + 0.1 * season), 3),
                vpd=round(float(max(0.1, 1.0 + 0.6 * season)), 3),
                dtr=round(float(10 + 3 * warmth), 2),
                agdd=round(float(max(0.0, tmean - 10) * 30 * month), 1),
            ))

    logger.info(f"Generated {len(points)} synthetic points for {year}-{month:02d}")
    return points
