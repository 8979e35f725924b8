"""
Domain service: monthly aggregation and coverage statistics.
"""
from collections import defaultdict
from typing import Sequence
import logging

import numpy as np

from bloomglobe.domain.models import (
    BloomDataPoint,
    HistoricalClimateData,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)


def aggregate_monthly(points: Sequence[BloomDataPoint]) -> list[TimeSeriesPoint]:
    """
    Bucket observations by (year, month) and average each bucket.

    Months without observations are simply absent; there is no gap filling.

    Args:
        points: Observations to aggregate

    Returns:
        One TimeSeriesPoint per bucket, ordered by (year, month)
    """
    buckets: dict[tuple[int, int], list[BloomDataPoint]] = defaultdict(list)
    for point in points:
        buckets[(point.year, point.month)].append(point)

    series = []
    for (year, month), members in sorted(buckets.items()):
        series.append(TimeSeriesPoint(
            date=f"{year}-{month:02d}-01",
            year=year,
            month=month,
            ndvi=float(np.mean([p.ndvi for p in members])),
            temperature=float(np.mean([p.tmean for p in members])),
            precipitation=float(np.mean([p.pr for p in members])),
            vpd=float(np.mean([p.vpd for p in members])),
            sample_count=len(members),
        ))

    logger.debug(f"Raw points: {len(points)}, monthly aggregates: {len(series)}")
    return series


def to_historical(points: Sequence[BloomDataPoint]) -> list[HistoricalClimateData]:
    """Project observations onto the narrow legacy overlay record."""
    return [
        HistoricalClimateData(
            lat=p.lat,
            lon=p.lon,
            temperature=p.tmean,
            precipitation=p.pr,
            ndvi=p.ndvi,
            year=p.year,
            month=p.month,
        )
        for p in points
    ]


def summarize_coverage(points: Sequence[BloomDataPoint]) -> dict:
    """
    Summarize spatial and temporal coverage of a dataset.

    Regions are split by latitude: North America above 25°, Central
    America between 7° and 25°, South America below 7°.

    Args:
        points: Observations to summarize

    Returns:
        Dictionary with totals, ranges and the regional distribution
    """
    if not points:
        return {
            "total_points": 0,
            "lat_range": {"min": 0.0, "max": 0.0},
            "lon_range": {"min": 0.0, "max": 0.0},
            "time_range": {"min_year": 0, "max_year": 0},
            "coverage": "No data available",
            "regions": [],
        }

    lats = np.array([p.lat for p in points])
    lons = np.array([p.lon for p in points])
    years = np.array([p.year for p in points])
    total = len(points)

    north = int(np.sum(lats > 25))
    south = int(np.sum(lats < 7))
    central = total - north - south

    regions = [
        {"name": name, "count": count, "percentage": round(count / total * 100, 1)}
        for name, count in (
            ("North America", north),
            ("Central America", central),
            ("South America", south),
        )
    ]

    min_year, max_year = int(years.min()), int(years.max())
    return {
        "total_points": total,
        "lat_range": {"min": float(lats.min()), "max": float(lats.max())},
        "lon_range": {"min": float(lons.min()), "max": float(lons.max())},
        "time_range": {"min_year": min_year, "max_year": max_year},
        "coverage": f"{total} points covering Americas region ({min_year}-{max_year})",
        "regions": regions,
    }
