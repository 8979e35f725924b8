"""
Domain service: time/space filtering of bloom observations.

Narrows a point set to observations near a target coordinate using an
expanding square window, falling back to nearest-K selection when no
window contains a point.
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence
import logging

from bloomglobe.domain.models import BloomDataPoint, Bounds
from bloomglobe.utils.spatial_helpers import (
    build_kdtree,
    degree_distance,
    nearest_indices,
    within_square,
)

logger = logging.getLogger(__name__)


DEFAULT_SEARCH_RADII: tuple[float, ...] = (0.5, 1.0, 2.0, 5.0, 10.0)
DEFAULT_NEAREST_K = 50


@dataclass
class LocationMatch:
    """Result of an expanding-radius search."""
    points: list[BloomDataPoint] = field(default_factory=list)
    radius_used: float = 0.0
    """Window half-width that matched, or nearest-point distance on fallback"""

    used_nearest_fallback: bool = False
    time_widened: bool = False
    """True when the requested month had no data and all months were searched"""


def filter_by_time(
    points: Sequence[BloomDataPoint],
    year: int,
    month: int,
) -> list[BloomDataPoint]:
    """Keep observations from one (year, month)."""
    return [p for p in points if p.year == year and p.month == month]


def filter_by_bounds(
    points: Sequence[BloomDataPoint],
    bounds: Bounds,
    limit: Optional[int] = None,
) -> list[BloomDataPoint]:
    """
    Keep observations inside a viewport bounding box (edges inclusive).

    Args:
        points: Candidate observations
        bounds: Viewport bounds
        limit: Optional maximum number of points returned

    Returns:
        Points inside the bounds, in input order
    """
    result = []
    for point in points:
        if bounds.contains(point.lat, point.lon):
            result.append(point)
            if limit is not None and len(result) >= limit:
                break
    return result


def points_within_radius(
    points: Sequence[BloomDataPoint],
    lat: float,
    lon: float,
    radius: float,
) -> list[BloomDataPoint]:
    """Keep observations inside the square window of half-width radius."""
    return [p for p in points if within_square(p.lat, p.lon, lat, lon, radius)]


def nearest_points(
    points: Sequence[BloomDataPoint],
    lat: float,
    lon: float,
    k: int = DEFAULT_NEAREST_K,
) -> list[BloomDataPoint]:
    """
    Select the k observations closest to a target in degree space.

    Args:
        points: Candidate observations
        lat: Target latitude
        lon: Target longitude
        k: Number of points requested

    Returns:
        Exactly min(k, len(points)) points, nearest first
    """
    if not points or k <= 0:
        return []

    kdtree = build_kdtree([(p.lat, p.lon) for p in points])
    _, indices = nearest_indices(kdtree, (lat, lon), k)
    return [points[int(i)] for i in indices]


def find_nearest(
    points: Sequence[BloomDataPoint],
    lat: float,
    lon: float,
) -> Optional[tuple[BloomDataPoint, float]]:
    """
    Find the single closest observation.

    Returns:
        (point, degree distance), or None for an empty input
    """
    if not points:
        return None

    kdtree = build_kdtree([(p.lat, p.lon) for p in points])
    distances, indices = nearest_indices(kdtree, (lat, lon), 1)
    return points[int(indices[0])], float(distances[0])


def expanding_radius_search(
    points: Sequence[BloomDataPoint],
    lat: float,
    lon: float,
    year: Optional[int] = None,
    month: Optional[int] = None,
    radii: Sequence[float] = DEFAULT_SEARCH_RADII,
    nearest_k: int = DEFAULT_NEAREST_K,
) -> LocationMatch:
    """
    Find observations near a location, widening the window until one matches.

    When year and month are both given the search is restricted to that
    month. If the month holds no data anywhere, every month is searched and
    the result is flagged with time_widened.

    Args:
        points: Full observation set
        lat: Target latitude
        lon: Target longitude
        year: Optional year to restrict to
        month: Optional month to restrict to
        radii: Increasing window half-widths in degrees
        nearest_k: Size of the nearest-K fallback

    Returns:
        LocationMatch describing the points found and how
    """
    candidates: Sequence[BloomDataPoint] = points
    time_widened = False

    if year is not None and month is not None:
        in_month = filter_by_time(points, year, month)
        if in_month:
            candidates = in_month
        else:
            time_widened = True
            logger.info(f"No observations for {year}-{month:02d}, searching all months")

    for radius in sorted(radii):
        matched = points_within_radius(candidates, lat, lon, radius)
        if matched:
            logger.debug(f"Found {len(matched)} points within {radius}° of ({lat}, {lon})")
            return LocationMatch(
                points=matched,
                radius_used=radius,
                time_widened=time_widened,
            )

    nearest = nearest_points(candidates, lat, lon, nearest_k)
    radius_used = degree_distance(lat, lon, nearest[0].lat, nearest[0].lon) if nearest else 0.0
    logger.info(f"No points within {max(radii, default=0)}° of ({lat}, {lon}), "
                f"using {len(nearest)} nearest (closest at {radius_used:.2f}°)")

    return LocationMatch(
        points=nearest,
        radius_used=radius_used,
        used_nearest_fallback=True,
        time_widened=time_widened,
    )
