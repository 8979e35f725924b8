"""
Spatial analysis helper functions.

Provides utilities for:
- KD-Tree spatial indexing over (lat, lon) degrees
- Degree-space distances
- Bounding-box and square-window tests
"""
import math
import numpy as np
from scipy.spatial import KDTree
import logging

logger = logging.getLogger(__name__)


def build_kdtree(coordinates: list[tuple[float, float]]) -> KDTree:
    """
    Build a KD-Tree for efficient spatial queries.

    Args:
        coordinates: List of (lat, lon) coordinate tuples in degrees

    Returns:
        KDTree instance
    """
    points = np.array(coordinates, dtype=float).reshape(-1, 2)
    return KDTree(points)


def degree_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Euclidean distance in degree space.

    Not metrically uniform across latitudes; used where only a ranking of
    nearby observations is needed.
    """
    d_lat = lat1 - lat2
    d_lon = lon1 - lon2
    return math.sqrt(d_lat * d_lat + d_lon * d_lon)


def nearest_indices(
    kdtree: KDTree,
    target: tuple[float, float],
    k: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Query the k nearest neighbours of a target point.

    Args:
        kdtree: KDTree built from (lat, lon) coordinates
        target: (lat, lon) query point
        k: Number of neighbours requested

    Returns:
        Tuple of (distances, indices) arrays ordered by distance, with at most
        min(k, n) entries
    """
    n = kdtree.n
    k = min(k, n)
    if k <= 0:
        return np.array([]), np.array([], dtype=int)

    distances, indices = kdtree.query(target, k=k)
    # scipy returns scalars when k == 1
    distances = np.atleast_1d(distances)
    indices = np.atleast_1d(indices)
    return distances, indices


def within_square(
    lat: float,
    lon: float,
    center_lat: float,
    center_lon: float,
    radius: float,
) -> bool:
    """
    Check whether a point lies in the square window of half-width radius.

    Args:
        lat: Point latitude
        lon: Point longitude
        center_lat: Window centre latitude
        center_lon: Window centre longitude
        radius: Half-width of the window in degrees

    Returns:
        True if |Δlat| <= radius and |Δlon| <= radius
    """
    return abs(lat - center_lat) <= radius and abs(lon - center_lon) <= radius
