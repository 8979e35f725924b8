"""
Geospatial projection utilities for coordinate transformations.
"""
from typing import Tuple
from pyproj import Geod, Transformer


# WGS84 ellipsoid used for geodesic distances
_GEOD = Geod(ellps="WGS84")

# Earth-centred Earth-fixed (metres) -> geodetic lon/lat/height
_ECEF_TO_GEODETIC = Transformer.from_crs(
    "EPSG:4978",  # WGS84 geocentric
    "EPSG:4979",  # WGS84 geographic 3D
    always_xy=True,  # Ensure (x, y, z) -> (lon, lat, h) order
)


def geodesic_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """
    Calculate the geodesic distance between two coordinates.

    Args:
        lat1: Latitude of the first point in degrees
        lon1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lon2: Longitude of the second point in degrees

    Returns:
        Distance along the WGS84 ellipsoid in kilometres
    """
    _, _, meters = _GEOD.inv(lon1, lat1, lon2, lat2)
    return meters / 1000.0


def ecef_to_geodetic(
    x_km: float,
    y_km: float,
    z_km: float,
) -> Tuple[float, float, float]:
    """
    Convert Earth-fixed cartesian coordinates to geodetic coordinates.

    Args:
        x_km: X coordinate in kilometres
        y_km: Y coordinate in kilometres
        z_km: Z coordinate in kilometres

    Returns:
        Tuple of (latitude, longitude, height_km)
    """
    lon, lat, height = _ECEF_TO_GEODETIC.transform(
        x_km * 1000.0, y_km * 1000.0, z_km * 1000.0
    )
    return lat, lon, height / 1000.0
