"""
Domain service: sub-satellite points from two-line element sets.

SGP4 yields positions in the TEME frame; these are rotated by Greenwich
mean sidereal time into an Earth-fixed frame and converted to geodetic
coordinates on the WGS84 ellipsoid.
"""
from datetime import datetime, timezone
import logging
import math

from sgp4.api import Satrec, jday

from bloomglobe.domain.models import SatellitePosition, TLERecord
from bloomglobe.utils.geo_projection import ecef_to_geodetic

logger = logging.getLogger(__name__)


# Earth-observation satellites shown on the globe, by NORAD catalog number
SATELLITES: dict[int, str] = {
    39084: "Landsat 8",
    25994: "Terra",
    40697: "Sentinel-2A",
    41866: "GOES-16",
}


def gmst_radians(jd: float, fr: float) -> float:
    """
    Greenwich mean sidereal time (IAU 1982 model).

    Args:
        jd: Julian date, whole part
        fr: Julian date, fractional part

    Returns:
        GMST angle in radians, in [0, 2π)
    """
    t = ((jd - 2451545.0) + fr) / 36525.0
    seconds = (
        67310.54841
        + (876600.0 * 3600.0 + 8640184.812866) * t
        + 0.093104 * t * t
        - 6.2e-6 * t * t * t
    )
    return math.radians((seconds % 86400.0) / 240.0)


def teme_to_ecef(
    position: tuple[float, float, float],
    gmst: float,
) -> tuple[float, float, float]:
    """Rotate a TEME position (km) about the z axis into the Earth-fixed frame."""
    x, y, z = position
    cos_g, sin_g = math.cos(gmst), math.sin(gmst)
    return (
        cos_g * x + sin_g * y,
        -sin_g * x + cos_g * y,
        z,
    )


def propagate(tle: TLERecord, when: datetime) -> SatellitePosition:
    """
    Compute the sub-satellite point of a satellite at an instant.

    Args:
        tle: Two-line element set
        when: Instant to propagate to (naive datetimes are taken as UTC)

    Returns:
        SatellitePosition with geodetic latitude, longitude and altitude

    Raises:
        ValueError: If the elements are malformed or SGP4 reports an error
    """
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    when = when.astimezone(timezone.utc)

    satellite = Satrec.twoline2rv(tle.line1, tle.line2)
    jd, fr = jday(
        when.year, when.month, when.day,
        when.hour, when.minute, when.second + when.microsecond * 1e-6,
    )
    error, position, _ = satellite.sgp4(jd, fr)
    if error != 0:
        raise ValueError(f"SGP4 propagation failed for NORAD {tle.norad_id} (error code {error})")

    x, y, z = teme_to_ecef(position, gmst_radians(jd, fr))
    latitude, longitude, altitude = ecef_to_geodetic(x, y, z)

    return SatellitePosition(
        norad_id=tle.norad_id,
        name=tle.name or SATELLITES.get(tle.norad_id, str(tle.norad_id)),
        latitude=latitude,
        longitude=longitude,
        altitude_km=altitude,
        timestamp=when.isoformat(),
    )
