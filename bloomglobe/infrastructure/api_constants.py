"""
API endpoint constants and configuration.

This module contains all external API endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# NASA POWER API Endpoints
class PowerAPIEndpoints:
    """NASA POWER climate API endpoint paths."""

    DAILY_POINT = "/api/temporal/daily/point"

    # Requested parameters: air temperature, corrected precipitation,
    # relative humidity and all-sky surface shortwave irradiance
    PARAMETERS = ("T2M", "PRECTOTCORR", "RH2M", "ALLSKY_SFC_SW_DWN")
    COMMUNITY = "RE"
    FILL_VALUE = -999.0

    @classmethod
    def daily_point_params(
        cls,
        latitude: float,
        longitude: float,
        start: str,
        end: str,
    ) -> dict[str, str]:
        """
        Build query parameters for a daily point request.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            start: Start date, YYYYMMDD
            end: End date, YYYYMMDD

        Returns:
            Query parameter dictionary
        """
        return {
            "parameters": ",".join(cls.PARAMETERS),
            "community": cls.COMMUNITY,
            "longitude": str(longitude),
            "latitude": str(latitude),
            "start": start,
            "end": end,
            "format": "JSON",
        }


# TLE API Endpoints
class TLEAPIEndpoints:
    """Two-line element lookup endpoint paths."""

    TLE_BY_ID = "/api/tle/{norad_id}"
    CELESTRAK_GP = "/NORAD/elements/gp.php"

    @classmethod
    def get_tle(cls, norad_id: int) -> str:
        """
        Get the primary TLE endpoint for a satellite.

        Args:
            norad_id: NORAD catalog number

        Returns:
            Formatted endpoint path
        """
        return cls.TLE_BY_ID.format(norad_id=norad_id)

    @classmethod
    def celestrak_params(cls, norad_id: int) -> dict[str, str]:
        """Query parameters for a CelesTrak TLE-format lookup."""
        return {"CATNR": str(norad_id), "FORMAT": "TLE"}


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
    NO_CACHE_HEADERS = {
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0
