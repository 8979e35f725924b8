"""
Domain service: indicators derived from point climate readings.

Used where no bloom observation is available and only weather data can be
shown: a vegetation estimate, a climate risk level and a bloom status.
"""
from datetime import date
from enum import Enum
import math

from bloomglobe.domain.models import ClimateReading, VegetationEstimate


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"


class BloomStatus(str, Enum):
    DORMANT = "dormant"
    DECLINING = "declining"
    EMERGING = "emerging"
    PEAK_BLOOM = "peak-bloom"


def estimate_ndvi(climate: ClimateReading) -> VegetationEstimate:
    """
    Estimate NDVI from temperature and precipitation.

    Vegetation grows with precipitation when temperatures are moderate
    (0-35 °C); outside that range a sparse-vegetation value is used.

    Args:
        climate: Point climate reading

    Returns:
        VegetationEstimate with NDVI clamped to [-0.1, 0.9]
    """
    if 0 < climate.temperature < 35:
        ndvi = min(0.8, climate.precipitation * 0.05 + 0.2)
    else:
        ndvi = 0.1

    ndvi = max(-0.1, min(0.9, ndvi))
    return VegetationEstimate(
        latitude=climate.latitude,
        longitude=climate.longitude,
        ndvi=round(ndvi, 4),
        evi=round(ndvi * 1.2, 4),
    )


def _band_score(value: float, bands: tuple[tuple[float, float], ...]) -> int:
    # bands run from widest (score 3) to narrowest (score 1) comfortable range
    for score, (low, high) in zip((3, 2, 1), bands):
        if value > high or value < low:
            return score
    return 0


def climate_risk(climate: ClimateReading, ndvi: float) -> RiskLevel:
    """
    Score climate stress from temperature, precipitation and vegetation.

    Each factor contributes 0-3 points; the total maps to a risk level
    (>= 7 extreme, >= 5 high, >= 3 moderate, otherwise low).
    """
    score = _band_score(climate.temperature, ((0, 35), (5, 30), (10, 25)))
    score += _band_score(climate.precipitation, ((1, 100), (5, 50), (10, 30)))

    if ndvi < 0.2:
        score += 3
    elif ndvi < 0.3:
        score += 2
    elif ndvi < 0.4:
        score += 1

    if score >= 7:
        return RiskLevel.EXTREME
    if score >= 5:
        return RiskLevel.HIGH
    if score >= 3:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def bloom_status(ndvi: float) -> BloomStatus:
    if ndvi > 0.6:
        return BloomStatus.PEAK_BLOOM
    if ndvi > 0.4:
        return BloomStatus.EMERGING
    if ndvi > 0.2:
        return BloomStatus.DECLINING
    return BloomStatus.DORMANT


def climatology_estimate(lat: float, lon: float, day: date) -> ClimateReading:
    """
    Rough climate estimate from latitude and season alone.

    Used when the weather API is unreachable. Temperature falls off with
    latitude and swings with a seasonal cosine peaking in July in the
    northern hemisphere and January in the southern.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        day: Day of the estimate

    Returns:
        ClimateReading with plausible values
    """
    peak_month = 7 if lat >= 0 else 1
    season = math.cos(2 * math.pi * (day.month - peak_month) / 12)
    polar = abs(lat) / 90

    return ClimateReading(
        latitude=lat,
        longitude=lon,
        temperature=round(25 - abs(lat) * 0.5 + 8 * polar * season, 2),
        precipitation=round(max(0.0, 3.0 - 2.0 * polar), 2),
        humidity=round(70 - 30 * polar, 1),
        solar_radiation=round(max(2.0, 20 - 10 * polar + 6 * polar * season), 2),
        date=day.isoformat(),
    )
