"""
Domain service: region classification and data-source selection.

Decides whether a location is served from the local bloom dataset or from
the remote weather API, based on a rectangular coverage region with carved-out
false positives and the distance to the nearest local observation.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence
import logging
import math
import numbers

from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

from bloomglobe.domain.models import BloomDataPoint
from bloomglobe.services.domain.location_filter import find_nearest

logger = logging.getLogger(__name__)


class RegionClass(str, Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"


class DataSource(str, Enum):
    CSV = "csv"
    WEATHER_API = "weather_api"


@dataclass(frozen=True)
class RegionDefinition:
    """Rectangular coverage region with excluded sub-rectangles."""
    name: str
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    exclusions: tuple[tuple[float, float, float, float], ...] = ()
    """(min_lat, max_lat, min_lon, max_lon) rectangles, interior excluded"""

    @property
    def outer(self) -> BaseGeometry:
        return box(self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    @property
    def excluded(self) -> list[BaseGeometry]:
        return [
            box(min_lon, min_lat, max_lon, max_lat)
            for min_lat, max_lat, min_lon, max_lon in self.exclusions
        ]


AMERICAS = RegionDefinition(
    name="americas",
    min_lat=-60.0,
    max_lat=85.0,
    min_lon=-170.0,
    max_lon=-30.0,
    exclusions=(
        (10.0, 20.0, -30.0, -20.0),    # Cape Verde
    ),
)

US_EAST = RegionDefinition(
    name="us_east",
    min_lat=24.0,
    max_lat=50.0,
    min_lon=-90.0,
    max_lon=-65.0,
    exclusions=(
        (32.0, 33.0, -65.5, -64.0),    # Bermuda
    ),
)

REGIONS: dict[str, RegionDefinition] = {
    AMERICAS.name: AMERICAS,
    US_EAST.name: US_EAST,
}


def get_region(name: str) -> RegionDefinition:
    """
    Look up a region definition by name.

    Raises:
        ValueError: If the region is unknown
    """
    try:
        return REGIONS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown region '{name}'. Available: {', '.join(REGIONS)}")


def classify(
    lat: float,
    lon: float,
    region: RegionDefinition = AMERICAS,
) -> RegionClass:
    """
    Classify a coordinate as inside or outside a region.

    The outer box includes its edges; exclusion rectangles exclude only
    their interiors. Non-finite input is classified as outside.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        region: Region definition

    Returns:
        RegionClass.INSIDE or RegionClass.OUTSIDE
    """
    if not (isinstance(lat, numbers.Real) and isinstance(lon, numbers.Real)):
        return RegionClass.OUTSIDE
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return RegionClass.OUTSIDE

    point = Point(lon, lat)
    if not region.outer.covers(point):
        return RegionClass.OUTSIDE
    if any(exclusion.contains(point) for exclusion in region.excluded):
        return RegionClass.OUTSIDE
    return RegionClass.INSIDE


@dataclass
class DataCoverage:
    """How well the local dataset covers a location."""
    region: RegionClass
    distance: float
    """Degree distance to the nearest local observation (inf if none)"""

    within_range: bool
    should_use_fallback: bool
    data_source: DataSource
    nearest_point: Optional[BloomDataPoint] = None


def check_data_coverage(
    lat: float,
    lon: float,
    points: Sequence[BloomDataPoint],
    region: RegionDefinition = AMERICAS,
    inside_threshold: float = 5.0,
    outside_threshold: float = 10.0,
) -> DataCoverage:
    """
    Decide between the local dataset and the weather API for a location.

    The weather API is used when the location is outside the region or the
    nearest local observation is farther than the applicable threshold.

    Args:
        lat: Target latitude
        lon: Target longitude
        points: Local observations
        region: Coverage region
        inside_threshold: Distance limit (degrees) inside the region
        outside_threshold: Distance limit (degrees) outside the region

    Returns:
        DataCoverage describing the decision
    """
    region_class = classify(lat, lon, region)

    nearest = find_nearest(points, lat, lon) if math.isfinite(lat) and math.isfinite(lon) else None
    nearest_point, distance = nearest if nearest else (None, math.inf)

    threshold = inside_threshold if region_class is RegionClass.INSIDE else outside_threshold
    within_range = distance <= threshold
    use_fallback = region_class is RegionClass.OUTSIDE or not within_range

    return DataCoverage(
        region=region_class,
        distance=distance,
        within_range=within_range,
        should_use_fallback=use_fallback,
        data_source=DataSource.WEATHER_API if use_fallback else DataSource.CSV,
        nearest_point=nearest_point,
    )


@dataclass
class DataQuality:
    """Confidence assessment of a data source for a location."""
    score: float
    factors: list[str] = field(default_factory=list)
    recommendation: str = ""


def calculate_data_quality(
    source: DataSource,
    distance: float,
    region_class: RegionClass,
) -> DataQuality:
    """
    Score how trustworthy a data source is for a location.

    Args:
        source: Chosen data source
        distance: Degree distance to the nearest local observation
        region_class: Region classification of the location

    Returns:
        DataQuality with a score clamped to [0, 1]
    """
    score = 0.0
    factors: list[str] = []

    if source is DataSource.CSV:
        score += 0.9
        factors.append("Direct measurement data")

        if distance <= 1.0:
            score += 0.1
            factors.append("Very close spatial match")
        elif distance <= 3.0:
            factors.append("Good spatial match")
        else:
            score -= 0.2
            factors.append("Distant spatial match")

        if region_class is RegionClass.INSIDE:
            factors.append("Within primary coverage area")
            recommendation = "High quality bloom and climate data available"
        else:
            score -= 0.3
            factors.append("Outside primary coverage area")
            recommendation = "Consider the weather API for better coverage"
    else:
        score += 0.7
        factors.append("Weather API - reliable climate data")
        factors.append("No bloom data available")

        if region_class is RegionClass.OUTSIDE:
            score += 0.1
            factors.append("Optimal for global coverage")
            recommendation = "Best available data source for this region"
        else:
            recommendation = "Fallback option - CSV data preferred if available"

    return DataQuality(
        score=max(0.0, min(1.0, score)),
        factors=factors,
        recommendation=recommendation,
    )


@dataclass
class SourcePlan:
    """Primary and fallback data source for a location."""
    primary: DataSource
    fallback: Optional[DataSource]
    bloom_available: bool
    reason: str


def determine_optimal_data_source(
    lat: float,
    lon: float,
    requires_bloom_data: bool = False,
    region: RegionDefinition = AMERICAS,
) -> SourcePlan:
    """Plan which data source to try first for a location."""
    inside = classify(lat, lon, region) is RegionClass.INSIDE

    if inside:
        return SourcePlan(
            primary=DataSource.CSV,
            fallback=DataSource.WEATHER_API,
            bloom_available=True,
            reason=f"Inside {region.name} - CSV preferred with weather API fallback",
        )

    if requires_bloom_data:
        reason = f"Bloom data only available for {region.name} region"
    else:
        reason = f"Outside {region.name} - weather API for climate data only"

    return SourcePlan(
        primary=DataSource.WEATHER_API,
        fallback=None,
        bloom_available=False,
        reason=reason,
    )
