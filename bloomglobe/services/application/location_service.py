"""
Application service: orchestration of location, series and viewport queries.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence
import logging
import math

from bloomglobe.domain.models import Bounds, LocationData, TimeSeriesPoint
from bloomglobe.infrastructure.external_api_client import (
    ExternalAPIError,
    WeatherAPIClient,
)
from bloomglobe.services.application.bloom_repository import BloomRepository
from bloomglobe.services.domain.aggregator import aggregate_monthly, summarize_coverage
from bloomglobe.services.domain.location_filter import (
    DEFAULT_NEAREST_K,
    DEFAULT_SEARCH_RADII,
    expanding_radius_search,
    filter_by_time,
)
from bloomglobe.services.domain.region_resolver import (
    AMERICAS,
    DataSource,
    RegionClass,
    RegionDefinition,
    calculate_data_quality,
    check_data_coverage,
)
from bloomglobe.services.domain.sampler import (
    DEFAULT_TIERS,
    LODTier,
    SampledView,
    sample_for_camera,
)
from bloomglobe.services.domain.weather_indicators import (
    bloom_status,
    climate_risk,
    climatology_estimate,
    estimate_ndvi,
)

logger = logging.getLogger(__name__)


WEATHER_API_CONFIDENCE = 0.8
ESTIMATE_CONFIDENCE = 0.3


@dataclass
class TimeSeriesResult:
    """Monthly series for a location and how its points were found."""
    series: list[TimeSeriesPoint] = field(default_factory=list)
    radius_used: float = 0.0
    used_nearest_fallback: bool = False
    time_widened: bool = False
    point_count: int = 0


class LocationService:
    """
    Application service for location-driven queries.

    Coordinates the bloom repository, the weather API client and the pure
    domain functions; holds no business rules of its own.
    """

    def __init__(
        self,
        repository: BloomRepository,
        weather_client: WeatherAPIClient,
        region: RegionDefinition = AMERICAS,
        search_radii: Sequence[float] = DEFAULT_SEARCH_RADII,
        nearest_k: int = DEFAULT_NEAREST_K,
        csv_max_distance: float = 5.0,
        outside_max_distance: float = 10.0,
        tiers: Sequence[LODTier] = DEFAULT_TIERS,
    ):
        """
        Initialize the service with dependencies.

        Args:
            repository: Source of bloom observations
            weather_client: Client for locations without nearby observations
            region: Region in which CSV data is preferred
            search_radii: Expanding window half-widths for time series
            nearest_k: Nearest-K fallback size for time series
            csv_max_distance: Maximum degree distance for using a CSV point
            outside_max_distance: Distance limit for CSV points outside the region
            tiers: LOD tiers for viewport sampling
        """
        self.repository = repository
        self.weather_client = weather_client
        self.region = region
        self.search_radii = tuple(search_radii)
        self.nearest_k = nearest_k
        self.csv_max_distance = csv_max_distance
        self.outside_max_distance = outside_max_distance
        self.tiers = tuple(tiers)

    async def get_time_series(
        self,
        lat: float,
        lon: float,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> TimeSeriesResult:
        """
        Build the monthly series around a location.

        Args:
            lat: Target latitude
            lon: Target longitude
            year: Optional year to restrict the search to
            month: Optional month to restrict the search to

        Returns:
            TimeSeriesResult with the series and search details
        """
        points = await self.repository.get_points()
        match = expanding_radius_search(
            points,
            lat,
            lon,
            year=year,
            month=month,
            radii=self.search_radii,
            nearest_k=self.nearest_k,
        )
        return TimeSeriesResult(
            series=aggregate_monthly(match.points),
            radius_used=match.radius_used,
            used_nearest_fallback=match.used_nearest_fallback,
            time_widened=match.time_widened,
            point_count=len(match.points),
        )

    async def get_location_data(
        self,
        lat: float,
        lon: float,
        year: int,
        month: int,
    ) -> LocationData:
        """
        Detail for a location, from the CSV data or the weather API.

        The coverage check picks the source: inside the region the nearest
        observation of the month is used when it lies within csv_max_distance.
        Otherwise the weather API supplies climate, from which vegetation,
        risk and bloom status are derived. If the weather API fails a
        climatology estimate is returned instead. Never raises for valid
        coordinates and month.

        Args:
            lat: Target latitude
            lon: Target longitude
            year: Year of interest
            month: Month of interest

        Returns:
            LocationData describing the source used, its confidence and quality
        """
        in_month = filter_by_time(await self.repository.get_points(), year, month)
        coverage = check_data_coverage(
            lat,
            lon,
            in_month,
            region=self.region,
            inside_threshold=self.csv_max_distance,
            outside_threshold=self.outside_max_distance,
        )
        region_name = self.region.name if coverage.region is RegionClass.INSIDE else "global"

        if not coverage.should_use_fallback:
            point, distance = coverage.nearest_point, coverage.distance
            quality = calculate_data_quality(DataSource.CSV, distance, coverage.region)
            logger.info(f"CSV point for ({lat}, {lon}) at {distance:.2f}°")
            return LocationData(
                latitude=lat,
                longitude=lon,
                source="csv",
                region=region_name,
                confidence=max(0.5, 1 - distance / self.csv_max_distance),
                bloom_available=True,
                distance=distance,
                point=point,
                bloom_status=None if math.isnan(point.ndvi) else bloom_status(point.ndvi).value,
                within_range=coverage.within_range,
                quality_score=quality.score,
                quality_factors=quality.factors,
                recommendation=quality.recommendation,
            )

        logger.info(f"Using weather API for ({lat}, {lon}), region: {coverage.region.value}")
        day = date(year, month, 15)
        error = None
        quality = None
        try:
            climate = await self.weather_client.get_daily_climate(lat, lon, day)
            source, confidence = "weather_api", WEATHER_API_CONFIDENCE
            quality = calculate_data_quality(DataSource.WEATHER_API, coverage.distance, coverage.region)
        except ExternalAPIError as e:
            logger.error(f"Weather API failed for ({lat}, {lon}): {e.message}")
            climate = climatology_estimate(lat, lon, day)
            source, confidence, error = "estimate", ESTIMATE_CONFIDENCE, e.message

        vegetation = estimate_ndvi(climate)
        return LocationData(
            latitude=lat,
            longitude=lon,
            source=source,
            region=region_name,
            confidence=confidence,
            climate=climate,
            vegetation=vegetation,
            risk_level=climate_risk(climate, vegetation.ndvi).value,
            bloom_status=bloom_status(vegetation.ndvi).value,
            within_range=coverage.within_range,
            quality_score=quality.score if quality else None,
            quality_factors=quality.factors if quality else [],
            recommendation=quality.recommendation if quality else None,
            error=error,
        )

    async def get_viewport_points(
        self,
        year: int,
        month: int,
        camera_height: float,
        bounds: Optional[Bounds] = None,
    ) -> SampledView:
        """
        Points to render for a month and viewport at a camera height.

        Args:
            year: Year shown
            month: Month shown
            camera_height: Camera distance above the surface in metres
            bounds: Optional visible area

        Returns:
            SampledView with the LOD tier and the sampled points
        """
        points = await self.repository.points_for_month(year, month, bounds)
        return sample_for_camera(points, camera_height, self.tiers)

    async def get_coverage(self) -> dict:
        """Coverage statistics of the loaded dataset plus its ingestion report."""
        coverage = summarize_coverage(await self.repository.get_points())
        coverage["report"] = self.repository.last_report
        return coverage
