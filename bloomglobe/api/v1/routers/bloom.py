"""
API router for bloom observation endpoints.
"""
from fastapi import APIRouter, HTTPException, Query
from typing import Annotated, Optional

from bloomglobe.api.dependencies import BloomRepositoryDep, LocationServiceDep
from bloomglobe.api.v1.models.responses import (
    RATE_LIMIT_RESPONSE,
    BloomPointResponse,
    CoverageResponse,
    LocationResponse,
    ReloadResponse,
    TimeSeriesEntry,
    TimeSeriesResponse,
    ViewportPointsResponse,
)
from bloomglobe.domain.models import Bounds


router = APIRouter(
    prefix="/bloom",
    tags=["bloom"],
)

Latitude = Annotated[float, Query(ge=-90, le=90, description="Latitude in degrees")]
Longitude = Annotated[float, Query(ge=-180, le=180, description="Longitude in degrees")]
Month = Annotated[int, Query(ge=1, le=12, description="Month (1-12)")]
Year = Annotated[int, Query(ge=1900, le=2100, description="Year")]


def _viewport(
    min_lat: Optional[float],
    max_lat: Optional[float],
    min_lon: Optional[float],
    max_lon: Optional[float],
) -> Optional[Bounds]:
    given = [v is not None for v in (min_lat, max_lat, min_lon, max_lon)]
    if not any(given):
        return None
    if not all(given):
        raise HTTPException(
            status_code=422,
            detail="Viewport requires min_lat, max_lat, min_lon and max_lon together",
        )
    if min_lat > max_lat or min_lon > max_lon:
        raise HTTPException(status_code=422, detail="Viewport minimum exceeds maximum")
    return Bounds(min_lat=min_lat, max_lat=max_lat, min_lon=min_lon, max_lon=max_lon)


@router.get(
    "/points",
    response_model=ViewportPointsResponse,
    summary="Get points to render",
    description="""
    Return the bloom observations of one month inside the viewport, reduced
    to the point budget of the level-of-detail tier for the camera height.

    Peak-bloom and high-NDVI observations are kept first; the remainder of
    the budget is spread over the other observations.
    """,
    responses={
        200: {"description": "Sampled points for the viewport"},
        422: {"description": "Invalid month, coordinates or viewport"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_points(
    year: Year,
    month: Month,
    location_service: LocationServiceDep,
    camera_height: Annotated[float, Query(ge=0, description="Camera height in metres")] = 20_000_000,
    min_lat: Annotated[Optional[float], Query(ge=-90, le=90)] = None,
    max_lat: Annotated[Optional[float], Query(ge=-90, le=90)] = None,
    min_lon: Annotated[Optional[float], Query(ge=-180, le=180)] = None,
    max_lon: Annotated[Optional[float], Query(ge=-180, le=180)] = None,
) -> ViewportPointsResponse:
    bounds = _viewport(min_lat, max_lat, min_lon, max_lon)
    view = await location_service.get_viewport_points(year, month, camera_height, bounds)

    return ViewportPointsResponse(
        year=year,
        month=month,
        tier=view.tier.name,
        marker_size=view.tier.marker_size,
        total_candidates=view.total_candidates,
        sampled=view.sampled,
        count=len(view.points),
        points=[BloomPointResponse.from_point(p) for p in view.points],
    )


@router.get(
    "/time-series",
    response_model=TimeSeriesResponse,
    summary="Get monthly series for a location",
    description="""
    Aggregate the observations around a location into a monthly series.

    The search window widens through the configured radii until it finds
    data, then falls back to the nearest observations. When year and month
    are given but that month has no data, all months are searched and
    `time_widened` is set.
    """,
    responses={
        200: {"description": "Monthly series"},
        422: {"description": "Invalid coordinates or month"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_time_series(
    lat: Latitude,
    lon: Longitude,
    location_service: LocationServiceDep,
    year: Annotated[Optional[int], Query(ge=1900, le=2100)] = None,
    month: Annotated[Optional[int], Query(ge=1, le=12)] = None,
) -> TimeSeriesResponse:
    """
    Get the monthly series around a location.

    Args:
        lat: Target latitude
        lon: Target longitude
        location_service: Location service (injected dependency)
        year: Optional year restriction
        month: Optional month restriction

    Returns:
        TimeSeriesResponse with the series and search details
    """
    result = await location_service.get_time_series(lat, lon, year, month)

    return TimeSeriesResponse(
        latitude=lat,
        longitude=lon,
        radius_used=result.radius_used,
        used_nearest_fallback=result.used_nearest_fallback,
        time_widened=result.time_widened,
        point_count=result.point_count,
        series=[TimeSeriesEntry.from_aggregate(entry) for entry in result.series],
    )


@router.get(
    "/location",
    response_model=LocationResponse,
    summary="Get detail for a location",
    description="""
    Detail for a clicked location. Inside the coverage region the nearest
    bloom observation of the month is returned; elsewhere climate comes from
    the NASA POWER API, with an estimate if that service is unavailable.
    """,
    responses={
        200: {"description": "Location detail with its source and confidence"},
        422: {"description": "Invalid coordinates or month"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_location(
    lat: Latitude,
    lon: Longitude,
    year: Year,
    month: Month,
    location_service: LocationServiceDep,
) -> LocationResponse:
    data = await location_service.get_location_data(lat, lon, year, month)

    return LocationResponse(
        latitude=data.latitude,
        longitude=data.longitude,
        source=data.source,
        region=data.region,
        confidence=data.confidence,
        bloom_available=data.bloom_available,
        distance=data.distance,
        point=BloomPointResponse.from_point(data.point) if data.point else None,
        climate=data.climate,
        vegetation=data.vegetation,
        risk_level=data.risk_level,
        bloom_status=data.bloom_status,
        within_range=data.within_range,
        quality_score=data.quality_score,
        quality_factors=data.quality_factors,
        recommendation=data.recommendation,
        error=data.error,
    )


@router.get(
    "/coverage",
    response_model=CoverageResponse,
    summary="Get dataset coverage",
    responses={
        200: {"description": "Coverage statistics and the last ingestion report"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_coverage(location_service: LocationServiceDep) -> CoverageResponse:
    return CoverageResponse(**await location_service.get_coverage())


@router.post(
    "/reload",
    response_model=ReloadResponse,
    summary="Re-ingest the bloom datasets",
    responses={
        200: {"description": "Datasets reloaded"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def reload_datasets(repository: BloomRepositoryDep) -> ReloadResponse:
    report = await repository.reload()
    return ReloadResponse(status="reloaded", report=report)
