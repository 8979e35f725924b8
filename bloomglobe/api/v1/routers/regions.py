"""
API router for region classification.
"""
from fastapi import APIRouter, Query
from typing import Annotated

from bloomglobe.api.dependencies import RegionDep
from bloomglobe.api.v1.models.responses import (
    RATE_LIMIT_RESPONSE,
    RegionClassificationResponse,
)
from bloomglobe.services.domain.region_resolver import (
    classify,
    determine_optimal_data_source,
)


router = APIRouter(
    prefix="/regions",
    tags=["regions"],
)


@router.get(
    "/classify",
    response_model=RegionClassificationResponse,
    summary="Classify a location against the coverage region",
    responses={
        200: {"description": "Classification and data-source plan"},
        422: {"description": "Invalid coordinates"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def classify_location(
    lat: Annotated[float, Query(ge=-90, le=90, description="Latitude in degrees")],
    lon: Annotated[float, Query(ge=-180, le=180, description="Longitude in degrees")],
    region: RegionDep,
    requires_bloom_data: bool = False,
) -> RegionClassificationResponse:
    """
    Classify a location and plan which data source serves it.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        region: Active coverage region (injected dependency)
        requires_bloom_data: Whether the caller needs bloom labels

    Returns:
        RegionClassificationResponse
    """
    plan = determine_optimal_data_source(lat, lon, requires_bloom_data, region)

    return RegionClassificationResponse(
        latitude=lat,
        longitude=lon,
        region=region.name,
        classification=classify(lat, lon, region).value,
        primary_source=plan.primary.value,
        fallback_source=plan.fallback.value if plan.fallback else None,
        bloom_available=plan.bloom_available,
        reason=plan.reason,
    )
