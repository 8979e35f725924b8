"""
API router for satellite positions.
"""
from datetime import datetime, timezone
from fastapi import APIRouter

from bloomglobe.api.dependencies import SatelliteServiceDep
from bloomglobe.api.v1.models.responses import (
    RATE_LIMIT_RESPONSE,
    SatellitePositionsResponse,
)


router = APIRouter(
    prefix="/satellites",
    tags=["satellites"],
)


@router.get(
    "/positions",
    response_model=SatellitePositionsResponse,
    summary="Get current satellite positions",
    description="""
    Current sub-satellite points of the tracked Earth-observation satellites
    (Landsat 8, Terra, Sentinel-2A, GOES-16). Satellites whose orbital
    elements are unavailable are omitted.
    """,
    responses={
        200: {"description": "Positions of the satellites that could be computed"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_positions(satellite_service: SatelliteServiceDep) -> SatellitePositionsResponse:
    now = datetime.now(timezone.utc)
    positions = await satellite_service.get_positions(now)
    return SatellitePositionsResponse(
        timestamp=now.isoformat(),
        count=len(positions),
        satellites=positions,
    )
