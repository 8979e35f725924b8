"""
API router for herbarium specimens.
"""
from fastapi import APIRouter, HTTPException, Query
from typing import Annotated

from bloomglobe.api.dependencies import HerbariumStoreDep
from bloomglobe.api.v1.models.responses import RATE_LIMIT_RESPONSE, SpecimenResponse


router = APIRouter(
    prefix="/specimens",
    tags=["specimens"],
)


@router.get(
    "/nearest",
    response_model=SpecimenResponse,
    summary="Get the nearest herbarium specimen",
    responses={
        200: {"description": "Nearest specimen with its IUCN status"},
        404: {"description": "No specimen within max_distance"},
        422: {"description": "Invalid coordinates"},
        **RATE_LIMIT_RESPONSE,
    }
)
async def get_nearest_specimen(
    lat: Annotated[float, Query(ge=-90, le=90, description="Latitude in degrees")],
    lon: Annotated[float, Query(ge=-180, le=180, description="Longitude in degrees")],
    store: HerbariumStoreDep,
    max_distance: Annotated[float, Query(gt=0, le=180, description="Search limit in degrees")] = 10.0,
) -> SpecimenResponse:
    match = store.find_nearest(lat, lon, max_distance)
    if match is None:
        raise HTTPException(
            status_code=404,
            detail=f"No specimen within {max_distance}° of ({lat}, {lon})"
        )

    species = match.specimen.species
    return SpecimenResponse(
        specimen=match.specimen,
        distance_degrees=match.distance,
        distance_km=match.distance_km,
        iucn_status=store.iucn_status(species),
        endangered=store.is_endangered(species),
    )
