"""
Dependency injection for FastAPI.
"""
import logging
from pathlib import Path
from typing import Annotated, Optional
from fastapi import Depends

from bloomglobe.config import settings
from bloomglobe.infrastructure.dataset_cache import DatasetCache
from bloomglobe.infrastructure.dataset_loader import DatasetCatalog, DatasetLoader
from bloomglobe.infrastructure.external_api_client import (
    TLEClient,
    WeatherAPIClient,
    get_tle_client,
    get_weather_client,
)
from bloomglobe.services.application.bloom_repository import BloomRepository
from bloomglobe.services.application.location_service import LocationService
from bloomglobe.services.application.satellite_service import SatelliteService
from bloomglobe.services.domain.herbarium_store import HerbariumStore
from bloomglobe.services.domain.region_resolver import RegionDefinition, get_region

logger = logging.getLogger(__name__)

# Singleton instances
_repository: Optional[BloomRepository] = None
_herbarium_store: Optional[HerbariumStore] = None


def get_bloom_repository() -> BloomRepository:
    """
    Get or create the shared bloom repository.

    The repository owns the dataset cache and loader, so every request
    sees the same parsed data.

    Returns:
        BloomRepository instance
    """
    global _repository
    if _repository is None:
        cache = DatasetCache(
            max_entries=settings.dataset_cache_max_entries,
            max_points=settings.dataset_cache_max_points,
        )
        catalog = DatasetCatalog.americas() if settings.americas_catalog_enabled else None
        _repository = BloomRepository(
            loader=DatasetLoader(cache),
            sources=settings.bloom_dataset_sources,
            catalog=catalog,
        )
    return _repository


async def close_bloom_repository() -> None:
    global _repository
    if _repository is not None:
        await _repository.loader.close()
        _repository = None


def get_region_definition() -> RegionDefinition:
    return get_region(settings.region_name)


def get_location_service(
    repository: Annotated[BloomRepository, Depends(get_bloom_repository)],
    weather_client: Annotated[WeatherAPIClient, Depends(get_weather_client)],
    region: Annotated[RegionDefinition, Depends(get_region_definition)],
) -> LocationService:
    """
    Dependency factory for LocationService.

    Args:
        repository: Bloom repository (injected)
        weather_client: Weather API client (injected)
        region: Active coverage region (injected)

    Returns:
        LocationService instance
    """
    return LocationService(
        repository=repository,
        weather_client=weather_client,
        region=region,
        search_radii=settings.search_radii,
        nearest_k=settings.nearest_k,
        csv_max_distance=settings.inside_region_threshold,
        outside_max_distance=settings.outside_region_threshold,
    )


def get_satellite_service(
    tle_client: Annotated[TLEClient, Depends(get_tle_client)],
) -> SatelliteService:
    return SatelliteService(tle_client=tle_client)


def get_herbarium_store() -> HerbariumStore:
    """
    Get or create the shared herbarium store.

    Specimen and IUCN files are optional; a missing or unreadable file
    leaves the store empty.

    Returns:
        HerbariumStore instance
    """
    global _herbarium_store
    if _herbarium_store is None:
        store = HerbariumStore()
        specimens = Path(settings.herbarium_data_path)
        iucn = Path(settings.iucn_data_path)

        try:
            if specimens.is_file():
                store.load_path(str(specimens))
            else:
                logger.warning(f"Herbarium data not found at {specimens}")
            if iucn.is_file():
                store.load_iucn(iucn.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.error(f"Failed to load herbarium data: {str(e)}")

        _herbarium_store = store
    return _herbarium_store


# Type aliases for cleaner route signatures
BloomRepositoryDep = Annotated[BloomRepository, Depends(get_bloom_repository)]
LocationServiceDep = Annotated[LocationService, Depends(get_location_service)]
SatelliteServiceDep = Annotated[SatelliteService, Depends(get_satellite_service)]
HerbariumStoreDep = Annotated[HerbariumStore, Depends(get_herbarium_store)]
RegionDep = Annotated[RegionDefinition, Depends(get_region_definition)]
