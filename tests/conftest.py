"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample CSV text and bloom points
- Mock API clients
- In-memory repository and services
- FastAPI test client
"""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from bloomglobe.main import app
from bloomglobe.domain.models import BloomDataPoint, ClimateReading, TLERecord
from bloomglobe.infrastructure.dataset_cache import DatasetCache
from bloomglobe.infrastructure.dataset_loader import DatasetLoader
from bloomglobe.infrastructure.external_api_client import TLEClient, WeatherAPIClient
from bloomglobe.services.application.bloom_repository import BloomRepository
from bloomglobe.services.application.location_service import LocationService


HEADER = "lat,lon,tmean,pr,NDVI,label,month,year,srad,soil,vpd,dtr,AGDD"

# ISS elements; any well-formed set propagates within a few days of epoch
ISS_LINE1 = "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991"
ISS_LINE2 = "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"


def make_point(
    lat: float,
    lon: float,
    ndvi: float = 0.5,
    label: int = 0,
    year: int = 2020,
    month: int = 4,
    **overrides,
) -> BloomDataPoint:
    """Build a bloom point with plausible defaults for the other measurements."""
    values = dict(
        lat=lat, lon=lon, ndvi=ndvi, label=label, year=year, month=month,
        tmean=15.0, pr=80.0, srad=18.0, soil=0.3, vpd=0.9, dtr=10.0, agdd=300.0,
    )
    values.update(overrides)
    return BloomDataPoint(**values)


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def example_csv() -> str:
    """Three valid rows and one row with a missing field."""
    return "\n".join([
        HEADER,
        "40,-75,12.0,80.0,0.65,2,4,2020,18.0,0.3,0.8,10.0,250",
        "40.1,-75.1,13.0,90.0,0.55,1,4,2020,17.5,0.31,0.82,9.5,240",
        "10,10,27.0,40.0,0.2,0,4,2020,22.0,0.2,1.5,12.0,900",
        "41,-76,11.0,70.0,0.4,0,4,2020,17.0,0.3,0.7,9.0",
    ])


@pytest.fixture
def example_points() -> list[BloomDataPoint]:
    """The valid points of the example CSV."""
    return [
        make_point(40.0, -75.0, ndvi=0.65, label=2, tmean=12.0, pr=80.0, vpd=0.8),
        make_point(40.1, -75.1, ndvi=0.55, label=1, tmean=13.0, pr=90.0, vpd=0.82),
        make_point(10.0, 10.0, ndvi=0.2, label=0, tmean=27.0, pr=40.0, vpd=1.5),
    ]


@pytest.fixture
def grid_points() -> list[BloomDataPoint]:
    """A 1° grid over the eastern US for two months of 2020."""
    points = []
    for month in (4, 5):
        for i in range(10):
            for j in range(10):
                points.append(make_point(
                    lat=35.0 + i,
                    lon=-85.0 + j,
                    ndvi=round(0.1 + 0.08 * ((i + j) % 10), 2),
                    label=(i + j) % 3,
                    month=month,
                ))
    return points


@pytest.fixture
def sample_climate() -> ClimateReading:
    return ClimateReading(
        latitude=48.85,
        longitude=2.35,
        temperature=18.0,
        precipitation=6.0,
        humidity=65.0,
        solar_radiation=19.5,
        date="2020-04-15",
    )


@pytest.fixture
def iss_tle() -> TLERecord:
    return TLERecord(norad_id=25544, name="ISS (ZARYA)", line1=ISS_LINE1, line2=ISS_LINE2)


# ============================================================
# Mock Client and Service Fixtures
# ============================================================

@pytest.fixture
def mock_weather_client(sample_climate):
    """Create a mock weather API client."""
    mock_client = AsyncMock(spec=WeatherAPIClient)
    mock_client.get_daily_climate.return_value = sample_climate
    return mock_client


@pytest.fixture
def mock_tle_client(iss_tle):
    """Create a mock TLE client."""
    mock_client = AsyncMock(spec=TLEClient)
    mock_client.get_many.return_value = {25544: iss_tle}
    return mock_client


@pytest.fixture
def csv_file(tmp_path, example_csv):
    path = tmp_path / "bloom.csv"
    path.write_text(example_csv)
    return path


@pytest.fixture
def dataset_loader() -> DatasetLoader:
    return DatasetLoader(DatasetCache(max_entries=4, max_points=10_000))


@pytest.fixture
def repository(dataset_loader, csv_file) -> BloomRepository:
    """Repository backed by the example CSV on disk."""
    return BloomRepository(loader=dataset_loader, sources=[str(csv_file)])


@pytest.fixture
def location_service(repository, mock_weather_client) -> LocationService:
    return LocationService(repository=repository, weather_client=mock_weather_client)


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    yield
    app.dependency_overrides.clear()
