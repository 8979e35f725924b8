"""
Integration tests for API endpoints.

Tests the full HTTP request/response cycle with mocked external dependencies.
"""
import json
import math

import pytest
from unittest.mock import AsyncMock

from bloomglobe.main import app
from bloomglobe.api.dependencies import (
    get_bloom_repository,
    get_herbarium_store,
    get_location_service,
    get_satellite_service,
)
from bloomglobe.domain.errors import DatasetError
from bloomglobe.domain.models import SatellitePosition
from bloomglobe.infrastructure.external_api_client import ExternalAPIError
from bloomglobe.services.application.location_service import LocationService
from bloomglobe.services.application.satellite_service import SatelliteService
from bloomglobe.services.domain.herbarium_store import HerbariumStore
from bloomglobe.services.domain.sampler import DEFAULT_TIERS, SampledView
from tests.conftest import make_point


# ============================================================
# Health Check Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, test_client):
        """Root endpoint should return healthy status."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_health_endpoint(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# ============================================================
# Bloom Endpoint Tests
# ============================================================

class TestBloomEndpoints:
    """Tests for the bloom observation endpoints."""

    def test_invalid_month(self, test_client):
        response = test_client.get("/api/v1/bloom/points", params={"year": 2020, "month": 13})

        assert response.status_code == 422

    def test_invalid_latitude(self, test_client):
        response = test_client.get("/api/v1/bloom/time-series", params={"lat": 100, "lon": 0})

        assert response.status_code == 422

    def test_partial_viewport_rejected(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get(
            "/api/v1/bloom/points",
            params={"year": 2020, "month": 4, "min_lat": 30, "max_lat": 45},
        )

        assert response.status_code == 422

    def test_inverted_viewport_rejected(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get(
            "/api/v1/bloom/points",
            params={"year": 2020, "month": 4, "min_lat": 45, "max_lat": 30,
                    "min_lon": -80, "max_lon": -70},
        )

        assert response.status_code == 422

    def test_points(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get(
            "/api/v1/bloom/points",
            params={"year": 2020, "month": 4, "min_lat": 35, "max_lat": 45,
                    "min_lon": -80, "max_lon": -70},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tier"] == "global"
        assert data["count"] == 2
        assert {p["lat"] for p in data["points"]} == {40.0, 40.1}

    def test_nan_measurements_are_null(self, test_client):
        """NaN values in observations are serialized as null."""
        mock_service = AsyncMock(spec=LocationService)
        mock_service.get_viewport_points.return_value = SampledView(
            tier=DEFAULT_TIERS[0],
            points=[make_point(40.0, -75.0, ndvi=math.nan, soil=math.nan)],
            total_candidates=1,
        )
        app.dependency_overrides[get_location_service] = lambda: mock_service

        response = test_client.get("/api/v1/bloom/points", params={"year": 2020, "month": 4})

        assert response.status_code == 200
        point = json.loads(response.text)["points"][0]
        assert point["ndvi"] is None
        assert point["soil"] is None
        assert point["tmean"] == 15.0

    def test_time_series(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get("/api/v1/bloom/time-series", params={"lat": 40, "lon": -75})

        assert response.status_code == 200
        data = response.json()
        assert data["radius_used"] == 0.5
        assert data["series"][0]["ndvi"] == pytest.approx(0.6)
        assert data["series"][0]["sample_count"] == 2

    def test_location_outside_region(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get(
            "/api/v1/bloom/location",
            params={"lat": 48.85, "lon": 2.35, "year": 2020, "month": 4},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "weather_api"
        assert data["region"] == "global"
        assert data["climate"]["temperature"] == 18.0

    def test_location_csv(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get(
            "/api/v1/bloom/location",
            params={"lat": 40, "lon": -75, "year": 2020, "month": 4},
        )

        data = response.json()
        assert data["source"] == "csv"
        assert data["point"]["label"] == 2
        assert data["within_range"] is True
        assert data["quality_score"] == pytest.approx(1.0)

    def test_coverage(self, test_client, location_service):
        app.dependency_overrides[get_location_service] = lambda: location_service

        response = test_client.get("/api/v1/bloom/coverage")

        assert response.status_code == 200
        data = response.json()
        assert data["total_points"] == 3
        assert data["report"]["valid_rows"] == 3
        assert data["report"]["fallback_stage"] == "none"

    def test_reload(self, test_client, repository):
        app.dependency_overrides[get_bloom_repository] = lambda: repository

        response = test_client.post("/api/v1/bloom/reload")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "reloaded"
        assert data["report"]["valid_rows"] == 3


# ============================================================
# Error Handling Tests
# ============================================================

class TestErrorHandling:
    """Tests for the error handling middleware."""

    def test_dataset_error_returns_503(self, test_client):
        mock_service = AsyncMock(spec=LocationService)
        mock_service.get_time_series.side_effect = DatasetError("no readable dataset")
        app.dependency_overrides[get_location_service] = lambda: mock_service

        response = test_client.get("/api/v1/bloom/time-series", params={"lat": 40, "lon": -75})

        assert response.status_code == 503
        assert response.json()["detail"] == "no readable dataset"

    def test_external_api_error_status(self, test_client):
        mock_service = AsyncMock(spec=LocationService)
        mock_service.get_coverage.side_effect = ExternalAPIError("upstream down", status_code=502)
        app.dependency_overrides[get_location_service] = lambda: mock_service

        response = test_client.get("/api/v1/bloom/coverage")

        assert response.status_code == 502
        assert response.json()["error"] == "External API error"


# ============================================================
# Region, Satellite and Specimen Endpoint Tests
# ============================================================

class TestRegionEndpoint:
    """Tests for region classification."""

    def test_inside(self, test_client):
        response = test_client.get("/api/v1/regions/classify", params={"lat": 40, "lon": -75})

        assert response.status_code == 200
        data = response.json()
        assert data["classification"] == "inside"
        assert data["primary_source"] == "csv"
        assert data["fallback_source"] == "weather_api"
        assert data["bloom_available"] is True

    def test_hawaii_inside(self, test_client):
        response = test_client.get("/api/v1/regions/classify", params={"lat": 20.5, "lon": -157})

        data = response.json()
        assert data["classification"] == "inside"
        assert data["primary_source"] == "csv"


class TestSatelliteEndpoint:
    """Tests for satellite positions."""

    def test_positions(self, test_client):
        mock_service = AsyncMock(spec=SatelliteService)
        mock_service.get_positions.return_value = [
            SatellitePosition(
                norad_id=39084,
                name="Landsat 8",
                latitude=12.3,
                longitude=-45.6,
                altitude_km=705.1,
                timestamp="2024-04-01T00:00:00+00:00",
            ),
        ]
        app.dependency_overrides[get_satellite_service] = lambda: mock_service

        response = test_client.get("/api/v1/satellites/positions")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["satellites"][0]["name"] == "Landsat 8"


class TestSpecimenEndpoint:
    """Tests for nearest herbarium specimen."""

    @pytest.fixture
    def store(self) -> HerbariumStore:
        store = HerbariumStore()
        store.load_from_text(json.dumps([{
            "gbifID": "1002",
            "species": "Trillium persistens",
            "genus": "Trillium",
            "family": "Melanthiaceae",
            "latitude": 34.7,
            "longitude": -83.3,
        }]))
        store.load_iucn(json.dumps({"endangered_species": {"Trillium persistens": ["EN"]}}))
        return store

    def test_nearest(self, test_client, store):
        app.dependency_overrides[get_herbarium_store] = lambda: store

        response = test_client.get("/api/v1/specimens/nearest", params={"lat": 34.5, "lon": -83.0})

        assert response.status_code == 200
        data = response.json()
        assert data["specimen"]["gbifID"] == "1002"
        assert data["iucn_status"] == ["EN"]
        assert data["endangered"] is True

    def test_none_within_distance(self, test_client, store):
        app.dependency_overrides[get_herbarium_store] = lambda: store

        response = test_client.get(
            "/api/v1/specimens/nearest",
            params={"lat": 0, "lon": 0, "max_distance": 5},
        )

        assert response.status_code == 404


# ============================================================
# Response Format Tests
# ============================================================

class TestResponseFormats:
    """Tests for API response formats."""

    def test_openapi_schema_available(self, test_client):
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        data = response.json()
        assert "/api/v1/bloom/points" in data["paths"]
        assert "/api/v1/satellites/positions" in data["paths"]

    def test_rate_limit_documented_in_openapi(self, test_client):
        """Rate limit should be documented in OpenAPI."""
        data = test_client.get("/openapi.json").json()

        assert "429" in data["paths"]["/api/v1/bloom/points"]["get"]["responses"]

    def test_docs_endpoint_available(self, test_client):
        response = test_client.get("/docs")

        assert response.status_code == 200
