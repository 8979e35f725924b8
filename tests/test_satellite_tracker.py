"""
Unit tests for satellite propagation and the satellite service.
"""
import math
from datetime import datetime, timezone

import pytest
from unittest.mock import MagicMock, patch

from bloomglobe.domain.models import TLERecord
from bloomglobe.services.application.satellite_service import SatelliteService
from bloomglobe.services.domain.satellite_tracker import (
    SATELLITES,
    gmst_radians,
    propagate,
    teme_to_ecef,
)


# Close to the element-set epoch (2019-12-09)
NEAR_EPOCH = datetime(2019, 12, 9, 18, 0, tzinfo=timezone.utc)


# ============================================================
# Propagation Tests
# ============================================================

class TestPropagation:
    """Tests for SGP4 propagation and frame conversion."""

    def test_iss_position_plausible(self, iss_tle):
        position = propagate(iss_tle, NEAR_EPOCH)

        # ISS inclination 51.6°, altitude roughly 400 km
        assert -52.0 <= position.latitude <= 52.0
        assert -180.0 <= position.longitude <= 180.0
        assert 350.0 < position.altitude_km < 450.0
        assert position.name == "ISS (ZARYA)"

    def test_naive_datetime_is_utc(self, iss_tle):
        aware = propagate(iss_tle, NEAR_EPOCH)
        naive = propagate(iss_tle, NEAR_EPOCH.replace(tzinfo=None))

        assert naive.latitude == pytest.approx(aware.latitude)
        assert naive.longitude == pytest.approx(aware.longitude)

    def test_position_moves(self, iss_tle):
        first = propagate(iss_tle, NEAR_EPOCH)
        later = propagate(iss_tle, NEAR_EPOCH.replace(minute=10))

        assert (first.latitude, first.longitude) != (later.latitude, later.longitude)

    def test_sgp4_error_raises(self, iss_tle):
        """A non-zero SGP4 error code becomes a ValueError."""
        satellite = MagicMock()
        satellite.sgp4.return_value = (6, (math.nan,) * 3, (math.nan,) * 3)

        with patch("bloomglobe.services.domain.satellite_tracker.Satrec") as satrec:
            satrec.twoline2rv.return_value = satellite
            with pytest.raises(ValueError, match="error code 6"):
                propagate(iss_tle, NEAR_EPOCH)

    def test_gmst_range(self):
        for fr in (0.0, 0.25, 0.5, 0.99):
            assert 0.0 <= gmst_radians(2458827.0, fr) < 2 * math.pi

    def test_rotation_preserves_radius(self):
        x, y, z = teme_to_ecef((4000.0, 3000.0, 5000.0), 1.234)

        assert math.hypot(x, y) == pytest.approx(5000.0)
        assert z == 5000.0

    def test_catalog(self):
        assert SATELLITES[39084] == "Landsat 8"
        assert len(SATELLITES) == 4


# ============================================================
# Satellite Service Tests
# ============================================================

class TestSatelliteService:
    """Tests for fetching and propagating the catalog."""

    @pytest.mark.asyncio
    async def test_positions(self, mock_tle_client):
        service = SatelliteService(mock_tle_client, satellites={25544: "ISS"})

        positions = await service.get_positions(NEAR_EPOCH)

        assert len(positions) == 1
        assert positions[0].norad_id == 25544
        mock_tle_client.get_many.assert_called_once_with([25544])

    @pytest.mark.asyncio
    async def test_skips_missing_and_failing(self, mock_tle_client, iss_tle):
        broken = TLERecord(norad_id=1, name="Broken", line1=iss_tle.line1, line2=iss_tle.line2)
        mock_tle_client.get_many.return_value = {25544: iss_tle, 1: broken}
        service = SatelliteService(
            mock_tle_client,
            satellites={25544: "ISS", 1: "Broken", 2: "Absent"},
        )

        def fake_propagate(tle, when):
            if tle.norad_id == 1:
                raise ValueError("SGP4 propagation failed")
            return propagate(tle, when)

        with patch("bloomglobe.services.application.satellite_service.propagate", fake_propagate):
            positions = await service.get_positions(NEAR_EPOCH)

        assert [p.norad_id for p in positions] == [25544]
