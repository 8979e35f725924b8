"""
Application service: current positions of the tracked satellites.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from bloomglobe.domain.models import SatellitePosition
from bloomglobe.infrastructure.external_api_client import TLEClient
from bloomglobe.services.domain.satellite_tracker import SATELLITES, propagate

logger = logging.getLogger(__name__)


class SatelliteService:
    """Fetches element sets and propagates them to a common instant."""

    def __init__(
        self,
        tle_client: TLEClient,
        satellites: Optional[dict[int, str]] = None,
    ):
        self.tle_client = tle_client
        self.satellites = satellites if satellites is not None else SATELLITES

    async def get_positions(self, when: Optional[datetime] = None) -> list[SatellitePosition]:
        """
        Compute sub-satellite points for every tracked satellite.

        Satellites whose elements cannot be fetched or propagated are left
        out of the result.

        Args:
            when: Instant to propagate to (defaults to now, UTC)

        Returns:
            List of SatellitePosition, in catalog order
        """
        when = when or datetime.now(timezone.utc)
        tles = await self.tle_client.get_many(list(self.satellites))

        positions = []
        for norad_id, name in self.satellites.items():
            tle = tles.get(norad_id)
            if tle is None:
                logger.warning(f"No TLE available for {name} ({norad_id}), skipping")
                continue
            try:
                positions.append(propagate(tle, when))
            except ValueError as e:
                logger.warning(f"Skipping {name}: {str(e)}")

        logger.info(f"Computed positions for {len(positions)}/{len(self.satellites)} satellites")
        return positions
