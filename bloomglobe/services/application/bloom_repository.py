"""
Application service: in-memory store of ingested bloom observations.
"""
from typing import Optional, Sequence
import logging

from bloomglobe.domain.models import BloomDataPoint, Bounds, IngestionReport
from bloomglobe.infrastructure.dataset_loader import DatasetCatalog, DatasetLoader
from bloomglobe.services.domain.location_filter import filter_by_bounds, filter_by_time

logger = logging.getLogger(__name__)


class BloomRepository:
    """
    Holds the bloom point list loaded from the configured sources.

    Loading is lazy: the first access ingests every source through the
    loader (and so through its cache and fallback chain).
    """

    def __init__(
        self,
        loader: DatasetLoader,
        sources: Sequence[str],
        catalog: Optional[DatasetCatalog] = None,
    ):
        """
        Initialize the repository.

        Args:
            loader: Dataset loader
            sources: Dataset paths or URLs making up the base point set
            catalog: Optional regional catalog consulted for month views
        """
        self.loader = loader
        self.sources = list(sources)
        self.catalog = catalog
        self._points: Optional[list[BloomDataPoint]] = None
        self._report: Optional[IngestionReport] = None

    @property
    def last_report(self) -> Optional[IngestionReport]:
        return self._report

    async def get_points(self) -> list[BloomDataPoint]:
        """Return all observations, loading them on first use."""
        if self._points is None:
            result = await self.loader.load_many(self.sources)
            self._points = result.points
            self._report = result.report
            logger.info(f"Bloom repository loaded {len(self._points)} points "
                        f"(fallback stage: {result.report.fallback_stage.value})")
        return self._points

    async def reload(self) -> IngestionReport:
        """Drop cached datasets and re-ingest every source."""
        self.loader.cache.clear()
        self._points = None
        await self.get_points()
        return self._report

    async def points_for_month(
        self,
        year: int,
        month: int,
        bounds: Optional[Bounds] = None,
    ) -> list[BloomDataPoint]:
        """
        Observations for one month, optionally limited to a viewport.

        When a regional catalog is configured, the matching regional files
        are loaded and merged in as well.
        """
        points = filter_by_time(await self.get_points(), year, month)

        if self.catalog is not None:
            region = DatasetCatalog.region_for_viewport(bounds) if bounds else "both"
            points = points + await self.catalog.load_month(self.loader, year, month, region)

        if bounds is not None:
            points = filter_by_bounds(points, bounds)
        return points
