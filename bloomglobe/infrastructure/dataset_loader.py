"""
Infrastructure layer: dataset retrieval with a layered fallback chain.

Sources are either local file paths or http(s) URLs. Loading never fails:
when every real source of data is exhausted a synthetic grid is returned
and the ingestion report says so.
"""
import logging
import re
from pathlib import Path
from typing import Optional, Sequence

import httpx

from bloomglobe.config import settings
from bloomglobe.domain.errors import DatasetError
from bloomglobe.domain.models import (
    BloomDataPoint,
    Bounds,
    FallbackStage,
    IngestionReport,
    IngestionResult,
)
from bloomglobe.infrastructure.api_constants import APIConstants
from bloomglobe.infrastructure.dataset_cache import DatasetCache
from bloomglobe.infrastructure.external_api_client import ExternalAPIError
from bloomglobe.services.domain.csv_ingestor import (
    generate_synthetic_grid,
    parse_best_effort,
    parse_bloom_csv,
)
from bloomglobe.services.domain.location_filter import filter_by_time

logger = logging.getLogger(__name__)


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class DatasetLoader:
    """
    Loads bloom datasets through the cache and the fallback chain.

    Chain: strict parse, then a cache-bypassing re-fetch, then a
    best-effort parse of whatever text was retrieved, then a synthetic grid.
    """

    def __init__(
        self,
        cache: DatasetCache,
        http_client: Optional[httpx.AsyncClient] = None,
        synthetic_bounds: Optional[Bounds] = None,
    ):
        """
        Initialize the loader.

        Args:
            cache: Shared dataset cache
            http_client: Client for remote sources (created if not provided)
            synthetic_bounds: Area covered by the synthetic fallback grid
        """
        self.cache = cache
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout)
        self.synthetic_bounds = synthetic_bounds or Bounds(
            min_lat=settings.synthetic_min_lat,
            max_lat=settings.synthetic_max_lat,
            min_lon=settings.synthetic_min_lon,
            max_lon=settings.synthetic_max_lon,
        )

    async def close(self):
        """Close the HTTP client if this loader created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def fetch_text(self, source: str, bypass_cache: bool = False) -> str:
        """
        Retrieve the raw text of a dataset.

        Args:
            source: Local path or http(s) URL
            bypass_cache: Ask intermediaries for a fresh copy

        Returns:
            File contents

        Raises:
            ExternalAPIError: If a remote fetch fails or returns non-2xx
            DatasetError: If a local file cannot be read
        """
        if not is_remote(source):
            try:
                return Path(source).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise DatasetError(f"Cannot read dataset '{source}': {str(e)}") from e

        headers = dict(APIConstants.NO_CACHE_HEADERS) if bypass_cache else {}
        try:
            response = await self.http_client.get(source, headers=headers)
        except httpx.RequestError as e:
            raise ExternalAPIError(f"Dataset request error: {str(e)}") from e

        if not response.is_success:
            raise ExternalAPIError(
                f"Dataset request failed: {response.status_code} - {source}",
                status_code=response.status_code,
            )
        return response.text

    async def load(
        self,
        source: str,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> IngestionResult:
        """
        Load a dataset, falling back as needed. Never raises.

        Args:
            source: Local path or http(s) URL
            year: Year stamped on synthetic points if the chain reaches them
            month: Month stamped on synthetic points if the chain reaches them

        Returns:
            IngestionResult whose report records the fallback stage used
        """
        cached = self.cache.get(source)
        if cached is not None:
            logger.debug(f"Cache hit for dataset '{source}'")
            return cached

        errors: list[str] = []
        text: Optional[str] = None

        # (1) fetch and strict parse, (a) re-fetch bypassing caches
        for stage, bypass in ((FallbackStage.NONE, False), (FallbackStage.REFETCH, True)):
            try:
                fetched = await self.fetch_text(source, bypass_cache=bypass)
            except (ExternalAPIError, DatasetError) as e:
                errors.append(str(e))
                logger.warning(f"Fetch of '{source}' failed ({stage.value}): {str(e)}")
                continue

            text = fetched
            try:
                result = parse_bloom_csv(fetched, source=source)
            except DatasetError as e:
                errors.append(str(e))
                logger.warning(f"Strict parse of '{source}' failed ({stage.value}): {str(e)}")
                continue

            if result.points:
                result.report.fallback_stage = stage
                result.report.error = "; ".join(errors) or None
                self.cache.put(source, result)
                return result
            errors.append("No valid rows")

        # (b) best-effort parse of whatever text we have
        if text is not None:
            result = parse_best_effort(text, source=source)
            if result.points:
                logger.warning(f"Using best-effort parse for '{source}' "
                               f"({len(result.points)} points)")
                result.report.fallback_stage = FallbackStage.BEST_EFFORT
                result.report.error = "; ".join(errors) or None
                return result

        # (c) synthetic grid
        return self._synthetic(source, year, month, errors)

    async def load_many(
        self,
        sources: Sequence[str],
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> IngestionResult:
        """
        Load several datasets and concatenate their points.

        The combined report sums the per-source counts and keeps the most
        severe fallback stage any source needed.
        """
        severity = list(FallbackStage)
        points: list[BloomDataPoint] = []
        report = IngestionReport(source=", ".join(sources))
        errors = []

        for source in sources:
            result = await self.load(source, year, month)
            points.extend(result.points)

            part = result.report
            report.total_rows += part.total_rows
            report.valid_rows += part.valid_rows
            report.invalid_rows += part.invalid_rows
            report.column_mismatch_rows += part.column_mismatch_rows
            report.unparseable_rows += part.unparseable_rows
            report.out_of_bounds_rows += part.out_of_bounds_rows
            for key, count in part.year_counts.items():
                report.year_counts[key] = report.year_counts.get(key, 0) + count
            for key, count in part.label_counts.items():
                report.label_counts[key] = report.label_counts.get(key, 0) + count
            if severity.index(part.fallback_stage) > severity.index(report.fallback_stage):
                report.fallback_stage = part.fallback_stage
            if part.error:
                errors.append(f"{source}: {part.error}")

        if points:
            lats = [p.lat for p in points]
            lons = [p.lon for p in points]
            report.lat_range = (min(lats), max(lats))
            report.lon_range = (min(lons), max(lons))
        report.error = "; ".join(errors) or None

        return IngestionResult(points=points, report=report)

    def _synthetic(
        self,
        source: str,
        year: Optional[int],
        month: Optional[int],
        errors: list[str],
    ) -> IngestionResult:
        points = generate_synthetic_grid(
            year=year or settings.synthetic_year,
            month=month or settings.synthetic_month,
            bounds=self.synthetic_bounds,
            step=settings.synthetic_step,
        )
        logger.error(f"All loading strategies failed for '{source}', "
                     f"using {len(points)} synthetic points")

        report = IngestionReport(
            source=source,
            valid_rows=len(points),
            fallback_stage=FallbackStage.SYNTHETIC,
            error="; ".join(errors) or "No data could be loaded",
        )
        if points:
            report.year_counts = {points[0].year: len(points)}
            report.lat_range = (min(p.lat for p in points), max(p.lat for p in points))
            report.lon_range = (min(p.lon for p in points), max(p.lon for p in points))
            for p in points:
                report.label_counts[p.label] = report.label_counts.get(p.label, 0) + 1

        return IngestionResult(points=points, report=report)


class DatasetCatalog:
    """
    Catalog of regional CSV exports split into multi-year files.

    File names carry their year span, e.g.
    NorthAmerica_features_labels_2019_2020.csv.
    """

    YEAR_SPAN = re.compile(r"(\d{4})_(\d{4})")
    REGIONS = ("north", "south")

    def __init__(self, base: str, files: dict[str, list[str]]):
        """
        Args:
            base: Directory path or base URL holding the files
            files: Region name ("north"/"south") to file names
        """
        self.base = base.rstrip("/")
        self.files = files

    @classmethod
    def americas(cls, base: Optional[str] = None) -> "DatasetCatalog":
        """Catalog of the GEE Americas exports, two years per file, 2015-2024."""
        spans = [(start, start + 1) for start in range(2015, 2025, 2)]
        return cls(
            base or settings.americas_data_dir,
            {
                "north": [f"NorthAmerica_features_labels_{a}_{b}.csv" for a, b in spans],
                "south": [f"SouthAmerica_features_labels_{a}_{b}.csv" for a, b in spans],
            },
        )

    def file_for_year(self, region: str, year: int) -> Optional[str]:
        """
        Resolve the file whose year span covers a year.

        Returns:
            Full path or URL of the file, or None if no file covers the year
        """
        for name in self.files.get(region, []):
            match = self.YEAR_SPAN.search(name)
            if match and int(match.group(1)) <= year <= int(match.group(2)):
                return f"{self.base}/{name}"
        return None

    async def load_month(
        self,
        loader: DatasetLoader,
        year: int,
        month: int,
        region: str = "both",
    ) -> list[BloomDataPoint]:
        """
        Load one month of observations for one or both regions.

        Args:
            loader: Dataset loader (provides caching and fallbacks)
            year: Year to load
            month: Month to load
            region: "north", "south" or "both"

        Returns:
            Observations for the month
        """
        regions = self.REGIONS if region == "both" else (region,)
        points: list[BloomDataPoint] = []

        for name in regions:
            source = self.file_for_year(name, year)
            if source is None:
                logger.warning(f"No data file for {name} America, year {year}")
                continue
            result = await loader.load(source, year, month)
            in_month = filter_by_time(result.points, year, month)
            logger.info(f"{name.title()} America: {len(in_month)} points for {year}-{month:02d}")
            points.extend(in_month)

        return points

    @staticmethod
    def region_for_viewport(bounds: Bounds) -> str:
        """Decide which regional files a viewport needs: north, south or both."""
        north = bounds.max_lat > 15 and bounds.min_lon < -50
        south = bounds.min_lat < 15 and bounds.min_lon < -30

        if north and south:
            return "both"
        if north:
            return "north"
        if south:
            return "south"
        return "both"
