"""
Domain service: herbarium specimen lookup and IUCN conservation status.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import json
import logging

from pydantic import ValidationError

from bloomglobe.domain.models import Bounds, HerbariumRecord, IUCNData
from bloomglobe.utils.geo_projection import geodesic_distance_km
from bloomglobe.utils.spatial_helpers import build_kdtree, nearest_indices

logger = logging.getLogger(__name__)


ENDANGERED_STATUSES = frozenset({"CR", "EN", "VU"})


@dataclass
class SpecimenMatch:
    """Nearest specimen to a query location."""
    specimen: HerbariumRecord
    distance: float
    """Degree distance"""

    distance_km: float


class HerbariumStore:
    """In-memory herbarium specimens with a spatial index."""

    def __init__(self):
        self.records: list[HerbariumRecord] = []
        self.skipped = 0
        self.iucn: Optional[IUCNData] = None
        self._kdtree = None

    @property
    def is_loaded(self) -> bool:
        return bool(self.records)

    def load_from_text(self, text: str) -> int:
        """
        Load specimen records from JSON text.

        Accepts either a JSON array of records or an object with a
        "records" array. Records failing validation are skipped.

        Args:
            text: JSON document

        Returns:
            Number of records loaded

        Raises:
            ValueError: If the text is not valid JSON or has neither shape
        """
        payload = json.loads(text)
        if isinstance(payload, dict):
            payload = payload.get("records", [])
        if not isinstance(payload, list):
            raise ValueError("Herbarium data must be a list or contain a 'records' list")

        records = []
        skipped = 0
        for raw in payload:
            try:
                records.append(HerbariumRecord.model_validate(raw))
            except ValidationError:
                skipped += 1

        self.records = records
        self.skipped = skipped
        self._kdtree = build_kdtree([(r.latitude, r.longitude) for r in records]) if records else None

        logger.info(f"Loaded {len(records)} herbarium records ({skipped} skipped)")
        return len(records)

    def load_path(self, path: str) -> int:
        return self.load_from_text(Path(path).read_text(encoding="utf-8"))

    def find_nearest(
        self,
        lat: float,
        lon: float,
        max_distance: float = 10.0,
    ) -> Optional[SpecimenMatch]:
        """
        Find the specimen closest to a location.

        Args:
            lat: Target latitude
            lon: Target longitude
            max_distance: Search limit in degrees

        Returns:
            SpecimenMatch, or None if nothing lies within max_distance
        """
        if self._kdtree is None:
            return None

        distances, indices = nearest_indices(self._kdtree, (lat, lon), 1)
        distance = float(distances[0])
        if distance > max_distance:
            return None

        specimen = self.records[int(indices[0])]
        return SpecimenMatch(
            specimen=specimen,
            distance=distance,
            distance_km=geodesic_distance_km(lat, lon, specimen.latitude, specimen.longitude),
        )

    def find_in_bounds(self, bounds: Bounds, limit: int = 1000) -> list[HerbariumRecord]:
        results = []
        for record in self.records:
            if bounds.contains(record.latitude, record.longitude):
                results.append(record)
                if len(results) >= limit:
                    break
        return results

    def statistics(self) -> dict:
        if not self.records:
            return {"total_specimens": 0, "is_loaded": False}

        lats = [r.latitude for r in self.records]
        lons = [r.longitude for r in self.records]
        return {
            "total_specimens": len(self.records),
            "unique_species": len({r.species for r in self.records}),
            "unique_genera": len({r.genus for r in self.records}),
            "unique_families": len({r.family for r in self.records}),
            "lat_range": {"min": min(lats), "max": max(lats)},
            "lon_range": {"min": min(lons), "max": max(lons)},
            "is_loaded": True,
        }

    # IUCN status

    def load_iucn(self, text: str) -> IUCNData:
        self.iucn = IUCNData.model_validate_json(text)
        logger.info(f"Loaded IUCN data: {self.iucn.total_with_iucn} species, "
                    f"{len(self.iucn.endangered_species)} threatened")
        return self.iucn

    def iucn_status(self, species: str) -> Optional[list[str]]:
        """IUCN categories recorded for a species, or None if unknown."""
        if self.iucn is None:
            return None
        return self.iucn.endangered_species.get(species)

    def is_endangered(self, species: str) -> bool:
        statuses = self.iucn_status(species) or []
        return any(status in ENDANGERED_STATUSES for status in statuses)
