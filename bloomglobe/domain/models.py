"""
Domain models for bloom observations and derived climate data.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, files, HTTP, etc.).
"""
import math
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class BloomLabel(int, Enum):
    """Discrete bloom stage attached to an observation."""
    NONE = 0
    EMERGING = 1
    PEAK = 2


class BloomDataPoint(BaseModel):
    """One bloom/climate observation. Immutable once parsed."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90, description="Latitude in degrees")
    lon: float = Field(ge=-180, le=180, description="Longitude in degrees")
    tmean: float = Field(description="Mean temperature (°C)")
    pr: float = Field(description="Precipitation (mm)")
    ndvi: float = Field(description="Normalized Difference Vegetation Index")
    label: int = Field(default=0, ge=0, le=2, description="Bloom stage (0=none, 1=emerging, 2=peak)")
    month: int = Field(ge=1, le=12)
    year: int
    srad: float = Field(description="Solar radiation")
    soil: float = Field(description="Soil moisture")
    vpd: float = Field(description="Vapor-pressure deficit (kPa)")
    dtr: float = Field(description="Diurnal temperature range (°C)")
    agdd: float = Field(default=0.0, description="Accumulated growing degree days")

    @property
    def priority(self) -> float:
        """Rendering priority: bloom stage dominates, NDVI breaks ties."""
        ndvi = 0.0 if math.isnan(self.ndvi) else self.ndvi
        return self.label * 1000 + ndvi * 100


class HistoricalClimateData(BaseModel):
    """Narrow projection of a bloom point used by the legacy overlay grid."""
    lat: float
    lon: float
    temperature: float
    precipitation: float
    ndvi: float
    year: int
    month: int


class TimeSeriesPoint(BaseModel):
    """Monthly aggregate plotted on the historical chart."""
    date: str = Field(description="First day of the month, YYYY-MM-01")
    year: int
    month: int
    ndvi: float
    temperature: float
    precipitation: float
    vpd: float
    sample_count: int


class FallbackStage(str, Enum):
    """Which step of the ingestion fallback chain produced a result."""
    NONE = "none"
    REFETCH = "refetch"
    BEST_EFFORT = "best_effort"
    SYNTHETIC = "synthetic"


class IngestionReport(BaseModel):
    """Summary statistics emitted by the CSV ingestor."""
    source: str
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    column_mismatch_rows: int = 0
    unparseable_rows: int = 0
    out_of_bounds_rows: int = 0
    year_counts: dict[int, int] = Field(default_factory=dict)
    label_counts: dict[int, int] = Field(default_factory=dict)
    lat_range: Optional[tuple[float, float]] = None
    lon_range: Optional[tuple[float, float]] = None
    fallback_stage: FallbackStage = FallbackStage.NONE
    error: Optional[str] = None


class IngestionResult(BaseModel):
    """Parsed points together with their ingestion report."""
    points: list[BloomDataPoint]
    report: IngestionReport


class Bounds(BaseModel):
    """Geographic bounding box in degrees."""
    min_lat: float = Field(ge=-90, le=90)
    max_lat: float = Field(ge=-90, le=90)
    min_lon: float = Field(ge=-180, le=180)
    max_lon: float = Field(ge=-180, le=180)

    def contains(self, lat: float, lon: float) -> bool:
        return (
            self.min_lat <= lat <= self.max_lat and
            self.min_lon <= lon <= self.max_lon
        )


class ClimateReading(BaseModel):
    """Point climate reading from the weather API."""
    latitude: float
    longitude: float
    temperature: float = Field(description="Air temperature at 2m (°C)")
    precipitation: float = Field(description="Precipitation (mm/day)")
    humidity: float = Field(description="Relative humidity at 2m (%)")
    solar_radiation: float = Field(description="Surface shortwave irradiance (MJ/m²/day)")
    date: str = Field(description="Observation date, YYYY-MM-DD")


class VegetationEstimate(BaseModel):
    """NDVI estimated from climate when no satellite product is available."""
    latitude: float
    longitude: float
    ndvi: float
    evi: float


class HerbariumRecord(BaseModel):
    """Plant specimen record from the herbarium dataset."""
    gbif_id: str = Field(alias="gbifID")
    scientific_name: str = Field(default="", alias="scientificName")
    species: str = ""
    genus: str = ""
    family: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    country: str = ""
    state_province: str = Field(default="", alias="stateProvince")
    locality: str = ""
    event_date: str = Field(default="", alias="eventDate")
    year: Optional[str] = None
    month: Optional[str] = None
    blooming: Optional[list[int]] = None
    data_confidence: Optional[float] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


class IUCNData(BaseModel):
    """IUCN conservation status analysis for the herbarium species."""
    total_with_iucn: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    endangered_species: dict[str, list[str]] = Field(default_factory=dict)
    descriptions: dict[str, str] = Field(default_factory=dict)


class TLERecord(BaseModel):
    """Two-line element set for one satellite."""
    norad_id: int
    name: str = ""
    line1: str
    line2: str


class SatellitePosition(BaseModel):
    """Sub-satellite point at a given instant."""
    norad_id: int
    name: str
    latitude: float
    longitude: float
    altitude_km: float
    timestamp: str


class LocationData(BaseModel):
    """Detail shown for a clicked location, from whichever source served it."""
    latitude: float
    longitude: float
    source: str = Field(description="csv, weather_api or estimate")
    region: str
    confidence: float = Field(ge=0, le=1)
    bloom_available: bool = False
    distance: Optional[float] = Field(default=None, description="Degrees to the CSV point used")
    point: Optional[BloomDataPoint] = None
    climate: Optional[ClimateReading] = None
    vegetation: Optional[VegetationEstimate] = None
    risk_level: Optional[str] = None
    bloom_status: Optional[str] = None
    within_range: Optional[bool] = None
    """Whether the nearest CSV point lies within the distance limit for its region"""

    quality_score: Optional[float] = Field(default=None, ge=0, le=1)
    quality_factors: list[str] = Field(default_factory=list)
    recommendation: Optional[str] = None
    error: Optional[str] = None
