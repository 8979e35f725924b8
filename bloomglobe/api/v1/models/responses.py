"""
API response models using Pydantic.

Measurements may be NaN in the source data; JSON has no NaN, so those
values are returned as null.
"""
import math
from typing import List, Optional
from pydantic import BaseModel, Field

from bloomglobe.domain.models import (
    BloomDataPoint,
    ClimateReading,
    HerbariumRecord,
    IngestionReport,
    SatellitePosition,
    TimeSeriesPoint,
    VegetationEstimate,
)


RATE_LIMIT_RESPONSE = {
    429: {"description": "Rate limit exceeded"},
}


def finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value


class BloomPointResponse(BaseModel):
    """Single bloom observation."""
    lat: float = Field(description="Latitude in degrees", examples=[40.0])
    lon: float = Field(description="Longitude in degrees", examples=[-75.0])
    ndvi: Optional[float] = Field(default=None, examples=[0.62])
    tmean: Optional[float] = None
    pr: Optional[float] = None
    vpd: Optional[float] = None
    srad: Optional[float] = None
    soil: Optional[float] = None
    dtr: Optional[float] = None
    agdd: Optional[float] = None
    label: int = Field(description="Bloom stage (0=none, 1=emerging, 2=peak)")
    year: int
    month: int

    @classmethod
    def from_point(cls, point: BloomDataPoint) -> "BloomPointResponse":
        return cls(
            lat=point.lat,
            lon=point.lon,
            ndvi=finite_or_none(point.ndvi),
            tmean=finite_or_none(point.tmean),
            pr=finite_or_none(point.pr),
            vpd=finite_or_none(point.vpd),
            srad=finite_or_none(point.srad),
            soil=finite_or_none(point.soil),
            dtr=finite_or_none(point.dtr),
            agdd=finite_or_none(point.agdd),
            label=point.label,
            year=point.year,
            month=point.month,
        )


class ViewportPointsResponse(BaseModel):
    """Response model for the viewport points endpoint."""
    year: int
    month: int
    tier: str = Field(description="LOD tier chosen for the camera height")
    marker_size: int
    total_candidates: int = Field(description="Points in the viewport before sampling")
    sampled: bool
    count: int
    points: List[BloomPointResponse]


class TimeSeriesEntry(BaseModel):
    """One month of the aggregated series."""
    date: str = Field(examples=["2020-04-01"])
    year: int
    month: int
    ndvi: Optional[float] = None
    temperature: Optional[float] = None
    precipitation: Optional[float] = None
    vpd: Optional[float] = None
    sample_count: int

    @classmethod
    def from_aggregate(cls, entry: TimeSeriesPoint) -> "TimeSeriesEntry":
        return cls(
            date=entry.date,
            year=entry.year,
            month=entry.month,
            ndvi=finite_or_none(entry.ndvi),
            temperature=finite_or_none(entry.temperature),
            precipitation=finite_or_none(entry.precipitation),
            vpd=finite_or_none(entry.vpd),
            sample_count=entry.sample_count,
        )


class TimeSeriesResponse(BaseModel):
    """Response model for the time-series endpoint."""
    latitude: float
    longitude: float
    radius_used: float = Field(description="Search window half-width (degrees) that matched")
    used_nearest_fallback: bool
    time_widened: bool = Field(description="True if the requested month had no data")
    point_count: int
    series: List[TimeSeriesEntry]

    class Config:
        json_schema_extra = {
            "example": {
                "latitude": 40.0,
                "longitude": -75.0,
                "radius_used": 0.5,
                "used_nearest_fallback": False,
                "time_widened": False,
                "point_count": 2,
                "series": [
                    {"date": "2020-04-01", "year": 2020, "month": 4, "ndvi": 0.6,
                     "temperature": 12.5, "precipitation": 85.0, "vpd": 0.8,
                     "sample_count": 2},
                ]
            }
        }


class LocationResponse(BaseModel):
    """Response model for the location detail endpoint."""
    latitude: float
    longitude: float
    source: str = Field(description="csv, weather_api or estimate")
    region: str
    confidence: float
    bloom_available: bool
    distance: Optional[float] = None
    point: Optional[BloomPointResponse] = None
    climate: Optional[ClimateReading] = None
    vegetation: Optional[VegetationEstimate] = None
    risk_level: Optional[str] = None
    bloom_status: Optional[str] = None
    within_range: Optional[bool] = None
    quality_score: Optional[float] = Field(default=None, description="Data-quality score of the source used")
    quality_factors: List[str] = []
    recommendation: Optional[str] = None
    error: Optional[str] = None


class RegionShare(BaseModel):
    name: str
    count: int
    percentage: float


class CoverageResponse(BaseModel):
    """Response model for the coverage endpoint."""
    total_points: int
    lat_range: dict[str, float]
    lon_range: dict[str, float]
    time_range: dict[str, int]
    coverage: str
    regions: List[RegionShare]
    report: Optional[IngestionReport] = None


class ReloadResponse(BaseModel):
    status: str
    report: IngestionReport


class RegionClassificationResponse(BaseModel):
    """Response model for the region classification endpoint."""
    latitude: float
    longitude: float
    region: str
    classification: str = Field(description="inside or outside")
    primary_source: str
    fallback_source: Optional[str] = None
    bloom_available: bool
    reason: str


class SatellitePositionsResponse(BaseModel):
    timestamp: str
    count: int
    satellites: List[SatellitePosition]


class SpecimenResponse(BaseModel):
    """Response model for the nearest specimen endpoint."""
    specimen: HerbariumRecord
    distance_degrees: float
    distance_km: float
    iucn_status: Optional[List[str]] = None
    endangered: bool = False
