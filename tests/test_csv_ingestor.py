"""
Unit tests for CSV ingestion.

Tests cover:
- Strict parsing of the column contract
- Row rejection and report counts
- Delimiter detection and column aliases
- Best-effort parsing
- Synthetic grid generation
"""
import math

import pytest

from bloomglobe.domain.errors import DatasetError, MissingColumnsError
from bloomglobe.domain.models import Bounds, FallbackStage
from bloomglobe.services.domain.csv_ingestor import (
    REQUIRED_COLUMNS,
    detect_delimiter,
    generate_synthetic_grid,
    parse_best_effort,
    parse_bloom_csv,
)
from tests.conftest import HEADER


OVERSIZED = "x" * 200_000


def row(lat="40", lon="-75", ndvi="0.5", label="1", month="4", year="2020", agdd="100"):
    return f"{lat},{lon},15,80,{ndvi},{label},{month},{year},18,0.3,0.9,10,{agdd}"


# ============================================================
# Strict Parsing Tests
# ============================================================

class TestStrictParsing:
    """Tests for parsing files that follow the column contract."""

    def test_example_yields_three_points(self, example_csv):
        """The row with a missing field should be dropped."""
        result = parse_bloom_csv(example_csv, source="example.csv")

        assert len(result.points) == 3
        assert result.report.total_rows == 4
        assert result.report.valid_rows == 3
        assert result.report.column_mismatch_rows == 1
        assert result.report.invalid_rows == 1

    def test_fields_mapped(self, example_csv):
        """Columns should map onto point fields."""
        point = parse_bloom_csv(example_csv).points[0]

        assert point.lat == 40.0
        assert point.lon == -75.0
        assert point.ndvi == 0.65
        assert point.label == 2
        assert point.year == 2020
        assert point.month == 4
        assert point.agdd == 250.0

    def test_report_distributions(self, example_csv):
        """Report should carry year and label distributions and extents."""
        report = parse_bloom_csv(example_csv).report

        assert report.year_counts == {2020: 3}
        assert report.label_counts == {0: 1, 1: 1, 2: 1}
        assert report.lat_range == (10.0, 40.1)
        assert report.lon_range == (-75.1, 10.0)

    def test_missing_columns_raises(self):
        """A header without required columns should raise."""
        text = "lat,lon,NDVI\n40,-75,0.5"

        with pytest.raises(MissingColumnsError) as exc_info:
            parse_bloom_csv(text)

        assert "tmean" in exc_info.value.missing
        assert "Missing required columns" in str(exc_info.value)

    def test_empty_text_raises(self):
        with pytest.raises(MissingColumnsError) as exc_info:
            parse_bloom_csv("")

        assert exc_info.value.missing == list(REQUIRED_COLUMNS)

    def test_oversized_field_raises_dataset_error(self):
        text = "\n".join([HEADER, row(), f"\"{OVERSIZED}\""])

        with pytest.raises(DatasetError, match="Malformed CSV"):
            parse_bloom_csv(text, source="huge.csv")

    def test_blank_lines_ignored(self):
        text = "\n".join([HEADER, "", row(), "   ", row(lat="41")])

        result = parse_bloom_csv(text)

        assert len(result.points) == 2
        assert result.report.total_rows == 2


# ============================================================
# Row Rejection Tests
# ============================================================

class TestRowRejection:
    """Tests for rows that must be dropped or normalized."""

    def test_unparseable_coordinates_dropped(self):
        text = "\n".join([HEADER, row(lat="abc"), row(lon=""), row()])

        result = parse_bloom_csv(text)

        assert len(result.points) == 1
        assert result.report.unparseable_rows == 2

    def test_out_of_bounds_coordinates_dropped(self):
        text = "\n".join([HEADER, row(lat="91"), row(lon="-181"), row()])

        result = parse_bloom_csv(text)

        assert len(result.points) == 1
        assert result.report.out_of_bounds_rows == 2

    def test_bad_month_or_year_dropped(self):
        text = "\n".join([HEADER, row(month="13"), row(month="x"), row(year=""), row()])

        result = parse_bloom_csv(text)

        assert len(result.points) == 1
        assert result.report.unparseable_rows == 3

    def test_integral_float_month_accepted(self):
        result = parse_bloom_csv("\n".join([HEADER, row(month="4.0", year="2020.0")]))

        assert result.points[0].month == 4
        assert result.points[0].year == 2020

    def test_invalid_label_becomes_zero(self):
        text = "\n".join([HEADER, row(label="7"), row(label="")])

        result = parse_bloom_csv(text)

        assert [p.label for p in result.points] == [0, 0]

    def test_missing_agdd_becomes_zero(self):
        result = parse_bloom_csv("\n".join([HEADER, row(agdd="")]))

        assert result.points[0].agdd == 0.0

    def test_unparseable_measurement_kept_as_nan(self):
        result = parse_bloom_csv("\n".join([HEADER, row(ndvi="n/a")]))

        assert len(result.points) == 1
        assert math.isnan(result.points[0].ndvi)

    def test_all_points_in_bounds(self, example_csv):
        for point in parse_bloom_csv(example_csv).points:
            assert -90 <= point.lat <= 90
            assert -180 <= point.lon <= 180
            assert 1 <= point.month <= 12
            assert point.label in (0, 1, 2)


# ============================================================
# Header Variant Tests
# ============================================================

class TestHeaderVariants:
    """Tests for delimiters and alternative column names."""

    def test_detect_delimiter(self):
        assert detect_delimiter("lat;lon;NDVI") == ";"
        assert detect_delimiter("lat,lon,NDVI") == ","
        assert detect_delimiter("lat,lon;NDVI") == ","

    def test_semicolon_file(self):
        text = "\n".join([HEADER.replace(",", ";"), row().replace(",", ";")])

        result = parse_bloom_csv(text)

        assert len(result.points) == 1
        assert result.points[0].lat == 40.0

    def test_gddm_alias(self):
        """Americas exports name the AGDD column GDDm."""
        text = "\n".join([HEADER.replace("AGDD", "GDDm"), row(agdd="321")])

        result = parse_bloom_csv(text)

        assert result.points[0].agdd == 321.0

    def test_column_order_irrelevant(self):
        text = "NDVI,lon,lat,tmean,pr,label,month,year,srad,soil,vpd,dtr,AGDD\n" \
               "0.7,-75,40,15,80,2,4,2020,18,0.3,0.9,10,100"

        point = parse_bloom_csv(text).points[0]

        assert (point.lat, point.lon, point.ndvi) == (40.0, -75.0, 0.7)


# ============================================================
# Best-Effort Parsing Tests
# ============================================================

class TestBestEffortParsing:
    """Tests for the lenient parser."""

    def test_minimal_columns(self):
        text = "Latitude,Longitude,ndvi\n40,-75,0.6\n41,-76,abc"

        result = parse_best_effort(text, source="partial.csv")

        assert len(result.points) == 2
        assert result.points[0].ndvi == 0.6
        assert result.points[1].ndvi == 0.0
        assert result.report.fallback_stage == FallbackStage.BEST_EFFORT

    def test_no_coordinate_columns(self):
        result = parse_best_effort("foo,bar\n1,2")

        assert result.points == []

    def test_never_raises_on_garbage(self):
        for text in ("", "\n\n", "lat,lon\n", "lat,lon\nx,y\n999,999"):
            result = parse_best_effort(text)
            assert result.points == []

    def test_stops_at_oversized_field(self):
        """Rows before a field over the csv size limit are kept."""
        text = "\n".join(["lat,lon,x", "40,-75,a", f"41,-76,\"{OVERSIZED}\"", "42,-77,c"])

        result = parse_best_effort(text)

        assert [p.lat for p in result.points] == [40.0]


# ============================================================
# Synthetic Grid Tests
# ============================================================

class TestSyntheticGrid:
    """Tests for the last-resort synthetic grid."""

    BOUNDS = Bounds(min_lat=25, max_lat=45, min_lon=-85, max_lon=-70)

    def test_grid_size(self):
        points = generate_synthetic_grid(2020, 4, self.BOUNDS, step=2.5)

        # 9 latitudes x 7 longitudes
        assert len(points) == 63

    def test_deterministic(self):
        first = generate_synthetic_grid(2020, 4, self.BOUNDS)
        second = generate_synthetic_grid(2020, 4, self.BOUNDS)

        assert first == second

    def test_points_valid(self):
        for point in generate_synthetic_grid(2021, 7, self.BOUNDS):
            assert self.BOUNDS.contains(point.lat, point.lon)
            assert point.year == 2021
            assert point.month == 7
            assert 0.0 <= point.ndvi <= 0.9

    def test_grid_stays_inside_uneven_bounds(self):
        bounds = Bounds(min_lat=0.6, max_lat=89.9, min_lon=-180, max_lon=179.0)

        points = generate_synthetic_grid(2020, 4, bounds, step=2.5)

        assert points
        assert all(bounds.contains(p.lat, p.lon) for p in points)

    def test_non_positive_step_raises(self):
        with pytest.raises(ValueError):
            generate_synthetic_grid(2020, 4, self.BOUNDS, step=0)
