"""
Unit tests for time and space filtering.

Tests cover:
- Time and viewport filters
- Nearest-point queries
- Expanding-radius search and its fallbacks
"""
import pytest

from bloomglobe.domain.models import Bounds
from bloomglobe.services.domain.location_filter import (
    expanding_radius_search,
    filter_by_bounds,
    filter_by_time,
    find_nearest,
    nearest_points,
    points_within_radius,
)
from tests.conftest import make_point


# ============================================================
# Basic Filter Tests
# ============================================================

class TestBasicFilters:
    """Tests for time, bounds and radius filters."""

    def test_filter_by_time(self, grid_points):
        april = filter_by_time(grid_points, 2020, 4)

        assert len(april) == 100
        assert all(p.month == 4 and p.year == 2020 for p in april)
        assert filter_by_time(grid_points, 2019, 4) == []

    def test_filter_by_bounds_inclusive(self, grid_points):
        bounds = Bounds(min_lat=35, max_lat=36, min_lon=-85, max_lon=-84)

        result = filter_by_bounds(filter_by_time(grid_points, 2020, 4), bounds)

        assert len(result) == 4

    def test_filter_by_bounds_limit(self, grid_points):
        bounds = Bounds(min_lat=-90, max_lat=90, min_lon=-180, max_lon=180)

        assert len(filter_by_bounds(grid_points, bounds, limit=7)) == 7

    def test_radius_filter_example(self, example_points):
        """Filtering around (40, -75) at 0.5° should keep the first two points."""
        result = points_within_radius(example_points, 40.0, -75.0, 0.5)

        assert result == example_points[:2]

    def test_radius_monotonic(self, grid_points):
        """The result at a radius is a subset of the result at any larger radius."""
        radii = (0.5, 1.0, 2.0, 5.0, 10.0)
        results = [
            {id(p) for p in points_within_radius(grid_points, 40.3, -80.2, radius)}
            for radius in radii
        ]

        for smaller, larger in zip(results, results[1:]):
            assert smaller <= larger
        assert len(results[0]) < len(results[-1])


# ============================================================
# Nearest-Point Tests
# ============================================================

class TestNearestPoints:
    """Tests for KD-Tree nearest-neighbour queries."""

    def test_nearest_count(self, grid_points):
        """Nearest-K returns exactly min(k, n) points."""
        assert len(nearest_points(grid_points, 0.0, 0.0, 50)) == 50
        assert len(nearest_points(grid_points[:10], 0.0, 0.0, 50)) == 10
        assert nearest_points([], 0.0, 0.0, 50) == []

    def test_nearest_ordered(self, example_points):
        result = nearest_points(example_points, 40.1, -75.1, 2)

        assert result[0] == example_points[1]
        assert result[1] == example_points[0]

    def test_find_nearest(self, example_points):
        point, distance = find_nearest(example_points, 11.0, 10.0)

        assert point == example_points[2]
        assert distance == pytest.approx(1.0)

    def test_find_nearest_empty(self):
        assert find_nearest([], 0.0, 0.0) is None


# ============================================================
# Expanding Radius Search Tests
# ============================================================

class TestExpandingRadiusSearch:
    """Tests for the widening search used by the time series."""

    def test_smallest_matching_radius(self, example_points):
        match = expanding_radius_search(example_points, 40.0, -75.0)

        assert match.radius_used == 0.5
        assert len(match.points) == 2
        assert not match.used_nearest_fallback

    def test_widens_until_match(self, example_points):
        match = expanding_radius_search(example_points, 43.0, -75.0)

        assert match.radius_used == 5.0
        assert len(match.points) == 2

    def test_nearest_fallback(self, example_points):
        """Beyond every radius the nearest points are used."""
        match = expanding_radius_search(example_points, -60.0, 100.0, nearest_k=2)

        assert match.used_nearest_fallback
        assert len(match.points) == 2
        assert match.radius_used > 10.0

    def test_month_restriction(self, grid_points):
        extra = make_point(40.0, -80.0, month=6, ndvi=0.9)

        match = expanding_radius_search(grid_points + [extra], 40.0, -80.0, year=2020, month=6)

        assert match.points == [extra]
        assert not match.time_widened

    def test_empty_month_widens_time(self, grid_points):
        """A month without data searches every month and says so."""
        match = expanding_radius_search(grid_points, 40.0, -80.0, year=2020, month=9)

        assert match.time_widened
        assert {p.month for p in match.points} == {4, 5}

    def test_empty_input(self):
        match = expanding_radius_search([], 40.0, -80.0)

        assert match.points == []
        assert match.used_nearest_fallback
