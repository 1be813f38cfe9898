"""Tests for terrain slope, aspect, correction factor and 3D surface area.

Elevations are in meters; lot offsets in feet (see conftest).
"""

import math

import numpy as np
import pytest

from conftest import FT_TO_M, ring
from parcel_measure.analysis import AreaCalculator, TerrainAnalyzer, Triangulator
from parcel_measure.exceptions import ElevationUnavailable
from parcel_measure.models import Polygon, TerrainClass


@pytest.fixture
def analyzer() -> TerrainAnalyzer:
    return TerrainAnalyzer()


@pytest.fixture
def flat_square():
    return ring([(0, 0), (0, 100), (100, 100), (100, 0)], [10.0, 10.0, 10.0, 10.0])


@pytest.fixture
def diamond():
    """Diamond whose south tip is lowest and north tip highest"""
    return ring([(-50, 0), (0, 50), (50, 0), (0, -50)], [0.0, 5.0, 10.0, 5.0])


class TestClassification:
    """TerrainAnalyzer.classify - flat <2° <= gentle <8° <= moderate <15° <= steep."""

    @pytest.mark.parametrize("slope,expected", [
        (0.0, TerrainClass.FLAT),
        (1.99, TerrainClass.FLAT),
        (2.0, TerrainClass.GENTLE),
        (7.99, TerrainClass.GENTLE),
        (8.0, TerrainClass.MODERATE),
        (14.99, TerrainClass.MODERATE),
        (15.0, TerrainClass.STEEP),
        (60.0, TerrainClass.STEEP),
    ])
    def test_thresholds(self, slope, expected) -> None:
        assert TerrainAnalyzer.classify(slope) == expected


class TestCorrectionFactor:
    """1 / cos(slope), clamped below 90°."""

    def test_zero_slope_is_exactly_one(self, analyzer) -> None:
        assert analyzer.correction_factor(0.0) == 1.0

    @pytest.mark.parametrize("slope", [0.5, 5.0, 30.0, 60.0, 88.9])
    def test_never_below_one(self, analyzer, slope) -> None:
        assert analyzer.correction_factor(slope) >= 1.0

    def test_known_value(self, analyzer) -> None:
        assert analyzer.correction_factor(60.0) == pytest.approx(2.0)

    def test_clamped_at_max_slope(self, analyzer) -> None:
        factor = analyzer.correction_factor(90.0)
        assert math.isfinite(factor)
        assert factor == analyzer.correction_factor(89.0)


class TestTerrainProfile:
    """TerrainAnalyzer.terrain_profile - slope, aspect, elevation range."""

    def test_flat_square(self, analyzer, flat_square) -> None:
        profile = analyzer.terrain_profile(flat_square)
        assert profile.slope_degrees == 0.0
        assert profile.aspect_degrees == 0.0
        assert profile.correction_factor == 1.0
        assert profile.terrain_class == TerrainClass.FLAT
        assert profile.elevation_min == profile.elevation_max == 10.0

    def test_tilted_square(self, analyzer, tilted_square) -> None:
        """Two flat edges and two 10% edges average to about 2.86°."""
        profile = analyzer.terrain_profile(tilted_square)
        edge_slope = math.degrees(math.atan(0.1))

        assert profile.slope_degrees == pytest.approx(edge_slope / 2, rel=1e-4)
        assert profile.terrain_class == TerrainClass.GENTLE
        assert profile.correction_factor == pytest.approx(1 / math.cos(math.radians(edge_slope / 2)), rel=1e-6)
        assert profile.elevation_max == pytest.approx(10 * FT_TO_M)

    def test_edge_slopes_include_closing_edge(self, analyzer, tilted_square) -> None:
        slopes = analyzer.edge_slopes(tilted_square)
        assert len(slopes) == 4
        assert slopes[-1] == pytest.approx(math.degrees(math.atan(0.1)), rel=1e-4)

    def test_aspect_faces_north(self, analyzer, diamond) -> None:
        assert analyzer.aspect_degrees(diamond) == pytest.approx(0.0, abs=1e-9)

    def test_aspect_faces_south(self, analyzer, diamond) -> None:
        flipped = [v.with_elevation(10.0 - v.elevation) for v in diamond]
        assert analyzer.aspect_degrees(flipped) == pytest.approx(180.0, abs=1e-9)

    def test_aspect_faces_east(self, analyzer) -> None:
        ramp = ring([(0, 0), (0, 100), (100, 100), (100, 50)], [0.0, 8.0, 6.0, 1.0])
        assert analyzer.aspect_degrees(ramp) == pytest.approx(90.0, abs=0.01)

    def test_accepts_polygon(self, analyzer, tilted_square) -> None:
        assert analyzer.terrain_profile(Polygon(tuple(tilted_square))) == analyzer.terrain_profile(tilted_square)

    def test_missing_elevation_raises(self, analyzer, tilted_square) -> None:
        partial = tilted_square[:3] + [tilted_square[3].with_elevation(None)]
        with pytest.raises(ElevationUnavailable):
            analyzer.terrain_profile(partial)

    def test_no_elevation_raises(self, analyzer, square_100ft) -> None:
        with pytest.raises(ElevationUnavailable):
            analyzer.terrain_profile(square_100ft)


class TestSurfaceArea:
    """TerrainAnalyzer.surface_area_3d - triangle cross products in Earth-centred space."""

    def test_flat_matches_planar_area(self, analyzer, flat_square) -> None:
        """All elevations equal: 3D area within 0.01% of 2D area."""
        triangles = Triangulator().triangulate(flat_square)
        area_2d = AreaCalculator().area(flat_square)
        assert analyzer.surface_area_3d(triangles) == pytest.approx(area_2d, rel=1e-4)

    def test_tilted_plane(self, analyzer, tilted_square) -> None:
        """A 10% incline stretches the surface by sqrt(1 + 0.1²)."""
        triangles = Triangulator().triangulate(tilted_square)
        area_2d = AreaCalculator().area(tilted_square)
        assert analyzer.surface_area_3d(triangles) == pytest.approx(area_2d * math.sqrt(1.01), rel=1e-4)

    def test_per_triangle_areas(self, analyzer, flat_square) -> None:
        triangles = Triangulator().triangulate(flat_square)
        areas = analyzer.triangle_areas_3d(triangles)
        assert areas.shape == (2,)
        assert np.all(areas > 0)

    def test_no_triangles(self, analyzer) -> None:
        assert analyzer.surface_area_3d([]) == 0.0

    def test_missing_elevation_raises(self, analyzer, square_100ft) -> None:
        triangles = Triangulator().triangulate(square_100ft)
        with pytest.raises(ElevationUnavailable):
            analyzer.surface_area_3d(triangles)

    def test_cartesian_radius_includes_elevation(self, analyzer) -> None:
        points = ring([(0, 0)], [100.0])
        xyz = analyzer.to_cartesian(points)
        assert np.linalg.norm(xyz[0]) == pytest.approx(6371000.0 + 100.0)


class TestDetailedArea:
    """TerrainAnalyzer.detailed_area - projected vs surface with slope statistics."""

    def test_flat(self, analyzer, flat_square) -> None:
        detail = analyzer.detailed_area(Polygon(tuple(flat_square)))
        assert detail.projected_area_sqft == pytest.approx(10_000, rel=0.01)
        assert detail.slope_correction_pct == pytest.approx(0.0, abs=0.01)
        assert detail.average_slope_degrees == pytest.approx(0.0, abs=0.01)
        assert detail.terrain_class == TerrainClass.FLAT

    def test_tilted(self, analyzer, tilted_square) -> None:
        detail = analyzer.detailed_area(Polygon(tuple(tilted_square)))
        incline = math.degrees(math.atan(0.1))

        assert detail.average_slope_degrees == pytest.approx(incline, abs=0.01)
        assert detail.max_slope_degrees == pytest.approx(incline, abs=0.01)
        assert detail.slope_correction_pct == pytest.approx((math.sqrt(1.01) - 1) * 100, abs=0.01)
        assert detail.terrain_class == TerrainClass.GENTLE

    def test_requires_elevation(self, analyzer, square_100ft) -> None:
        with pytest.raises(ElevationUnavailable):
            analyzer.detailed_area(Polygon(tuple(square_100ft)))
