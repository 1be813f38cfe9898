"""Tests for ear-clipping triangulation."""

import pytest

from conftest import ring
from parcel_measure.analysis import AreaCalculator, Triangulator
from parcel_measure.analysis.triangulator import point_in_triangle
from parcel_measure.exceptions import DegenerateTriangle
from parcel_measure.models import Polygon


@pytest.fixture
def triangulator() -> Triangulator:
    return Triangulator()


def triangle_area_sum(triangles, polygon) -> float:
    calculator = AreaCalculator()
    anchor = calculator.anchor(polygon)
    return sum(calculator.triangle_area(t, anchor) for t in triangles)


class TestPointInTriangle:
    """Barycentric sign test."""

    def test_inside(self) -> None:
        assert point_in_triangle((1.0, 1.0), (0.0, 0.0), (4.0, 0.0), (0.0, 4.0))

    def test_outside(self) -> None:
        assert not point_in_triangle((3.0, 3.0), (0.0, 0.0), (4.0, 0.0), (0.0, 4.0))

    def test_on_edge_counts_as_inside(self) -> None:
        assert point_in_triangle((2.0, 2.0), (0.0, 0.0), (4.0, 0.0), (0.0, 4.0))


class TestTriangulator:
    """Triangulator.triangulate - n - 2 triangles covering the polygon once."""

    def test_square(self, triangulator, square_100ft) -> None:
        triangles = triangulator.triangulate(square_100ft)
        assert len(triangles) == 2
        assert triangle_area_sum(triangles, square_100ft) == pytest.approx(
            AreaCalculator().area(square_100ft), rel=1e-6
        )

    def test_concave_l_shape(self, triangulator, l_shape) -> None:
        """Reflex corner is never clipped as an ear, so no triangle leaves the L."""
        triangles = triangulator.triangulate(l_shape)
        assert len(triangles) == 4
        assert triangle_area_sum(triangles, l_shape) == pytest.approx(
            AreaCalculator().area(l_shape), rel=1e-6
        )

    def test_clockwise_input(self, triangulator, l_shape) -> None:
        clockwise = list(reversed(l_shape))
        triangles = triangulator.triangulate(clockwise)
        assert len(triangles) == 4
        assert triangle_area_sum(triangles, clockwise) == pytest.approx(
            AreaCalculator().area(clockwise), rel=1e-6
        )

    def test_irregular_polygon(self, triangulator) -> None:
        """Seven-vertex lot with two reflex corners."""
        lot = ring([(0, 0), (0, 120), (40, 120), (30, 80), (90, 90), (80, 20), (30, 30)])
        polygon = Polygon.from_coordinates(lot)

        triangles = triangulator.triangulate(polygon)

        assert len(triangles) == 5
        assert triangle_area_sum(triangles, polygon) == pytest.approx(
            AreaCalculator().area(polygon), rel=1e-6
        )

    def test_triangles_use_polygon_vertices(self, triangulator, l_shape) -> None:
        vertices = set(l_shape)
        for triangle in triangulator.triangulate(l_shape):
            assert set(triangle.vertices) <= vertices

    def test_triangle_passes_through(self, triangulator, square_100ft) -> None:
        triangles = triangulator.triangulate(square_100ft[:3])
        assert len(triangles) == 1
        assert triangles[0].vertices == tuple(square_100ft[:3])

    def test_collinear_falls_back(self, triangulator) -> None:
        """No ear exists on a straight line; clipping still terminates with n - 2 triangles."""
        line = ring([(0, 0), (0, 25), (0, 50), (0, 75), (0, 100)])
        triangles = triangulator.triangulate(line)
        assert len(triangles) == 3

    def test_too_few_vertices(self, triangulator, square_100ft) -> None:
        with pytest.raises(DegenerateTriangle):
            triangulator.triangulate(square_100ft[:2])
