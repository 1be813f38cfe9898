"""
Planar area and perimeter of parcels on the Earth's surface

Area: equirectangular projection anchored at the polygon's mean latitude,
then the shoelace formula. Perimeter: haversine distance around the closed
ring.
"""

from typing import Optional, Sequence, Tuple, Union

from loguru import logger

from ..config import MeasurementConfig, get_config
from ..exceptions import InvalidPolygon
from ..models import Coordinate, Polygon, Triangle
from .geometry_utils import (
    M_TO_FT,
    SQM_TO_SQFT,
    haversine_distance,
    mean_latitude,
    mean_longitude,
    polygon_area_local,
    project_to_local,
)

PolygonLike = Union[Polygon, Sequence[Coordinate]]


def _vertices(polygon: PolygonLike) -> Sequence[Coordinate]:
    vertices = polygon.vertices if isinstance(polygon, Polygon) else polygon
    if len(vertices) < 3:
        raise InvalidPolygon(f"Polygon needs at least 3 vertices, got {len(vertices)}")
    return vertices


class AreaCalculator:
    """
    Area and perimeter of a closed polygon

    Usage:
        calculator = AreaCalculator()
        sqft = calculator.area(polygon)
        feet = calculator.perimeter(polygon)
    """

    def __init__(self, config: Optional[MeasurementConfig] = None):
        self.config = config or get_config()

    @property
    def radius(self) -> float:
        return self.config.earth_radius_m

    def anchor(self, polygon: PolygonLike) -> Tuple[float, float]:
        """Projection anchor (mean latitude, mean longitude)"""
        vertices = _vertices(polygon)
        return mean_latitude(vertices), mean_longitude(vertices)

    def area_sqm(self, polygon: PolygonLike) -> float:
        vertices = _vertices(polygon)
        ref_lat, ref_lon = self.anchor(vertices)
        local = project_to_local(vertices, ref_lat, ref_lon, self.radius)
        area = polygon_area_local(local)
        logger.debug(f"Projected area of {len(vertices)}-vertex polygon: {area:.3f} m²")
        return area

    def area(self, polygon: PolygonLike) -> float:
        """Planar area in square feet"""
        return self.area_sqm(polygon) * SQM_TO_SQFT

    def triangle_area(self, triangle: Triangle, anchor: Tuple[float, float]) -> float:
        """
        Planar triangle area in square feet using a given projection anchor

        Pass the anchor of the polygon the triangle came from so triangle
        areas add up to the polygon area.
        """
        local = project_to_local(triangle.vertices, anchor[0], anchor[1], self.radius)
        return polygon_area_local(local) * SQM_TO_SQFT

    def perimeter_m(self, polygon: PolygonLike) -> float:
        vertices = _vertices(polygon)
        n = len(vertices)

        perimeter = 0.0
        for i in range(n):
            p1 = vertices[i]
            p2 = vertices[(i + 1) % n]
            perimeter += haversine_distance(
                p1.latitude, p1.longitude,
                p2.latitude, p2.longitude,
                self.radius
            )

        return perimeter

    def perimeter(self, polygon: PolygonLike) -> float:
        """Closed-loop boundary length in feet"""
        return self.perimeter_m(polygon) * M_TO_FT
