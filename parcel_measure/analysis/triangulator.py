"""
Ear-clipping triangulation of simple polygons
"""

from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from ..config import MeasurementConfig, get_config
from ..exceptions import DegenerateTriangle
from ..models import Coordinate, Polygon, Triangle
from .geometry_utils import mean_latitude, mean_longitude, project_to_local, shoelace_signed_area

Point = Tuple[float, float]


def _cross(o: Point, a: Point, b: Point) -> float:
    """Twice the signed area of triangle (o, a, b); positive when counter-clockwise"""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def point_in_triangle(p: Point, a: Point, b: Point, c: Point) -> bool:
    """Barycentric sign test; points on an edge count as inside"""
    d1 = _cross(a, b, p)
    d2 = _cross(b, c, p)
    d3 = _cross(c, a, p)

    has_neg = d1 < 0 or d2 < 0 or d3 < 0
    has_pos = d1 > 0 or d2 > 0 or d3 > 0

    return not (has_neg and has_pos)


class Triangulator:
    """
    Decompose a simple polygon into n - 2 triangles

    Ear tests run on the local equirectangular plane of the polygon, which
    preserves orientation and containment for parcel-sized shapes.
    """

    def __init__(self, config: Optional[MeasurementConfig] = None):
        self.config = config or get_config()

    def triangulate(self, polygon: Union[Polygon, Sequence[Coordinate]]) -> List[Triangle]:
        vertices = list(polygon.vertices if isinstance(polygon, Polygon) else polygon)
        if len(vertices) < 3:
            raise DegenerateTriangle(f"Cannot triangulate {len(vertices)} vertices")

        points = project_to_local(
            vertices,
            mean_latitude(vertices),
            mean_longitude(vertices),
            self.config.earth_radius_m
        )

        indices = list(range(len(vertices)))
        if shoelace_signed_area(points) < 0:
            # Clockwise input: walk it counter-clockwise so ears have positive area
            indices.reverse()

        triangles: List[Triangle] = []
        fallbacks = 0

        while len(indices) > 3:
            ear = self._find_ear(indices, points)

            if ear is None:
                # Near-collinear or numerically awkward input; never loop forever
                fallbacks += 1
                ear = 1

            prev_i = indices[ear - 1]
            curr_i = indices[ear]
            next_i = indices[(ear + 1) % len(indices)]
            triangles.append(Triangle(vertices[prev_i], vertices[curr_i], vertices[next_i]))
            del indices[ear]

        triangles.append(Triangle.from_vertices([vertices[i] for i in indices]))

        if fallbacks:
            logger.warning(f"Triangulation clipped {fallbacks} non-ear triangle(s) as fallback")
        logger.debug(f"Triangulated {len(vertices)} vertices into {len(triangles)} triangles")

        return triangles

    def _find_ear(self, indices: List[int], points: List[Point]) -> Optional[int]:
        """Position in ``indices`` of the first ear, or None"""
        n = len(indices)
        for pos in range(n):
            prev_p = points[indices[pos - 1]]
            curr_p = points[indices[pos]]
            next_p = points[indices[(pos + 1) % n]]

            if _cross(prev_p, curr_p, next_p) <= 0:
                continue

            blocked = False
            for other in indices:
                if other in (indices[pos - 1], indices[pos], indices[(pos + 1) % n]):
                    continue
                if point_in_triangle(points[other], prev_p, curr_p, next_p):
                    blocked = True
                    break

            if not blocked:
                return pos

        return None
