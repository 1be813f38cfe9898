"""
Geometry utility functions

Projection, distance and ring helpers shared by the area calculator,
triangulator and terrain engine. Coordinates are ``Coordinate`` values
(latitude/longitude in degrees).
"""

import math
from typing import List, Sequence, Tuple

from shapely.geometry import LinearRing

from ..models import Coordinate


EARTH_RADIUS_M = 6371000.0

SQM_TO_SQFT = 10.7639
M_TO_FT = 3.28084


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius: float = EARTH_RADIUS_M
) -> float:
    """Calculate great-circle distance between two points in meters"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi/2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return radius * c


def coordinate_distance(p1: Coordinate, p2: Coordinate, radius: float = EARTH_RADIUS_M) -> float:
    return haversine_distance(p1.latitude, p1.longitude, p2.latitude, p2.longitude, radius)


def mean_latitude(coords: Sequence[Coordinate]) -> float:
    return sum(c.latitude for c in coords) / len(coords)


def mean_longitude(coords: Sequence[Coordinate]) -> float:
    return sum(c.longitude for c in coords) / len(coords)


def project_to_local(
    coords: Sequence[Coordinate],
    ref_lat: float,
    ref_lon: float = 0.0,
    radius: float = EARTH_RADIUS_M
) -> List[Tuple[float, float]]:
    """
    Equirectangular projection anchored at ``ref_lat``

    x = R * cos(ref_lat) * (lng - ref_lon), y = R * (lat - ref_lat), angles in
    radians. The offsets only translate the plane, so areas are unaffected;
    they keep the numbers small for parcel-sized polygons.
    """
    cos_ref = math.cos(math.radians(ref_lat))
    ref_lat_rad = math.radians(ref_lat)
    ref_lon_rad = math.radians(ref_lon)

    local_coords = []
    for c in coords:
        x = radius * cos_ref * (math.radians(c.longitude) - ref_lon_rad)
        y = radius * (math.radians(c.latitude) - ref_lat_rad)
        local_coords.append((x, y))

    return local_coords


def shoelace_signed_area(points: Sequence[Tuple[float, float]]) -> float:
    """Signed ring area; positive for counter-clockwise rings"""
    n = len(points)
    if n < 3:
        return 0.0

    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]

    return area / 2.0


def polygon_area_local(points: Sequence[Tuple[float, float]]) -> float:
    """Polygon area in square meters (local coords)"""
    return abs(shoelace_signed_area(points))


def normalize_vertices(
    coords: Sequence[Coordinate],
    tolerance_deg: float = 1e-6
) -> List[Coordinate]:
    """
    Drop consecutive near-duplicate vertices

    Two vertices are duplicates when both their latitude and longitude
    differ by no more than ``tolerance_deg``. The first vertex of a run is
    kept. A closing vertex that repeats the first is dropped as well.
    """
    if not coords:
        return []

    def _same(a: Coordinate, b: Coordinate) -> bool:
        return (abs(a.latitude - b.latitude) <= tolerance_deg
                and abs(a.longitude - b.longitude) <= tolerance_deg)

    cleaned = [coords[0]]
    for coord in coords[1:]:
        if not _same(cleaned[-1], coord):
            cleaned.append(coord)

    while len(cleaned) > 1 and _same(cleaned[-1], cleaned[0]):
        cleaned.pop()

    return cleaned


def is_simple(coords: Sequence[Coordinate]) -> bool:
    """True when the closed ring does not cross or touch itself"""
    if len(coords) < 3:
        return False
    ring = LinearRing([(c.longitude, c.latitude) for c in coords])
    return ring.is_simple


def centroid(coords: Sequence[Coordinate]) -> Coordinate:
    """Vertex average of a polygon"""
    if not coords:
        raise ValueError("Cannot take the centroid of an empty polygon")
    return Coordinate(mean_latitude(coords), mean_longitude(coords))


def point_in_polygon(point: Coordinate, polygon: Sequence[Coordinate]) -> bool:
    """Simple point-in-polygon check (ray casting)"""
    n = len(polygon)
    inside = False

    j = n - 1
    for i in range(n):
        xi, yi = polygon[i].longitude, polygon[i].latitude
        xj, yj = polygon[j].longitude, polygon[j].latitude

        if ((yi > point.latitude) != (yj > point.latitude)) and \
                (point.longitude < (xj - xi) * (point.latitude - yi) / (yj - yi) + xi):
            inside = not inside
        j = i

    return inside
