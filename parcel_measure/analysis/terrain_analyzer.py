"""
Terrain adjustment for sloped parcels

Given per-vertex elevation:
- slope: mean edge gradient angle around the ring
- aspect: bearing from the lowest to the highest vertex
- correction factor: 1 / cos(slope), scales a flat area onto the incline
- exact 3D surface area: sum of triangle areas in Earth-centred Cartesian
  coordinates (radius = R + elevation)
"""

import math
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from ..config import MeasurementConfig, get_config
from ..exceptions import ElevationUnavailable
from ..models import Coordinate, DetailedArea, Polygon, TerrainClass, TerrainProfile, Triangle
from .area_calculator import AreaCalculator
from .geometry_utils import SQM_TO_SQFT, coordinate_distance, mean_latitude
from .triangulator import Triangulator


# Upper bounds (degrees, exclusive) for each class; anything above is steep
TERRAIN_THRESHOLDS = (
    (2.0, TerrainClass.FLAT),
    (8.0, TerrainClass.GENTLE),
    (15.0, TerrainClass.MODERATE),
)


def _require_elevation(vertices: Sequence[Coordinate]) -> List[float]:
    missing = [i for i, v in enumerate(vertices) if v.elevation is None]
    if missing:
        raise ElevationUnavailable(
            f"Elevation missing for {len(missing)} of {len(vertices)} vertices (first: {missing[0]})"
        )
    return [v.elevation for v in vertices]


class TerrainAnalyzer:
    """Slope, aspect and surface-area correction from vertex elevations"""

    def __init__(
        self,
        config: Optional[MeasurementConfig] = None,
        triangulator: Optional[Triangulator] = None,
        area_calculator: Optional[AreaCalculator] = None
    ):
        self.config = config or get_config()
        self.triangulator = triangulator or Triangulator(self.config)
        self.area_calculator = area_calculator or AreaCalculator(self.config)

    @property
    def radius(self) -> float:
        return self.config.earth_radius_m

    # ============================================================
    # Profile
    # ============================================================

    def edge_slopes(self, vertices: Sequence[Coordinate]) -> List[float]:
        """Slope in degrees of every edge of the closed ring"""
        elevations = _require_elevation(vertices)
        n = len(vertices)

        slopes = []
        for i in range(n):
            j = (i + 1) % n
            distance = coordinate_distance(vertices[i], vertices[j], self.radius)
            if distance <= 0:
                continue
            rise = abs(elevations[j] - elevations[i])
            slopes.append(math.degrees(math.atan(rise / distance)))

        return slopes

    def slope_degrees(self, vertices: Sequence[Coordinate]) -> float:
        slopes = self.edge_slopes(vertices)
        return sum(slopes) / len(slopes) if slopes else 0.0

    def aspect_degrees(self, vertices: Sequence[Coordinate]) -> float:
        """
        Bearing from the lowest to the highest vertex, [0, 360)

        Zero when the lowest and highest vertex are the same one (flat ring).
        """
        elevations = _require_elevation(vertices)
        low = min(range(len(elevations)), key=lambda i: elevations[i])
        high = max(range(len(elevations)), key=lambda i: elevations[i])

        if elevations[low] == elevations[high]:
            return 0.0

        ref_lat = math.radians(mean_latitude(vertices))
        dx = self.radius * math.cos(ref_lat) * math.radians(vertices[high].longitude - vertices[low].longitude)
        dy = self.radius * math.radians(vertices[high].latitude - vertices[low].latitude)

        return (math.degrees(math.atan2(dx, dy)) + 360.0) % 360.0

    def correction_factor(self, slope_degrees: float) -> float:
        """1 / cos(slope), slope clamped to [0, max_slope_degrees]"""
        slope = min(max(slope_degrees, 0.0), self.config.max_slope_degrees)
        return 1.0 / math.cos(math.radians(slope))

    @staticmethod
    def classify(slope_degrees: float) -> TerrainClass:
        for upper, terrain_class in TERRAIN_THRESHOLDS:
            if slope_degrees < upper:
                return terrain_class
        return TerrainClass.STEEP

    def terrain_profile(self, vertices) -> TerrainProfile:
        """
        Terrain profile of a ring of vertices that all carry elevation

        Raises:
            ElevationUnavailable: if any vertex has no elevation
        """
        vertices = list(vertices.vertices if isinstance(vertices, Polygon) else vertices)
        elevations = _require_elevation(vertices)

        slope = self.slope_degrees(vertices)
        profile = TerrainProfile(
            slope_degrees=slope,
            aspect_degrees=self.aspect_degrees(vertices),
            elevation_min=min(elevations),
            elevation_max=max(elevations),
            correction_factor=self.correction_factor(slope),
            terrain_class=self.classify(slope),
        )
        logger.debug(
            f"Terrain: slope {profile.slope_degrees:.2f}°, aspect {profile.aspect_degrees:.1f}°, "
            f"factor {profile.correction_factor:.4f} ({profile.terrain_class.value})"
        )
        return profile

    # ============================================================
    # 3D surface
    # ============================================================

    def to_cartesian(self, coords: Sequence[Coordinate]) -> np.ndarray:
        """Earth-centred x/y/z in meters, radius R + elevation"""
        elevations = np.array(_require_elevation(coords), dtype=float)
        lat = np.radians([c.latitude for c in coords])
        lng = np.radians([c.longitude for c in coords])
        r = self.radius + elevations

        return np.column_stack((
            r * np.cos(lat) * np.cos(lng),
            r * np.cos(lat) * np.sin(lng),
            r * np.sin(lat),
        ))

    def _triangle_normals(self, triangles: Sequence[Triangle]):
        a = self.to_cartesian([t.a for t in triangles])
        b = self.to_cartesian([t.b for t in triangles])
        c = self.to_cartesian([t.c for t in triangles])
        return np.cross(b - a, c - a), (a + b + c) / 3.0

    def triangle_areas_3d(self, triangles: Sequence[Triangle]) -> np.ndarray:
        """Surface area of each triangle in square meters"""
        if not triangles:
            return np.zeros(0)
        normals, _ = self._triangle_normals(triangles)
        return 0.5 * np.linalg.norm(normals, axis=1)

    def surface_area_3d(self, triangles: Sequence[Triangle]) -> float:
        """Exact terrain-following area in square feet"""
        return float(self.triangle_areas_3d(triangles).sum()) * SQM_TO_SQFT

    def triangle_slopes(self, triangles: Sequence[Triangle]) -> np.ndarray:
        """Angle in degrees between each triangle's normal and the local vertical"""
        if not triangles:
            return np.zeros(0)
        normals, centres = self._triangle_normals(triangles)
        normal_len = np.linalg.norm(normals, axis=1)
        up = centres / np.linalg.norm(centres, axis=1)[:, None]

        with np.errstate(invalid="ignore", divide="ignore"):
            cos_tilt = np.abs(np.einsum("ij,ij->i", normals, up)) / normal_len
        cos_tilt = np.where(normal_len > 0, cos_tilt, 1.0)

        return np.degrees(np.arccos(np.clip(cos_tilt, 0.0, 1.0)))

    def detailed_area(self, polygon: Polygon) -> DetailedArea:
        """Projected and surface area of one polygon with per-triangle slope statistics"""
        _require_elevation(polygon.vertices)

        triangles = self.triangulator.triangulate(polygon)
        anchor = self.area_calculator.anchor(polygon)

        projected = sum(self.area_calculator.triangle_area(t, anchor) for t in triangles)
        surface = self.surface_area_3d(triangles)
        slopes = self.triangle_slopes(triangles)

        average_slope = float(slopes.mean()) if len(slopes) else 0.0
        correction_pct = (surface - projected) / projected * 100 if projected > 0 else 0.0

        return DetailedArea(
            surface_area_sqft=surface,
            projected_area_sqft=projected,
            slope_correction_pct=correction_pct,
            average_slope_degrees=average_slope,
            max_slope_degrees=float(slopes.max()) if len(slopes) else 0.0,
            terrain_class=self.classify(average_slope),
        )
