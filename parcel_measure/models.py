"""
Data models for parcel measurements

Geometry values (Coordinate, Polygon, Triangle) are frozen dataclasses used
by the math. Everything handed back to callers is a frozen pydantic model so
it can be serialized straight to JSON.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import DegenerateTriangle, InvalidPolygon


# ============================================================
# Enumerations
# ============================================================

class TerrainClass(str, Enum):
    FLAT = "flat"
    GENTLE = "gentle"
    MODERATE = "moderate"
    STEEP = "steep"


class MeasurementMethod(str, Enum):
    MANUAL = "manual"
    HYBRID = "hybrid"
    AI_ASSISTED = "ai_assisted"


class ImageryQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExclusionKind(str, Enum):
    """Areas cut out of a lawn measurement"""
    DRIVEWAY = "driveway"
    BUILDING = "building"
    POOL = "pool"
    DECK = "deck"
    GARDEN = "garden"
    OTHER = "other"


class SectionKind(str, Enum):
    BACK_YARD = "back_yard"
    FRONT_YARD = "front_yard"
    SIDE_YARD = "side_yard"


class AreaUnit(str, Enum):
    SQFT = "sqft"
    SQM = "sqm"
    ACRES = "acres"
    HECTARES = "hectares"


class LinearUnit(str, Enum):
    FT = "ft"
    M = "m"
    YARDS = "yards"
    KM = "km"
    MILES = "miles"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    KML = "kml"


# ============================================================
# Geometry values
# ============================================================

@dataclass(frozen=True)
class Coordinate:
    """A surface point; elevation in meters above the reference datum"""
    latitude: float
    longitude: float
    elevation: Optional[float] = None

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be within [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be within [-180, 180], got {self.longitude}")

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> "Coordinate":
        """Build from ``[lat, lng]`` or ``[lat, lng, elevation]``"""
        if len(values) == 2:
            return cls(float(values[0]), float(values[1]))
        if len(values) == 3:
            elevation = values[2]
            return cls(
                float(values[0]),
                float(values[1]),
                float(elevation) if elevation is not None else None,
            )
        raise ValueError(f"Coordinate needs 2 or 3 values, got {len(values)}")

    @property
    def has_elevation(self) -> bool:
        return self.elevation is not None

    def with_elevation(self, elevation: float) -> "Coordinate":
        return replace(self, elevation=elevation)


@dataclass(frozen=True)
class Polygon:
    """
    Implicitly closed ring of at least 3 vertices

    Use ``Polygon.from_coordinates`` to build one from raw input; it merges
    near-duplicate consecutive vertices before validating.
    """
    vertices: Tuple[Coordinate, ...]

    def __post_init__(self):
        if len(self.vertices) < 3:
            raise InvalidPolygon(
                f"Polygon needs at least 3 unique vertices, got {len(self.vertices)}"
            )
        n = len(self.vertices)
        for i in range(n):
            a = self.vertices[i]
            b = self.vertices[(i + 1) % n]
            if (a.latitude, a.longitude) == (b.latitude, b.longitude):
                raise InvalidPolygon(f"Consecutive vertices {i} and {(i + 1) % n} coincide")

    @classmethod
    def from_coordinates(
        cls,
        coords: Sequence[Coordinate],
        tolerance_deg: float = 1e-6
    ) -> "Polygon":
        # Deferred: geometry_utils imports models
        from .analysis.geometry_utils import normalize_vertices

        return cls(tuple(normalize_vertices(list(coords), tolerance_deg)))

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self):
        return iter(self.vertices)

    @property
    def has_elevation(self) -> bool:
        return all(v.has_elevation for v in self.vertices)

    def reversed(self) -> "Polygon":
        return Polygon(tuple(reversed(self.vertices)))

    def rotated(self, k: int) -> "Polygon":
        k %= len(self.vertices)
        return Polygon(self.vertices[k:] + self.vertices[:k])

    def with_elevations(self, elevations: Sequence[float]) -> "Polygon":
        if len(elevations) != len(self.vertices):
            raise InvalidPolygon(
                f"Got {len(elevations)} elevations for {len(self.vertices)} vertices"
            )
        return Polygon(tuple(v.with_elevation(e) for v, e in zip(self.vertices, elevations)))


@dataclass(frozen=True)
class Triangle:
    """Three vertices produced by the triangulator"""
    a: Coordinate
    b: Coordinate
    c: Coordinate

    @classmethod
    def from_vertices(cls, vertices: Sequence[Coordinate]) -> "Triangle":
        if len(vertices) != 3:
            raise DegenerateTriangle(f"A triangle needs exactly 3 vertices, got {len(vertices)}")
        return cls(vertices[0], vertices[1], vertices[2])

    @property
    def vertices(self) -> Tuple[Coordinate, Coordinate, Coordinate]:
        return (self.a, self.b, self.c)


# ============================================================
# Measurement output
# ============================================================

class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TerrainProfile(_FrozenModel):
    slope_degrees: float
    aspect_degrees: float
    elevation_min: float
    elevation_max: float
    correction_factor: float
    terrain_class: TerrainClass


class DetailedArea(_FrozenModel):
    """Projected versus terrain-following surface area of one polygon"""
    surface_area_sqft: float
    projected_area_sqft: float
    slope_correction_pct: float
    average_slope_degrees: float
    max_slope_degrees: float
    terrain_class: TerrainClass


class AccuracyAdjustments(_FrozenModel):
    boundary_snap: bool = False
    terrain_correction: bool = False
    imagery_quality: ImageryQuality = ImageryQuality.MEDIUM


class AccuracyReport(_FrozenModel):
    confidence: float = Field(ge=0.0, le=1.0)
    error_margin_pct: float
    verification_passes: int
    deviation_pct: float
    method: MeasurementMethod
    adjustments: AccuracyAdjustments = Field(default_factory=AccuracyAdjustments)
    diverged: bool = False


class SectionBreakdown(_FrozenModel):
    name: str
    kind: SectionKind
    area_sqft: float
    area_2d_sqft: float
    perimeter_ft: float
    correction_factor: float = 1.0
    vertices: Tuple[Coordinate, ...]


class ExcludedArea(_FrozenModel):
    kind: ExclusionKind
    area_sqft: float
    perimeter_ft: float
    vertices: Tuple[Coordinate, ...]


class MeasurementResult(_FrozenModel):
    area_sqft: float
    area_sqm: float
    area_2d_sqft: float
    perimeter_ft: float
    perimeter_m: float
    terrain: Optional[TerrainProfile] = None
    terrain_applied: bool = False
    accuracy: AccuracyReport
    sections: Tuple[SectionBreakdown, ...]
    excluded: Dict[ExclusionKind, float]
    excluded_areas: Tuple[ExcludedArea, ...] = ()
    method: MeasurementMethod
    measured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    warnings: Tuple[str, ...] = ()


class UnitConversion(_FrozenModel):
    unit: str
    value: float
    display: str


class FormattedMeasurement(_FrozenModel):
    value: float
    display: str
    unit: str
    precision: int
    raw: float  # Base units: square feet or feet
    conversions: Optional[List[UnitConversion]] = None


class ExportRecord(_FrozenModel):
    """One flattened row/placemark of an export"""
    id: str
    type: str
    name: str
    area: float  # square feet
    perimeter: float  # feet
    vertices: Tuple[Coordinate, ...]
