"""
Parcel measurement engine

Area, perimeter and terrain-adjusted surface measurements for land parcels
from latitude/longitude(/elevation) polygon vertices.
"""

from .config import MeasurementConfig, PrecisionSettings, get_config
from .exceptions import (
    DegenerateTriangle,
    ElevationUnavailable,
    InvalidPolygon,
    MeasurementError,
    VerificationDivergence,
)
from .export import export_measurements, to_records
from .models import (
    AccuracyAdjustments,
    AccuracyReport,
    Coordinate,
    ExclusionKind,
    MeasurementMethod,
    MeasurementResult,
    Polygon,
    TerrainProfile,
    Triangle,
)
from .pipeline import MeasurementPipeline
from .units import UnitFormatter

__version__ = "1.0.0"

__all__ = [
    "AccuracyAdjustments",
    "AccuracyReport",
    "Coordinate",
    "DegenerateTriangle",
    "ElevationUnavailable",
    "ExclusionKind",
    "InvalidPolygon",
    "MeasurementConfig",
    "MeasurementError",
    "MeasurementMethod",
    "MeasurementPipeline",
    "MeasurementResult",
    "Polygon",
    "PrecisionSettings",
    "TerrainProfile",
    "Triangle",
    "UnitFormatter",
    "VerificationDivergence",
    "export_measurements",
    "get_config",
    "to_records",
]
