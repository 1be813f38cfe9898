"""
Measurement math for parcel polygons
"""

from .area_calculator import AreaCalculator
from .triangulator import Triangulator
from .terrain_analyzer import TerrainAnalyzer
from .verification import MeasurementVerifier

__all__ = [
    "AreaCalculator",
    "Triangulator",
    "TerrainAnalyzer",
    "MeasurementVerifier",
]
