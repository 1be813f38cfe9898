"""
External data collectors for the measurement engine

- ElevationCollector: batched vertex elevation from Open-Meteo / Open-Elevation
"""

from .elevation_collector import ElevationCollector

__all__ = [
    "ElevationCollector",
]
