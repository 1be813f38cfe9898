"""
Errors raised by the measurement engine
"""


class MeasurementError(Exception):
    """Base class for all measurement engine errors"""


class InvalidPolygon(MeasurementError, ValueError):
    """Polygon has fewer than 3 unique vertices, crosses itself, or encloses no area"""


class DegenerateTriangle(MeasurementError):
    """Triangulation cannot produce a triangle from the given vertices"""


class ElevationUnavailable(MeasurementError):
    """Elevation is missing for at least one vertex"""


class VerificationDivergence(UserWarning):
    """
    Second measurement pass disagrees with the first by more than the
    configured threshold.

    Issued through ``warnings.warn``; the measurement itself still completes
    with a low-confidence accuracy report.
    """
