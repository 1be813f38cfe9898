"""Shared pytest fixtures for parcel_measure tests.

COORDINATE SYSTEM:
    Lots are laid out in feet north/east of a fixed reference point at
    40°N 75°W. Offsets are converted with the same spherical radius the
    engine uses, so a 100 ft side really is 100 ft along the ground.
"""

import math
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from parcel_measure.config import MeasurementConfig
from parcel_measure.exceptions import ElevationUnavailable
from parcel_measure.models import Coordinate


REF_LAT = 40.0
REF_LNG = -75.0
EARTH_RADIUS_M = 6371000.0
FT_TO_M = 0.3048


def offset(north_ft: float, east_ft: float, elevation: Optional[float] = None) -> Coordinate:
    """Coordinate ``north_ft`` / ``east_ft`` from the reference point"""
    north_m = north_ft * FT_TO_M
    east_m = east_ft * FT_TO_M
    lat = REF_LAT + math.degrees(north_m / EARTH_RADIUS_M)
    lng = REF_LNG + math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(REF_LAT))))
    return Coordinate(lat, lng, elevation)


def north_ft_of(coord: Coordinate) -> float:
    return math.radians(coord.latitude - REF_LAT) * EARTH_RADIUS_M / FT_TO_M


def ring(points_ft: Sequence[Tuple[float, float]], elevations: Optional[Sequence[float]] = None) -> List[Coordinate]:
    elevations = elevations or [None] * len(points_ft)
    return [offset(n, e, z) for (n, e), z in zip(points_ft, elevations)]


# =============================================================================
# STUB ELEVATION SERVICE
# =============================================================================


class StubElevationCollector:
    """Stand-in for ElevationCollector that never touches the network.

    Elevation is ``elevation_fn(coordinate)``; every call is recorded so
    tests can assert on batching.
    """

    def __init__(self, elevation_fn: Callable[[Coordinate], float], fail: bool = False) -> None:
        self.elevation_fn = elevation_fn
        self.fail = fail
        self.calls: List[List[Coordinate]] = []

    def get_elevations(self, points: Sequence[Coordinate], timeout: Optional[float] = None) -> List[float]:
        self.calls.append(list(points))
        if self.fail:
            raise ElevationUnavailable("stub elevation service is down")
        return [self.elevation_fn(p) for p in points]


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def square_100ft() -> List[Coordinate]:
    """100 ft x 100 ft square, counter-clockwise, no elevation"""
    return ring([(0, 0), (0, 100), (100, 100), (100, 0)])


@pytest.fixture
def lot_01_acre() -> List[Coordinate]:
    """66 ft x 66 ft lot = 4 356 sq ft = 0.1 acre"""
    return ring([(0, 0), (0, 66), (66, 66), (66, 0)])


@pytest.fixture
def l_shape() -> List[Coordinate]:
    """Concave L: 100 x 50 ft base plus a 50 x 50 ft arm = 7 500 sq ft"""
    return ring([(0, 0), (0, 100), (50, 100), (50, 50), (100, 50), (100, 0)])


@pytest.fixture
def tilted_square() -> List[Coordinate]:
    """100 ft square whose north side is 10 ft (3.048 m) higher than its south side"""
    rise_m = 10 * FT_TO_M
    return ring([(0, 0), (0, 100), (100, 100), (100, 0)], [0.0, 0.0, rise_m, rise_m])


@pytest.fixture
def measure_config() -> MeasurementConfig:
    """Fresh config with sequential verification and no request throttling"""
    config = MeasurementConfig()
    config.concurrent_verification = False
    config.api.min_request_interval = 0.0
    return config


@pytest.fixture
def flat_elevation() -> StubElevationCollector:
    return StubElevationCollector(lambda p: 50.0)


@pytest.fixture
def ramp_elevation() -> StubElevationCollector:
    """Plane rising 10% to the north"""
    return StubElevationCollector(lambda p: 0.1 * north_ft_of(p) * FT_TO_M)


@pytest.fixture
def failing_elevation() -> StubElevationCollector:
    return StubElevationCollector(lambda p: 0.0, fail=True)
