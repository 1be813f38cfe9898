"""
Elevation data collector using Open-Meteo API and Open-Elevation API

One batched lookup per measurement. Missing or failed elevations raise
ElevationUnavailable; nothing is ever defaulted to zero.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import requests
from loguru import logger

from ..config import MeasurementConfig, get_config
from ..exceptions import ElevationUnavailable
from ..models import Coordinate


class ElevationCollector:
    """Batch elevation lookup from free APIs"""

    def __init__(self, config: Optional[MeasurementConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config()
        self.session = session or requests.Session()
        self._last_request_time = 0.0
        self._min_request_interval = self.config.api.min_request_interval

        # Primary API: Open-Meteo (accepts comma separated batches)
        self.open_meteo_url = self.config.api.open_meteo_url

        # Fallback: Open-Elevation
        self.open_elevation_url = self.config.api.open_elevation_url

    def _rate_limit(self):
        """Ensure we don't exceed rate limits"""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    @property
    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.config.api.user_agent}

    def get_elevations(
        self,
        points: Sequence[Coordinate],
        timeout: Optional[float] = None
    ) -> List[float]:
        """
        Elevation in meters for every point, in input order

        Args:
            points: Coordinates to look up (their own elevation is ignored)
            timeout: Per-request timeout in seconds, defaults to the config value

        Raises:
            ElevationUnavailable: if neither provider returns a full, non-null batch
        """
        if not points:
            return []

        timeout = timeout or self.config.api.request_timeout
        logger.info(f"Fetching elevation for {len(points)} points")

        errors = []
        providers = (
            ("Open-Meteo", self._get_elevation_open_meteo_batch),
            ("Open-Elevation", self._get_elevation_open_elevation_batch),
        )
        for source, provider in providers:
            try:
                elevations = provider(points, timeout)
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.warning(f"{source} elevation request failed: {e}")
                errors.append(e)
                continue

            if elevations is not None:
                return elevations
            errors.append(ValueError("incomplete elevation batch"))

        logger.error(f"Elevation unavailable for {len(points)} points")
        raise ElevationUnavailable(
            f"No elevation provider returned a complete batch for {len(points)} points"
        ) from errors[-1]

    def elevate(self, points: Sequence[Coordinate], timeout: Optional[float] = None) -> List[Coordinate]:
        """Copies of ``points`` with looked-up elevations"""
        elevations = self.get_elevations(points, timeout)
        return [p.with_elevation(e) for p, e in zip(points, elevations)]

    def _get_elevation_open_meteo_batch(
        self,
        points: Sequence[Coordinate],
        timeout: float
    ) -> Optional[List[float]]:
        """Open-Meteo accepts comma-separated latitudes and longitudes"""
        self._rate_limit()

        lats = ",".join(str(p.latitude) for p in points)
        lons = ",".join(str(p.longitude) for p in points)

        response = self.session.get(
            self.open_meteo_url,
            params={"latitude": lats, "longitude": lons},
            headers=self._headers,
            timeout=timeout
        )
        response.raise_for_status()
        data = response.json()

        elevations = data.get("elevation")
        if not isinstance(elevations, list):
            # Single-point queries may come back as a bare number
            elevations = [elevations] if elevations is not None else []

        logger.debug(f"Open-Meteo batch elevation: {elevations}")
        return self._validated(elevations, len(points), "Open-Meteo")

    def _get_elevation_open_elevation_batch(
        self,
        points: Sequence[Coordinate],
        timeout: float
    ) -> Optional[List[float]]:
        """Open-Elevation batch lookup (fallback)"""
        self._rate_limit()

        payload = {"locations": [{"latitude": p.latitude, "longitude": p.longitude} for p in points]}
        response = self.session.post(
            self.open_elevation_url,
            json=payload,
            headers=self._headers,
            timeout=timeout
        )
        response.raise_for_status()
        data: Dict[str, Any] = response.json()

        results = data.get("results", [])
        elevations = [r.get("elevation") for r in results]

        logger.debug(f"Open-Elevation batch elevation: {elevations}")
        return self._validated(elevations, len(points), "Open-Elevation")

    @staticmethod
    def _validated(elevations: List[Any], expected: int, source: str) -> Optional[List[float]]:
        if len(elevations) != expected:
            logger.warning(f"{source} returned {len(elevations)} elevations for {expected} points")
            return None
        if any(e is None for e in elevations):
            logger.warning(f"{source} returned null elevations")
            return None
        return [float(e) for e in elevations]
