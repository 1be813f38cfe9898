"""
Configuration settings for the parcel measurement engine
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional
import os

from dotenv import load_dotenv
from loguru import logger

from .models import AreaUnit, LinearUnit


AREA_UNITS = tuple(u.value for u in AreaUnit)
LINEAR_UNITS = tuple(u.value for u in LinearUnit)


@dataclass
class APIConfig:
    """Elevation service endpoints and request settings"""
    # Open-Meteo elevation (primary, accepts comma separated batches)
    open_meteo_url: str = "https://api.open-meteo.com/v1/elevation"

    # Open-Elevation (fallback)
    open_elevation_url: str = "https://api.open-elevation.com/api/v1/lookup"

    # Request settings
    request_timeout: float = 30.0
    min_request_interval: float = 1.0

    user_agent: str = "ParcelMeasure/1.0"


@dataclass
class PrecisionSettings:
    """Output units and precision for formatted measurements"""
    area_unit: str = "sqft"
    linear_unit: str = "ft"
    decimal_places: int = 2
    use_3d: bool = False
    show_conversions: bool = True

    def update(self, **changes) -> None:
        """Update named options in place"""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ValueError(f"Unknown precision settings: {', '.join(unknown)}")

        validate_precision(replace(self, **changes))

        for name, value in changes.items():
            setattr(self, name, value)


@dataclass
class MeasurementConfig:
    """Measurement engine configuration"""
    # Spherical Earth radius used by projection, haversine and 3D conversion
    earth_radius_m: float = 6371000.0

    # Consecutive vertices closer than this (degrees, per axis) are merged
    duplicate_tolerance_deg: float = 1e-6

    # Correction factor is undefined at 90 degrees
    max_slope_degrees: float = 89.0

    # Verification passes differing by more than this are flagged
    divergence_threshold_pct: float = 5.0

    # Feature flags
    apply_terrain_correction: bool = True
    concurrent_verification: bool = True

    api: APIConfig = field(default_factory=APIConfig)
    precision: PrecisionSettings = field(default_factory=PrecisionSettings)


# Global config instance
config = MeasurementConfig()


def get_config() -> MeasurementConfig:
    """Get global configuration"""
    return config


def validate_precision(settings: PrecisionSettings) -> None:
    errors = []

    if settings.area_unit not in AREA_UNITS:
        errors.append(f"area_unit must be one of {AREA_UNITS}, got {settings.area_unit!r}")
    if settings.linear_unit not in LINEAR_UNITS:
        errors.append(f"linear_unit must be one of {LINEAR_UNITS}, got {settings.linear_unit!r}")
    if not isinstance(settings.decimal_places, int) or not 0 <= settings.decimal_places <= 10:
        errors.append(f"decimal_places must be an integer between 0 and 10, got {settings.decimal_places!r}")

    if errors:
        raise ValueError("Invalid precision settings:\n" + "\n".join(f"  - {e}" for e in errors))


def validate_config(config: MeasurementConfig) -> None:
    """
    Validate that all configuration values are usable.
    Raises ValueError listing every problem found.
    """
    errors = []

    if config.earth_radius_m is None or config.earth_radius_m <= 0:
        errors.append(f"earth_radius_m must be positive, got {config.earth_radius_m}")

    if config.duplicate_tolerance_deg is None or config.duplicate_tolerance_deg < 0:
        errors.append(f"duplicate_tolerance_deg must be >= 0, got {config.duplicate_tolerance_deg}")

    if config.max_slope_degrees is None or not 0 < config.max_slope_degrees < 90:
        errors.append(f"max_slope_degrees must be between 0 and 90 (exclusive), got {config.max_slope_degrees}")

    if config.divergence_threshold_pct is None or config.divergence_threshold_pct < 0:
        errors.append(f"divergence_threshold_pct must be >= 0, got {config.divergence_threshold_pct}")

    if config.api is None:
        errors.append("api configuration is required but not set")
    else:
        if not config.api.open_meteo_url:
            errors.append("api.open_meteo_url is required but not set")
        if config.api.request_timeout is None or config.api.request_timeout <= 0:
            errors.append(f"api.request_timeout must be positive, got {config.api.request_timeout}")

    if config.precision is None:
        errors.append("precision settings are required but not set")
    else:
        try:
            validate_precision(config.precision)
        except ValueError as e:
            errors.append(str(e))

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)


def load_config_from_env(base: Optional[MeasurementConfig] = None) -> MeasurementConfig:
    """
    Build a config from environment variables, loading a .env file first.

    Existing environment variables win over values in the .env file.
    """
    env_paths = [
        Path(__file__).parent.parent / ".env",  # Project root
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            logger.debug(f"Loaded .env file from {env_path}")
            break

    cfg = base or MeasurementConfig()

    open_meteo_url = os.getenv("PARCEL_MEASURE_OPEN_METEO_URL")
    if open_meteo_url:
        cfg.api.open_meteo_url = open_meteo_url

    open_elevation_url = os.getenv("PARCEL_MEASURE_OPEN_ELEVATION_URL")
    if open_elevation_url:
        cfg.api.open_elevation_url = open_elevation_url

    timeout = os.getenv("PARCEL_MEASURE_REQUEST_TIMEOUT")
    if timeout:
        cfg.api.request_timeout = float(timeout)

    threshold = os.getenv("PARCEL_MEASURE_DIVERGENCE_THRESHOLD_PCT")
    if threshold:
        cfg.divergence_threshold_pct = float(threshold)

    validate_config(cfg)
    return cfg
