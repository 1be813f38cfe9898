"""
Unit conversion and display formatting

Raw measurements are square feet (area) and feet (linear); everything else
is a fixed multiplicative conversion from those.
"""

import math
from typing import Dict, Optional, Union

from .config import PrecisionSettings, validate_precision
from .models import AreaUnit, FormattedMeasurement, LinearUnit, UnitConversion


AREA_CONVERSIONS: Dict[AreaUnit, float] = {
    AreaUnit.SQFT: 1.0,
    AreaUnit.SQM: 0.092903,
    AreaUnit.ACRES: 0.0000229568,
    AreaUnit.HECTARES: 0.0000092903,
}

LINEAR_CONVERSIONS: Dict[LinearUnit, float] = {
    LinearUnit.FT: 1.0,
    LinearUnit.M: 0.3048,
    LinearUnit.YARDS: 0.333333,
    LinearUnit.KM: 0.0003048,
    LinearUnit.MILES: 0.000189394,
}

AREA_LABELS: Dict[AreaUnit, str] = {
    AreaUnit.SQFT: "sq ft",
    AreaUnit.SQM: "sq m",
    AreaUnit.ACRES: "acres",
    AreaUnit.HECTARES: "hectares",
}

LINEAR_LABELS: Dict[LinearUnit, str] = {
    LinearUnit.FT: "ft",
    LinearUnit.M: "m",
    LinearUnit.YARDS: "yards",
    LinearUnit.KM: "km",
    LinearUnit.MILES: "miles",
}


def apply_precision(value: float, precision: int) -> float:
    """Round half-up to ``precision`` decimal places"""
    multiplier = 10 ** precision
    return math.floor(value * multiplier + 0.5) / multiplier


def format_number(value: float, precision: int) -> str:
    """Thousands separators, at most ``precision`` fraction digits, trailing zeros trimmed"""
    text = f"{value:,.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _check_places(places: int) -> None:
    if not isinstance(places, int) or not 0 <= places <= 10:
        raise ValueError(f"precision must be an integer between 0 and 10, got {places!r}")


def convert_area(value_sqft: float, unit: Union[AreaUnit, str]) -> float:
    return value_sqft * AREA_CONVERSIONS[AreaUnit(unit)]


def area_to_sqft(value: float, unit: Union[AreaUnit, str]) -> float:
    return value / AREA_CONVERSIONS[AreaUnit(unit)]


def convert_linear(value_ft: float, unit: Union[LinearUnit, str]) -> float:
    return value_ft * LINEAR_CONVERSIONS[LinearUnit(unit)]


def linear_to_ft(value: float, unit: Union[LinearUnit, str]) -> float:
    return value / LINEAR_CONVERSIONS[LinearUnit(unit)]


class UnitFormatter:
    """
    Format raw measurements in the units and precision of a PrecisionSettings

    Usage:
        formatter = UnitFormatter(PrecisionSettings(area_unit="acres"))
        formatter.format_area(43560).display   # "1 acres"
    """

    def __init__(self, settings: Optional[PrecisionSettings] = None):
        self.settings = settings or PrecisionSettings()
        validate_precision(self.settings)

    def update_settings(self, **changes) -> None:
        self.settings.update(**changes)

    def format_area(
        self,
        value_sqft: float,
        unit: Optional[Union[AreaUnit, str]] = None,
        precision: Optional[int] = None
    ) -> FormattedMeasurement:
        target = AreaUnit(unit or self.settings.area_unit)
        places = self.settings.decimal_places if precision is None else precision
        _check_places(places)

        value = apply_precision(convert_area(value_sqft, target), places)

        conversions = None
        if self.settings.show_conversions:
            conversions = [
                self._conversion(convert_area(value_sqft, other), AREA_LABELS[other], places)
                for other in AreaUnit if other != target
            ]

        return FormattedMeasurement(
            value=value,
            display=f"{format_number(value, places)} {AREA_LABELS[target]}",
            unit=target.value,
            precision=places,
            raw=value_sqft,
            conversions=conversions,
        )

    def format_linear(
        self,
        value_ft: float,
        unit: Optional[Union[LinearUnit, str]] = None,
        precision: Optional[int] = None
    ) -> FormattedMeasurement:
        target = LinearUnit(unit or self.settings.linear_unit)
        places = self.settings.decimal_places if precision is None else precision
        _check_places(places)

        value = apply_precision(convert_linear(value_ft, target), places)

        conversions = None
        if self.settings.show_conversions:
            conversions = [
                self._conversion(convert_linear(value_ft, other), LINEAR_LABELS[other], places)
                for other in LinearUnit if other != target
            ]

        return FormattedMeasurement(
            value=value,
            display=f"{format_number(value, places)} {LINEAR_LABELS[target]}",
            unit=target.value,
            precision=places,
            raw=value_ft,
            conversions=conversions,
        )

    @staticmethod
    def _conversion(value: float, label: str, places: int) -> UnitConversion:
        rounded = apply_precision(value, places)
        return UnitConversion(unit=label, value=rounded, display=f"{format_number(rounded, places)} {label}")

