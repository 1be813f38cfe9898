"""
Accuracy scoring and dual-pass verification

The second pass re-runs the same measurement on the same inputs. With a
deterministic upstream it always agrees with the first; it only catches
noise introduced while acquiring the boundary, not algorithmic bugs.
"""

import warnings
from typing import Callable, Dict, Optional, Tuple, Union

from loguru import logger

from ..config import MeasurementConfig, get_config
from ..exceptions import VerificationDivergence
from ..models import (
    AccuracyAdjustments,
    AccuracyReport,
    ImageryQuality,
    MeasurementMethod,
    MeasurementResult,
)

PassValue = Union[float, MeasurementResult]

# Method -> (confidence, error margin %)
BASE_ACCURACY: Dict[MeasurementMethod, Tuple[float, float]] = {
    MeasurementMethod.MANUAL: (0.70, 10.0),
    MeasurementMethod.HYBRID: (0.85, 5.0),
    MeasurementMethod.AI_ASSISTED: (0.95, 2.0),
}

# Imagery quality -> (confidence delta, margin delta)
IMAGERY_ADJUSTMENTS: Dict[ImageryQuality, Tuple[float, float]] = {
    ImageryQuality.HIGH: (0.02, -0.5),
    ImageryQuality.MEDIUM: (0.0, 0.0),
    ImageryQuality.LOW: (-0.05, 2.0),
}

BOUNDARY_SNAP_ADJUSTMENT = (0.05, -1.0)
TERRAIN_CORRECTION_ADJUSTMENT = (0.03, -0.5)

MIN_ERROR_MARGIN_PCT = 1.0


def _area_of(value: PassValue) -> float:
    if isinstance(value, MeasurementResult):
        return value.area_sqft
    return float(value)


class MeasurementVerifier:
    """Derive confidence from how a measurement was taken and check it with a second pass"""

    def __init__(self, config: Optional[MeasurementConfig] = None):
        self.config = config or get_config()

    def calculate_accuracy(
        self,
        method: MeasurementMethod,
        adjustments: Optional[AccuracyAdjustments] = None
    ) -> Tuple[float, float]:
        """
        Confidence and error margin for a measurement method

        Returns:
            (confidence in [0, 1], error margin in percent, at least 1%)
        """
        adjustments = adjustments or AccuracyAdjustments()
        confidence, margin = BASE_ACCURACY[MeasurementMethod(method)]

        if adjustments.boundary_snap:
            confidence += BOUNDARY_SNAP_ADJUSTMENT[0]
            margin += BOUNDARY_SNAP_ADJUSTMENT[1]

        if adjustments.terrain_correction:
            confidence += TERRAIN_CORRECTION_ADJUSTMENT[0]
            margin += TERRAIN_CORRECTION_ADJUSTMENT[1]

        delta_confidence, delta_margin = IMAGERY_ADJUSTMENTS[adjustments.imagery_quality]
        confidence += delta_confidence
        margin += delta_margin

        return min(1.0, max(0.0, confidence)), max(MIN_ERROR_MARGIN_PCT, margin)

    @staticmethod
    def deviation_pct(first_area: float, second_area: float) -> float:
        if first_area == 0:
            return 0.0 if second_area == 0 else 100.0
        return abs(second_area - first_area) / first_area * 100

    def build_report(
        self,
        first_pass: PassValue,
        second_pass: PassValue,
        method: MeasurementMethod = MeasurementMethod.MANUAL,
        adjustments: Optional[AccuracyAdjustments] = None
    ) -> AccuracyReport:
        """Accuracy report from two already-computed passes"""
        adjustments = adjustments or AccuracyAdjustments()
        deviation = self.deviation_pct(_area_of(first_pass), _area_of(second_pass))
        confidence, margin = self.calculate_accuracy(method, adjustments)

        diverged = deviation > self.config.divergence_threshold_pct
        if diverged:
            message = (
                f"Verification passes differ by {deviation:.2f}% "
                f"(threshold {self.config.divergence_threshold_pct:.2f}%)"
            )
            logger.warning(message)
            warnings.warn(message, VerificationDivergence, stacklevel=2)
            confidence *= 1.0 - min(deviation, 100.0) / 100.0
            margin = max(margin, deviation)

        return AccuracyReport(
            confidence=confidence,
            error_margin_pct=margin,
            verification_passes=2,
            deviation_pct=deviation,
            method=MeasurementMethod(method),
            adjustments=adjustments,
            diverged=diverged,
        )

    def verify(
        self,
        first_pass: PassValue,
        recompute_fn: Callable[[], PassValue],
        method: MeasurementMethod = MeasurementMethod.MANUAL,
        adjustments: Optional[AccuracyAdjustments] = None
    ) -> AccuracyReport:
        """
        Run ``recompute_fn`` as an independent second pass and score the result

        ``first_pass`` is never modified; a new report is returned.
        """
        second_pass = recompute_fn()
        return self.build_report(first_pass, second_pass, method, adjustments)
