"""
Measurement Pipeline Orchestrator

  1. Validate lawn and excluded polygons
  2. Fetch missing vertex elevations (one batched request)
  3. Measure each section: planar area, perimeter, terrain correction
  4. Sum excluded areas per kind
  5. Second pass + accuracy report
  6. Assemble the immutable MeasurementResult
"""

import json
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from .analysis import AreaCalculator, MeasurementVerifier, TerrainAnalyzer, Triangulator
from .analysis.geometry_utils import centroid, is_simple, point_in_polygon
from .collectors import ElevationCollector
from .config import MeasurementConfig, get_config
from .exceptions import ElevationUnavailable, InvalidPolygon
from .models import (
    AccuracyAdjustments,
    AreaUnit,
    Coordinate,
    ExcludedArea,
    ExclusionKind,
    LinearUnit,
    MeasurementMethod,
    MeasurementResult,
    Polygon,
    SectionBreakdown,
    SectionKind,
    TerrainProfile,
)
from .units import AREA_CONVERSIONS, LINEAR_CONVERSIONS

PolygonInput = Union[Polygon, Sequence[Coordinate]]
ExclusionInput = Tuple[Union[ExclusionKind, str], PolygonInput]


@dataclass
class _Pass:
    """Numbers from one measurement pass"""
    sections: List[SectionBreakdown] = field(default_factory=list)
    excluded_areas: List[ExcludedArea] = field(default_factory=list)
    profiles: List[Optional[TerrainProfile]] = field(default_factory=list)

    @property
    def area_sqft(self) -> float:
        return sum(s.area_sqft for s in self.sections)

    @property
    def area_2d_sqft(self) -> float:
        return sum(s.area_2d_sqft for s in self.sections)

    @property
    def perimeter_ft(self) -> float:
        return sum(s.perimeter_ft for s in self.sections)

    @property
    def excluded_totals(self) -> Dict[ExclusionKind, float]:
        totals = {kind: 0.0 for kind in ExclusionKind}
        for area in self.excluded_areas:
            totals[area.kind] += area.area_sqft
        return totals

    @property
    def primary_terrain(self) -> Optional[TerrainProfile]:
        """Profile of the largest lawn section"""
        if not self.sections or self.profiles[0] is None:
            return None
        largest = max(range(len(self.sections)), key=lambda i: self.sections[i].area_2d_sqft)
        return self.profiles[largest]


def _section_kind(index: int) -> Tuple[SectionKind, str]:
    if index == 0:
        return SectionKind.BACK_YARD, "Back Yard"
    if index == 1:
        return SectionKind.FRONT_YARD, "Front Yard"
    return SectionKind.SIDE_YARD, f"Side Yard {index - 1}"


class MeasurementPipeline:
    """
    Measure lawn areas from polygon vertices

    Usage:
        pipeline = MeasurementPipeline()
        result = pipeline.measure([lawn_coords], excluded=[("building", house_coords)])
        pipeline.save(result, "output/measurement.json")
    """

    def __init__(
        self,
        config: Optional[MeasurementConfig] = None,
        elevation_collector: Optional[ElevationCollector] = None
    ):
        self.config = config or get_config()

        self.area_calculator = AreaCalculator(self.config)
        self.triangulator = Triangulator(self.config)
        self.terrain_analyzer = TerrainAnalyzer(self.config, self.triangulator, self.area_calculator)
        self.verifier = MeasurementVerifier(self.config)
        self.elevation_collector = elevation_collector or ElevationCollector(self.config)

    def build_polygon(self, coords: PolygonInput) -> Polygon:
        """
        Normalize and validate raw vertices

        Raises:
            InvalidPolygon: fewer than 3 unique vertices, self-intersecting,
                or enclosing no area
        """
        vertices = coords.vertices if isinstance(coords, Polygon) else coords
        polygon = Polygon.from_coordinates(vertices, self.config.duplicate_tolerance_deg)

        if self.area_calculator.area_sqm(polygon) <= 0:
            raise InvalidPolygon("Polygon encloses no area (all vertices collinear)")
        if not is_simple(polygon.vertices):
            raise InvalidPolygon("Polygon boundary intersects itself")

        return polygon

    def measure(
        self,
        lawn: Sequence[PolygonInput],
        excluded: Sequence[ExclusionInput] = (),
        method: Union[MeasurementMethod, str] = MeasurementMethod.MANUAL,
        adjustments: Optional[AccuracyAdjustments] = None,
        allow_2d_fallback: bool = False,
        use_3d: Optional[bool] = None,
        measured_at: Optional[datetime] = None
    ) -> MeasurementResult:
        """
        Run the complete measurement

        Args:
            lawn: Lawn polygons; the first is the back yard, the second the
                front yard, any others are side yards
            excluded: (kind, polygon) pairs cut out of the lawn
            method: How the boundary was acquired
            adjustments: Accuracy adjustments; terrain_correction is set from
                whether terrain was actually applied
            allow_2d_fallback: Return a flat measurement when elevation is
                unavailable instead of raising
            use_3d: Exact triangle surface area instead of the slope factor
                (defaults to the precision settings)
            measured_at: Timestamp for the result, defaults to now (UTC)

        Raises:
            InvalidPolygon: for any bad lawn or excluded polygon
            ElevationUnavailable: when terrain is enabled, elevation cannot be
                fetched and allow_2d_fallback is False
        """
        method = MeasurementMethod(method)
        use_3d = self.config.precision.use_3d if use_3d is None else use_3d
        warnings: List[str] = []

        # ============================================================
        # STAGE 1: Validate polygons
        # ============================================================
        logger.info(f"Stage 1: Validating {len(lawn)} lawn and {len(excluded)} excluded polygons...")
        if not lawn:
            raise InvalidPolygon("At least one lawn polygon is required")

        lawn_polygons = [self.build_polygon(p) for p in lawn]
        excluded_polygons = [(ExclusionKind(kind), self.build_polygon(p)) for kind, p in excluded]
        for kind, polygon in excluded_polygons:
            if not any(point_in_polygon(centroid(polygon.vertices), section.vertices) for section in lawn_polygons):
                message = f"Excluded {kind.value} area lies outside every lawn section"
                logger.warning(message)
                warnings.append(message)

        # ============================================================
        # STAGE 2: Elevation
        # ============================================================
        terrain_applied = False
        if self.config.apply_terrain_correction:
            logger.info("Stage 2: Collecting elevation...")
            try:
                lawn_polygons = self._with_elevation(lawn_polygons)
                terrain_applied = True
            except ElevationUnavailable as e:
                if not allow_2d_fallback:
                    raise
                message = f"Terrain correction skipped, 2D-only result: {e}"
                logger.warning(message)
                warnings.append(message)
        else:
            logger.info("Stage 2: Terrain correction disabled, skipping elevation")

        # ============================================================
        # STAGE 3-5: Measure twice, score
        # ============================================================
        logger.info("Stage 3: Measuring sections...")
        args = (lawn_polygons, excluded_polygons, terrain_applied, use_3d)

        if self.config.concurrent_verification:
            with ThreadPoolExecutor(max_workers=2) as pool:
                first_future = pool.submit(self._measure_pass, *args)
                second_future = pool.submit(self._measure_pass, *args)
                first, second = first_future.result(), second_future.result()
        else:
            first = self._measure_pass(*args)
            second = self._measure_pass(*args)

        adjustments = (adjustments or AccuracyAdjustments()).model_copy(
            update={"terrain_correction": terrain_applied}
        )
        logger.info("Stage 4: Verifying measurement...")
        accuracy = self.verifier.build_report(first.area_sqft, second.area_sqft, method, adjustments)
        if accuracy.diverged:
            warnings.append(f"Verification passes differ by {accuracy.deviation_pct:.2f}%")

        area_sqft = first.area_sqft
        perimeter_ft = first.perimeter_ft
        result = MeasurementResult(
            area_sqft=area_sqft,
            area_sqm=area_sqft * AREA_CONVERSIONS[AreaUnit.SQM],
            area_2d_sqft=first.area_2d_sqft,
            perimeter_ft=perimeter_ft,
            perimeter_m=perimeter_ft * LINEAR_CONVERSIONS[LinearUnit.M],
            terrain=first.primary_terrain,
            terrain_applied=terrain_applied,
            accuracy=accuracy,
            sections=tuple(first.sections),
            excluded=first.excluded_totals,
            excluded_areas=tuple(first.excluded_areas),
            method=method,
            measured_at=measured_at or datetime.now(timezone.utc),
            warnings=tuple(warnings),
        )

        logger.info(
            f"Measured {area_sqft:,.1f} sq ft over {len(result.sections)} section(s), "
            f"confidence {accuracy.confidence:.2f} ±{accuracy.error_margin_pct:.1f}%"
        )
        return result

    def measure_manual(
        self,
        drawn: Sequence[PolygonInput],
        excluded: Sequence[ExclusionInput] = (),
        **kwargs
    ) -> MeasurementResult:
        """Measure user-drawn polygons"""
        return self.measure(drawn, excluded, method=MeasurementMethod.MANUAL, **kwargs)

    def save(self, result: MeasurementResult, output_path: str) -> str:
        """Save measurement result to JSON file"""
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved measurement to {output_path}")
        return output_path

    # ============================================================
    # Helper Methods
    # ============================================================

    def _with_elevation(self, polygons: List[Polygon]) -> List[Polygon]:
        """Fill missing vertex elevations with one batched lookup across all polygons"""
        missing = [
            (p_index, v_index, vertex)
            for p_index, polygon in enumerate(polygons)
            for v_index, vertex in enumerate(polygon.vertices)
            if not vertex.has_elevation
        ]
        if not missing:
            logger.debug("All vertices carry elevation, no lookup needed")
            return polygons

        elevations = self.elevation_collector.get_elevations([m[2] for m in missing])
        if len(elevations) != len(missing):
            raise ElevationUnavailable(
                f"Elevation service returned {len(elevations)} values for {len(missing)} points"
            )

        filled = [list(p.vertices) for p in polygons]
        for (p_index, v_index, vertex), elevation in zip(missing, elevations):
            filled[p_index][v_index] = vertex.with_elevation(elevation)

        return [Polygon(tuple(vertices)) for vertices in filled]

    def _measure_pass(
        self,
        lawn: List[Polygon],
        excluded: List[Tuple[ExclusionKind, Polygon]],
        use_terrain: bool,
        use_3d: bool
    ) -> _Pass:
        measured = _Pass()

        for index, polygon in enumerate(lawn):
            area_2d = self.area_calculator.area(polygon)
            perimeter = self.area_calculator.perimeter(polygon)

            profile = None
            area = area_2d
            factor = 1.0
            if use_terrain:
                profile = self.terrain_analyzer.terrain_profile(polygon)
                if use_3d:
                    triangles = self.triangulator.triangulate(polygon)
                    area = self.terrain_analyzer.surface_area_3d(triangles)
                    factor = area / area_2d
                else:
                    factor = profile.correction_factor
                    area = area_2d * factor

            kind, name = _section_kind(index)
            measured.sections.append(SectionBreakdown(
                name=name,
                kind=kind,
                area_sqft=area,
                area_2d_sqft=area_2d,
                perimeter_ft=perimeter,
                correction_factor=factor,
                vertices=polygon.vertices,
            ))
            measured.profiles.append(profile)

        for kind, polygon in excluded:
            measured.excluded_areas.append(ExcludedArea(
                kind=kind,
                area_sqft=self.area_calculator.area(polygon),
                perimeter_ft=self.area_calculator.perimeter(polygon),
                vertices=polygon.vertices,
            ))

        return measured
