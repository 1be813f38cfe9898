"""
Command-line interface for the parcel measurement engine

Usage:
    parcel-measure measure --input parcel.json --output result.json
    parcel-measure measure --input parcel.json --format kml --output parcel.kml
    parcel-measure convert --value 43560 --kind area --unit acres
"""

import argparse
import json
import os
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .config import load_config_from_env
from .exceptions import MeasurementError
from .export import export_measurements
from .models import AccuracyAdjustments, AreaUnit, Coordinate, ExportFormat, LinearUnit, MeasurementMethod
from .pipeline import MeasurementPipeline
from .units import UnitFormatter


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def _ring(raw: Sequence[Sequence[float]]) -> List[Coordinate]:
    return [Coordinate.from_sequence(point) for point in raw]


def load_request(path: str) -> Dict[str, Any]:
    """
    Read a measurement request file

    Format:
        {"lawn": [[[lat, lng(, elev)], ...], ...],
         "excluded": [{"kind": "building", "coordinates": [[lat, lng], ...]}],
         "method": "manual",
         "adjustments": {"boundary_snap": false, "imagery_quality": "medium"}}

    Raises:
        ValueError: on a malformed request
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict) or not data.get("lawn"):
        raise ValueError("Request needs a non-empty 'lawn' list of polygons")

    try:
        lawn = [_ring(polygon) for polygon in data["lawn"]]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid lawn polygon: {e}") from e

    excluded: List[Tuple[str, List[Coordinate]]] = []
    for item in data.get("excluded", []):
        try:
            excluded.append((item["kind"], _ring(item["coordinates"])))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid excluded area {item!r}: {e}") from e

    return {
        "lawn": lawn,
        "excluded": excluded,
        "method": MeasurementMethod(data.get("method", MeasurementMethod.MANUAL.value)),
        "adjustments": AccuracyAdjustments(**data.get("adjustments", {})),
    }


def cmd_measure(args):
    """Measure the lawn described by a request file"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        config = load_config_from_env()
        if args.no_terrain:
            config.apply_terrain_correction = False
        config.precision.update(
            area_unit=args.area_unit or config.precision.area_unit,
            linear_unit=args.linear_unit or config.precision.linear_unit,
            decimal_places=config.precision.decimal_places if args.decimals is None else args.decimals,
            use_3d=args.use_3d or config.precision.use_3d,
        )

        request = load_request(args.input)
        if args.method:
            request["method"] = MeasurementMethod(args.method)

        pipeline = MeasurementPipeline(config)
        result = pipeline.measure(
            request["lawn"],
            excluded=request["excluded"],
            method=request["method"],
            adjustments=request["adjustments"],
            allow_2d_fallback=args.allow_2d,
        )
    except (MeasurementError, ValueError) as e:
        logger.error(f"Measurement failed: {e}")
        return 1

    output = export_measurements(result, args.format)
    if args.output:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"✓ Saved {args.format} to {args.output}")
    elif not args.summary:
        print(output)

    formatter = UnitFormatter(config.precision)
    area = formatter.format_area(result.area_sqft)
    perimeter = formatter.format_linear(result.perimeter_ft)
    logger.info(f"  Area: {area.display}")
    logger.info(f"  Perimeter: {perimeter.display}")
    logger.info(
        f"  Confidence: {result.accuracy.confidence:.2f} (±{result.accuracy.error_margin_pct:.1f}%)"
    )

    if args.summary:
        summary = {
            "area": area.display,
            "area_2d_sqft": round(result.area_2d_sqft, 2),
            "perimeter": perimeter.display,
            "sections": len(result.sections),
            "excluded_sqft": {k.value: round(v, 2) for k, v in result.excluded.items() if v},
            "terrain_class": result.terrain.terrain_class.value if result.terrain else None,
            "confidence": result.accuracy.confidence,
            "error_margin_pct": result.accuracy.error_margin_pct,
            "warnings": list(result.warnings),
        }
        print(json.dumps(summary, indent=2))

    return 0


def cmd_convert(args):
    """Convert a square-feet or feet value into another unit"""
    setup_logging(args.verbose)

    formatter = UnitFormatter()
    try:
        if args.decimals is not None:
            formatter.update_settings(decimal_places=args.decimals)
        if args.kind == "area":
            formatted = formatter.format_area(args.value, args.unit)
        else:
            formatted = formatter.format_linear(args.value, args.unit)
    except ValueError as e:
        logger.error(f"Conversion failed: {e}")
        return 1

    print(formatted.display)
    for conversion in formatted.conversions or []:
        print(f"  = {conversion.display}")
    return 0


def main(argv: Optional[Sequence[str]] = None):
    parser = argparse.ArgumentParser(
        description="Parcel Measurement CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Measure a parcel:
    parcel-measure measure --input parcel.json --output result.json

  Export placemarks for a map:
    parcel-measure measure --input parcel.json --format kml --output parcel.kml

  Convert square feet to acres:
    parcel-measure convert --value 43560 --kind area --unit acres
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Measure command
    measure_parser = subparsers.add_parser("measure", help="Measure lawn polygons from a JSON request")
    measure_parser.add_argument("--input", "-i", required=True, help="Input JSON request file")
    measure_parser.add_argument("--output", "-o", help="Output file (stdout if not specified)")
    measure_parser.add_argument("--format", "-f", default=ExportFormat.JSON.value,
                                choices=[f.value for f in ExportFormat], help="Output format")
    measure_parser.add_argument("--method", choices=[m.value for m in MeasurementMethod],
                                help="Override the request's measurement method")
    measure_parser.add_argument("--allow-2d", action="store_true",
                                help="Return a flat measurement if elevation is unavailable")
    measure_parser.add_argument("--no-terrain", action="store_true", help="Skip terrain correction")
    measure_parser.add_argument("--use-3d", action="store_true",
                                help="Exact 3D surface area instead of the slope factor")
    measure_parser.add_argument("--area-unit", choices=[u.value for u in AreaUnit], help="Display area unit")
    measure_parser.add_argument("--linear-unit", choices=[u.value for u in LinearUnit], help="Display linear unit")
    measure_parser.add_argument("--decimals", type=int, help="Display decimal places (0-10)")
    measure_parser.add_argument("--summary", "-s", action="store_true", help="Print summary to stdout")
    measure_parser.set_defaults(func=cmd_measure)

    # Convert command
    convert_parser = subparsers.add_parser("convert", help="Convert square feet or feet to another unit")
    convert_parser.add_argument("--value", type=float, required=True, help="Value in sq ft (area) or ft (linear)")
    convert_parser.add_argument("--kind", choices=["area", "linear"], default="area", help="Unit family")
    convert_parser.add_argument("--unit", required=True, help="Target unit")
    convert_parser.add_argument("--decimals", type=int, help="Decimal places (0-10)")
    convert_parser.set_defaults(func=cmd_convert)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
