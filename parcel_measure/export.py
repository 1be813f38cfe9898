"""
Export measurements as JSON, CSV or KML

Pure data transforms: every function returns a string and writes nothing.
"""

import csv
import io
import json
import xml.etree.ElementTree as ET
from typing import List, Sequence, Union

from .models import ExportFormat, ExportRecord, MeasurementResult

KML_NS = "http://www.opengis.net/kml/2.2"

CSV_HEADERS = ["ID", "Type", "Area (sq ft)", "Perimeter (ft)", "Vertices"]

Exportable = Union[MeasurementResult, Sequence[ExportRecord]]


def to_records(result: MeasurementResult, prefix: str = "m") -> List[ExportRecord]:
    """One record per lawn section followed by one per excluded area"""
    records = []
    for i, section in enumerate(result.sections, 1):
        records.append(ExportRecord(
            id=f"{prefix}{i}",
            type="lawn",
            name=section.name,
            area=section.area_sqft,
            perimeter=section.perimeter_ft,
            vertices=section.vertices,
        ))

    offset = len(records)
    for i, area in enumerate(result.excluded_areas, offset + 1):
        records.append(ExportRecord(
            id=f"{prefix}{i}",
            type=area.kind.value,
            name=area.kind.value,
            area=area.area_sqft,
            perimeter=area.perimeter_ft,
            vertices=area.vertices,
        ))

    return records


def _as_records(data: Exportable) -> List[ExportRecord]:
    if isinstance(data, MeasurementResult):
        return to_records(data)
    return list(data)


def export_json(data: Exportable) -> str:
    if isinstance(data, MeasurementResult):
        return data.model_dump_json(indent=2)
    return json.dumps([r.model_dump(mode="json") for r in data], indent=2)


def export_csv(data: Exportable) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in _as_records(data):
        writer.writerow([record.id, record.type, record.area, record.perimeter, len(record.vertices)])
    return buffer.getvalue()


def export_kml(data: Exportable, document_name: str = "Property Measurements") -> str:
    """KML 2.2 document with one polygon placemark per record"""
    ET.register_namespace("", KML_NS)

    def tag(name: str) -> str:
        return f"{{{KML_NS}}}{name}"

    root = ET.Element(tag("kml"))
    document = ET.SubElement(root, tag("Document"))
    ET.SubElement(document, tag("name")).text = document_name

    for record in _as_records(data):
        placemark = ET.SubElement(document, tag("Placemark"))
        ET.SubElement(placemark, tag("name")).text = record.name or record.type
        ET.SubElement(placemark, tag("description")).text = (
            f"Area: {record.area:.2f} sq ft, Perimeter: {record.perimeter:.2f} ft"
        )

        polygon = ET.SubElement(placemark, tag("Polygon"))
        outer = ET.SubElement(polygon, tag("outerBoundaryIs"))
        ring = ET.SubElement(outer, tag("LinearRing"))

        # KML rings list lng,lat,alt and repeat the first vertex at the end
        vertices = list(record.vertices)
        if vertices:
            vertices.append(vertices[0])
        ET.SubElement(ring, tag("coordinates")).text = " ".join(
            f"{v.longitude},{v.latitude},0" for v in vertices
        )

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def export_measurements(data: Exportable, fmt: Union[ExportFormat, str]) -> str:
    try:
        fmt = ExportFormat(fmt)
    except ValueError:
        raise ValueError(f"Unsupported export format: {fmt}") from None

    if fmt is ExportFormat.JSON:
        return export_json(data)
    if fmt is ExportFormat.CSV:
        return export_csv(data)
    return export_kml(data)
