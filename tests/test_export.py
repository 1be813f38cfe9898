"""Tests for JSON / CSV / KML export."""

import csv
import io
import json
import xml.etree.ElementTree as ET

import pytest

from conftest import ring
from parcel_measure.export import (
    CSV_HEADERS,
    KML_NS,
    export_csv,
    export_json,
    export_kml,
    export_measurements,
    to_records,
)
from parcel_measure.pipeline import MeasurementPipeline

NS = {"kml": KML_NS}


@pytest.fixture
def result(measure_config, square_100ft, lot_01_acre):
    """Two lawn sections and a house footprint, measured flat"""
    measure_config.apply_terrain_correction = False
    house = ring([(20, 20), (20, 50), (50, 50), (50, 20)])
    pipeline = MeasurementPipeline(measure_config)
    return pipeline.measure([square_100ft, lot_01_acre], excluded=[("building", house)])


class TestRecords:

    def test_one_record_per_section_and_exclusion(self, result) -> None:
        records = to_records(result)
        assert [r.id for r in records] == ["m1", "m2", "m3"]
        assert [r.type for r in records] == ["lawn", "lawn", "building"]
        assert [r.name for r in records] == ["Back Yard", "Front Yard", "building"]

    def test_record_values(self, result) -> None:
        first = to_records(result)[0]
        assert first.area == result.sections[0].area_sqft
        assert first.perimeter == result.sections[0].perimeter_ft
        assert len(first.vertices) == 4

    def test_prefix(self, result) -> None:
        assert to_records(result, prefix="lot-")[0].id == "lot-1"


class TestJson:

    def test_result_round_trips_through_json(self, result) -> None:
        data = json.loads(export_json(result))
        assert data["area_sqft"] == pytest.approx(result.area_sqft)
        assert len(data["sections"]) == 2
        assert data["excluded"]["building"] == pytest.approx(900, rel=0.01)

    def test_records(self, result) -> None:
        data = json.loads(export_json(to_records(result)))
        assert [r["id"] for r in data] == ["m1", "m2", "m3"]


class TestCsv:

    def test_header_and_rows(self, result) -> None:
        rows = list(csv.reader(io.StringIO(export_csv(result))))
        assert rows[0] == CSV_HEADERS
        assert rows[0] == ["ID", "Type", "Area (sq ft)", "Perimeter (ft)", "Vertices"]
        assert len(rows) == 4
        assert rows[3][1] == "building"
        assert rows[3][4] == "4"
        assert float(rows[1][2]) == pytest.approx(10_000, rel=0.01)


class TestKml:

    def test_document(self, result) -> None:
        text = export_kml(result)
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>')

        root = ET.fromstring(text.split("\n", 1)[1])
        assert root.find("kml:Document/kml:name", NS).text == "Property Measurements"
        assert len(root.findall(".//kml:Placemark", NS)) == 3

    def test_placemark(self, result) -> None:
        root = ET.fromstring(export_kml(result).split("\n", 1)[1])
        placemark = root.find(".//kml:Placemark", NS)

        assert placemark.find("kml:name", NS).text == "Back Yard"
        assert placemark.find("kml:description", NS).text.startswith("Area: ")
        assert "sq ft, Perimeter: " in placemark.find("kml:description", NS).text

    def test_ring_is_closed_lng_lat(self, result) -> None:
        root = ET.fromstring(export_kml(result).split("\n", 1)[1])
        coords = root.find(".//kml:outerBoundaryIs/kml:LinearRing/kml:coordinates", NS).text.split()

        assert len(coords) == 5
        assert coords[0] == coords[-1]

        lng, lat, alt = coords[0].split(",")
        first = result.sections[0].vertices[0]
        assert float(lng) == first.longitude
        assert float(lat) == first.latitude
        assert alt == "0"


class TestDispatch:

    @pytest.mark.parametrize("fmt", ["json", "csv", "kml"])
    def test_formats(self, result, fmt) -> None:
        assert export_measurements(result, fmt)

    def test_unknown_format(self, result) -> None:
        with pytest.raises(ValueError, match="Unsupported export format"):
            export_measurements(result, "shapefile")
